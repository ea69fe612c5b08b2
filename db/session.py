"""
db/session.py

Engine and session factory for the revenue store.

Nothing connects at import time: the engine is built on first use from
``db.config`` so that the pipeline and its tests run without a database.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import get_engine_settings, resolve_database_url

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_db_engine() -> Engine:
    """
    Build a pooled PostgreSQL engine with a per-statement timeout.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    settings = get_engine_settings()
    engine = create_engine(
        database_url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle_seconds,
        connect_args={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
    )
    logger.info(
        "Database engine created pool_size=%s max_overflow=%s statement_timeout_ms=%s",
        settings.pool_size,
        settings.max_overflow,
        settings.statement_timeout_ms,
    )
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    """
    Open a session bound to the shared engine.

    Objects stay readable after commit so services can build responses from
    the rows they just wrote.
    """

    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection() -> None:
    with get_engine().connect() as connection:
        connection.execute(text("SELECT 1"))

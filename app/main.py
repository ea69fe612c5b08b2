from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import has_database_url, load_env_files

    load_env_files()

    errors: list[str] = []

    if not has_database_url():
        errors.append(
            "No database URL configured. Set DATABASE_URL, or configure "
            "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
        )

    for name in ("UPLOAD_MAX_BYTES", "UPLOAD_MAX_VALIDATION_ERRORS", "UPLOAD_BATCH_SIZE"):
        raw_value = os.getenv(name)
        if raw_value is not None and not raw_value.strip().isdigit():
            errors.append(f"{name}={raw_value!r} is not a positive integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy.exc import SQLAlchemyError

    from db.session import check_connection

    try:
        check_connection()
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    missing = set(Base.metadata.tables.keys()) - set(inspector.get_table_names())

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Revenue Metrics API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import metrics_router, revenue_uploads_router

    application.include_router(revenue_uploads_router)
    application.include_router(metrics_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()

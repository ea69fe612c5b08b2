"""
db/models/revenue_ledger_entry.py

Durable customer/month revenue ledger, the source of truth for metrics.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

LEDGER_UNIQUE_CONSTRAINT = "uq_revenue_ledger_entries_company_customer_period"


class RevenueLedgerEntry(Base, TimestampMixin):
    """
    One customer's revenue for one month of one company.

    Uploads replace every stored entry of each period they contain, so the
    unique constraint only guards against duplicates within one write.
    """

    __tablename__ = "revenue_ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    upload_job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("upload_jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    customer_id: Mapped[str] = mapped_column(Text, nullable=False)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Calendar month as YYYY-MM",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "customer_id",
            "period",
            name=LEDGER_UNIQUE_CONSTRAINT,
        ),
        Index("ix_revenue_ledger_entries_company_period", "company_id", "period"),
    )

"""
db/models/monthly_revenue_aggregate.py

Company-level monthly totals from aggregated metric uploads.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

AGGREGATE_UPSERT_CONSTRAINT = "uq_monthly_revenue_aggregates_company_period"


class MonthlyRevenueAggregate(Base, TimestampMixin):
    """
    Upserted on ``(company_id, period)``: re-uploading a month overwrites it.

    Breakdown columns are NULL when the upload did not supply them.
    """

    __tablename__ = "monthly_revenue_aggregates"

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
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    customer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_revenue: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    expansion_revenue: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    contraction_revenue: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    churned_revenue: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "period", name=AGGREGATE_UPSERT_CONSTRAINT),
    )

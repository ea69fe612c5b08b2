"""
db/models/computed_monthly_metric.py

Persisted output of the metrics engine.
One row per company per period.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

METRICS_UPSERT_CONSTRAINT = "uq_computed_monthly_metrics_company_period"


class ComputedMonthlyMetric(Base):
    """
    Cached metrics for one period, re-derivable from the ledger at any time.

    ``metrics`` holds the wire-format payload, e.g.::

        {
            "period": "2024-03",
            "totalMRR": 15000.0,
            "arr": 180000.0,
            "grossRevenueRetention": 0.9667,
            ...
        }
    """

    __tablename__ = "computed_monthly_metrics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    metrics: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="MonthlyMetrics payload keyed by camelCase field name",
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("company_id", "period", name=METRICS_UPSERT_CONSTRAINT),
    )

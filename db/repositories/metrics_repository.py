"""
db/repositories/metrics_repository.py

Persistence layer for the computed monthly metrics series.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.revenue import MonthlyMetrics
from db.models.computed_monthly_metric import METRICS_UPSERT_CONSTRAINT, ComputedMonthlyMetric


class MetricsRepository:
    """
    Repository for writing and querying ComputedMonthlyMetric rows.

    The series is a cache of the ledger: every write replaces the whole
    series of the company.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_series(
        self,
        *,
        company_id: uuid.UUID,
        series: Sequence[MonthlyMetrics],
    ) -> int:
        """
        Upsert every period of *series* and drop stored periods it lacks.

        Returns
        -------
        int
            Number of rows written (inserted + updated).
        """
        periods = [metrics.period for metrics in series]
        stale = delete(ComputedMonthlyMetric).where(ComputedMonthlyMetric.company_id == company_id)
        if periods:
            stale = stale.where(ComputedMonthlyMetric.period.not_in(periods))
        self._session.execute(stale)

        if not series:
            return 0

        stmt = insert(ComputedMonthlyMetric).values(
            [
                {
                    "id": uuid.uuid4(),
                    "company_id": company_id,
                    "period": metrics.period,
                    "metrics": metrics.to_wire(),
                }
                for metrics in series
            ]
        )
        stmt = stmt.on_conflict_do_update(
            constraint=METRICS_UPSERT_CONSTRAINT,
            set_={
                "metrics": stmt.excluded.metrics,
                "computed_at": datetime.now(timezone.utc),
            },
        ).returning(ComputedMonthlyMetric.id)
        return len(self._session.scalars(stmt).all())

    def list_series(self, *, company_id: uuid.UUID) -> list[MonthlyMetrics]:
        """
        Return the stored series ascending by period.
        """
        stmt = (
            select(ComputedMonthlyMetric)
            .where(ComputedMonthlyMetric.company_id == company_id)
            .order_by(ComputedMonthlyMetric.period)
        )
        return [MonthlyMetrics.from_wire(row.metrics) for row in self._session.scalars(stmt)]

"""
db/repositories/monthly_aggregate_repository.py

Persistence layer for company-level monthly revenue aggregates.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.revenue import MonthlyAggregate
from db.models.monthly_revenue_aggregate import AGGREGATE_UPSERT_CONSTRAINT, MonthlyRevenueAggregate

_UPDATABLE_COLUMNS = (
    "upload_job_id",
    "total_revenue",
    "customer_count",
    "new_revenue",
    "expansion_revenue",
    "contraction_revenue",
    "churned_revenue",
)


class MonthlyAggregateRepository:
    """
    Upserts aggregates on ``(company_id, period)``; the last write wins.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_aggregates(
        self,
        *,
        company_id: uuid.UUID,
        aggregates: Sequence[MonthlyAggregate],
        upload_job_id: uuid.UUID | None = None,
    ) -> int:
        """
        Upsert one row per aggregate and return the number written.

        Duplicate periods within *aggregates* are collapsed first; the last
        occurrence wins.
        """
        if not aggregates:
            return 0

        by_period = {aggregate.period: aggregate for aggregate in aggregates}
        payloads = [
            {
                "id": uuid.uuid4(),
                "company_id": company_id,
                "upload_job_id": upload_job_id,
                "period": aggregate.period,
                "total_revenue": aggregate.total_revenue,
                "customer_count": aggregate.customer_count,
                "new_revenue": aggregate.new_revenue,
                "expansion_revenue": aggregate.expansion_revenue,
                "contraction_revenue": aggregate.contraction_revenue,
                "churned_revenue": aggregate.churned_revenue,
            }
            for aggregate in by_period.values()
        ]
        stmt = insert(MonthlyRevenueAggregate).values(payloads)
        stmt = stmt.on_conflict_do_update(
            constraint=AGGREGATE_UPSERT_CONSTRAINT,
            set_={
                **{column: stmt.excluded[column] for column in _UPDATABLE_COLUMNS},
                "updated_at": datetime.now(timezone.utc),
            },
        ).returning(MonthlyRevenueAggregate.id)
        return len(self._session.scalars(stmt).all())

    def list_aggregates(self, *, company_id: uuid.UUID) -> list[MonthlyAggregate]:
        stmt = (
            select(MonthlyRevenueAggregate)
            .where(MonthlyRevenueAggregate.company_id == company_id)
            .order_by(MonthlyRevenueAggregate.period)
        )
        return [
            MonthlyAggregate(
                period=row.period,
                total_revenue=row.total_revenue,
                customer_count=row.customer_count,
                new_revenue=row.new_revenue,
                expansion_revenue=row.expansion_revenue,
                contraction_revenue=row.contraction_revenue,
                churned_revenue=row.churned_revenue,
            )
            for row in self._session.scalars(stmt)
        ]

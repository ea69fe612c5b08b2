"""
app/services/metrics_service.py

Service layer for reading and recomputing a company's metrics series.

The stored series is a cache. When it is empty, or a refresh is requested,
the series is recomputed from the stored inputs:

    * monthly aggregates, when the company has any, drive the series and
      missing breakdowns are derived from the customer ledger;
    * otherwise the customer ledger alone drives it.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_pipeline_settings
from app.domain.errors import RevenuePersistenceError
from app.domain.revenue import LedgerEntry, MetricsSummary, MonthlyAggregate, MonthlyMetrics
from db.repositories.metrics_repository import MetricsRepository
from db.repositories.monthly_aggregate_repository import MonthlyAggregateRepository
from db.repositories.revenue_ledger_repository import RevenueLedgerRepository
from kpi.saas import AggregateMetricsEngine, LedgerMetricsEngine, summarize

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[Session], Any]


class MetricsService:
    """
    Computes and serves the monthly metrics series of a company.
    """

    def __init__(
        self,
        *,
        magic_number_ceiling: float = 5.0,
        ledger_repository_factory: RepositoryFactory = RevenueLedgerRepository,
        aggregate_repository_factory: RepositoryFactory = MonthlyAggregateRepository,
        metrics_repository_factory: RepositoryFactory = MetricsRepository,
    ) -> None:
        self._ledger_engine = LedgerMetricsEngine(magic_number_ceiling=magic_number_ceiling)
        self._aggregate_engine = AggregateMetricsEngine(magic_number_ceiling=magic_number_ceiling)
        self._ledger_repository_factory = ledger_repository_factory
        self._aggregate_repository_factory = aggregate_repository_factory
        self._metrics_repository_factory = metrics_repository_factory

    def compute_series(
        self,
        *,
        ledger: Sequence[LedgerEntry],
        aggregates: Sequence[MonthlyAggregate] = (),
    ) -> list[MonthlyMetrics]:
        """
        Compute the full series from ledger entries and monthly aggregates.

        With aggregates present the series spans the periods of both inputs;
        a period with an aggregate reports the aggregate's totals.
        """

        if aggregates:
            return self._aggregate_engine.compute(aggregates, ledger=ledger)
        return self._ledger_engine.compute(ledger)

    def recompute(self, *, company_id: uuid.UUID, db: Session) -> list[MonthlyMetrics]:
        """
        Recompute the series from stored inputs and replace the cached one.

        The caller owns the transaction.
        """

        ledger = self._ledger_repository_factory(db).list_entries(company_id=company_id)
        aggregates = self._aggregate_repository_factory(db).list_aggregates(company_id=company_id)
        series = self.compute_series(ledger=ledger, aggregates=aggregates)
        written = self._metrics_repository_factory(db).replace_series(
            company_id=company_id,
            series=series,
        )
        logger.info(
            "Metrics recomputed company_id=%s ledger_entries=%d aggregates=%d periods=%d written=%d",
            company_id,
            len(ledger),
            len(aggregates),
            len(series),
            written,
        )
        return series

    def get_metrics(
        self,
        *,
        company_id: uuid.UUID,
        db: Session,
        refresh: bool = False,
    ) -> MetricsSummary:
        """
        Return the company's metrics series with its summary.
        """

        try:
            series = [] if refresh else self._metrics_repository_factory(db).list_series(company_id=company_id)
            if not series:
                series = self.recompute(company_id=company_id, db=db)
                db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise RevenuePersistenceError("Failed to load the metrics series.") from exc

        return summarize(series)


@lru_cache(maxsize=1)
def get_metrics_service() -> MetricsService:
    """
    Build and cache the metrics service with env-driven settings.
    """
    settings = get_pipeline_settings()
    return MetricsService(magic_number_ceiling=settings.magic_number_ceiling)

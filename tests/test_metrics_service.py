"""
tests/test_metrics_service.py

Tests for metrics series caching and recomputation.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.domain.errors import RevenuePersistenceError
from app.domain.revenue import LedgerEntry, MonthlyAggregate, MonthlyMetrics
from app.services.metrics_service import MetricsService


def _ledger(company_ledger: dict, company_id, rows: list[tuple[str, str, str]]) -> None:
    company_ledger[company_id] = [
        LedgerEntry(customer_id=customer, customer_name=customer, period=period, amount=Decimal(amount))
        for customer, period, amount in rows
    ]


def test_empty_cache_is_recomputed_and_committed(metrics_service, store, session, company_id) -> None:
    _ledger(store.ledger, company_id, [("a", "2024-01", "100"), ("a", "2024-02", "120")])

    summary = metrics_service.get_metrics(company_id=company_id, db=session)

    assert summary.has_data is True
    assert summary.months == 2
    assert summary.mom_growth == 0.2
    assert len(store.metrics[company_id]) == 2
    assert session.commits == 1


def test_cached_series_is_served_without_recompute(metrics_service, store, session, company_id) -> None:
    cached = MonthlyMetrics(
        period="2023-06",
        total_mrr=5.0,
        arr=60.0,
        customer_count=1,
        new_mrr=5.0,
        expansion_mrr=0.0,
        contraction_mrr=0.0,
        churned_mrr=0.0,
        gross_revenue_retention=1.0,
        net_revenue_retention=1.0,
        logo_churn_rate=0.0,
        magic_number=0.0,
    )
    store.metrics[company_id] = [cached]
    _ledger(store.ledger, company_id, [("a", "2024-01", "100")])

    summary = metrics_service.get_metrics(company_id=company_id, db=session)

    assert summary.latest == cached
    assert session.commits == 0


def test_refresh_recomputes_from_stored_inputs(metrics_service, store, session, company_id) -> None:
    store.metrics[company_id] = []
    _ledger(store.ledger, company_id, [("a", "2024-01", "100")])

    summary = metrics_service.get_metrics(company_id=company_id, db=session, refresh=True)

    assert summary.latest is not None
    assert summary.latest.period == "2024-01"
    assert summary.latest.total_mrr == 100.0


def test_no_data_gives_empty_summary(metrics_service, session, company_id) -> None:
    summary = metrics_service.get_metrics(company_id=company_id, db=session)

    assert summary.has_data is False
    assert summary.series == []


def test_compute_series_prefers_aggregates() -> None:
    service = MetricsService()
    ledger = [LedgerEntry(customer_id="a", customer_name="A", period="2024-01", amount=Decimal("10"))]
    aggregates = [MonthlyAggregate(period="2024-01", total_revenue=Decimal("99"), customer_count=4)]

    assert service.compute_series(ledger=ledger)[0].total_mrr == 10.0
    assert service.compute_series(ledger=ledger, aggregates=aggregates)[0].total_mrr == 99.0


def test_database_errors_are_wrapped(store, session, company_id) -> None:
    class BrokenMetricsRepository:
        def __init__(self, db) -> None:
            pass

        def list_series(self, *, company_id):
            raise SQLAlchemyError("down")

    service = MetricsService(
        ledger_repository_factory=store.ledger_repository,
        aggregate_repository_factory=store.aggregate_repository,
        metrics_repository_factory=BrokenMetricsRepository,
    )

    with pytest.raises(RevenuePersistenceError):
        service.get_metrics(company_id=company_id, db=session)

    assert session.rollbacks == 1

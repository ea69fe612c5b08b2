"""
tests/conftest.py

Shared fixtures: in-memory stand-ins for the repositories and the session,
so service and API tests run without a database.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from app.domain.revenue import LedgerEntry, MonthlyAggregate, MonthlyMetrics
from app.services.metrics_service import MetricsService
from app.services.revenue_ingestion_service import RevenueIngestionService


class FakeSession:
    """Counts transaction calls; holds no data."""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        return None


@dataclass
class FakeUploadJob:
    company_id: uuid.UUID
    upload_type: str
    file_name: str
    file_size: int
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: str = "processing"
    rows_processed: int = 0
    snapshot: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None


class InMemoryRevenueStore:
    """
    Backing data shared by the fake repositories of one test.
    """

    def __init__(self) -> None:
        self.ledger: dict[uuid.UUID, list[LedgerEntry]] = {}
        self.aggregates: dict[uuid.UUID, dict[str, MonthlyAggregate]] = {}
        self.metrics: dict[uuid.UUID, list[MonthlyMetrics]] = {}
        self.jobs: list[FakeUploadJob] = []
        self.fail_ledger_writes: Exception | None = None

    def ledger_repository(self, session: Any) -> FakeLedgerRepository:
        return FakeLedgerRepository(self)

    def aggregate_repository(self, session: Any) -> FakeAggregateRepository:
        return FakeAggregateRepository(self)

    def metrics_repository(self, session: Any) -> FakeMetricsRepository:
        return FakeMetricsRepository(self)

    def upload_job_repository(self, session: Any) -> FakeUploadJobRepository:
        return FakeUploadJobRepository(self)


class FakeLedgerRepository:
    def __init__(self, store: InMemoryRevenueStore) -> None:
        self._store = store

    def replace_periods(
        self,
        *,
        company_id: uuid.UUID,
        entries: Sequence[LedgerEntry],
        upload_job_id: uuid.UUID | None = None,
        batch_size: int = 1000,
    ) -> int:
        if self._store.fail_ledger_writes is not None:
            raise self._store.fail_ledger_writes
        periods = {entry.period for entry in entries}
        kept = [entry for entry in self._store.ledger.get(company_id, []) if entry.period not in periods]
        self._store.ledger[company_id] = kept + list(entries)
        return len(entries)

    def list_entries(self, *, company_id: uuid.UUID) -> list[LedgerEntry]:
        return sorted(
            self._store.ledger.get(company_id, []),
            key=lambda entry: (entry.period, entry.customer_id),
        )


class FakeAggregateRepository:
    def __init__(self, store: InMemoryRevenueStore) -> None:
        self._store = store

    def upsert_aggregates(
        self,
        *,
        company_id: uuid.UUID,
        aggregates: Sequence[MonthlyAggregate],
        upload_job_id: uuid.UUID | None = None,
    ) -> int:
        stored = self._store.aggregates.setdefault(company_id, {})
        for aggregate in aggregates:
            stored[aggregate.period] = aggregate
        return len({aggregate.period for aggregate in aggregates})

    def list_aggregates(self, *, company_id: uuid.UUID) -> list[MonthlyAggregate]:
        stored = self._store.aggregates.get(company_id, {})
        return [stored[period] for period in sorted(stored)]


class FakeMetricsRepository:
    def __init__(self, store: InMemoryRevenueStore) -> None:
        self._store = store

    def replace_series(self, *, company_id: uuid.UUID, series: Sequence[MonthlyMetrics]) -> int:
        self._store.metrics[company_id] = list(series)
        return len(series)

    def list_series(self, *, company_id: uuid.UUID) -> list[MonthlyMetrics]:
        return list(self._store.metrics.get(company_id, []))


class FakeUploadJobRepository:
    def __init__(self, store: InMemoryRevenueStore) -> None:
        self._store = store

    def create_job(
        self,
        *,
        company_id: uuid.UUID,
        upload_type: str,
        file_name: str,
        file_size: int,
    ) -> FakeUploadJob:
        job = FakeUploadJob(
            company_id=company_id,
            upload_type=upload_type,
            file_name=file_name,
            file_size=file_size,
        )
        self._store.jobs.append(job)
        return job

    def list_jobs(self, *, company_id: uuid.UUID, limit: int = 50) -> list[FakeUploadJob]:
        jobs = [job for job in self._store.jobs if job.company_id == company_id]
        return list(reversed(jobs))[:limit]

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        rows_processed: int,
        snapshot: dict[str, Any] | None = None,
    ) -> FakeUploadJob | None:
        job = self._get(job_id)
        job.status = "completed"
        job.rows_processed = rows_processed
        job.snapshot = snapshot
        job.completed_at = datetime.now(timezone.utc)
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        snapshot: dict[str, Any] | None = None,
    ) -> FakeUploadJob | None:
        job = self._get(job_id)
        job.status = "failed"
        job.error_message = error_message
        job.completed_at = datetime.now(timezone.utc)
        return job

    def _get(self, job_id: uuid.UUID) -> FakeUploadJob:
        return next(job for job in self._store.jobs if job.id == job_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryRevenueStore:
    return InMemoryRevenueStore()


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def company_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def metrics_service(store: InMemoryRevenueStore) -> MetricsService:
    return MetricsService(
        ledger_repository_factory=store.ledger_repository,
        aggregate_repository_factory=store.aggregate_repository,
        metrics_repository_factory=store.metrics_repository,
    )


@pytest.fixture()
def ingestion_service(
    store: InMemoryRevenueStore,
    metrics_service: MetricsService,
) -> RevenueIngestionService:
    return RevenueIngestionService(
        batch_size=100,
        max_validation_errors=50,
        log_validation_errors=False,
        metrics_service=metrics_service,
        ledger_repository_factory=store.ledger_repository,
        aggregate_repository_factory=store.aggregate_repository,
        upload_job_repository_factory=store.upload_job_repository,
    )

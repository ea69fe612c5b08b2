"""
tests/test_revenue_ingestion_service.py

Service-level tests for revenue uploads, run against in-memory repositories.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.domain.errors import (
    DataFormatError,
    FormatDetectionError,
    RevenuePersistenceError,
    TableReadError,
    UnsupportedFileTypeError,
)
from app.domain.revenue import FormatShape
from app.mappers.record_extractor import RecordExtractor
from app.services.revenue_ingestion_service import RevenueIngestionService

WIDE_CSV = (
    "Customer,2024-01,2024-02,2024-03\n"
    "Acme,100,110,120\n"
    "Beta,50,,60\n"
    "Gamma,30,30,30\n"
).encode("utf-8")


class SpyExtractor(RecordExtractor):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def extract(self, table, decision):
        self.calls += 1
        return super().extract(table, decision)


class TestSpreadsheetIngestion:
    def test_wide_upload_stores_ledger_and_metrics(
        self, ingestion_service, store, session, company_id
    ) -> None:
        summary = ingestion_service.ingest_spreadsheet(
            company_id=company_id,
            filename="revenue.csv",
            content=WIDE_CSV,
            db=session,
        )

        assert summary.decision.shape is FormatShape.WIDE
        assert summary.records_extracted == 8
        assert summary.customers == 3
        assert summary.periods == ["2024-01", "2024-02", "2024-03"]
        assert summary.metrics_computed == 3
        assert summary.quality.is_valid is True

        assert len(store.ledger[company_id]) == 8
        assert [m.period for m in store.metrics[company_id]] == summary.periods
        assert store.metrics[company_id][-1].total_mrr == 210.0

        job = store.jobs[0]
        assert summary.upload_job_id == str(job.id)
        assert job.status == "completed"
        assert job.rows_processed == 8
        assert job.snapshot["format"]["shape"] == "wide"
        assert job.snapshot["totals"]["records"] == 8
        assert job.snapshot["totals"]["total_amount"] == "530"
        assert len(job.snapshot["preview"]) == 5
        assert session.commits == 2
        assert session.rollbacks == 0

    def test_reupload_replaces_only_its_periods(
        self, ingestion_service, store, session, company_id
    ) -> None:
        ingestion_service.ingest_spreadsheet(
            company_id=company_id, filename="revenue.csv", content=WIDE_CSV, db=session
        )
        ingestion_service.ingest_spreadsheet(
            company_id=company_id,
            filename="march.csv",
            content=b"customerId,month,mrr\nacme,2024-03,500\n",
            db=session,
        )

        by_period: dict[str, list[str]] = {}
        for entry in store.ledger[company_id]:
            by_period.setdefault(entry.period, []).append(entry.customer_id)

        assert sorted(by_period["2024-01"]) == ["acme", "beta", "gamma"]
        assert by_period["2024-03"] == ["acme"]
        assert store.metrics[company_id][-1].total_mrr == 500.0
        assert [job.status for job in store.jobs] == ["completed", "completed"]

    def test_hybrid_layout_is_rejected_before_extraction(self, store, session, company_id, metrics_service) -> None:
        extractor = SpyExtractor()
        service = RevenueIngestionService(
            batch_size=100,
            max_validation_errors=50,
            log_validation_errors=False,
            metrics_service=metrics_service,
            extractor=extractor,
            ledger_repository_factory=store.ledger_repository,
            aggregate_repository_factory=store.aggregate_repository,
            upload_job_repository_factory=store.upload_job_repository,
        )
        content = b"customerId,month,mrr,Jan/23,Feb/23,Mar/23\nc1,2023-01,10,1,2,3\n"

        with pytest.raises(FormatDetectionError) as exc_info:
            service.ingest_spreadsheet(
                company_id=company_id, filename="mixed.csv", content=content, db=session
            )

        assert exc_info.value.shape == "hybrid"
        assert extractor.calls == 0
        assert company_id not in store.ledger
        assert store.jobs[0].status == "failed"
        assert session.rollbacks == 1

    def test_unsupported_file_type_fails_the_job(
        self, ingestion_service, store, session, company_id
    ) -> None:
        with pytest.raises(UnsupportedFileTypeError):
            ingestion_service.ingest_spreadsheet(
                company_id=company_id, filename="revenue.txt", content=b"a,b", db=session
            )

        assert store.jobs[0].status == "failed"
        assert store.jobs[0].error_message.startswith("Unsupported file type")

    def test_file_without_revenue_fails_with_suggestions(
        self, ingestion_service, store, session, company_id
    ) -> None:
        content = b"Customer,2024-01,2024-02,2024-03\nAcme,,N/A,-\n"

        with pytest.raises(DataFormatError) as exc_info:
            ingestion_service.ingest_spreadsheet(
                company_id=company_id, filename="revenue.csv", content=content, db=session
            )

        assert exc_info.value.suggestions
        assert store.jobs[0].status == "failed"

    def test_database_failure_maps_to_persistence_error(
        self, ingestion_service, store, session, company_id
    ) -> None:
        store.fail_ledger_writes = SQLAlchemyError("connection lost")

        with pytest.raises(RevenuePersistenceError):
            ingestion_service.ingest_spreadsheet(
                company_id=company_id, filename="revenue.csv", content=WIDE_CSV, db=session
            )

        assert store.jobs[0].status == "failed"
        assert store.jobs[0].error_message == "Failed to persist revenue data."
        assert session.rollbacks == 1


class TestMonthlyMetricsIngestion:
    def test_valid_rows_are_stored_and_invalid_rows_reported(
        self, ingestion_service, store, session, company_id
    ) -> None:
        content = b"month,mrr,customers\n2024-01,1000,10\n2024-02,bad,11\n2024-03,1200,12\n"

        summary = ingestion_service.ingest_monthly_metrics_csv(
            company_id=company_id, filename="metrics.csv", content=content, db=session
        )

        assert summary.rows_processed == 2
        assert summary.rows_failed == 1
        assert summary.validation.errors[0].row_number == 3
        assert sorted(store.aggregates[company_id]) == ["2024-01", "2024-03"]
        assert store.aggregates[company_id]["2024-03"].total_revenue == Decimal("1200")
        assert [m.customer_count for m in store.metrics[company_id]] == [10, 12]
        assert store.jobs[0].status == "completed"
        assert store.jobs[0].snapshot["validation"]["error_rows"] == 1

    def test_aggregates_drive_metrics_over_ledger(
        self, ingestion_service, store, session, company_id
    ) -> None:
        ingestion_service.ingest_spreadsheet(
            company_id=company_id, filename="revenue.csv", content=WIDE_CSV, db=session
        )
        ingestion_service.ingest_monthly_metrics_csv(
            company_id=company_id,
            filename="metrics.csv",
            content=b"month,mrr,customers\n2024-01,180,3\n2024-02,200,3\n2024-03,210,3\n",
            db=session,
        )

        series = store.metrics[company_id]
        assert [m.total_mrr for m in series] == [180.0, 200.0, 210.0]
        # Breakdowns come from the stored ledger.
        assert series[1].expansion_mrr == 10.0
        assert series[1].churned_mrr == 50.0

    def test_aggregate_months_extend_the_ledger_series(
        self, ingestion_service, store, session, company_id
    ) -> None:
        ingestion_service.ingest_spreadsheet(
            company_id=company_id, filename="revenue.csv", content=WIDE_CSV, db=session
        )
        ingestion_service.ingest_monthly_metrics_csv(
            company_id=company_id,
            filename="metrics.csv",
            content=b"month,mrr,customers\n2024-04,250,3\n",
            db=session,
        )

        series = store.metrics[company_id]
        assert [m.period for m in series] == ["2024-01", "2024-02", "2024-03", "2024-04"]
        assert [m.total_mrr for m in series] == [180.0, 140.0, 210.0, 250.0]
        assert series[1].churned_mrr == 50.0
        assert series[3].customer_count == 3

    def test_header_errors_fail_the_upload(
        self, ingestion_service, store, session, company_id
    ) -> None:
        with pytest.raises(DataFormatError) as exc_info:
            ingestion_service.ingest_monthly_metrics_csv(
                company_id=company_id,
                filename="metrics.csv",
                content=b"month,revenue\n2024-01,100\n",
                db=session,
            )

        assert exc_info.value.message == "Missing required column: mrr"
        assert store.jobs[0].status == "failed"
        assert company_id not in store.aggregates

    def test_no_accepted_rows_fail_the_upload(
        self, ingestion_service, session, company_id
    ) -> None:
        with pytest.raises(DataFormatError, match="No valid rows"):
            ingestion_service.ingest_monthly_metrics_csv(
                company_id=company_id,
                filename="metrics.csv",
                content=b"month,mrr\n2024-01,-1\n2024-02,abc\n",
                db=session,
            )

    def test_captured_errors_are_capped(self, store, session, company_id, metrics_service) -> None:
        service = RevenueIngestionService(
            batch_size=100,
            max_validation_errors=2,
            log_validation_errors=True,
            metrics_service=metrics_service,
            ledger_repository_factory=store.ledger_repository,
            aggregate_repository_factory=store.aggregate_repository,
            upload_job_repository_factory=store.upload_job_repository,
        )
        rows = "".join(f"2024-{month:02d},bad\n" for month in range(1, 6))
        content = f"month,mrr\n{rows}2024-06,100\n".encode("utf-8")

        summary = service.ingest_monthly_metrics_csv(
            company_id=company_id, filename="metrics.csv", content=content, db=session
        )

        assert len(summary.validation.errors) == 2
        assert summary.rows_failed == 5
        assert summary.rows_processed == 1

    def test_non_utf8_content(self, ingestion_service, store, session, company_id) -> None:
        with pytest.raises(TableReadError):
            ingestion_service.ingest_monthly_metrics_csv(
                company_id=company_id,
                filename="metrics.csv",
                content="month,mrr\n2024-01,1€\n".encode("cp1252"),
                db=session,
            )

        assert store.jobs[0].status == "failed"


def test_list_uploads_is_newest_first(ingestion_service, session, company_id) -> None:
    ingestion_service.ingest_spreadsheet(
        company_id=company_id, filename="first.csv", content=WIDE_CSV, db=session
    )
    with pytest.raises(UnsupportedFileTypeError):
        ingestion_service.ingest_spreadsheet(
            company_id=company_id, filename="second.pdf", content=b"x", db=session
        )

    jobs = ingestion_service.list_uploads(company_id=company_id, db=session)

    assert [job.file_name for job in jobs] == ["second.pdf", "first.csv"]
    assert [job.status for job in jobs] == ["failed", "completed"]

"""
app/services/revenue_ingestion_service.py

Service layer for revenue upload orchestration.

Spreadsheet uploads run:

    1. read_table()            file bytes to raw table
    2. FormatDetector.detect() header row to format decision
    3. RecordExtractor         raw table to customer/month ledger
    4. assess_ledger()         non-fatal data-quality report
    5. ledger persistence      periods in the upload replace stored ones
    6. MetricsService          full series recomputed from stored inputs

Aggregated monthly-metrics CSV uploads go through the row-level validator
instead of steps 2-4 and upsert monthly aggregates before step 6.

Every upload is tracked as an upload job that is committed before
processing starts, so failures stay visible in the upload history.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from functools import lru_cache
from typing import Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_pipeline_settings, get_upload_settings
from app.domain.errors import (
    DataFormatError,
    FormatDetectionError,
    RevenuePersistenceError,
    RevenuePipelineError,
    TableReadError,
)
from app.domain.revenue import (
    AggregateUploadSummary,
    LedgerEntry,
    RowValidationError,
    UploadSummary,
    ValidatedRow,
    ValidationResult,
)
from app.mappers.format_detector import FormatDetector
from app.mappers.period_normalizer import PeriodNormalizer
from app.mappers.record_extractor import RecordExtractor
from app.services.metrics_service import MetricsService
from app.services.table_reader import read_table
from app.validators.csv_validator import CSVRowValidator
from app.validators.ledger_quality import assess_ledger
from db.models.upload_job import UploadJob, UploadJobType
from db.repositories.monthly_aggregate_repository import MonthlyAggregateRepository
from db.repositories.revenue_ledger_repository import RevenueLedgerRepository
from db.repositories.upload_job_repository import UploadJobRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[Session], Any]

SNAPSHOT_PREVIEW_ROWS = 5

MONTHLY_METRICS_SUGGESTIONS: tuple[str, ...] = (
    "Include a header row with at least the month and mrr columns.",
    "Optional columns: customers, new_mrr, expansion_mrr, contraction_mrr, churned_mrr.",
    "Write months as YYYY-MM, YYYY-MM-DD, MM/YYYY or MM/DD/YYYY.",
)


class RevenueIngestionService:
    """
    Coordinates file decoding, extraction, validation, and persistence.
    """

    def __init__(
        self,
        *,
        batch_size: int,
        max_validation_errors: int,
        log_validation_errors: bool,
        metrics_service: MetricsService,
        detector: FormatDetector | None = None,
        extractor: RecordExtractor | None = None,
        validator: CSVRowValidator | None = None,
        ledger_repository_factory: RepositoryFactory = RevenueLedgerRepository,
        aggregate_repository_factory: RepositoryFactory = MonthlyAggregateRepository,
        upload_job_repository_factory: RepositoryFactory = UploadJobRepository,
    ) -> None:
        self._batch_size = max(1, batch_size)
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors
        self._metrics_service = metrics_service
        self._detector = detector or FormatDetector()
        self._extractor = extractor or RecordExtractor()
        self._validator = validator or CSVRowValidator()
        self._ledger_repository_factory = ledger_repository_factory
        self._aggregate_repository_factory = aggregate_repository_factory
        self._upload_job_repository_factory = upload_job_repository_factory

    # ------------------------------------------------------------------
    # Spreadsheet path
    # ------------------------------------------------------------------

    def ingest_spreadsheet(
        self,
        *,
        company_id: uuid.UUID,
        filename: str,
        content: bytes,
        db: Session,
    ) -> UploadSummary:
        """
        Turn one uploaded spreadsheet into ledger entries and refresh metrics.

        Raises
        ------
        RevenuePipelineError
            For unreadable files, ambiguous or unknown layouts, and files
            without usable revenue data. The upload job is marked failed.
        RevenuePersistenceError
            When the ledger or metrics cannot be stored.
        """
        jobs = self._upload_job_repository_factory(db)
        job = self._start_job(
            jobs=jobs,
            db=db,
            company_id=company_id,
            upload_type=UploadJobType.SPREADSHEET,
            filename=filename,
            content=content,
        )

        try:
            table = read_table(filename, content)
            decision = self._detector.detect(table[0])
            if not decision.is_extractable:
                raise FormatDetectionError(
                    _detection_message(decision.shape.value),
                    shape=decision.shape.value,
                    warnings=decision.warnings,
                )

            entries = self._extractor.extract(table, decision)
            quality = assess_ledger(entries)
            for issue in quality.issues:
                logger.warning("Ledger quality issue company_id=%s issue=%s", company_id, issue)

            stored = self._ledger_repository_factory(db).replace_periods(
                company_id=company_id,
                entries=entries,
                upload_job_id=job.id,
                batch_size=self._batch_size,
            )
            series = self._metrics_service.recompute(company_id=company_id, db=db)

            periods = sorted({entry.period for entry in entries})
            customers = len({entry.customer_id for entry in entries})
            jobs.mark_completed(
                job_id=job.id,
                rows_processed=stored,
                snapshot={
                    "format": {"shape": decision.shape.value, "confidence": decision.confidence},
                    "preview": _ledger_preview(entries),
                    "totals": {
                        "records": len(entries),
                        "customers": customers,
                        "periods": len(periods),
                        "total_amount": str(sum((entry.amount for entry in entries), start=0)),
                    },
                    "quality": {"is_valid": quality.is_valid, "issues": quality.issues},
                },
            )
            db.commit()
        except RevenuePipelineError as exc:
            db.rollback()
            self._fail_job(jobs=jobs, db=db, job=job, message=exc.message)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            self._fail_job(jobs=jobs, db=db, job=job, message="Failed to persist revenue data.")
            raise RevenuePersistenceError("Failed to persist revenue data.") from exc

        logger.info(
            "Spreadsheet ingested company_id=%s upload_job_id=%s shape=%s records=%d periods=%d",
            company_id,
            job.id,
            decision.shape.value,
            len(entries),
            len(periods),
        )
        return UploadSummary(
            upload_job_id=str(job.id),
            decision=decision,
            records_extracted=len(entries),
            customers=customers,
            periods=periods,
            metrics_computed=len(series),
            quality=quality,
        )

    # ------------------------------------------------------------------
    # Aggregated monthly-metrics path
    # ------------------------------------------------------------------

    def ingest_monthly_metrics_csv(
        self,
        *,
        company_id: uuid.UUID,
        filename: str,
        content: bytes,
        db: Session,
    ) -> AggregateUploadSummary:
        """
        Validate an aggregated monthly CSV, store accepted rows, refresh metrics.

        Invalid rows are skipped and reported; the upload only fails when
        the header is invalid or no row is accepted.
        """
        jobs = self._upload_job_repository_factory(db)
        job = self._start_job(
            jobs=jobs,
            db=db,
            company_id=company_id,
            upload_type=UploadJobType.MONTHLY_METRICS,
            filename=filename,
            content=content,
        )

        try:
            try:
                raw_text = content.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise TableReadError("CSV must be UTF-8 encoded.") from exc

            validation = self._validator.validate(raw_text)
            captured_errors: list[RowValidationError] = []
            for error in validation.errors:
                self._record_error(captured_errors, error)
            validation = replace(
                validation,
                errors=captured_errors,
                warnings=validation.warnings[: self._max_validation_errors],
            )

            if validation.header_errors:
                raise DataFormatError(
                    "; ".join(error.message for error in validation.header_errors),
                    suggestions=MONTHLY_METRICS_SUGGESTIONS,
                )
            if not validation.accepted:
                raise DataFormatError(
                    "No valid rows found in the monthly metrics file.",
                    suggestions=MONTHLY_METRICS_SUGGESTIONS,
                )

            stored = self._aggregate_repository_factory(db).upsert_aggregates(
                company_id=company_id,
                aggregates=[row.to_aggregate() for row in validation.accepted],
                upload_job_id=job.id,
            )
            self._metrics_service.recompute(company_id=company_id, db=db)

            jobs.mark_completed(
                job_id=job.id,
                rows_processed=stored,
                snapshot={
                    "preview": _validated_preview(validation.accepted),
                    "validation": _summary_payload(validation),
                },
            )
            db.commit()
        except RevenuePipelineError as exc:
            db.rollback()
            self._fail_job(jobs=jobs, db=db, job=job, message=exc.message)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            self._fail_job(jobs=jobs, db=db, job=job, message="Failed to persist monthly metrics.")
            raise RevenuePersistenceError("Failed to persist monthly metrics.") from exc

        logger.info(
            "Monthly metrics ingested company_id=%s upload_job_id=%s accepted=%d failed=%d",
            company_id,
            job.id,
            validation.summary.valid_rows,
            validation.summary.error_rows,
        )
        return AggregateUploadSummary(
            upload_job_id=str(job.id),
            rows_processed=stored,
            rows_failed=validation.summary.error_rows,
            validation=validation,
        )

    # ------------------------------------------------------------------
    # Upload history
    # ------------------------------------------------------------------

    def list_uploads(self, *, company_id: uuid.UUID, db: Session, limit: int = 50) -> list[UploadJob]:
        try:
            return self._upload_job_repository_factory(db).list_jobs(company_id=company_id, limit=limit)
        except SQLAlchemyError as exc:
            db.rollback()
            raise RevenuePersistenceError("Failed to load upload history.") from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_job(
        self,
        *,
        jobs: Any,
        db: Session,
        company_id: uuid.UUID,
        upload_type: str,
        filename: str,
        content: bytes,
    ) -> UploadJob:
        try:
            job = jobs.create_job(
                company_id=company_id,
                upload_type=upload_type,
                file_name=filename,
                file_size=len(content),
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise RevenuePersistenceError("Failed to register the upload.") from exc
        return job

    def _fail_job(self, *, jobs: Any, db: Session, job: UploadJob, message: str) -> None:
        try:
            jobs.mark_failed(job_id=job.id, error_message=message)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to mark upload job failed upload_job_id=%s", job.id)

    def _record_error(
        self,
        captured_errors: list[RowValidationError],
        error: RowValidationError,
    ) -> None:
        if self._log_validation_errors:
            logger.warning(
                "CSV validation error row=%s column=%s message=%s value=%r",
                error.row_number,
                error.column,
                error.message,
                error.value,
            )

        if len(captured_errors) < self._max_validation_errors:
            captured_errors.append(error)


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _detection_message(shape: str) -> str:
    if shape == "hybrid":
        return (
            "The file mixes long-format columns (customer, month, mrr) with month "
            "columns. Upload it in one layout only."
        )
    return "Could not recognize the table layout. Upload a long or wide format file."


def _ledger_preview(entries: Sequence[LedgerEntry]) -> list[dict[str, str]]:
    return [
        {
            "customer_id": entry.customer_id,
            "customer_name": entry.customer_name,
            "period": entry.period,
            "amount": str(entry.amount),
        }
        for entry in entries[:SNAPSHOT_PREVIEW_ROWS]
    ]


def _validated_preview(rows: Sequence[ValidatedRow]) -> list[dict[str, str | None]]:
    return [
        {
            "month": row.month,
            "mrr": str(row.mrr),
            "customers": None if row.customers is None else str(row.customers),
        }
        for row in rows[:SNAPSHOT_PREVIEW_ROWS]
    ]


def _summary_payload(validation: ValidationResult) -> dict[str, int]:
    return {
        "total_rows": validation.summary.total_rows,
        "valid_rows": validation.summary.valid_rows,
        "error_rows": validation.summary.error_rows,
        "warning_rows": validation.summary.warning_rows,
    }


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_revenue_ingestion_service() -> RevenueIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    upload_settings = get_upload_settings()
    pipeline_settings = get_pipeline_settings()
    normalizer = PeriodNormalizer(two_digit_year_window=pipeline_settings.two_digit_year_window)
    return RevenueIngestionService(
        batch_size=upload_settings.batch_size,
        max_validation_errors=upload_settings.max_validation_errors,
        log_validation_errors=upload_settings.log_validation_errors,
        metrics_service=MetricsService(magic_number_ceiling=pipeline_settings.magic_number_ceiling),
        extractor=RecordExtractor(
            normalizer=normalizer,
            customer_id_max_length=pipeline_settings.customer_id_max_length,
            customer_id_collision_cap=pipeline_settings.customer_id_collision_cap,
        ),
    )

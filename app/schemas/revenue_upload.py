"""
app/schemas/revenue_upload.py

Response schemas for revenue upload endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.revenue import (
    AggregateUploadSummary,
    LedgerQualityReport,
    RowValidationError,
    UploadSummary,
)


class FormatDecisionResponse(BaseModel):
    shape: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    period_columns: list[str] = Field(default_factory=list)
    identity_columns: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class LedgerQualityStatsResponse(BaseModel):
    customers: int = Field(..., ge=0)
    records: int = Field(..., ge=0)
    date_range: str
    avg_records_per_customer: float
    data_span_months: int = Field(..., ge=0)


class LedgerQualityResponse(BaseModel):
    """
    API response model for the non-fatal ledger quality report.
    """

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    stats: LedgerQualityStatsResponse | None = None

    @classmethod
    def from_report(cls, report: LedgerQualityReport) -> LedgerQualityResponse:
        stats = report.stats
        return cls(
            is_valid=report.is_valid,
            issues=list(report.issues),
            recommendations=list(report.recommendations),
            stats=None
            if stats is None
            else LedgerQualityStatsResponse(
                customers=stats.customers,
                records=stats.records,
                date_range=stats.date_range,
                avg_records_per_customer=stats.avg_records_per_customer,
                data_span_months=stats.data_span_months,
            ),
        )


class SpreadsheetUploadResponse(BaseModel):
    """
    API response model for one spreadsheet upload.
    """

    upload_job_id: str | None = None
    format: FormatDecisionResponse
    records_extracted: int = Field(..., ge=0)
    customers: int = Field(..., ge=0)
    periods: list[str] = Field(default_factory=list)
    period_start: str | None = None
    period_end: str | None = None
    metrics_computed: int = Field(..., ge=0)
    quality: LedgerQualityResponse

    @classmethod
    def from_summary(cls, summary: UploadSummary) -> SpreadsheetUploadResponse:
        decision = summary.decision
        return cls(
            upload_job_id=summary.upload_job_id,
            format=FormatDecisionResponse(
                shape=decision.shape.value,
                confidence=decision.confidence,
                period_columns=list(decision.period_columns),
                identity_columns=list(decision.identity_columns),
                warnings=list(decision.warnings),
            ),
            records_extracted=summary.records_extracted,
            customers=summary.customers,
            periods=list(summary.periods),
            period_start=summary.periods[0] if summary.periods else None,
            period_end=summary.periods[-1] if summary.periods else None,
            metrics_computed=summary.metrics_computed,
            quality=LedgerQualityResponse.from_report(summary.quality),
        )


class RowValidationErrorResponse(BaseModel):
    """
    API response model for one row-level validation error or warning.
    """

    row_number: int = Field(..., ge=0)
    message: str
    column: str | None = None
    value: str | None = None
    severity: str = "error"

    @classmethod
    def from_error(cls, error: RowValidationError) -> RowValidationErrorResponse:
        return cls(
            row_number=error.row_number,
            message=error.message,
            column=error.column,
            value=error.value,
            severity=error.severity,
        )


class ValidationSummaryResponse(BaseModel):
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    error_rows: int = Field(..., ge=0)
    warning_rows: int = Field(..., ge=0)


class MonthlyMetricsUploadResponse(BaseModel):
    """
    API response model for an aggregated monthly-metrics CSV upload.
    """

    upload_job_id: str | None = None
    rows_processed: int = Field(..., ge=0)
    rows_failed: int = Field(..., ge=0)
    summary: ValidationSummaryResponse
    errors: list[RowValidationErrorResponse] = Field(default_factory=list)
    warnings: list[RowValidationErrorResponse] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)

    @classmethod
    def from_summary(
        cls,
        summary: AggregateUploadSummary,
        *,
        messages: list[str],
    ) -> MonthlyMetricsUploadResponse:
        validation = summary.validation
        return cls(
            upload_job_id=summary.upload_job_id,
            rows_processed=summary.rows_processed,
            rows_failed=summary.rows_failed,
            summary=ValidationSummaryResponse(
                total_rows=validation.summary.total_rows,
                valid_rows=validation.summary.valid_rows,
                error_rows=validation.summary.error_rows,
                warning_rows=validation.summary.warning_rows,
            ),
            errors=[RowValidationErrorResponse.from_error(error) for error in validation.errors],
            warnings=[RowValidationErrorResponse.from_error(warning) for warning in validation.warnings],
            messages=messages,
        )


class UploadJobResponse(BaseModel):
    """
    API response model for one upload history entry.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    upload_type: str
    file_name: str
    file_size: int
    status: str
    rows_processed: int
    error_message: str | None = None
    snapshot: dict[str, Any] | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

"""
app/domain/revenue.py

Domain models used by the revenue ingestion and metrics pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

# One cell of an uploaded table: text, a number, or empty.
Cell = Any
RawTable = list[list[Cell]]


class FormatShape(str, Enum):
    """
    Table layout classification produced by the format detector.
    """

    LONG = "long"
    WIDE = "wide"
    HYBRID = "hybrid"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FormatDecision:
    """
    Detected shape of an uploaded table and the columns that drive extraction.

    ``HYBRID`` and ``UNKNOWN`` are terminal: extraction must not run.
    """

    shape: FormatShape
    confidence: float
    period_columns: tuple[str, ...] = ()
    identity_columns: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_extractable(self) -> bool:
        return self.shape in (FormatShape.LONG, FormatShape.WIDE)


@dataclass(frozen=True)
class LedgerEntry:
    """
    One customer's revenue for one month. Amount is never negative.
    """

    customer_id: str
    customer_name: str
    period: str
    amount: Decimal


@dataclass(frozen=True)
class MonthlyAggregate:
    """
    Company-level totals for one period.

    Breakdown fields left as ``None`` are derived by the metrics engine.
    """

    period: str
    total_revenue: Decimal
    customer_count: int
    new_revenue: Decimal | None = None
    expansion_revenue: Decimal | None = None
    contraction_revenue: Decimal | None = None
    churned_revenue: Decimal | None = None


@dataclass(frozen=True)
class MonthlyMetrics:
    """
    SaaS KPI set for one period, already rounded.
    """

    period: str
    total_mrr: float
    arr: float
    customer_count: int
    new_mrr: float
    expansion_mrr: float
    contraction_mrr: float
    churned_mrr: float
    gross_revenue_retention: float
    net_revenue_retention: float
    logo_churn_rate: float
    magic_number: float | None = None

    def to_wire(self) -> dict[str, Any]:
        """
        Serialize with the camelCase field names consumed by dashboards.
        """

        return {
            "period": self.period,
            "totalMRR": self.total_mrr,
            "arr": self.arr,
            "customerCount": self.customer_count,
            "newMRR": self.new_mrr,
            "expansionMRR": self.expansion_mrr,
            "contractionMRR": self.contraction_mrr,
            "churnedMRR": self.churned_mrr,
            "grossRevenueRetention": self.gross_revenue_retention,
            "netRevenueRetention": self.net_revenue_retention,
            "logoChurnRate": self.logo_churn_rate,
            "magicNumber": self.magic_number,
        }

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> MonthlyMetrics:
        return cls(
            period=payload["period"],
            total_mrr=payload["totalMRR"],
            arr=payload["arr"],
            customer_count=payload["customerCount"],
            new_mrr=payload["newMRR"],
            expansion_mrr=payload["expansionMRR"],
            contraction_mrr=payload["contractionMRR"],
            churned_mrr=payload["churnedMRR"],
            gross_revenue_retention=payload["grossRevenueRetention"],
            net_revenue_retention=payload["netRevenueRetention"],
            logo_churn_rate=payload["logoChurnRate"],
            magic_number=payload.get("magicNumber"),
        )


@dataclass(frozen=True)
class MetricsSummary:
    """
    Metrics series plus the latest period and month-over-month growth.
    """

    series: list[MonthlyMetrics]
    latest: MonthlyMetrics | None
    has_data: bool
    start: str | None = None
    end: str | None = None
    months: int = 0
    mom_growth: float = 0.0


@dataclass(frozen=True)
class RowValidationError:
    """
    One row validation error or warning. Row 0 addresses the header.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None
    severity: str = "error"


@dataclass(frozen=True)
class ValidatedRow:
    """
    One accepted row of an aggregated monthly upload.

    ``month`` is normalized to ``YYYY-MM-01``.
    """

    row_number: int
    month: str
    mrr: Decimal
    customers: Decimal | None = None
    new_mrr: Decimal | None = None
    expansion_mrr: Decimal | None = None
    contraction_mrr: Decimal | None = None
    churned_mrr: Decimal | None = None

    def to_aggregate(self) -> MonthlyAggregate:
        return MonthlyAggregate(
            period=self.month[:7],
            total_revenue=self.mrr,
            customer_count=int(self.customers) if self.customers is not None else 0,
            new_revenue=self.new_mrr,
            expansion_revenue=self.expansion_mrr,
            contraction_revenue=self.contraction_mrr,
            churned_revenue=self.churned_mrr,
        )


@dataclass(frozen=True)
class ValidationSummary:
    total_rows: int
    valid_rows: int
    error_rows: int
    warning_rows: int


@dataclass(frozen=True)
class ValidationResult:
    """
    Partitioned outcome of row-level validation.
    """

    accepted: list[ValidatedRow]
    errors: list[RowValidationError]
    warnings: list[RowValidationError]
    summary: ValidationSummary

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def header_errors(self) -> list[RowValidationError]:
        return [error for error in self.errors if error.row_number == 0]


@dataclass(frozen=True)
class LedgerQualityStats:
    customers: int
    records: int
    date_range: str
    avg_records_per_customer: float
    data_span_months: int


@dataclass(frozen=True)
class LedgerQualityReport:
    """
    Non-fatal data-quality observations about an extracted ledger.
    """

    is_valid: bool
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    stats: LedgerQualityStats | None = None


@dataclass(frozen=True)
class UploadSummary:
    """
    End-of-run summary for one spreadsheet upload.
    """

    upload_job_id: str | None
    decision: FormatDecision
    records_extracted: int
    customers: int
    periods: list[str]
    metrics_computed: int
    quality: LedgerQualityReport


@dataclass(frozen=True)
class AggregateUploadSummary:
    """
    End-of-run summary for one aggregated monthly-metrics upload.
    """

    upload_job_id: str | None
    rows_processed: int
    rows_failed: int
    validation: ValidationResult

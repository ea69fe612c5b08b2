"""
app/domain package marker.
"""

from app.domain.errors import (
    DataFormatError,
    FormatDetectionError,
    PeriodFormatError,
    RevenuePersistenceError,
    RevenuePipelineError,
    TableReadError,
    UnsupportedFileTypeError,
)
from app.domain.revenue import (
    FormatDecision,
    FormatShape,
    LedgerEntry,
    MonthlyAggregate,
    MonthlyMetrics,
    RowValidationError,
    UploadSummary,
)

__all__ = [
    "DataFormatError",
    "FormatDecision",
    "FormatDetectionError",
    "FormatShape",
    "LedgerEntry",
    "MonthlyAggregate",
    "MonthlyMetrics",
    "PeriodFormatError",
    "RevenuePersistenceError",
    "RevenuePipelineError",
    "RowValidationError",
    "TableReadError",
    "UnsupportedFileTypeError",
    "UploadSummary",
]

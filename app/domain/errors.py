"""
app/domain/errors.py

Exception taxonomy for the revenue ingestion pipeline.
"""

from __future__ import annotations

from typing import Any, Sequence

LONG_FORMAT_SUGGESTIONS: tuple[str, ...] = (
    "Use one row per customer per month.",
    "Include the columns customerId, customerName, month and mrr.",
    "Write months as YYYY-MM (for example 2024-01).",
)

WIDE_FORMAT_SUGGESTIONS: tuple[str, ...] = (
    "Put customer names in the first column, one customer per row.",
    "Use one column per month with headers such as Jan/23, 2023-01 or Q1 2023.",
    "Leave a cell empty when the customer had no revenue that month.",
)


class RevenuePipelineError(ValueError):
    """
    Base class for upload-scoped pipeline failures.
    """

    def __init__(self, message: str, *, suggestions: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = tuple(suggestions or ())

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "suggestions": list(self.suggestions),
        }


class UnsupportedFileTypeError(RevenuePipelineError):
    """
    Raised when an upload is not CSV, XLSX or XLS.
    """


class TableReadError(RevenuePipelineError):
    """
    Raised when file bytes cannot be decoded into a table.
    """


class FormatDetectionError(RevenuePipelineError):
    """
    Raised when the table shape is ambiguous or unrecognizable.
    """

    def __init__(
        self,
        message: str,
        *,
        shape: str,
        warnings: Sequence[str] | None = None,
        suggestions: Sequence[str] | None = None,
    ) -> None:
        super().__init__(
            message,
            suggestions=suggestions or (*LONG_FORMAT_SUGGESTIONS, *WIDE_FORMAT_SUGGESTIONS),
        )
        self.shape = shape
        self.warnings = tuple(warnings or ())

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "shape": self.shape,
            "warnings": list(self.warnings),
            "suggestions": {
                "long": list(LONG_FORMAT_SUGGESTIONS),
                "wide": list(WIDE_FORMAT_SUGGESTIONS),
            },
        }


class PeriodFormatError(RevenuePipelineError):
    """
    Raised when one period token cannot be parsed.
    """

    def __init__(self, token: object) -> None:
        super().__init__(
            f"Unrecognized period format: {token!r}. "
            "Expected YYYY-MM, MM/YYYY, Mon/YY, Q1 2024 or a spreadsheet date."
        )
        self.token = token


class DataFormatError(RevenuePipelineError):
    """
    Raised when extraction yields no usable ledger entries.
    """


class RevenuePersistenceError(RuntimeError):
    """
    Raised when a ledger or metrics series cannot be persisted.
    """

"""
app/validators/csv_validator.py

Row-level validation for aggregated monthly revenue CSV uploads.

Every problem is addressable by row and column. A row with any error is
excluded from ``accepted`` as a whole; warnings never exclude a row.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from app.domain.revenue import (
    RowValidationError,
    ValidatedRow,
    ValidationResult,
    ValidationSummary,
)

BREAKDOWN_COLUMNS: tuple[str, ...] = (
    "new_mrr",
    "expansion_mrr",
    "contraction_mrr",
    "churned_mrr",
)

NUMERIC_OPTIONAL_COLUMNS: tuple[str, ...] = ("customers", *BREAKDOWN_COLUMNS)

# Accepted month shapes, each mapped to its (year, month) capture groups.
MONTH_SHAPES: tuple[tuple[re.Pattern[str], int, int], ...] = (
    (re.compile(r"^(\d{4})-(\d{2})$"), 1, 2),
    (re.compile(r"^(\d{4})-(\d{2})-\d{2}$"), 1, 2),
    (re.compile(r"^(\d{1,2})/(\d{4})$"), 2, 1),
    (re.compile(r"^(\d{1,2})/\d{1,2}/(\d{4})$"), 2, 1),
)

COMPONENT_SCALE_LIMIT = Decimal(2)


@dataclass(frozen=True)
class ValidatorConfig:
    """
    Column expectations for one validation run.

    `month` and `mrr` are needed on every row to build an aggregate, whatever
    this lists. Other columns named in `required_columns` are checked in the
    header and must hold a value on every row.
    """

    required_columns: tuple[str, ...] = ("month", "mrr")
    optional_columns: tuple[str, ...] = NUMERIC_OPTIONAL_COLUMNS
    allow_extra_columns: bool = True


class CSVRowValidator:
    """
    Validates and parses aggregated monthly revenue rows.
    """

    def validate(self, raw_text: str, config: ValidatorConfig | None = None) -> ValidationResult:
        """
        Validate a whole CSV document and partition its rows.
        """

        config = config or ValidatorConfig()
        errors: list[RowValidationError] = []
        warnings: list[RowValidationError] = []
        accepted: list[ValidatedRow] = []

        try:
            reader = csv.DictReader(io.StringIO(raw_text.lstrip("\ufeff"), newline=""))
            headers = [(header or "").strip().lower() for header in (reader.fieldnames or [])]
            reader.fieldnames = headers
            rows = [
                (index + 2, row)
                for index, row in enumerate(reader)
                if not self.is_completely_empty_row(row)
            ]
        except csv.Error as exc:
            errors.append(RowValidationError(row_number=0, message=f"Parse error: {exc}"))
            return _result(accepted, errors, warnings, total_rows=0)

        if not rows:
            errors.append(RowValidationError(row_number=0, message="No data found in CSV file."))
            return _result(accepted, errors, warnings, total_rows=0)

        for required in config.required_columns:
            if required.lower() not in headers:
                errors.append(
                    RowValidationError(
                        row_number=0,
                        column=required,
                        message=f"Missing required column: {required}",
                    )
                )

        if not config.allow_extra_columns:
            allowed = {column.lower() for column in (*config.required_columns, *config.optional_columns)}
            for header in headers:
                if header and header not in allowed:
                    warnings.append(
                        RowValidationError(
                            row_number=0,
                            column=header,
                            message=f"Unexpected column: {header}",
                            severity="warning",
                        )
                    )

        for row_number, row in rows:
            parsed, row_errors, row_warnings = self.validate_row(row=row, row_number=row_number, config=config)
            warnings.extend(row_warnings)
            if row_errors:
                errors.extend(row_errors)
            elif parsed is not None:
                accepted.append(parsed)

        return _result(accepted, errors, warnings, total_rows=len(rows))

    def validate_row(
        self,
        *,
        row: Mapping[str, Any],
        row_number: int,
        config: ValidatorConfig | None = None,
    ) -> tuple[ValidatedRow | None, list[RowValidationError], list[RowValidationError]]:
        """
        Validate one row keyed by lower-cased header.
        """

        required_columns = {column.lower() for column in (config or ValidatorConfig()).required_columns}
        errors: list[RowValidationError] = []
        warnings: list[RowValidationError] = []

        month = self._parse_month(value=row.get("month"), row_number=row_number, errors=errors)
        mrr = self._parse_amount(
            value=row.get("mrr"),
            column="mrr",
            label="MRR",
            required=True,
            row_number=row_number,
            errors=errors,
        )
        optional = {
            column: self._parse_amount(
                value=row.get(column),
                column=column,
                label=column,
                required=column in required_columns,
                row_number=row_number,
                errors=errors,
            )
            for column in NUMERIC_OPTIONAL_COLUMNS
        }

        customers = optional["customers"]
        if customers is not None and customers != customers.to_integral_value():
            warnings.append(
                RowValidationError(
                    row_number=row_number,
                    column="customers",
                    message="Customer count should be a whole number.",
                    value=self._stringify_value(row.get("customers")),
                    severity="warning",
                )
            )

        components = [optional[column] for column in BREAKDOWN_COLUMNS]
        if mrr is not None and all(component is not None for component in components):
            new, expansion, contraction, churned = components
            net_change = new + expansion - contraction - churned
            if abs(net_change) > mrr * COMPONENT_SCALE_LIMIT:
                warnings.append(
                    RowValidationError(
                        row_number=row_number,
                        message="MRR components seem unusually large compared to total MRR.",
                        severity="warning",
                    )
                )

        if errors or month is None or mrr is None:
            return None, errors, warnings

        return (
            ValidatedRow(
                row_number=row_number,
                month=month,
                mrr=mrr,
                customers=customers,
                new_mrr=optional["new_mrr"],
                expansion_mrr=optional["expansion_mrr"],
                contraction_mrr=optional["contraction_mrr"],
                churned_mrr=optional["churned_mrr"],
            ),
            [],
            warnings,
        )

    def is_completely_empty_row(self, row: Mapping[str, Any]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        return all(self._is_blank(value) for key, value in row.items() if key is not None)

    def _parse_month(
        self,
        *,
        value: Any,
        row_number: int,
        errors: list[RowValidationError],
    ) -> str | None:
        if self._is_blank(value):
            errors.append(
                RowValidationError(row_number=row_number, column="month", message="Month is required.")
            )
            return None

        raw = str(value).strip()
        for pattern, year_group, month_group in MONTH_SHAPES:
            match = pattern.match(raw)
            if not match:
                continue
            month = int(match.group(month_group))
            if 1 <= month <= 12:
                return f"{match.group(year_group)}-{month:02d}-01"
            break

        errors.append(
            RowValidationError(
                row_number=row_number,
                column="month",
                message="Invalid month format. Expected YYYY-MM, YYYY-MM-DD, MM/YYYY or MM/DD/YYYY.",
                value=self._stringify_value(raw),
            )
        )
        return None

    def _parse_amount(
        self,
        *,
        value: Any,
        column: str,
        label: str,
        required: bool,
        row_number: int,
        errors: list[RowValidationError],
    ) -> Decimal | None:
        if self._is_blank(value):
            if required:
                errors.append(
                    RowValidationError(row_number=row_number, column=column, message=f"{label} is required.")
                )
            return None

        raw = str(value).strip()
        try:
            amount = Decimal(raw)
        except InvalidOperation:
            amount = None
        if amount is None or not amount.is_finite():
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"{label} must be a valid number.",
                    value=self._stringify_value(raw),
                )
            )
            return None

        if amount < 0:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"{label} cannot be negative.",
                    value=self._stringify_value(raw),
                )
            )
            return None
        return amount

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, (list, tuple)):
            return all(str(item).strip() == "" for item in value)
        return str(value).strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)


def format_validation_messages(result: ValidationResult) -> list[str]:
    """
    Render errors then warnings as one display line each.
    """

    messages: list[str] = []
    for error in result.errors:
        messages.append(_describe(error))
    for warning in result.warnings:
        messages.append(f"Warning - {_describe(warning)}")
    return messages


def _describe(error: RowValidationError) -> str:
    location = "Header" if error.row_number == 0 else f"Row {error.row_number}"
    column = f" ({error.column})" if error.column else ""
    return f"{location}{column}: {error.message}"


def _result(
    accepted: list[ValidatedRow],
    errors: list[RowValidationError],
    warnings: list[RowValidationError],
    *,
    total_rows: int,
) -> ValidationResult:
    warning_rows = len({warning.row_number for warning in warnings if warning.row_number > 0})
    return ValidationResult(
        accepted=accepted,
        errors=errors,
        warnings=warnings,
        summary=ValidationSummary(
            total_rows=total_rows,
            valid_rows=len(accepted),
            error_rows=total_rows - len(accepted),
            warning_rows=warning_rows,
        ),
    )

"""
app/validators/mapping_validator.py

Validation for long-format column mapping resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class SchemaMappingError(ValueError):
    """
    Raised when long-format columns cannot be resolved safely.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "canonical_field": error.canonical_field,
                    "source_column": error.source_column,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingValidator:
    """
    Validates resolved canonical-to-source column mappings.

    ``identity_fields`` are alternatives: at least one must be mapped.
    """

    def __init__(
        self,
        *,
        required_fields: Sequence[str],
        identity_fields: Sequence[str],
    ) -> None:
        self._required_fields = tuple(required_fields)
        self._identity_fields = tuple(identity_fields)

    def validate(
        self,
        *,
        mapping: dict[str, int],
        source_headers: Sequence[str],
    ) -> None:
        """
        Validate mapping and raise structured errors if invalid.
        """

        errors: list[MappingErrorDetail] = []

        for canonical_field, index in mapping.items():
            if not 0 <= index < len(source_headers):
                errors.append(
                    MappingErrorDetail(
                        code="unknown_source_column",
                        message="Mapped column index is outside the header row.",
                        canonical_field=canonical_field,
                        context={"index": index},
                    )
                )

        for required in self._required_fields:
            if required not in mapping:
                errors.append(
                    MappingErrorDetail(
                        code="required_field_unmapped",
                        message="Required column was not found.",
                        canonical_field=required,
                        context={"source_headers": list(source_headers)},
                    )
                )

        if self._identity_fields and not any(field in mapping for field in self._identity_fields):
            errors.append(
                MappingErrorDetail(
                    code="identity_unmapped",
                    message="Neither a customer id nor a customer name column was found.",
                    canonical_field=self._identity_fields[0],
                    context={"source_headers": list(source_headers)},
                )
            )

        if errors:
            missing = [
                error.canonical_field
                for error in errors
                if error.code in {"required_field_unmapped", "identity_unmapped"} and error.canonical_field
            ]
            missing_csv = ", ".join(sorted(set(missing))) or "unknown"
            raise SchemaMappingError(
                message=f"Long-format column mapping failed. Missing columns: {missing_csv}.",
                errors=errors,
            )

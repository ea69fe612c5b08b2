"""
app/mappers/schema_mapper.py

Resolves long-format revenue columns from header aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError

CANONICAL_FIELDS: tuple[str, ...] = (
    "customer_id",
    "customer_name",
    "period",
    "amount",
)

REQUIRED_CANONICAL_FIELDS: tuple[str, ...] = ("period", "amount")

IDENTITY_FIELDS: tuple[str, ...] = ("customer_id", "customer_name")

# Ordered: the first alias present in the header row wins.
DEFAULT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "customer_id": ("customerId", "Customer ID", "customer_id", "id"),
    "customer_name": ("customerName", "Customer Name", "customer_name", "name", "Customer", "customer"),
    "period": ("month", "Month", "date", "Date", "period"),
    "amount": ("mrr", "MRR", "revenue", "Revenue", "amount"),
}


def normalize_header(header: str) -> str:
    """
    Normalize a column name for case- and punctuation-insensitive matching.
    """

    return "".join(ch for ch in str(header).strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class MappingResolution:
    """
    Final resolved mapping metadata: canonical field to column index.
    """

    canonical_to_index: dict[str, int]
    source_headers: tuple[str, ...]

    def column(self, canonical_field: str) -> str | None:
        index = self.canonical_to_index.get(canonical_field)
        return None if index is None else self.source_headers[index]


class SchemaMapper:
    """
    Resolves long-format headers into canonical column positions.
    """

    def __init__(
        self,
        *,
        aliases: Mapping[str, Sequence[str]] | None = None,
        validator: MappingValidator | None = None,
    ) -> None:
        self._aliases: dict[str, tuple[str, ...]] = {
            canonical: tuple(values)
            for canonical, values in (aliases or DEFAULT_COLUMN_ALIASES).items()
        }
        self._validator = validator or MappingValidator(
            required_fields=REQUIRED_CANONICAL_FIELDS,
            identity_fields=IDENTITY_FIELDS,
        )

    def resolve_mapping(self, headers: Sequence[Any]) -> MappingResolution:
        """
        Resolve canonical column positions from a raw header row.
        """

        source_headers = tuple("" if header is None else str(header).strip() for header in headers)
        if not any(source_headers):
            raise SchemaMappingError(
                message="Header row is empty; cannot resolve long-format columns.",
                errors=[
                    MappingErrorDetail(
                        code="empty_headers",
                        message="No headers were provided.",
                    )
                ],
            )

        lookup: dict[str, int] = {}
        for index, header in enumerate(source_headers):
            key = normalize_header(header)
            if key and key not in lookup:
                lookup[key] = index

        resolved: dict[str, int] = {}
        used: set[int] = set()
        for canonical_field in CANONICAL_FIELDS:
            for alias in self._aliases.get(canonical_field, ()):
                index = lookup.get(normalize_header(alias))
                if index is not None and index not in used:
                    resolved[canonical_field] = index
                    used.add(index)
                    break

        self._validator.validate(mapping=resolved, source_headers=source_headers)
        return MappingResolution(canonical_to_index=resolved, source_headers=source_headers)

    @staticmethod
    def map_row(*, raw_row: Sequence[Any], mapping: MappingResolution) -> dict[str, Any]:
        """
        Pick canonical field values out of one raw row.
        """

        return {
            canonical_field: raw_row[index] if index < len(raw_row) else None
            for canonical_field, index in mapping.canonical_to_index.items()
        }

"""
app/mappers/record_extractor.py

Turns a raw uploaded table into a flat customer/month revenue ledger.

Long tables are read row by row through the column aliases in
``app.mappers.schema_mapper``. Wide tables are read one customer row at a
time across the detected month columns, which are sorted chronologically
first. An empty or placeholder cell means "no revenue that month" and never
becomes a zero entry; an explicit ``0`` does.

Repeated ``(customer_id, period)`` keys are merged by summing their amounts
in file order, and every merge is logged.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from app.domain.errors import (
    LONG_FORMAT_SUGGESTIONS,
    WIDE_FORMAT_SUGGESTIONS,
    DataFormatError,
    FormatDetectionError,
)
from app.domain.revenue import FormatDecision, FormatShape, LedgerEntry, RawTable
from app.mappers.customer_ids import CustomerIdGenerator
from app.mappers.format_detector import header_text
from app.mappers.period_normalizer import PeriodNormalizer, period_index
from app.mappers.schema_mapper import SchemaMapper, normalize_header
from app.validators.mapping_validator import SchemaMappingError

logger = logging.getLogger(__name__)

EMPTY_SENTINELS = frozenset({"", "N/A", "NULL", "-"})
SUMMARY_ROW_LABELS = frozenset({"total", "totals", "grand total", "sum"})
ID_HEADER_TOKENS = frozenset({"id", "customerid", "clientid", "accountid", "companyid"})

_AMOUNT_NOISE_RE = re.compile(r"[$€£,\s]")


def parse_amount(value: Any) -> Decimal | None:
    """
    Coerce one revenue cell to a Decimal, or None for "no entry".

    Blank cells, the placeholder sentinels, NaN and anything non-numeric
    all mean "no entry". Currency symbols and thousands separators are
    tolerated.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return Decimal(str(value))
    if isinstance(value, (int, Decimal)):
        amount = Decimal(value)
        return amount if amount.is_finite() else None

    text = str(value).strip()
    if text in EMPTY_SENTINELS:
        return None
    try:
        amount = Decimal(_AMOUNT_NOISE_RE.sub("", text))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


class _LedgerBuilder:
    """
    Insertion-ordered ledger keyed by ``(customer_id, period)``.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], list[Any]] = {}
        self.merged = 0

    def add(self, *, customer_id: str, customer_name: str, period: str, amount: Decimal) -> None:
        key = (customer_id, period)
        existing = self._entries.get(key)
        if existing is None:
            self._entries[key] = [customer_name, amount]
            return
        existing[1] += amount
        self.merged += 1
        logger.warning(
            "Merged duplicate ledger key customer_id=%r period=%s amount=%s",
            customer_id,
            period,
            amount,
        )

    def entries(self) -> list[LedgerEntry]:
        return [
            LedgerEntry(customer_id=customer_id, customer_name=name, period=period, amount=amount)
            for (customer_id, period), (name, amount) in self._entries.items()
        ]


class RecordExtractor:
    """
    Produces ledger entries from a raw table and its format decision.

    Holds no per-run state: every call builds its own id generator.
    """

    def __init__(
        self,
        *,
        normalizer: PeriodNormalizer | None = None,
        mapper: SchemaMapper | None = None,
        customer_id_max_length: int = 50,
        customer_id_collision_cap: int = 1000,
    ) -> None:
        self._normalizer = normalizer or PeriodNormalizer()
        self._mapper = mapper or SchemaMapper()
        self._id_max_length = customer_id_max_length
        self._id_collision_cap = customer_id_collision_cap

    def extract(self, table: RawTable, decision: FormatDecision) -> list[LedgerEntry]:
        """
        Extract ledger entries from *table*.

        Raises
        ------
        FormatDetectionError
            When *decision* is ``HYBRID`` or ``UNKNOWN``.
        DataFormatError
            When no usable ledger entry results.
        """

        if not decision.is_extractable:
            raise FormatDetectionError(
                f"Table layout is {decision.shape.value}; extraction was not attempted.",
                shape=decision.shape.value,
                warnings=decision.warnings,
            )

        suggestions = LONG_FORMAT_SUGGESTIONS if decision.shape is FormatShape.LONG else WIDE_FORMAT_SUGGESTIONS
        if len(table) < 2:
            raise DataFormatError(
                "The file must contain a header row and at least one data row.",
                suggestions=suggestions,
            )

        if decision.shape is FormatShape.LONG:
            entries = self._extract_long(table)
        else:
            entries = self._extract_wide(table, decision)

        if not entries:
            raise DataFormatError(
                "No valid revenue data found in the file.",
                suggestions=suggestions,
            )

        logger.info(
            "Ledger extracted shape=%s entries=%d customers=%d periods=%d",
            decision.shape.value,
            len(entries),
            len({entry.customer_id for entry in entries}),
            len({entry.period for entry in entries}),
        )
        return entries

    # ------------------------------------------------------------------
    # Long format
    # ------------------------------------------------------------------

    def _extract_long(self, table: RawTable) -> list[LedgerEntry]:
        try:
            mapping = self._mapper.resolve_mapping(table[0])
        except SchemaMappingError as exc:
            raise DataFormatError(exc.message, suggestions=LONG_FORMAT_SUGGESTIONS) from exc

        ids = self._new_id_generator()
        rows = [self._mapper.map_row(raw_row=row, mapping=mapping) for row in table[1:]]
        for fields in rows:
            supplied = header_text(fields.get("customer_id"))
            if supplied:
                ids.reserve(supplied)

        builder = _LedgerBuilder()
        for row_number, fields in enumerate(rows, start=2):
            supplied_id = header_text(fields.get("customer_id"))
            name = header_text(fields.get("customer_name"))
            period = self._normalizer.try_normalize(fields.get("period"))
            amount = parse_amount(fields.get("amount"))

            if not (supplied_id or name) or period is None or amount is None or amount < 0:
                logger.debug("Skipped long-format row=%s fields=%r", row_number, fields)
                continue

            builder.add(
                customer_id=supplied_id or ids.id_for_name(name),
                customer_name=name or supplied_id,
                period=period,
                amount=amount,
            )
        return builder.entries()

    # ------------------------------------------------------------------
    # Wide format
    # ------------------------------------------------------------------

    def _extract_wide(self, table: RawTable, decision: FormatDecision) -> list[LedgerEntry]:
        headers = [header_text(header) for header in table[0]]
        id_index, name_index = self._identity_indices(headers, decision)
        identity_indices = {index for index in (id_index, name_index) if index is not None}
        period_columns = self._sorted_period_columns(headers, decision, identity_indices)
        if not period_columns:
            return []

        ids = self._new_id_generator()
        if id_index is not None:
            for row in table[1:]:
                supplied = _cell(row, id_index)
                if supplied:
                    ids.reserve(supplied)

        builder = _LedgerBuilder()
        for row_number, row in enumerate(table[1:], start=2):
            supplied_id = _cell(row, id_index)
            name = _cell(row, name_index)
            if not (supplied_id or name):
                continue
            if not supplied_id and name.lower() in SUMMARY_ROW_LABELS:
                logger.warning("Skipped summary row=%s label=%r", row_number, name)
                continue

            customer_id = supplied_id or ids.assign(name)
            for column_index, period in period_columns:
                amount = parse_amount(row[column_index] if column_index < len(row) else None)
                if amount is None:
                    continue
                if amount < 0:
                    logger.debug(
                        "Skipped negative amount row=%s period=%s amount=%s",
                        row_number,
                        period,
                        amount,
                    )
                    continue
                builder.add(
                    customer_id=customer_id,
                    customer_name=name or supplied_id,
                    period=period,
                    amount=amount,
                )
        return builder.entries()

    @staticmethod
    def _identity_indices(
        headers: Sequence[str],
        decision: FormatDecision,
    ) -> tuple[int | None, int | None]:
        id_index: int | None = None
        name_index: int | None = None
        identity = set(decision.identity_columns)
        for index, header in enumerate(headers):
            if header not in identity:
                continue
            if id_index is None and normalize_header(header) in ID_HEADER_TOKENS:
                id_index = index
            elif name_index is None:
                name_index = index
        if name_index is None and id_index is None:
            name_index = 0
        return id_index, name_index

    def _sorted_period_columns(
        self,
        headers: Sequence[str],
        decision: FormatDecision,
        identity_indices: set[int],
    ) -> list[tuple[int, str]]:
        wanted = set(decision.period_columns)
        columns: list[tuple[int, str]] = []
        for index, header in enumerate(headers):
            if index in identity_indices or header not in wanted:
                continue
            period = self._normalizer.try_normalize(header)
            if period is None:
                period = self._normalizer.reinterpret(header)
                if period is None:
                    logger.warning("Skipped unparseable period column header=%r", header)
                    continue
                logger.warning("Period header reinterpreted header=%r period=%s", header, period)
            columns.append((index, period))
        return sorted(columns, key=lambda column: period_index(column[1]))

    def _new_id_generator(self) -> CustomerIdGenerator:
        return CustomerIdGenerator(
            max_length=self._id_max_length,
            collision_cap=self._id_collision_cap,
        )


def _cell(row: Sequence[Any], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return header_text(row[index])

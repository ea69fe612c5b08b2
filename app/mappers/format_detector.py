"""
app/mappers/format_detector.py

Classifies the layout of an uploaded revenue table from its header row.

Decision rule
-------------
- Wide signal  : three or more period-like headers.
- Long signal  : a period field header (``month``/``date``/``period``) and
                 an amount field header (``mrr``/``revenue``/``amount``).
- Both signals : ``HYBRID``, the upload must be rejected.
- Wide only    : ``WIDE`` with confidence ``min(0.9, periods / headers)``.
- Long only    : ``LONG`` with confidence 0.95, or 0.5 with a warning when
                 no customer column is present.
- Neither      : loose date-like fallback (``WIDE`` at <= 0.8) or ``UNKNOWN``.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from app.domain.revenue import FormatDecision, FormatShape
from app.mappers.period_normalizer import (
    MONTH_NAMES,
    is_plausible_serial,
    month_span,
    period_index,
    serial_to_period,
)
from app.mappers.schema_mapper import DEFAULT_COLUMN_ALIASES, IDENTITY_FIELDS, normalize_header

logger = logging.getLogger(__name__)

WIDE_MAX_CONFIDENCE = 0.9
LONG_CONFIDENCE = 0.95
LONG_WITHOUT_IDENTITY_CONFIDENCE = 0.5
FALLBACK_MAX_CONFIDENCE = 0.8
MIN_PERIOD_COLUMNS = 3
SERIAL_MIN_MONTHS = 2
SERIAL_MAX_MONTHS = 60

_MONTH_WORDS = "|".join(sorted(MONTH_NAMES, key=len, reverse=True))

# Ordered period-token patterns for header cells.
PERIOD_HEADER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}-(0[1-9]|1[0-2])$"),
    re.compile(r"^\d{4}-\d{2}-\d{2}(?:[ T].*)?$"),
    re.compile(rf"^(?:{_MONTH_WORDS})\.?(?:[/\-]|\s+)'?\d{{2}}$", re.IGNORECASE),
    re.compile(rf"^(?:{_MONTH_WORDS})\.?(?:[/\-]|\s+)\d{{4}}$", re.IGNORECASE),
    re.compile(r"^(0?[1-9]|1[0-2])[/\-]\d{4}$"),
    re.compile(r"^\d{4}[/\-](0?[1-9]|1[0-2])$"),
    re.compile(r"^[Qq][1-4](?:[/\-]|\s+)\d{4}$"),
)

# Shapes that merely look date-ish; only used by the low-signal fallback.
LOOSE_DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:{_MONTH_WORDS})", re.IGNORECASE),
    re.compile(r"^\d{1,4}[/\-.]\d{1,4}(?:[/\-.]\d{1,4})?$"),
    re.compile(r"^(?:fy|cy)?\s*'?\d{2,4}\s*[-/ ]?\s*[qmh]\d{1,2}$", re.IGNORECASE),
)

IDENTITY_HEADER_RE = re.compile(r"name|customer|client|company|account|^id$", re.IGNORECASE)

LONG_PERIOD_TOKENS = frozenset({"month", "date", "period"})
LONG_AMOUNT_TOKENS = frozenset({"mrr", "revenue", "amount"})
LONG_IDENTITY_TOKENS = frozenset(
    normalize_header(alias) for field in IDENTITY_FIELDS for alias in DEFAULT_COLUMN_ALIASES[field]
)


class FormatDetector:
    """
    Stateless header-row classifier.
    """

    def detect(self, headers: Sequence[Any]) -> FormatDecision:
        """
        Classify a table from its raw header cells.
        """

        cleaned = [header_text(header) for header in headers]
        non_empty = [header for header in cleaned if header]
        if len(non_empty) < 2:
            return FormatDecision(
                shape=FormatShape.UNKNOWN,
                confidence=0.0,
                warnings=("Fewer than two non-empty headers; cannot determine the table layout.",),
            )

        warnings: list[str] = []
        identity_columns = self._identity_columns(cleaned, warnings)
        candidates = [header for header in non_empty if header not in identity_columns]

        period_columns = [header for header in candidates if matches_period_header(header)]
        serial_columns = self._serial_period_columns(
            [header for header in candidates if header not in period_columns],
            warnings,
        )
        period_columns.extend(serial_columns)

        normalized = {normalize_header(header) for header in non_empty}
        has_long = bool(normalized & LONG_PERIOD_TOKENS) and bool(normalized & LONG_AMOUNT_TOKENS)
        has_wide = len(period_columns) >= MIN_PERIOD_COLUMNS
        total = len(non_empty)

        if has_wide and has_long:
            warnings.append(
                "Headers contain both long-format columns and month columns; "
                "choose one layout and upload again."
            )
            decision = FormatDecision(
                shape=FormatShape.HYBRID,
                confidence=0.0,
                period_columns=tuple(period_columns),
                identity_columns=tuple(identity_columns),
                warnings=tuple(warnings),
            )
        elif has_wide:
            decision = FormatDecision(
                shape=FormatShape.WIDE,
                confidence=round(min(WIDE_MAX_CONFIDENCE, len(period_columns) / total), 4),
                period_columns=tuple(period_columns),
                identity_columns=tuple(identity_columns),
                warnings=tuple(warnings),
            )
        elif has_long:
            long_identity = tuple(
                header for header in non_empty if normalize_header(header) in LONG_IDENTITY_TOKENS
            )
            if not long_identity:
                warnings.append(
                    "No customer column found; add a customerId or customerName column."
                )
            decision = FormatDecision(
                shape=FormatShape.LONG,
                confidence=LONG_CONFIDENCE if long_identity else LONG_WITHOUT_IDENTITY_CONFIDENCE,
                identity_columns=long_identity,
                warnings=tuple(warnings),
            )
        else:
            decision = self._fallback(candidates, identity_columns, warnings)

        logger.info(
            "Format detected shape=%s confidence=%s period_columns=%d warnings=%d",
            decision.shape.value,
            decision.confidence,
            len(decision.period_columns),
            len(decision.warnings),
        )
        return decision

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _identity_columns(headers: list[str], warnings: list[str]) -> list[str]:
        matched = [
            header
            for header in headers[:3]
            if header and IDENTITY_HEADER_RE.search(header) and not matches_period_header(header)
        ]
        if matched:
            return matched
        warnings.append("No customer column header recognized; assuming the first column holds customer names.")
        return [headers[0]]

    @staticmethod
    def _serial_period_columns(headers: list[str], warnings: list[str]) -> list[str]:
        serial_headers = [header for header in headers if is_plausible_serial(header)]
        if len(serial_headers) < MIN_PERIOD_COLUMNS:
            return []

        periods = [serial_to_period(int(float(header))) for header in serial_headers]
        if len(set(periods)) != len(periods):
            warnings.append("Spreadsheet date headers repeat a month; ignoring them as period columns.")
            return []

        ordered = sorted(periods, key=period_index)
        span = month_span(ordered[0], ordered[-1])
        if not SERIAL_MIN_MONTHS <= span <= SERIAL_MAX_MONTHS:
            warnings.append(
                f"Spreadsheet date headers span {span} months; expected between "
                f"{SERIAL_MIN_MONTHS} and {SERIAL_MAX_MONTHS}."
            )
            return []

        warnings.append("Month columns were detected from spreadsheet date serial numbers.")
        return serial_headers

    @staticmethod
    def _fallback(
        candidates: list[str],
        identity_columns: list[str],
        warnings: list[str],
    ) -> FormatDecision:
        loose = [header for header in candidates if matches_loose_date(header)]
        if len(candidates) >= MIN_PERIOD_COLUMNS and len(loose) >= MIN_PERIOD_COLUMNS and len(loose) * 2 > len(candidates):
            ratio = len(loose) / len(candidates)
            warnings.append(
                "Month columns were inferred from loosely date-like headers; "
                "check that every period was read correctly."
            )
            return FormatDecision(
                shape=FormatShape.WIDE,
                confidence=round(min(FALLBACK_MAX_CONFIDENCE, ratio * FALLBACK_MAX_CONFIDENCE), 4),
                period_columns=tuple(loose),
                identity_columns=tuple(identity_columns),
                warnings=tuple(warnings),
            )

        warnings.append("No month columns and no long-format columns (month, mrr) were found.")
        return FormatDecision(
            shape=FormatShape.UNKNOWN,
            confidence=0.0,
            identity_columns=tuple(identity_columns),
            warnings=tuple(warnings),
        )


def matches_period_header(header: str) -> bool:
    """
    Return True when *header* matches one of the strict period patterns.
    """

    text = header.strip()
    return any(pattern.match(text) for pattern in PERIOD_HEADER_PATTERNS)


def matches_loose_date(header: str) -> bool:
    text = header.strip()
    return any(pattern.search(text) for pattern in LOOSE_DATE_PATTERNS)


def header_text(header: Any) -> str:
    if header is None:
        return ""
    if isinstance(header, float):
        if header != header:
            return ""
        if header.is_integer():
            return str(int(header))
    return str(header).strip()

"""
app/mappers/period_normalizer.py

Canonicalizes human and spreadsheet period encodings to ``YYYY-MM``.

Recognized encodings, tried in order
------------------------------------
1. ``YYYY-MM``
2. Spreadsheet date serial (days since 1899-12-30)
3. ``Mon/YY``, ``Month-YYYY``, ``Jan 23`` (sep is ``/``, ``-`` or space)
4. Numeric ``MM/YYYY`` or ``YYYY-MM`` pairs, the 4-digit side is the year
5. ``Q1 2024`` style quarters, mapped to the quarter's first month
6. Generic date strings (ISO dates, ``MM/DD/YYYY`` and friends)

Two-digit years use a rolling window anchored to the reference year's
century: with reference year 2025 and a 20 year window, ``45`` is 2045 and
``46`` is 1946.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any

from app.domain.errors import PeriodFormatError

logger = logging.getLogger(__name__)

SERIAL_EPOCH = date(1899, 12, 30)
SERIAL_MIN = (date(1999, 1, 1) - SERIAL_EPOCH).days
SERIAL_MAX = (date(2100, 12, 31) - SERIAL_EPOCH).days

USUAL_YEAR_MIN = 1990
USUAL_YEAR_MAX = 2099

MONTH_NAMES: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_ISO_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_SERIAL_RE = re.compile(r"^\d{4,6}(?:\.0+)?$")
_MONTH_NAME_RE = re.compile(r"^([A-Za-z]{3,9})\.?(?:[/\-]|\s+)'?(\d{2}|\d{4})$")
_NUMERIC_PAIR_RE = re.compile(r"^(\d{1,4})[/\-](\d{1,4})$")
_QUARTER_RE = re.compile(r"^[Qq]([1-4])(?:[/\-]|\s+)(\d{4})$")
_SHORT_PAIR_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")

GENERIC_DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%Y%m",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def is_canonical_period(value: Any) -> bool:
    """
    Return True when *value* is a well-formed ``YYYY-MM`` string.
    """

    if not isinstance(value, str):
        return False
    match = _ISO_MONTH_RE.match(value)
    return match is not None and 1 <= int(match.group(2)) <= 12


def period_index(period: str) -> int:
    """
    Months since year zero, for span arithmetic between canonical periods.
    """

    year, month = period.split("-")
    return int(year) * 12 + int(month) - 1


def month_span(start: str, end: str) -> int:
    """
    Inclusive number of calendar months from *start* to *end*.
    """

    return period_index(end) - period_index(start) + 1


def serial_to_period(serial: int) -> str:
    """
    Convert a spreadsheet date serial to its ``YYYY-MM``.
    """

    converted = date.fromordinal(SERIAL_EPOCH.toordinal() + int(serial))
    return format_period(converted.year, converted.month)


def is_plausible_serial(value: Any) -> bool:
    """
    Return True for integers in the spreadsheet serial range of 1999-2100.
    """

    number = _as_integral_number(value)
    return number is not None and SERIAL_MIN <= number <= SERIAL_MAX


def expand_two_digit_year(two_digit: int, *, reference_year: int, window: int) -> int:
    """
    Expand a two-digit year with a rolling forward window.

    Years up to ``reference_year % 100 + window`` land in the reference
    century, later ones in the previous century.
    """

    century = reference_year // 100 * 100
    if two_digit <= reference_year % 100 + window:
        return century + two_digit
    return century - 100 + two_digit


class PeriodNormalizer:
    """
    Pure, deterministic period parser.

    ``reference_year`` anchors two-digit year expansion; when omitted the
    current calendar year is used at call time.
    """

    def __init__(
        self,
        *,
        reference_year: int | None = None,
        two_digit_year_window: int = 20,
    ) -> None:
        self._reference_year = reference_year
        self._window = max(0, two_digit_year_window)

    def normalize(self, token: Any) -> str:
        """
        Return the canonical ``YYYY-MM`` for *token*.

        Raises
        ------
        PeriodFormatError
            When no recognized encoding matches.
        """

        if isinstance(token, datetime):
            return self._finish(token.year, token.month, token)
        if isinstance(token, date):
            return self._finish(token.year, token.month, token)
        if isinstance(token, bool) or token is None:
            raise PeriodFormatError(token)
        if isinstance(token, (int, float)):
            if is_plausible_serial(token):
                return self._from_serial(int(token), token)
            raise PeriodFormatError(token)

        text = str(token).strip()
        if not text:
            raise PeriodFormatError(token)

        match = _ISO_MONTH_RE.match(text)
        if match and 1 <= int(match.group(2)) <= 12:
            return self._finish(int(match.group(1)), int(match.group(2)), token)

        if _SERIAL_RE.match(text) and is_plausible_serial(text):
            return self._from_serial(int(float(text)), token)

        match = _MONTH_NAME_RE.match(text)
        if match:
            month = MONTH_NAMES.get(match.group(1).lower())
            if month is not None:
                return self._finish(self._year(match.group(2)), month, token)

        match = _NUMERIC_PAIR_RE.match(text)
        if match:
            parsed = self._from_numeric_pair(match.group(1), match.group(2))
            if parsed is not None:
                return self._finish(parsed[0], parsed[1], token)

        match = _QUARTER_RE.match(text)
        if match:
            quarter = int(match.group(1))
            return self._finish(int(match.group(2)), (quarter - 1) * 3 + 1, token)

        parsed_date = _parse_generic_date(text)
        if parsed_date is not None:
            return self._finish(parsed_date.year, parsed_date.month, token)

        raise PeriodFormatError(token)

    def try_normalize(self, token: Any) -> str | None:
        try:
            return self.normalize(token)
        except PeriodFormatError:
            return None

    def reinterpret(self, token: Any) -> str | None:
        """
        Best-effort reading of a short ``<num>/<num>`` token as ``20<a>-<b>``.

        Only used after :meth:`normalize` failed; callers must log its use
        because it can hide a genuinely malformed header.
        """

        match = _SHORT_PAIR_RE.match(str(token).strip())
        if not match:
            return None
        month = int(match.group(2))
        if not 1 <= month <= 12:
            return None
        return format_period(2000 + int(match.group(1)), month)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _year(self, raw: str) -> int:
        if len(raw) == 4:
            return int(raw)
        reference_year = self._reference_year or date.today().year
        return expand_two_digit_year(int(raw), reference_year=reference_year, window=self._window)

    def _from_serial(self, serial: int, token: Any) -> str:
        period = serial_to_period(serial)
        year, month = period.split("-")
        return self._finish(int(year), int(month), token)

    @staticmethod
    def _from_numeric_pair(first: str, second: str) -> tuple[int, int] | None:
        if len(first) == 4 and len(second) <= 2:
            year, month = int(first), int(second)
        elif len(second) == 4 and len(first) <= 2:
            year, month = int(second), int(first)
        else:
            return None
        if not 1 <= month <= 12:
            return None
        return year, month

    @staticmethod
    def _finish(year: int, month: int, token: Any) -> str:
        if not USUAL_YEAR_MIN <= year <= USUAL_YEAR_MAX:
            logger.warning("Unusual year in period token=%r year=%s", token, year)
        return format_period(year, month)


_DEFAULT_NORMALIZER = PeriodNormalizer()


def normalize_period(token: Any) -> str:
    """
    Normalize *token* with the default normalizer (current-year window).
    """

    return _DEFAULT_NORMALIZER.normalize(token)


def _parse_generic_date(text: str) -> datetime | None:
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        pass

    for fmt in GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _as_integral_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or not value.is_integer():
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not _SERIAL_RE.match(text):
            return None
        return int(float(text))
    return None

"""
tests/test_period_normalizer.py

Tests for period token normalization to YYYY-MM.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from app.domain.errors import PeriodFormatError
from app.mappers.period_normalizer import (
    PeriodNormalizer,
    expand_two_digit_year,
    is_canonical_period,
    is_plausible_serial,
    month_span,
    serial_to_period,
)


@pytest.fixture()
def normalizer() -> PeriodNormalizer:
    return PeriodNormalizer(reference_year=2025, two_digit_year_window=20)


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("2024-03", "2024-03"),
        (45292, "2024-01"),
        ("45292", "2024-01"),
        ("45292.0", "2024-01"),
        ("Jan/23", "2023-01"),
        ("Jan-2024", "2024-01"),
        ("March 2024", "2024-03"),
        ("Sept 23", "2023-09"),
        ("dec/24", "2024-12"),
        ("01/2024", "2024-01"),
        ("3-2024", "2024-03"),
        ("2024/01", "2024-01"),
        ("Q2 2024", "2024-04"),
        ("q4-2023", "2023-10"),
        ("2024-03-15", "2024-03"),
        ("2024-03-15T10:30:00Z", "2024-03"),
        ("03/15/2024", "2024-03"),
        (date(2024, 7, 4), "2024-07"),
        (datetime(2022, 11, 30, 8, 0), "2022-11"),
    ],
)
def test_normalize_recognized_encodings(
    normalizer: PeriodNormalizer,
    token: object,
    expected: str,
) -> None:
    assert normalizer.normalize(token) == expected


@pytest.mark.parametrize("token", ["foo", "", None, "13/2024", "Q5 2024", 12.5, True])
def test_normalize_rejects_unrecognized_tokens(normalizer: PeriodNormalizer, token: object) -> None:
    with pytest.raises(PeriodFormatError):
        normalizer.normalize(token)


def test_try_normalize_returns_none_instead_of_raising(normalizer: PeriodNormalizer) -> None:
    assert normalizer.try_normalize("not a month") is None
    assert normalizer.try_normalize("Feb/24") == "2024-02"


def test_two_digit_year_window_boundary(normalizer: PeriodNormalizer) -> None:
    assert normalizer.normalize("Jan/45") == "2045-01"
    assert normalizer.normalize("Jan/46") == "1946-01"


def test_expand_two_digit_year() -> None:
    assert expand_two_digit_year(23, reference_year=2025, window=20) == 2023
    assert expand_two_digit_year(99, reference_year=2025, window=20) == 1999
    assert expand_two_digit_year(0, reference_year=2025, window=0) == 2000


def test_normalize_is_idempotent(normalizer: PeriodNormalizer) -> None:
    for token in ("Jan/23", "Q3 2024", 45292, "2024-03-15", "11/2021"):
        period = normalizer.normalize(token)
        assert is_canonical_period(period)
        assert normalizer.normalize(period) == period


def test_unusual_year_is_logged_not_rejected(
    normalizer: PeriodNormalizer,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="app.mappers.period_normalizer"):
        assert normalizer.normalize("1985-01") == "1985-01"

    assert "Unusual year" in caplog.text


def test_reinterpret_short_pair_as_current_century() -> None:
    normalizer = PeriodNormalizer()

    assert normalizer.try_normalize("23/4") is None
    assert normalizer.reinterpret("23/4") == "2023-04"
    assert normalizer.reinterpret("23/13") is None
    assert normalizer.reinterpret("Jan/23") is None


def test_serial_helpers() -> None:
    assert serial_to_period(45292) == "2024-01"
    assert is_plausible_serial(45292)
    assert is_plausible_serial("44927")
    assert not is_plausible_serial(100)
    assert not is_plausible_serial(45292.5)
    assert not is_plausible_serial(True)


def test_month_span_is_inclusive() -> None:
    assert month_span("2023-11", "2024-02") == 4
    assert month_span("2024-01", "2024-01") == 1

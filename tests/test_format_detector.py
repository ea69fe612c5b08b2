"""
tests/test_format_detector.py

Tests for header-row layout classification.
"""

from __future__ import annotations

import pytest

from app.domain.revenue import FormatShape
from app.mappers.format_detector import FormatDetector, header_text, matches_period_header


@pytest.fixture()
def detector() -> FormatDetector:
    return FormatDetector()


def test_wide_layout_confidence_is_period_share(detector: FormatDetector) -> None:
    decision = detector.detect(["Customer", "2024-01", "2024-02", "2024-03"])

    assert decision.shape is FormatShape.WIDE
    assert decision.confidence == 0.75
    assert decision.period_columns == ("2024-01", "2024-02", "2024-03")
    assert decision.identity_columns == ("Customer",)
    assert decision.is_extractable


def test_wide_confidence_is_capped(detector: FormatDetector) -> None:
    headers = ["Customer"] + [f"2024-{month:02d}" for month in range(1, 13)]

    decision = detector.detect(headers)

    assert decision.shape is FormatShape.WIDE
    assert decision.confidence == 0.9


def test_wide_with_month_name_headers(detector: FormatDetector) -> None:
    decision = detector.detect(["Customer ID", "Customer Name", "Jan-23", "Feb-23", "Mar-23"])

    assert decision.shape is FormatShape.WIDE
    assert decision.identity_columns == ("Customer ID", "Customer Name")
    assert decision.period_columns == ("Jan-23", "Feb-23", "Mar-23")


def test_long_layout(detector: FormatDetector) -> None:
    decision = detector.detect(["customerId", "customerName", "month", "mrr"])

    assert decision.shape is FormatShape.LONG
    assert decision.confidence == 0.95
    assert decision.period_columns == ()
    assert decision.identity_columns == ("customerId", "customerName")


def test_long_layout_accepts_a_plain_customer_column(detector: FormatDetector) -> None:
    decision = detector.detect(["Customer", "Month", "MRR"])

    assert decision.shape is FormatShape.LONG
    assert decision.confidence == 0.95
    assert decision.identity_columns == ("Customer",)


def test_long_layout_without_customer_column_is_low_confidence(detector: FormatDetector) -> None:
    decision = detector.detect(["month", "mrr"])

    assert decision.shape is FormatShape.LONG
    assert decision.confidence == 0.5
    assert decision.identity_columns == ()
    assert any("No customer column found" in w for w in decision.warnings)


def test_long_layout_needs_an_amount_column(detector: FormatDetector) -> None:
    decision = detector.detect(["customer", "month", "plan"])

    assert decision.shape is FormatShape.UNKNOWN
    assert not decision.is_extractable


def test_hybrid_layout_is_flagged(detector: FormatDetector) -> None:
    decision = detector.detect(
        ["customerId", "month", "mrr", "Jan/23", "Feb/23", "Mar/23", "Apr/23", "May/23"]
    )

    assert decision.shape is FormatShape.HYBRID
    assert decision.confidence == 0.0
    assert not decision.is_extractable
    assert any("both long-format columns and month columns" in w for w in decision.warnings)


@pytest.mark.parametrize("headers", [[], ["Customer"], ["Customer", "", None]])
def test_too_few_headers_is_unknown(detector: FormatDetector, headers: list) -> None:
    decision = detector.detect(headers)

    assert decision.shape is FormatShape.UNKNOWN
    assert decision.confidence == 0.0


def test_unrecognized_headers_are_unknown(detector: FormatDetector) -> None:
    decision = detector.detect(["foo", "bar", "baz"])

    assert decision.shape is FormatShape.UNKNOWN
    assert decision.warnings


def test_spreadsheet_serial_headers(detector: FormatDetector) -> None:
    decision = detector.detect(["Customer", 44927, 44958.0, "44986"])

    assert decision.shape is FormatShape.WIDE
    assert decision.period_columns == ("44927", "44958", "44986")
    assert any("date serial" in w for w in decision.warnings)


def test_repeated_serial_month_is_not_a_period_signal(detector: FormatDetector) -> None:
    decision = detector.detect(["Customer", 44927, 44928, 44929])

    assert decision.shape is FormatShape.UNKNOWN
    assert any("repeat a month" in w for w in decision.warnings)


def test_missing_identity_header_falls_back_to_first_column(detector: FormatDetector) -> None:
    decision = detector.detect(["", "2024-01", "2024-02", "2024-03"])

    assert decision.shape is FormatShape.WIDE
    assert decision.confidence == 0.9
    assert any("No customer column" in w for w in decision.warnings)


def test_loose_date_fallback_caps_confidence(detector: FormatDetector) -> None:
    decision = detector.detect(["Account", "FY23 Q1", "FY23 Q2", "FY23 Q3"])

    assert decision.shape is FormatShape.WIDE
    assert decision.confidence <= 0.8
    assert decision.period_columns == ("FY23 Q1", "FY23 Q2", "FY23 Q3")


def test_header_text_and_period_patterns() -> None:
    assert header_text(None) == ""
    assert header_text(float("nan")) == ""
    assert header_text(45292.0) == "45292"
    assert header_text("  Revenue ") == "Revenue"
    assert matches_period_header("Q1 2024")
    assert matches_period_header("2024-03-01")
    assert not matches_period_header("Revenue")

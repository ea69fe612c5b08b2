"""
tests/test_ledger_quality.py

Tests for non-fatal ledger quality checks.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from app.domain.revenue import LedgerEntry
from app.validators.ledger_quality import assess_ledger


def _entry(customer_id: str, period: str, amount: str = "100") -> LedgerEntry:
    return LedgerEntry(
        customer_id=customer_id,
        customer_name=customer_id,
        period=period,
        amount=Decimal(amount),
    )


def test_empty_ledger_is_invalid() -> None:
    report = assess_ledger([])

    assert report.is_valid is False
    assert report.issues == ["No data found."]
    assert report.stats is None


def test_healthy_ledger() -> None:
    entries = [
        _entry(customer, period)
        for customer in ("a", "b", "c")
        for period in ("2024-01", "2024-02", "2024-03")
    ]

    report = assess_ledger(entries)

    assert report.is_valid is True
    assert report.issues == []
    assert report.stats is not None
    assert report.stats.customers == 3
    assert report.stats.records == 9
    assert report.stats.date_range == "2024-01 to 2024-03"
    assert report.stats.avg_records_per_customer == 3.0
    assert report.stats.data_span_months == 3


def test_single_customer_and_short_history_are_flagged() -> None:
    report = assess_ledger([_entry("a", "2024-01"), _entry("a", "2024-02")])

    assert report.is_valid is False
    assert any(issue.startswith("Only 1 unique customer") for issue in report.issues)
    assert any(issue.startswith("Only 2 months found") for issue in report.issues)
    assert report.recommendations


def test_sparse_ledger_is_flagged() -> None:
    entries = [_entry(f"c{month}", f"2024-{month:02d}") for month in range(1, 11)]

    report = assess_ledger(entries)

    assert any(issue.startswith("Low data density") for issue in report.issues)
    assert report.stats is not None
    assert report.stats.data_span_months == 10


def test_enterprise_amounts_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    entries = [
        _entry(customer, period, "2000000")
        for customer in ("a", "b")
        for period in ("2024-01", "2024-02", "2024-03")
    ]

    with caplog.at_level(logging.INFO, logger="app.validators.ledger_quality"):
        report = assess_ledger(entries)

    assert report.is_valid is True
    assert "above" in caplog.text

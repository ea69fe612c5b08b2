"""
app/validators/ledger_quality.py

Non-fatal data-quality checks over an extracted revenue ledger.
"""

from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from typing import Sequence

from app.domain.revenue import LedgerEntry, LedgerQualityReport, LedgerQualityStats
from app.mappers.period_normalizer import month_span

logger = logging.getLogger(__name__)

SINGLE_CUSTOMER_RECORD_LIMIT = 50
MIN_MONTHS = 3
MIN_DENSITY = 0.3
ENTERPRISE_AMOUNT = Decimal(1_000_000)
LARGE_LEDGER_RECORDS = 100_000


def assess_ledger(entries: Sequence[LedgerEntry]) -> LedgerQualityReport:
    """
    Flag ledgers that parsed but probably do not describe what the user meant.
    """

    if not entries:
        return LedgerQualityReport(is_valid=False, issues=["No data found."])

    issues: list[str] = []
    recommendations: list[str] = []

    records_per_customer = Counter(entry.customer_id for entry in entries)
    months = sorted({entry.period for entry in entries})
    span = month_span(months[0], months[-1])

    if len(records_per_customer) == 1 and len(entries) < SINGLE_CUSTOMER_RECORD_LIMIT:
        issues.append("Only 1 unique customer found; the file was probably not parsed as intended.")
        recommendations.append("Check that each customer is on its own row or has its own id.")

    if len(months) < MIN_MONTHS:
        issues.append(f"Only {len(months)} months found; at least {MIN_MONTHS} are needed for trend metrics.")
        recommendations.append(f"Upload data spanning at least {MIN_MONTHS} months.")

    avg_records = len(entries) / len(records_per_customer)
    if avg_records / span < MIN_DENSITY:
        issues.append(
            f"Low data density: avg {avg_records:.1f} records per customer over a {span} month span."
        )
        recommendations.append("This is normal for datasets with heavy customer churn and acquisition.")

    enterprise = sum(1 for entry in entries if entry.amount > ENTERPRISE_AMOUNT)
    if enterprise:
        logger.info("Ledger has %d records above %s MRR", enterprise, ENTERPRISE_AMOUNT)
    if len(entries) > LARGE_LEDGER_RECORDS:
        logger.info("Large ledger assessed records=%d", len(entries))

    return LedgerQualityReport(
        is_valid=not issues,
        issues=issues,
        recommendations=recommendations,
        stats=LedgerQualityStats(
            customers=len(records_per_customer),
            records=len(entries),
            date_range=f"{months[0]} to {months[-1]}",
            avg_records_per_customer=round(avg_records, 1),
            data_span_months=span,
        ),
    )

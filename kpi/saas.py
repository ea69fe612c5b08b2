"""
kpi/saas.py

SaaS revenue metrics engines.

For each period P, compared against the previous distinct period P-1
(not necessarily the calendar-adjacent month):

Formulas
--------
New MRR          = sum(P amounts) for customers with no P-1 revenue
Expansion MRR    = sum(P - P-1) for customers that grew
Contraction MRR  = sum(P-1 - P) for customers that shrank
Churned MRR      = sum(P-1 amounts) for customers with no row in P
Total MRR        = sum(P amounts);  ARR = Total MRR * 12
GRR              = (total(P-1) - churned - contraction) / total(P-1)
NRR              = (total(P-1) - churned - contraction + expansion) / total(P-1)
Logo churn       = churned customers / customers(P-1)
Magic number     = (new + expansion) / (churned + contraction)

Zero-base conventions: retention is 1.0 when total(P-1) is 0, logo churn
is 0 when customers(P-1) is 0, and the magic number reports a fixed ceiling
when only its denominator is 0. The first period reports retention 1.0,
churn 0 and magic number 0.

Money is rounded half-up to 2 places and ratios to 4 places, once, after
the full-precision computation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from app.domain.revenue import LedgerEntry, MetricsSummary, MonthlyAggregate, MonthlyMetrics
from app.mappers.period_normalizer import period_index
from kpi.base import BaseMetricsEngine

_ZERO = Decimal(0)
_ONE = Decimal(1)
_MONTHS_PER_YEAR = Decimal(12)
_MONEY_QUANTUM = Decimal("0.01")
_RATIO_QUANTUM = Decimal("0.0001")

DEFAULT_MAGIC_NUMBER_CEILING = 5.0


@dataclass(frozen=True)
class RevenueMovements:
    """
    Unrounded revenue movement between two adjacent periods.
    """

    new: Decimal = _ZERO
    expansion: Decimal = _ZERO
    contraction: Decimal = _ZERO
    churned: Decimal = _ZERO
    churned_customers: int = 0


class LedgerMetricsEngine(BaseMetricsEngine):
    """
    Computes the metrics series from a customer-level revenue ledger.
    """

    def __init__(self, *, magic_number_ceiling: float = DEFAULT_MAGIC_NUMBER_CEILING) -> None:
        self._magic_number_ceiling = Decimal(str(magic_number_ceiling))

    def compute(self, records: Sequence[LedgerEntry]) -> list[MonthlyMetrics]:
        series: list[MonthlyMetrics] = []
        previous: dict[str, Decimal] | None = None

        for period, current in group_by_period(records):
            if previous is None:
                movements = RevenueMovements(new=sum(current.values(), _ZERO))
            else:
                movements = diff_customer_revenue(current, previous)

            total = sum(current.values(), _ZERO)
            previous_total = sum(previous.values(), _ZERO) if previous is not None else _ZERO
            previous_count = len(previous) if previous is not None else 0

            series.append(
                MonthlyMetrics(
                    period=period,
                    total_mrr=_money(total),
                    arr=_money(total * _MONTHS_PER_YEAR),
                    customer_count=len(current),
                    new_mrr=_money(movements.new),
                    expansion_mrr=_money(movements.expansion),
                    contraction_mrr=_money(movements.contraction),
                    churned_mrr=_money(movements.churned),
                    gross_revenue_retention=_ratio(
                        _retention(previous_total, movements.churned + movements.contraction)
                    ),
                    net_revenue_retention=_ratio(
                        _retention(
                            previous_total,
                            movements.churned + movements.contraction - movements.expansion,
                        )
                    ),
                    logo_churn_rate=_ratio(
                        Decimal(movements.churned_customers) / previous_count if previous_count else _ZERO
                    ),
                    magic_number=_ratio(
                        magic_number(movements, ceiling=self._magic_number_ceiling)
                        if previous is not None
                        else _ZERO
                    ),
                )
            )
            previous = current

        return series


class AggregateMetricsEngine(BaseMetricsEngine):
    """
    Computes the metrics series from company-level monthly aggregates and
    the customer ledger together.

    The series covers every period found in either input. Periods with an
    aggregate report its totals; breakdown fields present on it are trusted
    as given, missing ones are derived from *ledger* when it covers the
    period, otherwise taken as 0. Ledger-only periods are computed from the
    ledger as ``LedgerMetricsEngine`` does. Every period is compared against
    the period just before it in the combined series.
    """

    def __init__(self, *, magic_number_ceiling: float = DEFAULT_MAGIC_NUMBER_CEILING) -> None:
        self._magic_number_ceiling = Decimal(str(magic_number_ceiling))

    def compute(
        self,
        records: Sequence[MonthlyAggregate],
        ledger: Sequence[LedgerEntry] | None = None,
    ) -> list[MonthlyMetrics]:
        ledger_periods = dict(group_by_period(ledger or ()))
        derived = ledger_movements(ledger) if ledger else {}
        aggregates = {aggregate.period: aggregate for aggregate in records}
        periods = sorted(set(aggregates) | set(ledger_periods), key=period_index)

        series: list[MonthlyMetrics] = []
        previous_total: Decimal | None = None
        previous_count = 0
        for period in periods:
            aggregate = aggregates.get(period)
            fallback = derived.get(period, RevenueMovements())
            if aggregate is None:
                customers = ledger_periods[period]
                movements = fallback
                total = sum(customers.values(), _ZERO)
                customer_count = len(customers)
                logo_churn = (
                    Decimal(movements.churned_customers) / previous_count if previous_count else _ZERO
                )
            else:
                movements = RevenueMovements(
                    new=_given_or(aggregate.new_revenue, fallback.new),
                    expansion=_given_or(aggregate.expansion_revenue, fallback.expansion),
                    contraction=_given_or(aggregate.contraction_revenue, fallback.contraction),
                    churned=_given_or(aggregate.churned_revenue, fallback.churned),
                )
                total = aggregate.total_revenue
                customer_count = aggregate.customer_count
                logo_churn = _estimated_logo_churn(previous_total, previous_count, movements.churned)

            base = previous_total if previous_total is not None else _ZERO
            series.append(
                MonthlyMetrics(
                    period=period,
                    total_mrr=_money(total),
                    arr=_money(total * _MONTHS_PER_YEAR),
                    customer_count=customer_count,
                    new_mrr=_money(movements.new),
                    expansion_mrr=_money(movements.expansion),
                    contraction_mrr=_money(movements.contraction),
                    churned_mrr=_money(movements.churned),
                    gross_revenue_retention=_ratio(
                        max(_ZERO, _retention(base, movements.churned + movements.contraction))
                    ),
                    net_revenue_retention=_ratio(
                        max(
                            _ZERO,
                            _retention(
                                base,
                                movements.churned + movements.contraction - movements.expansion,
                            ),
                        )
                    ),
                    logo_churn_rate=_ratio(logo_churn),
                    magic_number=_ratio(
                        magic_number(movements, ceiling=self._magic_number_ceiling)
                        if previous_total is not None
                        else _ZERO
                    ),
                )
            )
            previous_total = total
            previous_count = customer_count

        return series


# ---------------------------------------------------------------------------
# Shared formula functions
# ---------------------------------------------------------------------------


def group_by_period(ledger: Iterable[LedgerEntry]) -> list[tuple[str, dict[str, Decimal]]]:
    """
    Group *ledger* into per-period customer revenue maps, ascending by period.
    """

    grouped: dict[str, dict[str, Decimal]] = defaultdict(dict)
    for entry in ledger:
        customers = grouped[entry.period]
        customers[entry.customer_id] = customers.get(entry.customer_id, _ZERO) + entry.amount
    return sorted(grouped.items(), key=lambda item: period_index(item[0]))


def diff_customer_revenue(
    current: dict[str, Decimal],
    previous: dict[str, Decimal],
) -> RevenueMovements:
    """
    Classify the revenue change of every customer between two periods.
    """

    new = expansion = contraction = churned = _ZERO
    for customer_id, amount in current.items():
        previous_amount = previous.get(customer_id, _ZERO)
        if previous_amount == _ZERO:
            new += amount
        elif amount > previous_amount:
            expansion += amount - previous_amount
        elif amount < previous_amount:
            contraction += previous_amount - amount

    churned_customers = 0
    for customer_id, previous_amount in previous.items():
        if customer_id not in current:
            churned += previous_amount
            churned_customers += 1

    return RevenueMovements(
        new=new,
        expansion=expansion,
        contraction=contraction,
        churned=churned,
        churned_customers=churned_customers,
    )


def ledger_movements(ledger: Iterable[LedgerEntry]) -> dict[str, RevenueMovements]:
    """
    Return revenue movements keyed by period for every period in *ledger*.
    """

    movements: dict[str, RevenueMovements] = {}
    previous: dict[str, Decimal] | None = None
    for period, current in group_by_period(ledger):
        if previous is None:
            movements[period] = RevenueMovements(new=sum(current.values(), _ZERO))
        else:
            movements[period] = diff_customer_revenue(current, previous)
        previous = current
    return movements


def magic_number(movements: RevenueMovements, *, ceiling: Decimal) -> Decimal:
    """
    Growth efficiency proxy: gained revenue over lost revenue.
    """

    gained = movements.new + movements.expansion
    lost = movements.churned + movements.contraction
    if lost == _ZERO:
        return ceiling if gained > _ZERO else _ZERO
    return gained / lost


def summarize(series: Sequence[MonthlyMetrics]) -> MetricsSummary:
    """
    Summarize an ascending metrics series for dashboard display.
    """

    if not series:
        return MetricsSummary(series=[], latest=None, has_data=False)

    latest = series[-1]
    mom_growth = 0.0
    if len(series) > 1:
        previous_mrr = Decimal(str(series[-2].total_mrr))
        if previous_mrr != _ZERO:
            mom_growth = _ratio((Decimal(str(latest.total_mrr)) - previous_mrr) / previous_mrr)

    return MetricsSummary(
        series=list(series),
        latest=latest,
        has_data=True,
        start=series[0].period,
        end=latest.period,
        months=len(series),
        mom_growth=mom_growth,
    )


def _retention(previous_total: Decimal, lost: Decimal) -> Decimal:
    if previous_total == _ZERO:
        return _ONE
    return (previous_total - lost) / previous_total


def _estimated_logo_churn(
    previous_total: Decimal | None,
    previous_count: int,
    churned: Decimal,
) -> Decimal:
    """
    Estimate churned logos from churned revenue at the previous average price.
    """

    if previous_total is None or previous_count <= 0:
        return _ZERO
    average = previous_total / previous_count
    if average == _ZERO:
        return _ZERO
    rate = churned / average / previous_count
    return min(_ONE, max(_ZERO, rate))


def _given_or(value: Decimal | None, fallback: Decimal) -> Decimal:
    return fallback if value is None else value


def _money(value: Decimal) -> float:
    return float(value.quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP))


def _ratio(value: Decimal) -> float:
    return float(value.quantize(_RATIO_QUANTUM, rounding=ROUND_HALF_UP))

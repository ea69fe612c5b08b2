"""
kpi/base.py

Abstract base class for monthly metrics engine implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from app.domain.revenue import MonthlyMetrics


class BaseMetricsEngine(ABC):
    """
    Contract for metrics engine implementations.

    Subclasses receive the full input series for one company and must
    return one :class:`MonthlyMetrics` per distinct period, ascending.

    No I/O and no side effects are permitted inside :meth:`compute`; the
    output is always re-derivable from the input.
    """

    @abstractmethod
    def compute(self, records: Sequence[Any]) -> list[MonthlyMetrics]:
        """
        Compute the monthly metrics series from *records*.

        Parameters
        ----------
        records:
            Ledger entries or monthly aggregates, in any order.

        Returns
        -------
        list[MonthlyMetrics]
            One item per distinct period, ordered by period.
        """

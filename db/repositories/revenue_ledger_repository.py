"""
db/repositories/revenue_ledger_repository.py

Persistence layer for the customer/month revenue ledger.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from app.domain.revenue import LedgerEntry
from db.models.revenue_ledger_entry import RevenueLedgerEntry

_DEFAULT_BATCH_SIZE = 1000


class RevenueLedgerRepository:
    """
    Period-level last-write-wins storage for ledger entries.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_periods(
        self,
        *,
        company_id: uuid.UUID,
        entries: Sequence[LedgerEntry],
        upload_job_id: uuid.UUID | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Replace all stored entries of every period present in *entries*.

        Periods absent from *entries* are left untouched.

        Returns
        -------
        int
            Number of entries inserted.
        """
        if not entries:
            return 0

        periods = sorted({entry.period for entry in entries})
        self._session.execute(
            delete(RevenueLedgerEntry).where(
                RevenueLedgerEntry.company_id == company_id,
                RevenueLedgerEntry.period.in_(periods),
            )
        )

        size = max(1, batch_size)
        for start in range(0, len(entries), size):
            payloads = [
                {
                    "id": uuid.uuid4(),
                    "company_id": company_id,
                    "upload_job_id": upload_job_id,
                    "customer_id": entry.customer_id,
                    "customer_name": entry.customer_name,
                    "period": entry.period,
                    "amount": entry.amount,
                }
                for entry in entries[start : start + size]
            ]
            self._session.execute(insert(RevenueLedgerEntry), payloads)

        return len(entries)

    def list_entries(self, *, company_id: uuid.UUID) -> list[LedgerEntry]:
        """
        Return the company's full ledger ordered by period, then customer id.
        """
        stmt = (
            select(RevenueLedgerEntry)
            .where(RevenueLedgerEntry.company_id == company_id)
            .order_by(RevenueLedgerEntry.period, RevenueLedgerEntry.customer_id)
        )
        return [
            LedgerEntry(
                customer_id=row.customer_id,
                customer_name=row.customer_name,
                period=row.period,
                amount=row.amount,
            )
            for row in self._session.scalars(stmt)
        ]

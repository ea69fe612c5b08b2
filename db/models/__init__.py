"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.computed_monthly_metric import ComputedMonthlyMetric
from db.models.monthly_revenue_aggregate import MonthlyRevenueAggregate
from db.models.revenue_ledger_entry import RevenueLedgerEntry
from db.models.upload_job import UploadJob, UploadJobStatus, UploadJobType

__all__ = [
    "ComputedMonthlyMetric",
    "MonthlyRevenueAggregate",
    "RevenueLedgerEntry",
    "UploadJob",
    "UploadJobStatus",
    "UploadJobType",
]

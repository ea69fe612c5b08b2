"""
Repository layer exports.
"""

from db.repositories.metrics_repository import MetricsRepository
from db.repositories.monthly_aggregate_repository import MonthlyAggregateRepository
from db.repositories.revenue_ledger_repository import RevenueLedgerRepository
from db.repositories.upload_job_repository import UploadJobRepository

__all__ = [
    "MetricsRepository",
    "MonthlyAggregateRepository",
    "RevenueLedgerRepository",
    "UploadJobRepository",
]

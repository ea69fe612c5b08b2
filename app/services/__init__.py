"""
app/services package marker.
"""

from app.services.metrics_service import MetricsService, get_metrics_service
from app.services.revenue_ingestion_service import (
    RevenueIngestionService,
    get_revenue_ingestion_service,
)

__all__ = [
    "MetricsService",
    "get_metrics_service",
    "RevenueIngestionService",
    "get_revenue_ingestion_service",
]

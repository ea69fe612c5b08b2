"""
app/schemas package marker.
"""

from app.schemas.metrics import MetricsSummaryResponse, MonthlyMetricsResponse
from app.schemas.revenue_upload import (
    MonthlyMetricsUploadResponse,
    SpreadsheetUploadResponse,
    UploadJobResponse,
)

__all__ = [
    "MetricsSummaryResponse",
    "MonthlyMetricsResponse",
    "MonthlyMetricsUploadResponse",
    "SpreadsheetUploadResponse",
    "UploadJobResponse",
]

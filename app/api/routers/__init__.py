"""
app/api/routers package marker.
"""

from app.api.routers.metrics_router import router as metrics_router
from app.api.routers.revenue_uploads import router as revenue_uploads_router

__all__ = [
    "metrics_router",
    "revenue_uploads_router",
]

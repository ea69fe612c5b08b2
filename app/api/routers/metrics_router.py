"""
app/api/routers/metrics_router.py

Metrics read endpoint.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.domain.errors import RevenuePersistenceError
from app.schemas.metrics import MetricsSummaryResponse
from app.services.metrics_service import MetricsService, get_metrics_service
from db.session import get_db

router = APIRouter(tags=["metrics"])


@router.get("/companies/{company_id}/metrics", response_model=MetricsSummaryResponse)
def get_metrics(
    company_id: uuid.UUID,
    refresh: bool = Query(default=False, description="Recompute from stored revenue data"),
    db: Session = Depends(get_db),
    metrics_service: MetricsService = Depends(get_metrics_service),
) -> MetricsSummaryResponse:
    """
    Return the full monthly metrics series, the latest period and the data range.
    """

    try:
        summary = metrics_service.get_metrics(company_id=company_id, db=db, refresh=refresh)
    except RevenuePersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load metrics.",
        ) from exc

    return MetricsSummaryResponse.from_summary(summary)

"""
app/api/routers/revenue_uploads.py

Revenue upload HTTP endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import RevenueUpload, get_csv_upload, get_spreadsheet_upload
from app.domain.errors import (
    DataFormatError,
    FormatDetectionError,
    RevenuePersistenceError,
    TableReadError,
    UnsupportedFileTypeError,
)
from app.schemas.revenue_upload import (
    MonthlyMetricsUploadResponse,
    SpreadsheetUploadResponse,
    UploadJobResponse,
)
from app.services.revenue_ingestion_service import (
    RevenueIngestionService,
    get_revenue_ingestion_service,
)
from app.validators.csv_validator import format_validation_messages
from db.session import get_db

router = APIRouter(prefix="/companies/{company_id}/uploads", tags=["uploads"])


@router.post("", response_model=SpreadsheetUploadResponse)
def upload_spreadsheet(
    company_id: uuid.UUID,
    upload: RevenueUpload = Depends(get_spreadsheet_upload),
    db: Session = Depends(get_db),
    ingestion_service: RevenueIngestionService = Depends(get_revenue_ingestion_service),
) -> SpreadsheetUploadResponse:
    """
    Ingest a long or wide revenue spreadsheet and refresh the company's metrics.
    """

    try:
        summary = ingestion_service.ingest_spreadsheet(
            company_id=company_id,
            filename=upload.filename,
            content=upload.content,
            db=db,
        )
    except (UnsupportedFileTypeError, TableReadError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except (FormatDetectionError, DataFormatError) as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.to_dict(),
        ) from exc
    except RevenuePersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist revenue data.",
        ) from exc

    return SpreadsheetUploadResponse.from_summary(summary)


@router.post("/monthly-metrics", response_model=MonthlyMetricsUploadResponse)
def upload_monthly_metrics(
    company_id: uuid.UUID,
    upload: RevenueUpload = Depends(get_csv_upload),
    db: Session = Depends(get_db),
    ingestion_service: RevenueIngestionService = Depends(get_revenue_ingestion_service),
) -> MonthlyMetricsUploadResponse:
    """
    Ingest an aggregated monthly-metrics CSV, reporting row-level problems.
    """

    try:
        summary = ingestion_service.ingest_monthly_metrics_csv(
            company_id=company_id,
            filename=upload.filename,
            content=upload.content,
            db=db,
        )
    except TableReadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except DataFormatError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.to_dict(),
        ) from exc
    except RevenuePersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist monthly metrics.",
        ) from exc

    return MonthlyMetricsUploadResponse.from_summary(
        summary,
        messages=format_validation_messages(summary.validation),
    )


@router.get("", response_model=list[UploadJobResponse])
def list_uploads(
    company_id: uuid.UUID,
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    ingestion_service: RevenueIngestionService = Depends(get_revenue_ingestion_service),
) -> list[UploadJobResponse]:
    """
    Return the company's upload history, newest first.
    """

    try:
        jobs = ingestion_service.list_uploads(company_id=company_id, db=db, limit=limit)
    except RevenuePersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load upload history.",
        ) from exc

    return [UploadJobResponse.model_validate(job) for job in jobs]

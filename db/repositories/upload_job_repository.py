"""
Repository for upload job lifecycle persistence and history lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.upload_job import UploadJob, UploadJobStatus


class UploadJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        company_id: uuid.UUID,
        upload_type: str,
        file_name: str,
        file_size: int,
    ) -> UploadJob:
        job = UploadJob(
            company_id=company_id,
            upload_type=upload_type,
            file_name=file_name,
            file_size=file_size,
            status=UploadJobStatus.PROCESSING,
            rows_processed=0,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> UploadJob | None:
        return self._session.get(UploadJob, job_id)

    def list_jobs(self, *, company_id: uuid.UUID, limit: int = 50) -> list[UploadJob]:
        stmt: Select[tuple[UploadJob]] = (
            select(UploadJob)
            .where(UploadJob.company_id == company_id)
            .order_by(UploadJob.created_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        rows_processed: int,
        snapshot: dict[str, Any] | None = None,
    ) -> UploadJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = UploadJobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.rows_processed = rows_processed
        job.snapshot = snapshot
        job.error_message = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        snapshot: dict[str, Any] | None = None,
    ) -> UploadJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = UploadJobStatus.FAILED
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        if snapshot is not None:
            job.snapshot = snapshot
        return job

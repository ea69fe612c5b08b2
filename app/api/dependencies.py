"""
app/api/dependencies.py

Shared FastAPI dependencies for upload validation.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import File, HTTPException, UploadFile, status

from app.config import get_upload_settings
from app.services.table_reader import SUPPORTED_EXTENSIONS, file_extension

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
}

# MIME type to extension, used when the client sends a file name without one.
SPREADSHEET_CONTENT_TYPES: dict[str, str] = {
    "text/csv": ".csv",
    "application/csv": ".csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel": ".xls",
}


@dataclass(frozen=True)
class RevenueUpload:
    """
    An accepted upload, fully read into memory.
    """

    filename: str
    content: bytes


def get_spreadsheet_upload(file: UploadFile = File(...)) -> RevenueUpload:
    """
    Accept a CSV, XLSX or XLS file by extension or MIME type, within the size limit.
    """

    filename = (file.filename or "").strip()
    content_type = (file.content_type or "").strip().lower()
    extension = file_extension(filename)

    if extension not in SUPPORTED_EXTENSIONS:
        mapped = SPREADSHEET_CONTENT_TYPES.get(content_type)
        if mapped is None or extension:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only CSV, XLSX and XLS files are allowed.",
            )
        filename = f"{filename or 'upload'}{mapped}"

    return RevenueUpload(filename=filename, content=_read_within_limit(file))


def get_csv_upload(file: UploadFile = File(...)) -> RevenueUpload:
    """
    Accept a CSV file by extension or MIME type, within the size limit.
    """

    filename = (file.filename or "").strip()
    content_type = (file.content_type or "").strip().lower()

    if not filename.lower().endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return RevenueUpload(filename=filename or "upload.csv", content=_read_within_limit(file))


def _read_within_limit(file: UploadFile) -> bytes:
    max_bytes = get_upload_settings().max_upload_bytes
    try:
        content = file.file.read(max_bytes + 1)
    finally:
        file.file.close()

    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the upload limit of {max_bytes} bytes.",
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The uploaded file is empty.",
        )
    return content

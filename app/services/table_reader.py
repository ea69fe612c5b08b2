"""
app/services/table_reader.py

Decodes uploaded file bytes into a raw table of cells.

CSV files are read with the standard library reader and every cell stays a
string. Excel workbooks are read through pandas (openpyxl for ``.xlsx``,
xlrd for ``.xls``); only the first sheet is used, empty cells become
``None`` and date cells become ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from datetime import date, datetime
from pathlib import PurePath
from typing import Any

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError

from app.domain.errors import TableReadError, UnsupportedFileTypeError
from app.domain.revenue import RawTable

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".csv", ".xlsx", ".xls")
_EXCEL_ENGINES: dict[str, str] = {".xlsx": "openpyxl", ".xls": "xlrd"}


def file_extension(filename: str | None) -> str:
    """
    Return the lower-cased extension of *filename*, including the dot.
    """

    return PurePath(filename or "").suffix.lower()


def read_table(filename: str | None, content: bytes) -> RawTable:
    """
    Decode *content* into rows of cells based on the extension of *filename*.

    Raises
    ------
    UnsupportedFileTypeError
        When the extension is not CSV, XLSX or XLS.
    TableReadError
        When the bytes cannot be decoded or hold no rows.
    """

    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file type {extension or '(none)'!r}. Upload a CSV, XLSX or XLS file.",
            suggestions=("Export the spreadsheet as .csv or .xlsx and upload it again.",),
        )

    if extension == ".csv":
        table = _read_csv(content)
    else:
        table = _read_excel(content, engine=_EXCEL_ENGINES[extension])

    if not table:
        raise TableReadError("The uploaded file is empty.")

    logger.info(
        "Table read filename=%r rows=%d columns=%d",
        filename,
        len(table),
        max(len(row) for row in table),
    )
    return table


def _read_csv(content: bytes) -> RawTable:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise TableReadError("CSV must be UTF-8 encoded.") from exc

    try:
        rows = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as exc:
        raise TableReadError(f"Invalid CSV format: {exc}") from exc

    return [list(row) for row in rows if any(cell.strip() for cell in row)]


def _read_excel(content: bytes, *, engine: str) -> RawTable:
    try:
        frame = pd.read_excel(
            io.BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=engine,
        )
    except (ValueError, OSError, zipfile.BadZipFile, InvalidFileException, XLRDError) as exc:
        raise TableReadError(f"Could not read the spreadsheet: {exc}") from exc

    table: RawTable = []
    for values in frame.itertuples(index=False, name=None):
        row = [_excel_cell(value) for value in values]
        if any(cell is not None and str(cell).strip() for cell in row):
            table.append(row)
    return table


def _excel_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        if pd.isna(value):
            return None
        return value.strftime("%Y-%m-%d")
    if isinstance(value, str):
        return value
    if pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value

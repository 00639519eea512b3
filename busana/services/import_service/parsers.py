"""File parsing functions for CSV, XLSX and XLS imports.

Every parser returns ``(headers, rows)``: the first row of the first sheet
as headers and one dict per non-empty data row. CSV cells are strings;
spreadsheet cells keep their native type (numbers, datetimes) so the date
normalizer can tell a serial number from text.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Iterable

import xlrd
from openpyxl import load_workbook
from xlrd.xldate import xldate_as_datetime

from .constants import ALLOWED_EXTENSIONS
from .errors import ImportFileError

Rows = list[dict[str, Any]]


@dataclass
class ParsedFile:
    """Headers and data rows read from an upload."""

    file_type: str  # "csv" or "excel"
    headers: list[str]
    rows: Rows = field(default_factory=list)


def get_file_extension(filename: str | None) -> str:
    """Extract the lowercase file extension from a filename."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _collect_rows(headers: list[str], row_iter: Iterable[Iterable[Any]], max_rows: int | None) -> Rows:
    """Zip data rows with headers, skipping blank rows and enforcing the row cap."""
    rows: Rows = []
    for raw in row_iter:
        values = list(raw)
        row = {}
        for j, header in enumerate(headers):
            if not header:
                continue
            value = _clean_cell(values[j]) if j < len(values) else None
            row[header] = value
        if not any(v not in (None, "") for v in row.values()):
            continue
        rows.append(row)
        if max_rows is not None and len(rows) > max_rows:
            raise ValueError(f"File has more than {max_rows} data rows")
    return rows


def _clean_headers(raw_headers: Iterable[Any]) -> list[str]:
    # Keep positions so data cells line up; blank headers become ""
    headers = [str(h).strip() if h is not None else "" for h in raw_headers]
    if not any(headers):
        raise ValueError("File has no valid headers")
    return headers


def parse_csv(file_content: bytes, max_rows: int | None = None) -> tuple[list[str], Rows]:
    """Parse CSV file content into headers and rows.

    Tries UTF-8 (with or without BOM) first, falls back to Latin-1.

    Raises:
        ValueError: If the CSV has no headers or too many rows.
    """
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            text_stream = io.TextIOWrapper(io.BytesIO(file_content), encoding=encoding, newline="")
            reader = csv.reader(text_stream)
            raw_headers = next(reader, None)
            if raw_headers is None:
                raise ValueError("CSV file has no headers")
            headers = _clean_headers(raw_headers)
            return [h for h in headers if h], _collect_rows(headers, reader, max_rows)
        except UnicodeDecodeError:
            continue
        except csv.Error as e:
            raise ValueError(f"Malformed CSV: {e}") from e

    raise ValueError("CSV file could not be decoded")


def parse_xlsx(file_content: bytes, max_rows: int | None = None) -> tuple[list[str], Rows]:
    """Parse XLSX file content into headers and rows (first sheet only).

    Uses openpyxl read_only mode and iterates rows lazily.

    Raises:
        ValueError: If the workbook is unreadable, empty or has too many rows.
    """
    try:
        wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    except Exception as e:
        # openpyxl raises zipfile, KeyError and XML errors for damaged files
        raise ValueError(f"Unreadable XLSX file: {e}") from e

    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise ValueError("XLSX file has no worksheets")

        row_iter = ws.iter_rows(values_only=True)
        raw_headers = next(row_iter, None)
        if raw_headers is None:
            raise ValueError("XLSX file is empty")

        headers = _clean_headers(raw_headers)
        rows = _collect_rows(headers, row_iter, max_rows)
    finally:
        wb.close()

    return [h for h in headers if h], rows


def parse_xls(file_content: bytes, max_rows: int | None = None) -> tuple[list[str], Rows]:
    """Parse legacy XLS (BIFF) content into headers and rows (first sheet only).

    Date cells are converted with the workbook's own date mode.

    Raises:
        ValueError: If the workbook is unreadable, empty or has too many rows.
    """
    try:
        book = xlrd.open_workbook(file_contents=file_content, on_demand=True)
    except xlrd.XLRDError as e:
        raise ValueError(f"Unreadable XLS file: {e}") from e

    try:
        if book.nsheets == 0:
            raise ValueError("XLS file has no worksheets")
        sheet = book.sheet_by_index(0)
        if sheet.nrows == 0:
            raise ValueError("XLS file is empty")

        def cell_values(row_index: int) -> list[Any]:
            values = []
            for cell in sheet.row(row_index):
                if cell.ctype == xlrd.XL_CELL_DATE:
                    values.append(xldate_as_datetime(cell.value, book.datemode))
                elif cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                    values.append(None)
                else:
                    values.append(cell.value)
            return values

        headers = _clean_headers(cell_values(0))
        rows = _collect_rows(headers, (cell_values(i) for i in range(1, sheet.nrows)), max_rows)
    finally:
        book.release_resources()

    return [h for h in headers if h], rows


def parse_upload(file_content: bytes, file_name: str | None, max_rows: int | None = None) -> ParsedFile:
    """Parse an uploaded file, choosing the parser from its extension.

    Raises:
        ImportFileError: If the extension is unsupported, the file is
            unreadable, or it has no data rows or too many of them.
    """
    ext = get_file_extension(file_name)
    if ext not in ALLOWED_EXTENSIONS:
        raise ImportFileError(
            f"Unsupported file type '.{ext}'. Allowed: CSV, XLSX, XLS",
            details={"allowedExtensions": sorted(ALLOWED_EXTENSIONS)},
        )

    parser = {"csv": parse_csv, "xlsx": parse_xlsx, "xls": parse_xls}[ext]
    try:
        headers, rows = parser(file_content, max_rows)
    except ValueError as e:
        raise ImportFileError(str(e)) from e

    if not rows:
        raise ImportFileError("Spreadsheet has no data rows")

    return ParsedFile(file_type="csv" if ext == "csv" else "excel", headers=headers, rows=rows)

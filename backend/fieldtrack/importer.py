from __future__ import annotations

import csv
import datetime as dt
import io
import logging
import uuid
import zipfile
import zlib
from pathlib import PurePath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from . import aliases
from .config import settings
from .dates import normalize_clock, normalize_date
from .schemas import Order, OrderType
from .utils import coerce_float, contains_any, is_blank, resolve, resolve_text

log = logging.getLogger("fieldtrack.importer")

Row = Dict[str, Any]

# Read-only workbooks parse sheet XML lazily, so these also surface while iterating rows
_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    zlib.error,
    SyntaxError,
    KeyError,
    ValueError,
    TypeError,
    EOFError,
    OSError,
)


class DecodeError(ValueError):
    """Raised when spreadsheet content cannot be read."""


def _format_duration_cell(value: dt.timedelta) -> str:
    seconds = int(value.total_seconds())
    sign = "-" if seconds < 0 else ""
    minutes, secs = divmod(abs(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if secs:
        return f"{sign}{hours}:{minutes:02d}:{secs:02d}"
    return f"{sign}{hours}:{minutes:02d}"


def _cell_value(value: Any) -> Any:
    """Convert a decoded cell to a JSON-safe scalar."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dt.datetime):
        if value.time() == dt.time.min:
            return value.date().isoformat()
        return value.isoformat(timespec="seconds")
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, dt.time):
        return value.strftime("%H:%M")
    if isinstance(value, dt.timedelta):
        return _format_duration_cell(value)
    return str(value)


def _header_names(header: Sequence[Any]) -> List[str]:
    names: List[str] = []
    for index, raw in enumerate(header, start=1):
        name = str(raw).strip() if not is_blank(raw) else ""
        names.append(name or f"column_{index}")
    return names


def _rows_from_values(sheet_name: str, values: Iterable[Sequence[Any]]) -> List[Row]:
    iterator = iter(values)
    header = next(iterator, None)
    if header is None:
        return []
    columns = _header_names(header)
    rows: List[Row] = []
    for raw_row in iterator:
        row: Row = {}
        for column, raw in zip(columns, raw_row):
            value = _cell_value(raw)
            if is_blank(value):
                continue
            row[column] = value
        if not row:
            continue
        row[aliases.SHEET_NAME_KEY] = sheet_name
        rows.append(row)
    return rows


def _decode_csv(content: bytes, filename: str) -> Dict[str, List[Row]]:
    if b"\x00" in content:
        raise DecodeError("CSV file contains binary data")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    try:
        records = list(csv.reader(io.StringIO(text)))
    except csv.Error as exc:
        raise DecodeError(f"CSV file could not be parsed: {exc}") from exc
    sheet_name = PurePath(filename).stem or "Sheet1"
    return {sheet_name: _rows_from_values(sheet_name, records)}


def decode_workbook(content: bytes, filename: Optional[str] = None) -> Dict[str, List[Row]]:
    """Decode every sheet of a workbook into row mappings keyed by sheet name.

    Only xlsx/xlsm workbooks and CSV files are readable; legacy ``.xls``
    files are rejected with ``DecodeError``.
    """
    if not content:
        raise DecodeError("File is empty")
    suffix = PurePath(filename).suffix.lower() if filename else ""
    if suffix == ".csv":
        return _decode_csv(content, filename)
    if suffix == ".xls":
        raise DecodeError("Legacy .xls workbooks are not supported, save the file as .xlsx")
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except _READ_ERRORS as exc:
        raise DecodeError(f"Workbook could not be read: {exc}") from exc
    try:
        sheets: Dict[str, List[Row]] = {}
        for worksheet in workbook.worksheets:
            sheets[worksheet.title] = _rows_from_values(
                worksheet.title, worksheet.iter_rows(values_only=True)
            )
    except _READ_ERRORS as exc:
        raise DecodeError(f"Worksheet could not be read: {exc}") from exc
    finally:
        workbook.close()
    log.info("Decoded %d sheet(s) from %s", len(sheets), filename or "upload")
    return sheets


def decode_first_sheet(content: bytes, filename: Optional[str] = None) -> List[Row]:
    sheets = decode_workbook(content, filename)
    if not sheets:
        return []
    return next(iter(sheets.values()))


def _generated_id() -> str:
    return f"IMP-{uuid.uuid4().hex[:12]}"


def _order_id(row: Mapping[str, Any]) -> str:
    value = resolve(row, aliases.ID_ALIASES)
    if value is None:
        return _generated_id()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def infer_type(row: Mapping[str, Any]) -> OrderType:
    if contains_any(resolve(row, aliases.TYPE_ALIASES), aliases.INSTALLATION_KEYWORDS):
        return "installation"
    return "maintenance"


def infer_status(row: Mapping[str, Any]) -> str:
    status_value = resolve(row, aliases.STATUS_ALIASES)
    if contains_any(status_value, aliases.POSTPONE_KEYWORDS):
        return "postponed"
    if contains_any(status_value, aliases.CANCEL_KEYWORDS):
        return "cancelled"
    return "scheduled"


def _distance(row: Mapping[str, Any], default: float) -> float:
    value = coerce_float(resolve(row, aliases.DISTANCE_ALIASES))
    if value is None or value < 0:
        return default
    return value


def map_row(
    row: Mapping[str, Any],
    forced_type: Optional[OrderType] = None,
    now: Optional[dt.datetime] = None,
    tz: Optional[dt.tzinfo] = None,
    default_distance_km: Optional[float] = None,
) -> Order:
    if default_distance_km is None:
        default_distance_km = settings.default_distance_km
    return Order(
        id=_order_id(row),
        type=forced_type or infer_type(row),
        customer=resolve_text(row, aliases.CUSTOMER_ALIASES, aliases.PLACEHOLDER),
        area=resolve_text(row, aliases.AREA_ALIASES, aliases.PLACEHOLDER),
        device=resolve_text(row, aliases.DEVICE_ALIASES, aliases.PLACEHOLDER),
        distance_km=_distance(row, default_distance_km),
        date=normalize_date(resolve(row, aliases.DATE_ALIASES), now, tz),
        start=normalize_clock(resolve(row, aliases.START_ALIASES), aliases.DEFAULT_START),
        end=normalize_clock(resolve(row, aliases.END_ALIASES), aliases.DEFAULT_END),
        status=infer_status(row),
        detail=resolve_text(row, aliases.DETAIL_ALIASES, ""),
        postpone_to=resolve_text(row, aliases.POSTPONE_TO_ALIASES),
        cancel_reason=resolve_text(row, aliases.CANCEL_REASON_ALIASES),
    )


def map_rows(
    rows: Iterable[Mapping[str, Any]],
    forced_type: Optional[OrderType] = None,
    now: Optional[dt.datetime] = None,
    tz: Optional[dt.tzinfo] = None,
    default_distance_km: Optional[float] = None,
) -> List[Order]:
    return [map_row(row, forced_type, now, tz, default_distance_km) for row in rows]

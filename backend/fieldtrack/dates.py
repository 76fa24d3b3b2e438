from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from zoneinfo import ZoneInfo

from .config import settings
from .utils import is_blank

UTC = dt.timezone.utc
LOCAL_TZ = ZoneInfo(settings.timezone)

# Spreadsheet serial 25569 is 1970-01-01, i.e. day zero is 1899-12-30.
EXCEL_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400
UNIX_EPOCH = dt.datetime(1970, 1, 1, tzinfo=UTC)

_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%dT%H:%M",
    "%Y/%m/%dT%H:%M:%S",
    "%m/%d/%Y",
    "%d/%m/%Y",
)


def now_utc() -> dt.datetime:
    return dt.datetime.now(UTC)


def to_local(value: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> dt.datetime:
    zone = tz if tz is not None else LOCAL_TZ
    if value is None:
        value = now_utc()
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value.astimezone(zone)


def today(now: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> str:
    return to_local(now, tz).date().isoformat()


def format_time(value: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> str:
    return to_local(value, tz).strftime("%H:%M")


def format_datetime(value: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> str:
    return to_local(value, tz).strftime("%Y-%m-%d %H:%M")


def serial_to_date(serial: float) -> dt.date:
    instant = UNIX_EPOCH + dt.timedelta(seconds=(serial - EXCEL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY)
    return instant.date()


def _parse_date_text(value: str) -> Optional[dt.date]:
    text = value.strip().replace(".", "/").replace("-", "/")
    for fmt in _DATE_FORMATS:
        try:
            parsed = dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
        else:
            return parsed.date()
    return None


def normalize_date(value: Any, now: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> str:
    """Return ``value`` as ``YYYY-MM-DD``, falling back to today's date."""
    if is_blank(value) or isinstance(value, bool):
        return today(now, tz)
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, str):
        parsed = _parse_date_text(value)
        if parsed is not None:
            return parsed.isoformat()
        return today(now, tz)
    if isinstance(value, (int, float)):
        try:
            return serial_to_date(value).isoformat()
        except (OverflowError, ValueError):
            return today(now, tz)
    return today(now, tz)


def normalize_clock(value: Any, default: str) -> str:
    if is_blank(value) or isinstance(value, bool):
        return default
    if isinstance(value, (dt.datetime, dt.time)):
        return value.strftime("%H:%M")
    if isinstance(value, float) and 0 <= value < 1:
        minutes = min(int(round(value * 24 * 60)), 24 * 60 - 1)
        return f"{minutes // 60:02d}:{minutes % 60:02d}"
    return str(value).strip()

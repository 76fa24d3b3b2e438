"""Best-effort classification of reception workbook rows.

Rows are open mappings read from arbitrary sheets. Category filters are
applied independently over the same rows, so one row may land in several
tables. The per-area rollup, by contrast, counts each row under exactly one
status bucket.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import aliases
from .fuel import FUEL_THRESHOLD_KM, threshold_crossed
from .schemas import AreaSummary, FuelLog, RowTable, TechnicianReportResponse
from .utils import coerce_float, contains_any, resolve, resolve_text

Row = Mapping[str, Any]


def technician_of(row: Row) -> Optional[str]:
    return resolve_text(row, aliases.TECHNICIAN_ALIASES)


def flatten_sheets(sheets: Mapping[str, Iterable[Row]]) -> List[Row]:
    return [row for rows in sheets.values() for row in rows]


def rows_for_technician(sheets: Mapping[str, Iterable[Row]], technician: Optional[str]) -> List[Row]:
    rows = flatten_sheets(sheets)
    wanted = (technician or "").strip()
    if not wanted:
        return rows
    return [row for row in rows if (technician_of(row) or "") == wanted]


def infer_technicians(sheets: Mapping[str, Iterable[Row]]) -> List[str]:
    names: List[str] = []
    seen: set[str] = set()
    for row in flatten_sheets(sheets):
        name = technician_of(row)
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names or list(aliases.SAMPLE_TECHNICIANS)


def _sheet(row: Row) -> Optional[str]:
    value = row.get(aliases.SHEET_NAME_KEY)
    return str(value) if value is not None else None


def _category(row: Row) -> str:
    return (resolve_text(row, aliases.CATEGORY_ALIASES) or "").casefold()


def _status(row: Row) -> Optional[Any]:
    return resolve(row, aliases.STATUS_ALIASES)


def is_fuel_row(row: Row) -> bool:
    return (
        any(key in row for key in aliases.FUEL_KEYS)
        or row.get(aliases.FUEL_KIND_KEY) == aliases.FUEL_KIND_VALUE
        or _category(row) == "fuel"
        or _sheet(row) in aliases.FUEL_SHEETS
    )


def is_maintenance_row(row: Row) -> bool:
    return (
        contains_any(resolve(row, aliases.TYPE_ALIASES), aliases.MAINTENANCE_KEYWORDS)
        or _category(row) == "maintenance"
        or _sheet(row) in aliases.MAINTENANCE_SHEETS
    )


def is_installation_row(row: Row) -> bool:
    return (
        contains_any(resolve(row, aliases.TYPE_ALIASES), aliases.INSTALLATION_KEYWORDS)
        or _sheet(row) in aliases.INSTALLATION_SHEETS
    )


def is_task_row(row: Row) -> bool:
    return any(key in row for key in aliases.TASK_KEYS) or _sheet(row) in aliases.TASK_SHEETS


def fuel_rows(rows: Iterable[Row]) -> List[Row]:
    return [row for row in rows if is_fuel_row(row)]


def maintenance_rows(rows: Iterable[Row]) -> List[Row]:
    return [row for row in rows if is_maintenance_row(row)]


def installation_rows(rows: Iterable[Row]) -> List[Row]:
    return [row for row in rows if is_installation_row(row)]


def cancelled_rows(maintenance: Iterable[Row]) -> List[Row]:
    return [row for row in maintenance if contains_any(_status(row), aliases.CANCEL_KEYWORDS)]


def postponed_rows(maintenance: Iterable[Row]) -> List[Row]:
    return [row for row in maintenance if contains_any(_status(row), aliases.POSTPONE_KEYWORDS)]


def task_rows(rows: Iterable[Row]) -> List[Row]:
    return [row for row in rows if is_task_row(row)]


def summarize_by_area(maintenance: Iterable[Row]) -> List[AreaSummary]:
    summaries: Dict[str, AreaSummary] = {}
    for row in maintenance:
        area = resolve_text(row, aliases.AREA_ALIASES, aliases.PLACEHOLDER)
        status_value = _status(row) or "scheduled"
        summary = summaries.setdefault(area, AreaSummary(area=area))
        if contains_any(status_value, aliases.ROLLUP_DONE_KEYWORDS):
            summary.done += 1
        elif contains_any(status_value, aliases.ROLLUP_POSTPONED_KEYWORDS):
            summary.postponed += 1
        elif contains_any(status_value, aliases.ROLLUP_CANCELLED_KEYWORDS):
            summary.cancelled += 1
        summary.total += 1
    return list(summaries.values())


def refill_eligibility(
    technician_fuel_rows: Sequence[Row],
    fuel_logs: Sequence[FuelLog],
    threshold: float = FUEL_THRESHOLD_KM,
) -> Tuple[float, bool]:
    """Return the most recent "km before refill" value and whether it qualifies.

    Rows are taken in source order, so the first fuel row is the latest one.
    Without technician rows the global fuel log is used instead.
    """
    if technician_fuel_rows:
        last_km = coerce_float(resolve(technician_fuel_rows[0], aliases.KM_BEFORE_ALIASES)) or 0.0
    elif fuel_logs:
        last_km = fuel_logs[0].km_before
    else:
        last_km = 0.0
    return last_km, threshold_crossed(last_km, threshold)


def project_columns(rows: Iterable[Row], preferred: Sequence[str] = ()) -> List[str]:
    """Union of row keys: preferred columns first, then the rest as first seen."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    if not seen:
        return []
    head = [column for column in preferred if column in seen]
    return head + [column for column in seen if column not in preferred]


def render_cell(value: Any) -> str:
    if value is None:
        return aliases.PLACEHOLDER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def project_table(rows: Sequence[Row], preferred: Sequence[str] = ()) -> RowTable:
    columns = project_columns(rows, preferred)
    return RowTable(
        columns=columns,
        rows=[[render_cell(row.get(column)) for column in columns] for row in rows],
    )


def fuel_log_rows(fuel_logs: Iterable[FuelLog]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for entry in fuel_logs:
        data = entry.model_dump()
        rows.append(
            {
                column: data[field]
                for field, column in aliases.FUEL_LOG_COLUMN_NAMES.items()
                if data.get(field) is not None
            }
        )
    return rows


def build_technician_report(
    sheets: Mapping[str, Iterable[Row]],
    technician: Optional[str],
    fuel_logs: Sequence[FuelLog],
    threshold: float = FUEL_THRESHOLD_KM,
) -> TechnicianReportResponse:
    rows = rows_for_technician(sheets, technician)
    fuel = fuel_rows(rows)
    maintenance = maintenance_rows(rows)
    last_km, eligible = refill_eligibility(fuel, fuel_logs, threshold)
    return TechnicianReportResponse(
        technician=(technician or "").strip() or aliases.PLACEHOLDER,
        fuel=project_table(fuel or fuel_log_rows(fuel_logs), aliases.FUEL_COLUMNS),
        areas=summarize_by_area(maintenance),
        maintenance=project_table(maintenance, aliases.MAINTENANCE_COLUMNS),
        installations=project_table(installation_rows(rows), aliases.INSTALLATION_COLUMNS),
        cancelled=project_table(cancelled_rows(maintenance), aliases.CANCELLED_COLUMNS),
        postponed=project_table(postponed_rows(maintenance), aliases.POSTPONED_COLUMNS),
        tasks=project_table(task_rows(rows), aliases.TASK_COLUMNS),
        last_km_before=last_km,
        refill_eligible=eligible,
    )

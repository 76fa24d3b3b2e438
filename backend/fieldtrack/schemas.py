from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from typing_extensions import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


OrderStatus = Literal["scheduled", "driving", "arrived", "done", "cancelled", "postponed"]
OrderType = Literal["maintenance", "installation"]
TaskOrigin = Literal["counter", "system"]


def _serialize_datetime(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    else:
        value = value.astimezone(dt.timezone.utc)
    return value.isoformat()


class OrderTimer(BaseModel):
    started_at: Optional[dt.datetime] = None
    total_ms: int = Field(default=0, ge=0)

    @field_serializer("started_at", when_used="json")
    def _serialize_started_at(self, value: Optional[dt.datetime]) -> Optional[str]:
        return _serialize_datetime(value) if value else None


class Order(BaseModel):
    id: str
    type: OrderType
    customer: str
    area: str
    device: str
    distance_km: float = Field(ge=0)
    date: str
    start: str
    end: str
    status: OrderStatus = "scheduled"
    detail: str = ""
    timer: Optional[OrderTimer] = None
    postpone_to: Optional[str] = None
    cancel_reason: Optional[str] = None


class FuelLog(BaseModel):
    code: str
    date: str
    km_before: float = Field(ge=0)
    invoice_no: Optional[str] = None
    liters: Optional[float] = None
    amount_sar: Optional[float] = None
    receptionist: Optional[str] = None


class Task(BaseModel):
    id: str
    text: str
    origin: TaskOrigin = "counter"
    date: str


class Profile(BaseModel):
    tech_name: str
    car_no: str = "-"
    today_entry: Optional[str] = None
    today_exit: Optional[str] = None


class CompletionPayload(BaseModel):
    id: str
    type: OrderType
    customer: str
    area: str
    device: str
    duration_min: int
    detail: str
    tech_name: str
    date: str


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OrderCreateRequest(BaseModel):
    id: Optional[str] = None
    type: OrderType = "maintenance"
    customer: str
    area: str = "—"
    device: str = "—"
    distance_km: float = Field(default=0, ge=0)
    date: Optional[str] = None
    start: str = "09:00"
    end: str = "10:00"
    detail: str = ""


class OrderFinishRequest(BaseModel):
    notes: Optional[str] = None


class OrderCancelRequest(BaseModel):
    reason: str


class OrderPostponeRequest(BaseModel):
    postpone_to: str


class OrderNotesRequest(BaseModel):
    detail: str


class RefillRequest(BaseModel):
    invoice_no: Optional[str] = None
    liters: Optional[float] = Field(default=None, ge=0)
    amount_sar: Optional[float] = Field(default=None, ge=0)
    receptionist: Optional[str] = None


class TaskCreateRequest(BaseModel):
    text: str
    origin: TaskOrigin = "counter"


class ProfileUpdateRequest(BaseModel):
    tech_name: Optional[str] = None
    car_no: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OrderResponse(Order):
    status_label: str
    duration: str
    points: int


class OrderFinishResponse(BaseModel):
    order: OrderResponse
    payload: CompletionPayload
    km_since_refuel: float
    fuel_alert: bool
    fuel_message: Optional[str] = None


class OrderImportResponse(BaseModel):
    imported: int
    orders: List[Order]


class ScheduleDayResponse(BaseModel):
    date: str
    orders: List[Order]


class FuelStatusResponse(BaseModel):
    km_since_refuel: float
    threshold_km: float
    progress_percent: int
    threshold_reached: bool
    remaining_km: float
    logs: List[FuelLog]


class RefillResponse(BaseModel):
    log: FuelLog
    km_since_refuel: float


class DashboardResponse(BaseModel):
    km_since_refuel: float
    progress_percent: int
    threshold_reached: bool
    total_maintenance: int
    total_installation: int
    total_points: int


class SheetImportResponse(BaseModel):
    sheets: List[str]
    rows: int


class AreaSummary(BaseModel):
    area: str
    done: int = 0
    postponed: int = 0
    cancelled: int = 0
    total: int = 0


class RowTable(BaseModel):
    columns: List[str]
    rows: List[List[str]]


class TechnicianReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    technician: str
    fuel: RowTable
    areas: List[AreaSummary]
    maintenance: RowTable
    installations: RowTable
    cancelled: RowTable
    postponed: RowTable
    tasks: RowTable
    last_km_before: float
    refill_eligible: bool


class OutboxResponse(BaseModel):
    payloads: List[Dict[str, Any]]

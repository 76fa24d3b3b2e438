from __future__ import annotations

from typing import List, Optional

from fastapi import Depends, FastAPI, File, Query, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware

from . import models
from .config import settings
from .database import SessionLocal, engine
from .reception import ReceptionChannel, ReceptionOutbox
from .schemas import (
    DashboardResponse,
    FuelStatusResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderFinishRequest,
    OrderFinishResponse,
    OrderImportResponse,
    OrderNotesRequest,
    OrderPostponeRequest,
    OrderResponse,
    OrderStatus,
    OrderType,
    OutboxResponse,
    Profile,
    ProfileUpdateRequest,
    RefillRequest,
    RefillResponse,
    ScheduleDayResponse,
    SheetImportResponse,
    Task,
    TaskCreateRequest,
    TechnicianReportResponse,
)
from .services import (
    add_task,
    cancel_order,
    create_order,
    dashboard,
    describe_order,
    finish_order,
    fuel_status,
    get_order,
    get_profile,
    import_orders,
    import_reception_sheets,
    list_orders,
    list_tasks,
    list_technicians,
    mark_entry,
    mark_exit,
    mark_order_driving,
    postpone_order,
    record_refill,
    schedule_by_date,
    start_order_timer,
    technician_report,
    update_order_notes,
    update_profile,
)
from .state import AppState
from .store import SqlKeyValueStore

models.Base.metadata.create_all(bind=engine)

app_state = AppState.load(SqlKeyValueStore(SessionLocal), settings)

app = FastAPI(title=settings.app_name)
app.state.app_state = app_state
app.state.reception = ReceptionOutbox()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


def get_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_reception(request: Request) -> ReceptionOutbox:
    return request.app.state.reception


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardResponse)
def dashboard_summary(state: AppState = Depends(get_state)) -> DashboardResponse:
    return dashboard(state)


@app.get("/orders", response_model=list[OrderResponse])
def orders_list(
    order_type: Optional[OrderType] = Query(default=None, alias="type"),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    state: AppState = Depends(get_state),
) -> list[OrderResponse]:
    return [describe_order(state, order) for order in list_orders(state, order_type, order_status)]


@app.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def orders_create(payload: OrderCreateRequest, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, create_order(state, payload))


@app.post("/orders/import", response_model=OrderImportResponse, status_code=status.HTTP_201_CREATED)
async def orders_import(
    order_type: Optional[OrderType] = Query(default=None, alias="type"),
    file: UploadFile = File(...),
    state: AppState = Depends(get_state),
) -> OrderImportResponse:
    content = await file.read()
    imported = import_orders(state, content, file.filename, order_type)
    return OrderImportResponse(imported=len(imported), orders=imported)


@app.get("/orders/{order_id}", response_model=OrderResponse)
def orders_detail(order_id: str, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, get_order(state, order_id))


@app.post("/orders/{order_id}/drive", response_model=OrderResponse)
def orders_drive(order_id: str, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, mark_order_driving(state, order_id))


@app.post("/orders/{order_id}/start", response_model=OrderResponse)
def orders_start(order_id: str, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, start_order_timer(state, order_id))


@app.post("/orders/{order_id}/finish", response_model=OrderFinishResponse)
def orders_finish(
    order_id: str,
    payload: OrderFinishRequest,
    state: AppState = Depends(get_state),
    reception: ReceptionChannel = Depends(get_reception),
) -> OrderFinishResponse:
    return finish_order(state, reception, order_id, payload.notes)


@app.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def orders_cancel(order_id: str, payload: OrderCancelRequest, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, cancel_order(state, order_id, payload.reason))


@app.post("/orders/{order_id}/postpone", response_model=OrderResponse)
def orders_postpone(
    order_id: str,
    payload: OrderPostponeRequest,
    state: AppState = Depends(get_state),
) -> OrderResponse:
    return describe_order(state, postpone_order(state, order_id, payload.postpone_to))


@app.patch("/orders/{order_id}/notes", response_model=OrderResponse)
def orders_notes(order_id: str, payload: OrderNotesRequest, state: AppState = Depends(get_state)) -> OrderResponse:
    return describe_order(state, update_order_notes(state, order_id, payload.detail))


@app.get("/schedule", response_model=list[ScheduleDayResponse])
def schedule(state: AppState = Depends(get_state)) -> list[ScheduleDayResponse]:
    return schedule_by_date(state)


@app.get("/fuel", response_model=FuelStatusResponse)
def fuel_overview(state: AppState = Depends(get_state)) -> FuelStatusResponse:
    return fuel_status(state)


@app.post("/fuel/refills", response_model=RefillResponse, status_code=status.HTTP_201_CREATED)
def fuel_refill(payload: RefillRequest, state: AppState = Depends(get_state)) -> RefillResponse:
    return record_refill(state, payload)


@app.get("/tasks", response_model=list[Task])
def tasks_list(state: AppState = Depends(get_state)) -> list[Task]:
    return list_tasks(state)


@app.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
def tasks_create(payload: TaskCreateRequest, state: AppState = Depends(get_state)) -> Task:
    return add_task(state, payload.text, payload.origin)


@app.get("/profile", response_model=Profile)
def profile_detail(state: AppState = Depends(get_state)) -> Profile:
    return get_profile(state)


@app.patch("/profile", response_model=Profile)
def profile_update(payload: ProfileUpdateRequest, state: AppState = Depends(get_state)) -> Profile:
    return update_profile(state, payload)


@app.post("/profile/entry", response_model=Profile)
def profile_entry(state: AppState = Depends(get_state)) -> Profile:
    return mark_entry(state)


@app.post("/profile/exit", response_model=Profile)
def profile_exit(state: AppState = Depends(get_state)) -> Profile:
    return mark_exit(state)


@app.post("/reception/sheets", response_model=SheetImportResponse, status_code=status.HTTP_201_CREATED)
async def reception_sheets(file: UploadFile = File(...), state: AppState = Depends(get_state)) -> SheetImportResponse:
    content = await file.read()
    return import_reception_sheets(state, content, file.filename)


@app.get("/reception/technicians", response_model=List[str])
def reception_technicians(state: AppState = Depends(get_state)) -> List[str]:
    return list_technicians(state)


@app.get("/reception/report", response_model=TechnicianReportResponse)
def reception_report(
    technician: Optional[str] = None,
    state: AppState = Depends(get_state),
) -> TechnicianReportResponse:
    return technician_report(state, technician)


@app.get("/reception/outbox", response_model=OutboxResponse)
def reception_outbox(reception: ReceptionOutbox = Depends(get_reception)) -> OutboxResponse:
    return OutboxResponse(payloads=reception.payloads())

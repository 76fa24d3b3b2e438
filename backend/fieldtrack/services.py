from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import HTTPException, status

from . import classification, fuel, importer, lifecycle
from .dates import format_datetime, normalize_date, now_utc
from .importer import DecodeError
from .lifecycle import TransitionError
from .reception import ReceptionChannel
from .schemas import (
    DashboardResponse,
    FuelStatusResponse,
    Order,
    OrderCreateRequest,
    OrderFinishResponse,
    OrderResponse,
    OrderType,
    Profile,
    ProfileUpdateRequest,
    RefillRequest,
    RefillResponse,
    ScheduleDayResponse,
    SheetImportResponse,
    Task,
    TechnicianReportResponse,
)
from .state import AppState
from .store import FUEL_COUNTER_KEY, FUEL_LOGS_KEY, ORDERS_KEY, PROFILE_KEY, SHEETS_KEY, TASKS_KEY

log = logging.getLogger("fieldtrack.services")


def _conflict(exc: TransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _get_order(state: AppState, order_id: str) -> Order:
    order = state.find_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def _schedule_key(order: Order) -> str:
    return f"{order.date}{order.start}"


def describe_order(state: AppState, order: Order, now: Optional[dt.datetime] = None) -> OrderResponse:
    timer = order.timer
    return OrderResponse(
        **order.model_dump(),
        status_label=lifecycle.status_label(order.status),
        duration=lifecycle.format_duration(
            timer.total_ms if timer else 0,
            timer.started_at if timer else None,
            now,
        ),
        points=lifecycle.order_points(order, state.settings.point_rules),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def list_orders(
    state: AppState,
    order_type: Optional[OrderType] = None,
    order_status: Optional[str] = None,
) -> List[Order]:
    with state.lock:
        orders = [
            order
            for order in state.orders
            if (order_type is None or order.type == order_type)
            and (order_status is None or order.status == order_status)
        ]
    return sorted(orders, key=_schedule_key)


def get_order(state: AppState, order_id: str) -> Order:
    return _get_order(state, order_id)


def create_order(state: AppState, payload: OrderCreateRequest) -> Order:
    with state.lock:
        order_id = (payload.id or "").strip() or f"ORD-{uuid.uuid4().hex[:8]}"
        if state.find_order(order_id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order id already exists")
        order = Order(
            id=order_id,
            type=payload.type,
            customer=payload.customer.strip(),
            area=payload.area,
            device=payload.device,
            distance_km=payload.distance_km,
            date=normalize_date(payload.date, tz=state.tz),
            start=payload.start,
            end=payload.end,
            status="scheduled",
            detail=payload.detail,
        )
        state.orders.insert(0, order)
        state.persist(ORDERS_KEY)
    return order


def mark_order_driving(state: AppState, order_id: str) -> Order:
    with state.lock:
        order = _get_order(state, order_id)
        try:
            lifecycle.mark_driving(order)
        except TransitionError as exc:
            raise _conflict(exc) from exc
        state.persist(ORDERS_KEY)
    return order


def start_order_timer(state: AppState, order_id: str, now: Optional[dt.datetime] = None) -> Order:
    with state.lock:
        order = _get_order(state, order_id)
        try:
            lifecycle.start_timer(order, now)
        except TransitionError as exc:
            raise _conflict(exc) from exc
        state.persist(ORDERS_KEY)
    return order


def finish_order(
    state: AppState,
    reception: ReceptionChannel,
    order_id: str,
    notes: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> OrderFinishResponse:
    threshold = state.settings.fuel_threshold_km
    with state.lock:
        order = _get_order(state, order_id)
        text = notes if notes is not None else order.detail
        try:
            payload = lifecycle.stop_and_finalize(order, text, state.profile.tech_name, now)
        except TransitionError as exc:
            raise _conflict(exc) from exc
        result = fuel.accumulate(state.km_since_refuel, order.distance_km, threshold)
        state.km_since_refuel = result.counter
        state.persist(ORDERS_KEY)
        state.persist(FUEL_COUNTER_KEY)
    reception.submit(payload)

    message: Optional[str] = None
    if result.crossed_threshold:
        message = f"Reached {result.counter:.1f} km since the last refill, refuel and send the invoice to reception"
        log.warning("Fuel threshold reached: %.1f km >= %.1f km", result.counter, threshold)
    return OrderFinishResponse(
        order=describe_order(state, order, now),
        payload=payload,
        km_since_refuel=result.counter,
        fuel_alert=result.crossed_threshold,
        fuel_message=message,
    )


def cancel_order(state: AppState, order_id: str, reason: str) -> Order:
    with state.lock:
        order = _get_order(state, order_id)
        try:
            lifecycle.cancel(order, reason)
        except TransitionError as exc:
            raise _conflict(exc) from exc
        except ValueError as exc:
            raise _bad_request(str(exc)) from exc
        state.persist(ORDERS_KEY)
    return order


def postpone_order(state: AppState, order_id: str, target_date: str) -> Order:
    with state.lock:
        order = _get_order(state, order_id)
        try:
            lifecycle.postpone(order, target_date, state.tz)
        except TransitionError as exc:
            raise _conflict(exc) from exc
        except ValueError as exc:
            raise _bad_request(str(exc)) from exc
        state.persist(ORDERS_KEY)
    return order


def update_order_notes(state: AppState, order_id: str, detail: str) -> Order:
    with state.lock:
        order = _get_order(state, order_id)
        order.detail = detail
        state.persist(ORDERS_KEY)
    return order


def import_orders(
    state: AppState,
    content: bytes,
    filename: Optional[str] = None,
    forced_type: Optional[OrderType] = None,
) -> List[Order]:
    """Prepend the orders read from the first sheet; nothing changes on failure."""
    try:
        rows = importer.decode_first_sheet(content, filename)
    except DecodeError as exc:
        log.warning("Order import failed for %s: %s", filename or "upload", exc)
        raise _bad_request("File could not be read") from exc
    imported = importer.map_rows(
        rows,
        forced_type,
        tz=state.tz,
        default_distance_km=state.settings.default_distance_km,
    )
    with state.lock:
        state.orders[:0] = imported
        state.persist(ORDERS_KEY)
    log.info("Imported %d order(s) from %s", len(imported), filename or "upload")
    return imported


def schedule_by_date(state: AppState) -> List[ScheduleDayResponse]:
    grouped: Dict[str, List[Order]] = defaultdict(list)
    with state.lock:
        for order in state.orders:
            grouped[order.date].append(order)
    return [
        ScheduleDayResponse(date=day, orders=sorted(grouped[day], key=lambda order: order.start))
        for day in sorted(grouped)
    ]


def dashboard(state: AppState) -> DashboardResponse:
    threshold = state.settings.fuel_threshold_km
    with state.lock:
        counter = state.km_since_refuel
        return DashboardResponse(
            km_since_refuel=counter,
            progress_percent=fuel.progress_percent(counter, threshold),
            threshold_reached=fuel.threshold_crossed(counter, threshold),
            total_maintenance=sum(1 for order in state.orders if order.type == "maintenance"),
            total_installation=sum(1 for order in state.orders if order.type == "installation"),
            total_points=lifecycle.total_points(state.orders, state.settings.point_rules),
        )


# ---------------------------------------------------------------------------
# Fuel
# ---------------------------------------------------------------------------


def fuel_status(state: AppState) -> FuelStatusResponse:
    threshold = state.settings.fuel_threshold_km
    with state.lock:
        counter = state.km_since_refuel
        return FuelStatusResponse(
            km_since_refuel=counter,
            threshold_km=threshold,
            progress_percent=fuel.progress_percent(counter, threshold),
            threshold_reached=fuel.threshold_crossed(counter, threshold),
            remaining_km=fuel.remaining_km(counter, threshold),
            logs=list(state.fuel_logs),
        )


def record_refill(state: AppState, payload: RefillRequest, now: Optional[dt.datetime] = None) -> RefillResponse:
    with state.lock:
        entry, counter = fuel.submit_refill(
            state.km_since_refuel,
            state.fuel_logs,
            invoice_no=payload.invoice_no,
            liters=payload.liters,
            amount_sar=payload.amount_sar,
            receptionist=payload.receptionist,
            now=now,
            tz=state.tz,
        )
        state.km_since_refuel = counter
        state.persist(FUEL_LOGS_KEY)
        state.persist(FUEL_COUNTER_KEY)
    log.info("Refill %s recorded at %.1f km", entry.code, entry.km_before)
    return RefillResponse(log=entry, km_since_refuel=counter)


# ---------------------------------------------------------------------------
# Tasks & profile
# ---------------------------------------------------------------------------


def list_tasks(state: AppState) -> List[Task]:
    with state.lock:
        return list(state.tasks)


def add_task(state: AppState, text: str, origin: str = "counter", now: Optional[dt.datetime] = None) -> Task:
    cleaned = (text or "").strip()
    if not cleaned:
        raise _bad_request("Task text must not be empty")
    moment = now or now_utc()
    with state.lock:
        taken = {task.id for task in state.tasks}
        stamp = int(moment.timestamp() * 1000)
        while f"T{stamp}" in taken:
            stamp += 1
        task = Task(id=f"T{stamp}", text=cleaned, origin=origin, date=format_datetime(moment, state.tz))
        state.tasks.insert(0, task)
        state.persist(TASKS_KEY)
    return task


def get_profile(state: AppState) -> Profile:
    with state.lock:
        return state.profile.model_copy()


def update_profile(state: AppState, payload: ProfileUpdateRequest) -> Profile:
    with state.lock:
        updates = {
            key: value.strip()
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None and value.strip()
        }
        state.profile = state.profile.model_copy(update=updates)
        state.persist(PROFILE_KEY)
        return state.profile.model_copy()


def mark_entry(state: AppState, now: Optional[dt.datetime] = None) -> Profile:
    with state.lock:
        state.profile.today_entry = format_datetime(now, state.tz)
        state.persist(PROFILE_KEY)
        return state.profile.model_copy()


def mark_exit(state: AppState, now: Optional[dt.datetime] = None) -> Profile:
    with state.lock:
        state.profile.today_exit = format_datetime(now, state.tz)
        state.persist(PROFILE_KEY)
        return state.profile.model_copy()


# ---------------------------------------------------------------------------
# Reception workbook
# ---------------------------------------------------------------------------


def import_reception_sheets(state: AppState, content: bytes, filename: Optional[str] = None) -> SheetImportResponse:
    try:
        sheets = importer.decode_workbook(content, filename)
    except DecodeError as exc:
        log.warning("Reception workbook import failed for %s: %s", filename or "upload", exc)
        raise _bad_request("File could not be read") from exc
    with state.lock:
        state.sheets = sheets
        state.persist(SHEETS_KEY)
    return SheetImportResponse(sheets=list(sheets), rows=sum(len(rows) for rows in sheets.values()))


def list_technicians(state: AppState) -> List[str]:
    with state.lock:
        return classification.infer_technicians(state.sheets)


def technician_report(state: AppState, technician: Optional[str] = None) -> TechnicianReportResponse:
    with state.lock:
        name = technician
        if name is None:
            name = classification.infer_technicians(state.sheets)[0]
        return classification.build_technician_report(
            state.sheets,
            name,
            state.fuel_logs,
            state.settings.fuel_threshold_km,
        )

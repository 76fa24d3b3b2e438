from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, Mapping, Optional

from .dates import UTC, normalize_date, now_utc
from .schemas import CompletionPayload, Order, OrderTimer

TERMINAL_STATUSES = frozenset({"done", "cancelled"})
TIMER_BLOCKING_STATUSES = frozenset({"arrived", "done"})
DRIVABLE_STATUSES = frozenset({"scheduled", "postponed"})

STATUS_LABELS: Dict[str, str] = {
    "scheduled": "مجدولة",
    "driving": "في الطريق",
    "arrived": "وصل",
    "done": "منتهية",
    "postponed": "مؤجلة",
    "cancelled": "ملغاة",
}


class TransitionError(RuntimeError):
    """Raised when an order cannot move to the requested status."""

    def __init__(self, order: Order, action: str) -> None:
        super().__init__(f"Cannot {action} order {order.id} in status '{order.status}'")
        self.order_id = order.id
        self.status = order.status
        self.action = action


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def mark_driving(order: Order) -> Order:
    if order.status not in DRIVABLE_STATUSES:
        raise TransitionError(order, "drive to")
    order.status = "driving"
    return order


def start_timer(order: Order, now: Optional[dt.datetime] = None) -> Order:
    if order.status in TIMER_BLOCKING_STATUSES:
        raise TransitionError(order, "start timer for")
    total_ms = order.timer.total_ms if order.timer else 0
    order.timer = OrderTimer(started_at=_as_utc(now or now_utc()), total_ms=total_ms)
    order.status = "arrived"
    return order


def stop_and_finalize(
    order: Order,
    notes: str,
    technician: str,
    now: Optional[dt.datetime] = None,
) -> CompletionPayload:
    """Stop the timer, close the order and build the reception payload."""
    if order.status == "done":
        raise TransitionError(order, "finish")
    normalized_now = _as_utc(now or now_utc())
    timer = order.timer or OrderTimer()
    elapsed_ms = 0
    if timer.started_at is not None:
        delta = normalized_now - _as_utc(timer.started_at)
        elapsed_ms = max(int(delta.total_seconds() * 1000), 0)
    order.timer = OrderTimer(started_at=None, total_ms=timer.total_ms + elapsed_ms)
    order.status = "done"
    order.detail = notes
    return CompletionPayload(
        id=order.id,
        type=order.type,
        customer=order.customer,
        area=order.area,
        device=order.device,
        duration_min=(order.timer.total_ms + 30_000) // 60_000,
        detail=notes,
        tech_name=technician,
        date=f"{order.date} {order.start}-{order.end}",
    )


def cancel(order: Order, reason: str) -> Order:
    if order.status in TERMINAL_STATUSES:
        raise TransitionError(order, "cancel")
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValueError("A cancellation reason is required")
    order.status = "cancelled"
    order.cancel_reason = cleaned
    return order


def postpone(order: Order, target_date: str, tz: Optional[dt.tzinfo] = None) -> Order:
    if order.status in TERMINAL_STATUSES:
        raise TransitionError(order, "postpone")
    if not (target_date or "").strip():
        raise ValueError("A postpone target date is required")
    order.status = "postponed"
    order.postpone_to = normalize_date(target_date.strip(), tz=tz)
    return order


def order_points(order: Order, rules: Mapping[str, int]) -> int:
    return rules.get(order.detail or "", 0)


def total_points(orders: Iterable[Order], rules: Mapping[str, int]) -> int:
    return sum(order_points(order, rules) for order in orders)


def live_elapsed_ms(
    total_ms: Optional[int],
    started_at: Optional[dt.datetime],
    now: Optional[dt.datetime] = None,
) -> int:
    elapsed = total_ms or 0
    if started_at is not None:
        delta = _as_utc(now or now_utc()) - _as_utc(started_at)
        elapsed += int(delta.total_seconds() * 1000)
    return elapsed


def format_duration(
    total_ms: Optional[int],
    started_at: Optional[dt.datetime] = None,
    now: Optional[dt.datetime] = None,
) -> str:
    minutes = live_elapsed_ms(total_ms, started_at, now) // 60_000
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}س {rest}د"
    return f"{minutes}د"

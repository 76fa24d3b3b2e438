from __future__ import annotations

import datetime as dt
import logging
from threading import RLock
from typing import Any, Dict, List, Optional

from zoneinfo import ZoneInfo

from pydantic import ValidationError

from .config import Settings
from .dates import today
from .schemas import FuelLog, Order, Profile, Task
from .store import (
    FUEL_COUNTER_KEY,
    FUEL_LOGS_KEY,
    ORDERS_KEY,
    PROFILE_KEY,
    SHEETS_KEY,
    TASKS_KEY,
    KeyValueStore,
)

log = logging.getLogger("fieldtrack.state")


def sample_orders(tz: Optional[dt.tzinfo] = None) -> List[Order]:
    day = today(tz=tz)
    return [
        Order(
            id="#125",
            type="maintenance",
            customer="أحمد علي",
            area="ظهرة لبن",
            device="فلتر 7 مراحل",
            distance_km=4.3,
            date=day,
            start="10:00",
            end="11:00",
            status="scheduled",
            detail="صيانة دورية",
        ),
        Order(
            id="#126",
            type="installation",
            customer="فهد سالم",
            area="العريجاء",
            device="سخان شمسي",
            distance_km=7.8,
            date=day,
            start="12:00",
            end="13:30",
            status="scheduled",
            detail="تركيب جديد",
        ),
    ]


def _load_models(raw: Any, model: type, key: str) -> Optional[List[Any]]:
    if not isinstance(raw, list):
        return None
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as exc:
        log.warning("Stored %r does not match the expected shape: %s", key, exc)
        return None


class AppState:
    """All technician collections plus the store they are persisted to.

    Every mutation goes through ``lock`` and ends with ``persist`` of the
    touched collection, which rewrites that collection in full.
    """

    def __init__(self, store: KeyValueStore, base_settings: Settings):
        self.lock = RLock()
        self.store = store
        self.settings = base_settings
        self.tz = ZoneInfo(base_settings.timezone)
        self.orders: List[Order] = []
        self.km_since_refuel: float = 0.0
        self.fuel_logs: List[FuelLog] = []
        self.tasks: List[Task] = []
        self.profile = Profile(tech_name=base_settings.default_technician, car_no="-")
        self.sheets: Dict[str, List[Dict[str, Any]]] = {}

    @classmethod
    def load(cls, store: KeyValueStore, base_settings: Settings, *, seed: Optional[bool] = None) -> "AppState":
        state = cls(store, base_settings)
        seed_orders = base_settings.seed_sample_orders if seed is None else seed
        default_orders = sample_orders(state.tz) if seed_orders else []
        with state.lock:
            orders = _load_models(store.get(ORDERS_KEY, None), Order, ORDERS_KEY)
            state.orders = orders if orders is not None else default_orders

            counter = store.get(FUEL_COUNTER_KEY, 0.0)
            state.km_since_refuel = max(0.0, float(counter)) if isinstance(counter, (int, float)) else 0.0

            state.fuel_logs = _load_models(store.get(FUEL_LOGS_KEY, []), FuelLog, FUEL_LOGS_KEY) or []
            state.tasks = _load_models(store.get(TASKS_KEY, []), Task, TASKS_KEY) or []

            raw_profile = store.get(PROFILE_KEY, None)
            if isinstance(raw_profile, dict):
                try:
                    state.profile = Profile.model_validate(raw_profile)
                except ValidationError as exc:
                    log.warning("Stored profile is invalid: %s", exc)

            sheets = store.get(SHEETS_KEY, {})
            state.sheets = sheets if isinstance(sheets, dict) else {}
        return state

    def persist(self, key: str) -> None:
        with self.lock:
            if key == ORDERS_KEY:
                value: Any = [order.model_dump(mode="json") for order in self.orders]
            elif key == FUEL_COUNTER_KEY:
                value = self.km_since_refuel
            elif key == FUEL_LOGS_KEY:
                value = [entry.model_dump(mode="json") for entry in self.fuel_logs]
            elif key == TASKS_KEY:
                value = [task.model_dump(mode="json") for task in self.tasks]
            elif key == PROFILE_KEY:
                value = self.profile.model_dump(mode="json")
            elif key == SHEETS_KEY:
                value = self.sheets
            else:
                raise KeyError(key)
            self.store.set(key, value)

    def find_order(self, order_id: str) -> Optional[Order]:
        with self.lock:
            for order in self.orders:
                if order.id == order_id:
                    return order
        return None

from __future__ import annotations

import copy
import json
import logging
from threading import RLock
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import db_session
from .models import KeyValueEntry

log = logging.getLogger("fieldtrack.store")


ORDERS_KEY = "orders"
FUEL_COUNTER_KEY = "km_since_refuel"
FUEL_LOGS_KEY = "fuel_logs"
TASKS_KEY = "counter_tasks"
PROFILE_KEY = "profile"
SHEETS_KEY = "reception_sheets"


class KeyValueStore(Protocol):
    """Best-effort persistence contract used by the application state."""

    def get(self, key: str, default: Any) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class SqlKeyValueStore:
    """Stores JSON documents in the ``kv_entries`` table.

    Reads fall back to ``default`` when the key is missing, the stored text is
    not valid JSON or the database is unavailable. Writes never raise.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str, default: Any) -> Any:
        session = self._session_factory()
        try:
            record = session.get(KeyValueEntry, key)
            if record is None:
                return copy.deepcopy(default)
            return json.loads(record.value)
        except json.JSONDecodeError:
            log.warning("Stored value for %r is not valid JSON, using default", key)
            return copy.deepcopy(default)
        except SQLAlchemyError as exc:
            log.warning("Could not read %r from store: %s", key, exc)
            return copy.deepcopy(default)
        finally:
            session.close()

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            log.warning("Could not serialize %r: %s", key, exc)
            return
        try:
            with db_session(self._session_factory) as session:
                record = session.get(KeyValueEntry, key)
                if record:
                    record.value = encoded
                else:
                    session.add(KeyValueEntry(key=key, value=encoded))
        except SQLAlchemyError as exc:
            log.warning("Could not write %r to store: %s", key, exc)


class MemoryKeyValueStore:
    """In-process store keeping serialized JSON, mainly for tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = RLock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Any) -> Any:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return copy.deepcopy(default)
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Stored value for %r is not valid JSON, using default", key)
            return copy.deepcopy(default)

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            log.warning("Could not serialize %r: %s", key, exc)
            return
        with self._lock:
            self._data[key] = encoded

    def raw(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

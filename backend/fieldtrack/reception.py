from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Protocol

from .schemas import CompletionPayload

log = logging.getLogger("fieldtrack.reception")


class ReceptionChannel(Protocol):
    def submit(self, payload: CompletionPayload) -> None:
        ...


class ReceptionOutbox:
    """Fire-and-forget channel that keeps what was sent to the counter."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._payloads: List[Dict[str, Any]] = []

    def submit(self, payload: CompletionPayload) -> None:
        data = payload.model_dump(mode="json")
        with self._lock:
            self._payloads.insert(0, data)
        log.info(
            "Sent order %s to reception (%s min, technician %s)",
            payload.id,
            payload.duration_min,
            payload.tech_name,
        )

    def payloads(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(item) for item in self._payloads]

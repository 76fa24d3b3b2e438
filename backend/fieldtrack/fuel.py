from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .dates import format_datetime, now_utc
from .schemas import FuelLog

FUEL_THRESHOLD_KM = 250.0


@dataclass(frozen=True)
class FuelAccumulation:
    """Result of adding a finished order's distance to the counter."""

    previous: float
    counter: float
    crossed_threshold: bool


def threshold_crossed(counter: float, threshold: float = FUEL_THRESHOLD_KM) -> bool:
    return counter >= threshold


def accumulate(counter: float, km: float, threshold: float = FUEL_THRESHOLD_KM) -> FuelAccumulation:
    updated = max(0.0, counter + km)
    crossed = not threshold_crossed(counter, threshold) and threshold_crossed(updated, threshold)
    return FuelAccumulation(previous=counter, counter=updated, crossed_threshold=crossed)


def reset(counter: float) -> float:
    return 0.0


def remaining_km(counter: float, threshold: float = FUEL_THRESHOLD_KM) -> float:
    return max(0.0, threshold - counter)


def progress_percent(counter: float, threshold: float = FUEL_THRESHOLD_KM) -> int:
    if threshold <= 0:
        return 100
    return min(100, int(counter / threshold * 100 + 0.5))


def _mint_code(now: dt.datetime, existing: Iterable[str]) -> str:
    taken = set(existing)
    stamp = int(now.timestamp() * 1000)
    code = f"FUEL-{stamp}"
    while code in taken:
        stamp += 1
        code = f"FUEL-{stamp}"
    return code


def submit_refill(
    counter: float,
    logs: List[FuelLog],
    invoice_no: Optional[str] = None,
    liters: Optional[float] = None,
    amount_sar: Optional[float] = None,
    receptionist: Optional[str] = None,
    now: Optional[dt.datetime] = None,
    tz: Optional[dt.tzinfo] = None,
) -> Tuple[FuelLog, float]:
    """Record a refill and reset the counter.

    The log captures the counter *before* the reset; the new log is prepended
    to ``logs`` in place. Returns the log and the reset counter value.
    """
    moment = now or now_utc()
    entry = FuelLog(
        code=_mint_code(moment, (log.code for log in logs)),
        date=format_datetime(moment, tz),
        km_before=max(0.0, counter),
        invoice_no=(invoice_no or "").strip() or None,
        liters=liters or None,
        amount_sar=amount_sar or None,
        receptionist=(receptionist or "").strip() or None,
    )
    updated = reset(counter)
    logs.insert(0, entry)
    return entry, updated

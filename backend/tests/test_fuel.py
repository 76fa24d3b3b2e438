from __future__ import annotations

import datetime as dt

from fieldtrack import fuel
from fieldtrack.schemas import FuelLog


def test_accumulate_adds_distance():
    assert fuel.accumulate(0, 0).counter == 0
    assert fuel.accumulate(100, 50).counter == 150


def test_accumulate_never_goes_negative():
    assert fuel.accumulate(10, -50).counter == 0


def test_accumulate_reports_threshold_edge_once():
    crossing = fuel.accumulate(240, 15)
    assert crossing.previous == 240
    assert crossing.counter == 255
    assert crossing.crossed_threshold is True

    beyond = fuel.accumulate(crossing.counter, 10)
    assert beyond.crossed_threshold is False

    exact = fuel.accumulate(200, 50)
    assert exact.counter == 250
    assert exact.crossed_threshold is True


def test_threshold_boundary():
    assert fuel.threshold_crossed(249.999) is False
    assert fuel.threshold_crossed(250) is True
    assert fuel.threshold_crossed(99, threshold=100) is False
    assert fuel.threshold_crossed(100, threshold=100) is True


def test_progress_and_remaining():
    assert fuel.progress_percent(125) == 50
    assert fuel.progress_percent(400) == 100
    assert fuel.remaining_km(200) == 50
    assert fuel.remaining_km(300) == 0


def test_refill_snapshots_counter_before_reset():
    logs: list[FuelLog] = []
    moment = dt.datetime(2024, 3, 5, 7, 30, tzinfo=dt.timezone.utc)
    entry, counter = fuel.submit_refill(260, logs, invoice_no="INV-9", liters=40, amount_sar=92.5, now=moment)

    assert entry.km_before == 260
    assert counter == 0
    assert logs == [entry]
    assert entry.code == f"FUEL-{int(moment.timestamp() * 1000)}"
    assert entry.invoice_no == "INV-9"
    assert entry.date == "2024-03-05 10:30"


def test_refill_is_prepended_with_unique_code():
    logs: list[FuelLog] = []
    moment = dt.datetime(2024, 3, 5, 7, 30, tzinfo=dt.timezone.utc)
    first, _ = fuel.submit_refill(120, logs, now=moment)
    second, _ = fuel.submit_refill(0, logs, now=moment)

    assert logs[0] is second
    assert logs[1] is first
    assert first.code != second.code


def test_refill_drops_empty_optional_fields():
    logs: list[FuelLog] = []
    entry, _ = fuel.submit_refill(10, logs, invoice_no="  ", liters=0, amount_sar=0, receptionist="")
    assert entry.invoice_no is None
    assert entry.liters is None
    assert entry.amount_sar is None
    assert entry.receptionist is None

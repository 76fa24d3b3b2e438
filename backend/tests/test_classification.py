from __future__ import annotations

from fieldtrack import classification
from fieldtrack.schemas import FuelLog

SHEETS = {
    "Fuel": [
        {"tech": "فهد الحربي", "kmBefore": 262, "invoiceNo": "INV-2", "sheetName": "Fuel"},
        {"tech": "فهد الحربي", "kmBefore": 180, "invoiceNo": "INV-1", "sheetName": "Fuel"},
        {"tech": "سالم الدوسري", "kmBefore": 90, "sheetName": "Fuel"},
    ],
    "Maintenance": [
        {"الفني": "فهد الحربي", "المنطقة": "النسيم", "الحالة": "تم التنفيذ", "sheetName": "Maintenance"},
        {"الفني": "فهد الحربي", "المنطقة": "النسيم", "الحالة": "ملغاة", "sheetName": "Maintenance"},
        {"الفني": "فهد الحربي", "المنطقة": "الملز", "الحالة": "مؤجل", "sheetName": "Maintenance"},
        {"الفني": "فهد الحربي", "المنطقة": "الملز", "sheetName": "Maintenance"},
        {"الفني": "ناصر المطيري", "المنطقة": "العريجاء", "الحالة": "done", "sheetName": "Maintenance"},
    ],
    "Mixed": [
        {"tech": "فهد الحربي", "type": "صيانة وتركيب", "area": "النسيم", "status": "done", "sheetName": "Mixed"},
        {"tech": "فهد الحربي", "task": "مراجعة المستودع", "sheetName": "Mixed"},
    ],
}


def test_infer_technicians_keeps_first_seen_order():
    assert classification.infer_technicians(SHEETS) == ["فهد الحربي", "سالم الدوسري", "ناصر المطيري"]


def test_infer_technicians_falls_back_to_samples():
    assert classification.infer_technicians({"Sheet1": [{"x": 1}]}) == [
        "فهد الحربي",
        "سالم الدوسري",
        "ناصر المطيري",
    ]


def test_rows_for_technician_matches_trimmed_name():
    rows = classification.rows_for_technician(SHEETS, "  سالم الدوسري ")
    assert rows == [SHEETS["Fuel"][2]]
    assert len(classification.rows_for_technician(SHEETS, "")) == 10


def test_filters_may_overlap():
    rows = classification.rows_for_technician(SHEETS, "فهد الحربي")
    mixed = SHEETS["Mixed"][0]
    assert mixed in classification.maintenance_rows(rows)
    assert mixed in classification.installation_rows(rows)
    assert classification.task_rows(rows) == [SHEETS["Mixed"][1]]
    assert len(classification.fuel_rows(rows)) == 2


def test_fuel_rows_detected_by_kind_or_category():
    assert classification.is_fuel_row({"نوع": "وقود"})
    assert classification.is_fuel_row({"category": "Fuel"})
    assert classification.is_fuel_row({"sheetName": "الوقود"})
    assert not classification.is_fuel_row({"category": "maintenance"})


def test_cancelled_row_is_not_postponed():
    maintenance = classification.maintenance_rows(classification.rows_for_technician(SHEETS, "فهد الحربي"))
    cancelled = classification.cancelled_rows(maintenance)
    postponed = classification.postponed_rows(maintenance)
    assert [row["الحالة"] for row in cancelled] == ["ملغاة"]
    assert [row["الحالة"] for row in postponed] == ["مؤجل"]


def test_area_rollup_counts_each_row_once():
    maintenance = classification.maintenance_rows(classification.rows_for_technician(SHEETS, "فهد الحربي"))
    summaries = {summary.area: summary for summary in classification.summarize_by_area(maintenance)}

    naseem = summaries["النسيم"]
    assert (naseem.done, naseem.postponed, naseem.cancelled, naseem.total) == (2, 0, 1, 3)
    malaz = summaries["الملز"]
    assert (malaz.done, malaz.postponed, malaz.cancelled, malaz.total) == (0, 1, 0, 2)


def test_rollup_completed_wording_only_counts_done():
    summaries = classification.summarize_by_area([{"area": "النسيم", "status": "تم التنفيذ"}])
    assert len(summaries) == 1
    summary = summaries[0]
    assert (summary.done, summary.postponed, summary.cancelled, summary.total) == (1, 0, 0, 1)


def test_rollup_without_area_uses_placeholder():
    summaries = classification.summarize_by_area([{"status": "cancelled"}])
    assert summaries[0].area == "—"
    assert summaries[0].cancelled == 1


def test_project_columns_preferred_first():
    rows = [{"a": 1, "b": 2}, {"b": 3, "c": 4}]
    assert classification.project_columns(rows, ["c", "a"]) == ["c", "a", "b"]
    assert classification.project_columns([], ["c", "a"]) == []


def test_project_table_renders_placeholders():
    table = classification.project_table([{"a": 1.0, "b": True}, {"c": None}], ["c"])
    assert table.columns == ["c", "a", "b"]
    assert table.rows == [["—", "1", "true"], ["—", "—", "—"]]


def test_refill_eligibility_uses_latest_technician_row():
    fuel = classification.fuel_rows(classification.rows_for_technician(SHEETS, "فهد الحربي"))
    assert classification.refill_eligibility(fuel, []) == (262, True)


def test_refill_eligibility_falls_back_to_fuel_log():
    logs = [
        FuelLog(code="FUEL-2", date="2024-03-05 10:30", km_before=120),
        FuelLog(code="FUEL-1", date="2024-03-01 09:00", km_before=300),
    ]
    assert classification.refill_eligibility([], logs) == (120, False)
    assert classification.refill_eligibility([], []) == (0, False)


def test_report_for_technician():
    report = classification.build_technician_report(SHEETS, "فهد الحربي", [])

    assert report.technician == "فهد الحربي"
    assert report.fuel.columns[:2] == ["kmBefore", "invoiceNo"]
    assert len(report.fuel.rows) == 2
    assert len(report.maintenance.rows) == 5
    assert len(report.installations.rows) == 1
    assert len(report.cancelled.rows) == 1
    assert len(report.postponed.rows) == 1
    assert len(report.tasks.rows) == 1
    assert report.last_km_before == 262
    assert report.refill_eligible is True


def test_report_uses_global_fuel_log_when_technician_has_none():
    logs = [FuelLog(code="FUEL-1", date="2024-03-05 10:30", km_before=255, invoice_no="INV-7")]
    report = classification.build_technician_report(SHEETS, "ناصر المطيري", logs)

    assert report.fuel.columns == ["date", "kmBefore", "invoiceNo", "code"]
    assert report.fuel.rows == [["2024-03-05 10:30", "255", "INV-7", "FUEL-1"]]
    assert report.refill_eligible is True

"""Column aliases and keyword tables used to read schema-less spreadsheet rows.

Every tuple of aliases is ordered: the first candidate that is present with a
non-empty value wins. Keyword tables are matched as case-insensitive
substrings.
"""

from __future__ import annotations

from typing import Dict, Tuple

SHEET_NAME_KEY = "sheetName"
PLACEHOLDER = "—"

# Import mapper
ID_ALIASES: Tuple[str, ...] = ("id", "ID", "رقم الطلب")
TYPE_ALIASES: Tuple[str, ...] = ("type", "النوع")
CUSTOMER_ALIASES: Tuple[str, ...] = ("customer", "العميل")
AREA_ALIASES: Tuple[str, ...] = ("area", "المنطقة", "الحي")
DEVICE_ALIASES: Tuple[str, ...] = ("device", "الجهاز")
DISTANCE_ALIASES: Tuple[str, ...] = ("distanceKm", "km", "المسافة")
DATE_ALIASES: Tuple[str, ...] = ("date", "التاريخ")
START_ALIASES: Tuple[str, ...] = ("start", "بداية")
END_ALIASES: Tuple[str, ...] = ("end", "نهاية")
STATUS_ALIASES: Tuple[str, ...] = ("status", "الحالة")
DETAIL_ALIASES: Tuple[str, ...] = ("notes", "detail", "ملاحظة")
POSTPONE_TO_ALIASES: Tuple[str, ...] = ("postponeTo", "تأجيل_إلى")
CANCEL_REASON_ALIASES: Tuple[str, ...] = ("cancelReason", "سبب_الإلغاء")

# Reception workbook
TECHNICIAN_ALIASES: Tuple[str, ...] = ("tech", "technician", "الفني", "اسم الفني", "اسم_الفني")
CATEGORY_ALIASES: Tuple[str, ...] = ("category",)
KM_BEFORE_ALIASES: Tuple[str, ...] = ("kmBefore",)

FUEL_KEYS: Tuple[str, ...] = ("kmBefore", "invoiceNo")
FUEL_KIND_KEY = "نوع"
FUEL_KIND_VALUE = "وقود"
TASK_KEYS: Tuple[str, ...] = ("task", "المهمة")

FUEL_SHEETS: Tuple[str, ...] = ("Fuel", "الوقود")
MAINTENANCE_SHEETS: Tuple[str, ...] = ("Maintenance", "الصيانة")
INSTALLATION_SHEETS: Tuple[str, ...] = ("Installs", "التراكيب")
TASK_SHEETS: Tuple[str, ...] = ("Tasks", "المهام")

DEFAULT_START = "09:00"
DEFAULT_END = "10:00"

INSTALLATION_KEYWORDS: Tuple[str, ...] = ("ركب", "تركيب", "install")
MAINTENANCE_KEYWORDS: Tuple[str, ...] = ("صيانة",)
CANCEL_KEYWORDS: Tuple[str, ...] = ("لغ", "cancel")
POSTPONE_KEYWORDS: Tuple[str, ...] = ("أجل", "مؤجل", "postpon")

# Area rollup, matched in this order and mutually exclusive
ROLLUP_DONE_KEYWORDS: Tuple[str, ...] = ("done", "completed", "منتهية", "تم التنفيذ")
ROLLUP_POSTPONED_KEYWORDS: Tuple[str, ...] = ("postpon", "مؤجل", "أجل")
ROLLUP_CANCELLED_KEYWORDS: Tuple[str, ...] = ("cancel", "ملغى", "ملغاة", "ألغيت")

# Preferred column order for the reception tables
FUEL_COLUMNS: Tuple[str, ...] = (
    "date", "التاريخ", "carNo", "رقم السيارة", "plate", "اللوحة",
    "kmBefore", "invoiceNo", "liters", "amountSAR", "receptionist",
)
MAINTENANCE_COLUMNS: Tuple[str, ...] = (
    "date", "التاريخ", "customer", "العميل", "area", "المنطقة", "device", "الجهاز",
    "detail", "تفاصيل", "points", "النقاط", "entry", "الدخول", "exit", "الخروج",
    "start", "end", "status", "الحالة",
)
INSTALLATION_COLUMNS: Tuple[str, ...] = (
    "date", "التاريخ", "customer", "العميل", "area", "المنطقة", "device", "الجهاز",
    "start", "end", "status", "الحالة",
)
CANCELLED_COLUMNS: Tuple[str, ...] = (
    "date", "التاريخ", "customer", "العميل", "area", "المنطقة", "reason", "سبب", "status", "الحالة",
)
POSTPONED_COLUMNS: Tuple[str, ...] = (
    "date", "التاريخ", "customer", "العميل", "area", "المنطقة", "postponeTo", "تأجيل_إلى", "status", "الحالة",
)
TASK_COLUMNS: Tuple[str, ...] = ("date", "التاريخ", "task", "المهمة", "notes", "ملاحظة")

# Global fuel log fields, renamed to the workbook vocabulary for display
FUEL_LOG_COLUMN_NAMES: Dict[str, str] = {
    "code": "code",
    "date": "date",
    "km_before": "kmBefore",
    "invoice_no": "invoiceNo",
    "liters": "liters",
    "amount_sar": "amountSAR",
    "receptionist": "receptionist",
}

SAMPLE_TECHNICIANS: Tuple[str, ...] = ("فهد الحربي", "سالم الدوسري", "ناصر المطيري")

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

IST_TZ = ZoneInfo("Asia/Kolkata")

MONTHS_EN = {
    1: "January",
    2: "February",
    3: "March",
    4: "April",
    5: "May",
    6: "June",
    7: "July",
    8: "August",
    9: "September",
    10: "October",
    11: "November",
    12: "December",
}

PLACEHOLDER = "-"
NOT_AVAILABLE = "N/A"
DEFAULT_TENANT_NAME = "Tenant"


def format_month(ref: date | datetime | str | None) -> str:
    """Format a billing month for display: date(2024, 3, 1) -> 'March 2024'.

    Accepts dates, datetimes and 'YYYY-MM' / 'YYYY-MM-DD' strings. Anything
    unparseable is returned as-is, and a missing value becomes '-'.
    """
    if ref is None or ref == "":
        return PLACEHOLDER
    if isinstance(ref, str):
        parts = ref.split("-")
        if len(parts) < 2:
            return ref
        try:
            year, month = int(parts[0]), int(parts[1])
        except ValueError:
            return ref
    else:
        year, month = ref.year, ref.month
    name = MONTHS_EN.get(month)
    if name is None:
        return str(ref)
    return f"{name} {year}"


def month_start(ref: date | datetime) -> date:
    return date(ref.year, ref.month, 1)

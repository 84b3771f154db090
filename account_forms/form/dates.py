import datetime
from typing import Any, Mapping

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_number(month: Any) -> int:
    """January -> 1, ..., December -> 12; raises ValueError on anything else"""
    if isinstance(month, str) and month in MONTHS:
        return MONTHS.index(month) + 1
    raise ValueError(f"Unknown month: {month!r}")


def compose_date(components: Mapping[str, Any]) -> datetime.date:
    """Collapses {"day": 29, "month": "February", "year": 2024} into a date, raising ValueError
    if the components do not form a real calendar date"""
    day = components.get("day")
    year = components.get("year")
    for name, value in (("day", day), ("year", year)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"{name} must be an integer, got {value!r}")
    return datetime.date(year, month_number(components.get("month")), day)  # type: ignore

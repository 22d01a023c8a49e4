# timemanager/util/timeparse.py
from __future__ import annotations

import datetime as dt

SUNDAY = 1
MONDAY = 2

_WEEK_START_NAMES = {
    "1": SUNDAY,
    "sun": SUNDAY,
    "sunday": SUNDAY,
    "2": MONDAY,
    "mon": MONDAY,
    "monday": MONDAY,
}


def parse_date_yyyy_mm_dd(s: str) -> dt.date:
    return dt.datetime.strptime(s, "%Y-%m-%d").date()


def parse_week_start(value: object) -> int:
    """Parse a week-start setting into 1 (Sunday) or 2 (Monday).

    Accepts the integers 1/2 or the names "sunday"/"monday" (and "sun"/"mon").
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid week start: {value!r}")
    if isinstance(value, int):
        if value in (SUNDAY, MONDAY):
            return value
        raise ValueError(f"Invalid week start: {value!r} (use 1=Sunday or 2=Monday)")
    key = str(value or "").strip().lower()
    if key in _WEEK_START_NAMES:
        return _WEEK_START_NAMES[key]
    raise ValueError(f"Invalid week start: {value!r} (use sunday or monday)")

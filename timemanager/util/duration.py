# timemanager/util/duration.py
from __future__ import annotations

from typing import Optional


def format_hms(seconds: Optional[float]) -> str:
    """Format seconds as HH:MM:SS, truncating fractions.

    Hours are not wrapped at 24 so weekly and monthly totals stay readable.
    """
    if not seconds or seconds < 0:
        return "00:00:00"
    total = int(seconds)
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_percent(pct: float) -> str:
    return f"{pct:.1f}%"

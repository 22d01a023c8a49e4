# timemanager/util/tz.py
from __future__ import annotations

import datetime as dt
import re
from typing import Optional
from zoneinfo import ZoneInfo

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")

_ALIASES = {
    "local": "local",
    "system": "local",
    "native": "local",
    "utc": "UTC",
    "z": "UTC",
    "gmt": "UTC",
    "utc0": "UTC",
    "utc+0": "UTC",
}


def normalize_tz_name(name: Optional[str]) -> str:
    """Canonical timezone name for settings and report headers.

    Empty means "local"; "system" is an alias for it and "Z"/"GMT" for
    "UTC". IANA names ("Asia/Tokyo") and fixed offsets ("+09:00", "-0500")
    pass through unchanged.
    """
    s = str(name or "").strip()
    if not s:
        return "local"
    return _ALIASES.get(s.lower(), s)


def _fixed_offset(tz_name: str) -> Optional[dt.tzinfo]:
    m = _OFFSET_RE.match(tz_name)
    if not m:
        return None
    sign_s, hh_s, mm_s = m.groups()
    hh, mm = int(hh_s), int(mm_s)
    if hh > 23 or mm > 59:
        raise ValueError(f"Invalid timezone offset: {tz_name!r}")
    minutes = hh * 60 + mm
    return dt.timezone(dt.timedelta(minutes=-minutes if sign_s == "-" else minutes))


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """Resolve a timezone name into a tzinfo.

    Raises ValueError for invalid timezone identifiers.
    """
    tz_name = normalize_tz_name(name)
    if tz_name == "UTC":
        return dt.timezone.utc
    if tz_name == "local":
        return dt.datetime.now().astimezone().tzinfo or dt.timezone.utc

    fixed = _fixed_offset(tz_name)
    if fixed is not None:
        return fixed
    try:
        return ZoneInfo(tz_name)
    except Exception as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex


def today_date(tz: dt.tzinfo) -> dt.date:
    return dt.datetime.now(tz=tz).date()


def midnight_epoch_ms(d: dt.date, tz: dt.tzinfo) -> int:
    """Epoch ms of 00:00 on d in tz (report bucket edges)."""
    return int(dt.datetime.combine(d, dt.time.min, tzinfo=tz).timestamp() * 1000)


def local_datetime_from_ms(ms: int, tz: dt.tzinfo) -> dt.datetime:
    return dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=tz)


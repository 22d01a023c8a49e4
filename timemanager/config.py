# timemanager/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .util.console import eprint, obs_enabled
from .util.timeparse import SUNDAY, parse_week_start
from .util.tz import normalize_tz_name

SETTINGS_FILE = "settings.json"
STORE_FILE = "store.json"
FLAGS_FILE = "flags.json"


@dataclass(frozen=True)
class Settings:
    home: Path
    tz: str = "local"
    week_start: int = SUNDAY

    @property
    def store_path(self) -> Path:
        return self.home / STORE_FILE

    @property
    def flags_path(self) -> Path:
        return self.home / FLAGS_FILE

    @property
    def settings_path(self) -> Path:
        return self.home / SETTINGS_FILE


def default_home() -> Path:
    return Path.home() / ".timemanager"


def load_settings_file(path: Path) -> Dict[str, Any]:
    """Read settings.json leniently.

    Accepted keys:
      tz          timezone for report buckets ("local", "UTC", IANA, "+09:00")
      week_start  1/"sunday" or 2/"monday"

    A missing or unreadable file yields {}; unknown keys are ignored.
    """
    try:
        if not path.exists():
            return {}
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as ex:
        if obs_enabled():
            eprint(f"[timemanager.config] WARN: ignoring unreadable settings {path} ({ex})")
        return {}
    if not isinstance(raw, dict):
        return {}
    return {k: raw[k] for k in ("tz", "week_start") if k in raw}


def load_settings(
    *,
    home: Optional[str] = None,
    tz: Optional[str] = None,
    week_start: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Resolve settings: explicit arguments, then environment, then settings.json, then defaults.

    Raises ValueError for an invalid week start.
    """
    environ = os.environ if env is None else env

    home_s = home or (environ.get("TIMEMANAGER_HOME") or "").strip()
    home_p = Path(home_s).expanduser() if home_s else default_home()

    file_cfg = load_settings_file(home_p / SETTINGS_FILE)

    tz_raw = tz or (environ.get("TIMEMANAGER_TZ") or "").strip() or file_cfg.get("tz")
    ws_raw: Any = week_start or (environ.get("TIMEMANAGER_WEEK_START") or "").strip() or file_cfg.get("week_start")

    return Settings(
        home=home_p,
        tz=normalize_tz_name(tz_raw),
        week_start=parse_week_start(ws_raw) if ws_raw else SUNDAY,
    )


def save_settings_file(settings: Settings) -> Path:
    path = settings.settings_path
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"tz": settings.tz, "week_start": settings.week_start}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8", newline="\n")
    return path


__all__ = [
    "Settings",
    "default_home",
    "load_settings",
    "load_settings_file",
    "save_settings_file",
]

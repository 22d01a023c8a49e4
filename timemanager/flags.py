# timemanager/flags.py
"""Durable key-value flags kept outside the main store.

The flag file is tiny and is read before the main store is loaded, so a
running timer can be recognised early after a relaunch. Every write goes to
disk immediately.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .store import StoreError
from .util.console import eprint, obs_enabled
from .util.jsonio import read_json, write_json_atomic

TIMER_PREFIX = "timer/"
FLAG_RUNNING = "running"
FLAG_START_MS = "start_ms"
FLAG_ENTRY_ID = "entry_id"
TIMER_FLAG_NAMES = (FLAG_RUNNING, FLAG_START_MS, FLAG_ENTRY_ID)


def timer_key(task_id: str, name: str) -> str:
    return f"{TIMER_PREFIX}{task_id}/{name}"


def timer_namespace(task_id: str) -> str:
    return f"{TIMER_PREFIX}{task_id}/"


class FlagStore:
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path: Optional[Path] = Path(path) if path is not None else None
        self._values: Dict[str, Any] = {}

    @classmethod
    def open(cls, path: Optional[Union[str, Path]]) -> "FlagStore":
        flags = cls(path)
        flags.load()
        return flags

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = read_json(self.path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as ex:
            # A damaged flag file only loses timer recovery; start clean.
            if obs_enabled():
                eprint(f"[timemanager.flags] WARN: unreadable flag file {self.path} ({ex}); ignoring")
            self._values = {}
            return
        if not isinstance(raw, dict):
            if obs_enabled():
                eprint(f"[timemanager.flags] WARN: flag file {self.path} is not an object; ignoring")
            self._values = {}
            return
        self._values = {str(k): v for k, v in raw.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        try:
            write_json_atomic(self.path, self._values)
        except OSError as ex:
            raise StoreError(f"Failed to write flags {self.path}: {ex}") from ex

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._flush()

    def set_many(self, values: Dict[str, Any]) -> None:
        self._values.update(values)
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self._flush()

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._values if k.startswith(prefix))

    def clear_prefix(self, prefix: str) -> int:
        doomed = self.keys(prefix)
        for k in doomed:
            del self._values[k]
        if doomed:
            self._flush()
        return len(doomed)

    # --- timer namespaces ----------------------------------------------------

    def timer_task_ids(self) -> List[str]:
        """Task ids that have any timer flag recorded."""
        out: List[str] = []
        for k in self.keys(TIMER_PREFIX):
            rest = k[len(TIMER_PREFIX):]
            task_id, sep, _name = rest.rpartition("/")
            if sep and task_id and task_id not in out:
                out.append(task_id)
        return out

    def write_timer(self, task_id: str, start_ms: int, entry_id: str) -> None:
        self.set_many(
            {
                timer_key(task_id, FLAG_RUNNING): True,
                timer_key(task_id, FLAG_START_MS): int(start_ms),
                timer_key(task_id, FLAG_ENTRY_ID): entry_id,
            }
        )

    def read_timer(self, task_id: str) -> Dict[str, Any]:
        return {name: self.get(timer_key(task_id, name)) for name in TIMER_FLAG_NAMES}

    def clear_timer(self, task_id: str) -> int:
        return self.clear_prefix(timer_namespace(task_id))


__all__ = [
    "TIMER_PREFIX",
    "FLAG_RUNNING",
    "FLAG_START_MS",
    "FLAG_ENTRY_ID",
    "timer_key",
    "FlagStore",
]

# timemanager/model.py
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

DEFAULT_COLOR_HEX = "#FF0000"
SATISFACTION_MIN = 1
SATISFACTION_MAX = 5


def new_id() -> str:
    return str(uuid.uuid4())


def _as_int(v: Any, default: int = 0) -> int:
    if v is None or isinstance(v, bool):
        return default
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return default


def _as_opt_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return None


def check_satisfaction_score(score: Optional[int]) -> Optional[int]:
    if score is None:
        return None
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError(f"satisfaction score must be an integer; got {score!r}")
    if not (SATISFACTION_MIN <= score <= SATISFACTION_MAX):
        raise ValueError(
            f"satisfaction score must be between {SATISFACTION_MIN} and {SATISFACTION_MAX}; got {score}"
        )
    return score


@dataclass
class Project:
    name: str
    color_hex: str = DEFAULT_COLOR_HEX
    is_archived: bool = False
    order_index: int = 0
    life_balance: int = 0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Project":
        return cls(
            id=str(d.get("id") or new_id()),
            name=str(d.get("name") or ""),
            color_hex=str(d.get("color_hex") or DEFAULT_COLOR_HEX),
            is_archived=bool(d.get("is_archived", False)),
            order_index=_as_int(d.get("order_index")),
            life_balance=_as_int(d.get("life_balance")),
        )


@dataclass
class Task:
    name: str
    project_id: Optional[str]
    is_completed: bool = False
    order_index: int = 0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        pid = d.get("project_id")
        return cls(
            id=str(d.get("id") or new_id()),
            name=str(d.get("name") or ""),
            project_id=str(pid) if pid else None,
            is_completed=bool(d.get("is_completed", False)),
            order_index=_as_int(d.get("order_index")),
        )


@dataclass
class TimeEntry:
    """One recorded interval of work on a task.

    end_ms is None while the interval is still being recorded. duration is in
    seconds and is only meaningful once end_ms is set; it is stored, not
    derived from start/end.
    """

    task_id: Optional[str]
    start_ms: int
    end_ms: Optional[int] = None
    duration: float = 0.0
    memo: str = ""
    satisfaction_score: Optional[int] = None
    id: str = field(default_factory=new_id)

    @property
    def is_open(self) -> bool:
        return self.end_ms is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TimeEntry":
        tid = d.get("task_id")
        dur = d.get("duration")
        return cls(
            id=str(d.get("id") or new_id()),
            task_id=str(tid) if tid else None,
            start_ms=_as_int(d.get("start_ms")),
            end_ms=_as_opt_int(d.get("end_ms")),
            duration=float(dur) if isinstance(dur, (int, float)) and not isinstance(dur, bool) else 0.0,
            memo=str(d.get("memo") or ""),
            satisfaction_score=_as_opt_int(d.get("satisfaction_score")),
        )


@dataclass(frozen=True)
class ReportRow:
    project: Project
    total_seconds: float
    percentage: float


__all__ = [
    "DEFAULT_COLOR_HEX",
    "SATISFACTION_MIN",
    "SATISFACTION_MAX",
    "new_id",
    "check_satisfaction_score",
    "Project",
    "Task",
    "TimeEntry",
    "ReportRow",
]

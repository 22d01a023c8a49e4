"""Store document validation helpers (library-facing)."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List

from timemanager.model import SATISFACTION_MAX, SATISFACTION_MIN

LATEST_SCHEMA_VERSION = 1


class StoreValidationError(ValueError):
    """Raised when a store document fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        head = "; ".join(self.errors[:5])
        more = f" (+{len(self.errors) - 5} more)" if len(self.errors) > 5 else ""
        super().__init__(f"invalid store document: {head}{more}")


def _require(cond: bool, msg: str, errs: List[str]) -> None:
    if not cond:
        errs.append(msg)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _check_ids(rows: List[Any], label: str, errs: List[str]) -> Dict[str, Dict[str, Any]]:
    by_id: Dict[str, Dict[str, Any]] = {}
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            errs.append(f"{label}[{i}] must be dict")
            continue
        rid = row.get("id")
        if not isinstance(rid, str) or not rid.strip():
            errs.append(f"{label}[{i}].id must be non-empty string")
            continue
        if rid in by_id:
            errs.append(f"{label}[{i}].id duplicated: {rid}")
            continue
        by_id[rid] = row
    return by_id


def _check_contiguous(indices: List[Any], label: str, errs: List[str]) -> None:
    if not all(_is_int(x) for x in indices):
        errs.append(f"{label}: order_index must be int")
        return
    if sorted(indices) != list(range(len(indices))):
        errs.append(f"{label}: order_index must be contiguous from 0; got {sorted(indices)}")


def validate_store_data(doc: Any) -> List[str]:
    """Return a list of validation errors (empty means valid)."""
    errs: List[str] = []
    if not isinstance(doc, dict):
        return [f"store document must be dict; got {type(doc).__name__}"]

    _require(
        doc.get("schema_version") == LATEST_SCHEMA_VERSION,
        f"schema_version must be {LATEST_SCHEMA_VERSION}",
        errs,
    )
    meta = doc.get("meta")
    if meta is not None:
        _require(isinstance(meta, dict), "meta must be dict", errs)

    projects = doc.get("projects")
    tasks = doc.get("tasks")
    entries = doc.get("entries")
    _require(isinstance(projects, list), "projects must be list", errs)
    _require(isinstance(tasks, list), "tasks must be list", errs)
    _require(isinstance(entries, list), "entries must be list", errs)
    if errs:
        return errs

    project_by_id = _check_ids(projects, "projects", errs)
    task_by_id = _check_ids(tasks, "tasks", errs)
    entry_by_id = _check_ids(entries, "entries", errs)

    for pid, p in project_by_id.items():
        lb = p.get("life_balance")
        _require(_is_int(lb) and 0 <= lb <= 100, f"project {pid}: life_balance must be int 0..100", errs)
    _check_contiguous([p.get("order_index") for p in project_by_id.values()], "projects", errs)

    siblings: Dict[str, List[Any]] = defaultdict(list)
    for tid, t in task_by_id.items():
        pid = t.get("project_id")
        if pid not in project_by_id:
            errs.append(f"task {tid}: project_id {pid!r} does not reference a project")
            continue
        siblings[pid].append(t.get("order_index"))
    for pid, indices in siblings.items():
        _check_contiguous(indices, f"tasks of project {pid}", errs)

    open_per_task: Dict[str, int] = defaultdict(int)
    for eid, e in entry_by_id.items():
        tid = e.get("task_id")
        if tid not in task_by_id:
            errs.append(f"entry {eid}: task_id {tid!r} does not reference a task")
        start_ms = e.get("start_ms")
        end_ms = e.get("end_ms")
        if not _is_int(start_ms):
            errs.append(f"entry {eid}: start_ms must be int")
        if end_ms is None:
            open_per_task[str(tid)] += 1
        elif not _is_int(end_ms):
            errs.append(f"entry {eid}: end_ms must be int or null")
        elif _is_int(start_ms) and end_ms < start_ms:
            errs.append(f"entry {eid}: end_ms before start_ms")
        score = e.get("satisfaction_score")
        if score is not None:
            _require(
                _is_int(score) and SATISFACTION_MIN <= score <= SATISFACTION_MAX,
                f"entry {eid}: satisfaction_score must be int {SATISFACTION_MIN}..{SATISFACTION_MAX} or null",
                errs,
            )

    for tid, n in open_per_task.items():
        _require(n <= 1, f"task {tid}: {n} open entries (at most one allowed)", errs)

    return errs


def assert_valid_store_data(doc: Any) -> None:
    errs = validate_store_data(doc)
    if errs:
        raise StoreValidationError(errs)


__all__ = [
    "LATEST_SCHEMA_VERSION",
    "StoreValidationError",
    "validate_store_data",
    "assert_valid_store_data",
]

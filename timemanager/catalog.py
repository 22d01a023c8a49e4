# timemanager/catalog.py
"""User-level operations on projects, tasks and entries.

Each operation mutates the store and saves it once, after every renumbered
sibling has been updated.
"""

from __future__ import annotations

from typing import List, Optional

from .flags import TIMER_PREFIX, FlagStore
from .model import DEFAULT_COLOR_HEX, Project, Task, TimeEntry, check_satisfaction_score
from .ordering import assign_initial_index, reindex_after_delete, reindex_after_move, sort_by_order
from .store import Store
from .util.console import eprint, obs_enabled

LIFE_BALANCE_MAX = 100


def _clean_name(name: str, label: str) -> str:
    s = str(name or "").strip()
    if not s:
        raise ValueError(f"{label} name must not be empty")
    return s


def _log(msg: str) -> None:
    if obs_enabled():
        eprint(f"[timemanager.catalog] {msg}")


# --- projects ----------------------------------------------------------------

def sorted_projects(store: Store, *, include_archived: bool = True) -> List[Project]:
    projects = sort_by_order(store.all(Project))
    if include_archived:
        return projects
    return [p for p in projects if not p.is_archived]


def add_project(
    store: Store,
    name: str,
    color_hex: str = DEFAULT_COLOR_HEX,
    life_balance: int = 0,
) -> Project:
    project = Project(
        name=_clean_name(name, "project"),
        color_hex=str(color_hex or DEFAULT_COLOR_HEX),
        order_index=assign_initial_index(store.all(Project)),
    )
    store.insert(project)
    if life_balance:
        clamp_life_balance(store, project, life_balance)
    store.save()
    _log(f"project.add id={project.id} order_index={project.order_index}")
    return project


def rename_project(store: Store, project_id: str, name: str) -> Project:
    project = store.require(Project, project_id)
    project.name = _clean_name(name, "project")
    store.save()
    return project


def set_project_color(store: Store, project_id: str, color_hex: str) -> Project:
    project = store.require(Project, project_id)
    project.color_hex = str(color_hex or DEFAULT_COLOR_HEX)
    store.save()
    return project


def set_project_archived(store: Store, project_id: str, archived: bool = True) -> Project:
    project = store.require(Project, project_id)
    project.is_archived = bool(archived)
    store.save()
    return project


def total_life_balance(store: Store) -> int:
    return sum(int(p.life_balance) for p in store.all(Project))


def clamp_life_balance(store: Store, project: Project, value: int) -> int:
    """Set life_balance without letting the total across projects pass 100."""
    value = max(0, min(LIFE_BALANCE_MAX, int(value)))
    others = total_life_balance(store) - int(project.life_balance)
    if others + value > LIFE_BALANCE_MAX:
        value = max(0, LIFE_BALANCE_MAX - others)
    project.life_balance = value
    return value


def set_life_balance(store: Store, project_id: str, value: int) -> int:
    project = store.require(Project, project_id)
    stored = clamp_life_balance(store, project, value)
    store.save()
    return stored


def move_project(store: Store, from_position: int, to_position: int) -> List[Project]:
    changed = reindex_after_move(store.all(Project), from_position, to_position)
    store.save()
    return changed


def delete_project(store: Store, project_id: str) -> int:
    """Delete a project with its tasks and entries; return how many entities went."""
    project = store.require(Project, project_id)
    removed = store.delete(project)
    reindex_after_delete(store.all(Project))
    store.save()
    _log(f"project.delete id={project.id} removed={len(removed)}")
    return len(removed)


# --- tasks -------------------------------------------------------------------

def sorted_tasks(store: Store, project_id: str) -> List[Task]:
    store.require(Project, project_id)
    return sort_by_order(store.tasks_of(project_id))


def add_task(store: Store, project_id: str, name: str) -> Task:
    project = store.require(Project, project_id)
    task = Task(
        name=_clean_name(name, "task"),
        project_id=project.id,
        order_index=assign_initial_index(store.tasks_of(project.id)),
    )
    store.insert(task)
    store.save()
    _log(f"task.add id={task.id} project={project.id} order_index={task.order_index}")
    return task


def rename_task(store: Store, task_id: str, name: str) -> Task:
    task = store.require(Task, task_id)
    task.name = _clean_name(name, "task")
    store.save()
    return task


def toggle_task_completed(store: Store, task_id: str) -> Task:
    task = store.require(Task, task_id)
    task.is_completed = not task.is_completed
    store.save()
    return task


def move_task(store: Store, project_id: str, from_position: int, to_position: int) -> List[Task]:
    store.require(Project, project_id)
    changed = reindex_after_move(store.tasks_of(project_id), from_position, to_position)
    store.save()
    return changed


def delete_task(store: Store, task_id: str) -> int:
    task = store.require(Task, task_id)
    removed = store.delete(task)
    if task.project_id:
        reindex_after_delete(store.tasks_of(task.project_id))
    store.save()
    _log(f"task.delete id={task.id} removed={len(removed)}")
    return len(removed)


def task_total_seconds(store: Store, task_id: str) -> float:
    store.require(Task, task_id)
    return sum(e.duration for e in store.entries_of(task_id) if e.end_ms is not None)


# --- entries -----------------------------------------------------------------

def entries_for_task(store: Store, task_id: str) -> List[TimeEntry]:
    """Entries of a task, newest first."""
    store.require(Task, task_id)
    return sorted(store.entries_of(task_id), key=lambda e: e.start_ms, reverse=True)


def annotate_entry(
    store: Store,
    entry_id: str,
    *,
    memo: Optional[str] = None,
    satisfaction_score: Optional[int] = None,
) -> TimeEntry:
    """Set memo and/or satisfaction score on a finished entry."""
    check_satisfaction_score(satisfaction_score)
    entry = store.require(TimeEntry, entry_id)
    if entry.end_ms is None:
        raise ValueError("entry is still being recorded")
    if memo is not None:
        entry.memo = memo
    if satisfaction_score is not None:
        entry.satisfaction_score = satisfaction_score
    store.save()
    return entry


def delete_entry(store: Store, entry_id: str) -> None:
    entry = store.require(TimeEntry, entry_id)
    store.delete(entry)
    store.save()


# --- settings ----------------------------------------------------------------

def reset_all_data(store: Store, flags: Optional[FlagStore] = None) -> int:
    """Delete every project, task and entry, plus any timer flags."""
    count = sum(store.counts().values())
    store.delete_all(Project)
    store.save()
    if flags is not None:
        flags.clear_prefix(TIMER_PREFIX)
    _log(f"reset.ok removed={count}")
    return count


__all__ = [
    "LIFE_BALANCE_MAX",
    "sorted_projects",
    "add_project",
    "rename_project",
    "set_project_color",
    "set_project_archived",
    "total_life_balance",
    "clamp_life_balance",
    "set_life_balance",
    "move_project",
    "delete_project",
    "sorted_tasks",
    "add_task",
    "rename_task",
    "toggle_task_completed",
    "move_task",
    "delete_task",
    "task_total_seconds",
    "entries_for_task",
    "annotate_entry",
    "delete_entry",
    "reset_all_data",
]

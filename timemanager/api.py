"""timemanager.api

Stable *library* entrypoint for timemanager.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

from typing import Tuple

from timemanager.catalog import (
    add_project,
    add_task,
    annotate_entry,
    delete_entry,
    delete_project,
    delete_task,
    entries_for_task,
    move_project,
    move_task,
    rename_project,
    rename_task,
    reset_all_data,
    set_life_balance,
    set_project_archived,
    set_project_color,
    sorted_projects,
    sorted_tasks,
    task_total_seconds,
    toggle_task_completed,
    total_life_balance,
)
from timemanager.config import Settings, load_settings
from timemanager.flags import FlagStore
from timemanager.model import Project, ReportRow, Task, TimeEntry
from timemanager.ordering import assign_initial_index, reindex_after_delete, reindex_after_move
from timemanager.report import aggregate_by_project, period_bounds_ms, report_from_store
from timemanager.store import Store, StoreError, UnknownEntityError
from timemanager.timer import (
    STATE_IDLE,
    STATE_RUNNING,
    STATE_STOPPING,
    TimerMachine,
    current_timer,
    install_timer,
)
from timemanager.validate import StoreValidationError


def open_workspace(settings: Settings) -> Tuple[Store, FlagStore, TimerMachine]:
    """Open the flag file first, then the store, then recover the timer.

    Raises StoreError when the store cannot be read.
    """
    flags = FlagStore.open(settings.flags_path)
    store = Store.open(settings.store_path)
    timer = install_timer(store, flags)
    return store, flags, timer


__all__ = [
    # model
    "Project",
    "Task",
    "TimeEntry",
    "ReportRow",
    # storage
    "Store",
    "FlagStore",
    "StoreError",
    "StoreValidationError",
    "UnknownEntityError",
    # ordering
    "assign_initial_index",
    "reindex_after_delete",
    "reindex_after_move",
    # timer
    "STATE_IDLE",
    "STATE_RUNNING",
    "STATE_STOPPING",
    "TimerMachine",
    "install_timer",
    "current_timer",
    # report
    "aggregate_by_project",
    "period_bounds_ms",
    "report_from_store",
    # catalog
    "add_project",
    "rename_project",
    "set_project_color",
    "set_project_archived",
    "set_life_balance",
    "total_life_balance",
    "move_project",
    "delete_project",
    "sorted_projects",
    "add_task",
    "rename_task",
    "toggle_task_completed",
    "move_task",
    "delete_task",
    "sorted_tasks",
    "task_total_seconds",
    "entries_for_task",
    "annotate_entry",
    "delete_entry",
    "reset_all_data",
    # config
    "Settings",
    "load_settings",
    "open_workspace",
]

# timemanager/store.py
"""Persistent arena of projects, tasks and time entries.

Entities are kept in per-kind dicts keyed by id; parent links are plain id
fields. Deletion walks child ids explicitly (project -> tasks -> entries)
before removing the parent, so no orphan can survive a delete.

The arena lives in memory and is written to a single JSON document by
``save()``. Mutations are not persisted until ``save()`` is called; callers
that renumber siblings or finalize entries save once after all changes.
"""

from __future__ import annotations

import datetime as dt
import json
import time
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar, Union

from .model import Project, Task, TimeEntry
from .util.console import eprint, obs_enabled
from .util.jsonio import read_json, write_json_atomic
from .validate import LATEST_SCHEMA_VERSION, StoreValidationError, assert_valid_store_data

Entity = Union[Project, Task, TimeEntry]
E = TypeVar("E", Project, Task, TimeEntry)

KINDS: tuple = (Project, Task, TimeEntry)
_DOC_KEYS = {Project: "projects", Task: "tasks", TimeEntry: "entries"}


class StoreError(RuntimeError):
    """Raised when the store cannot be read or written."""


class UnknownEntityError(KeyError):
    """Raised when an id (or id prefix) does not resolve to exactly one entity."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown entity"


def _kind_of(entity: Any) -> type:
    for kind in KINDS:
        if isinstance(entity, kind):
            return kind
    raise TypeError(f"not a store entity: {type(entity).__name__}")


def _kind_label(kind: type) -> str:
    return {Project: "project", Task: "task", TimeEntry: "entry"}.get(kind, kind.__name__)


class Store:
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path: Optional[Path] = Path(path) if path is not None else None
        self._rows: Dict[type, Dict[str, Any]] = {kind: {} for kind in KINDS}

    @classmethod
    def open(cls, path: Optional[Union[str, Path]]) -> "Store":
        store = cls(path)
        if store.path is not None and store.path.exists():
            store.load()
        return store

    # --- persistence ---------------------------------------------------------

    def load(self) -> None:
        if self.path is None:
            return
        t0 = time.monotonic()
        try:
            doc = read_json(self.path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as ex:
            raise StoreError(f"Failed to read store {self.path}: {ex}") from ex
        try:
            assert_valid_store_data(doc)
        except StoreValidationError as ex:
            raise StoreError(f"Store {self.path} is invalid: {ex}") from ex

        rows: Dict[type, Dict[str, Any]] = {kind: {} for kind in KINDS}
        for kind in KINDS:
            for raw in doc.get(_DOC_KEYS[kind]) or []:
                ent = kind.from_dict(raw)
                rows[kind][ent.id] = ent
        self._rows = rows

        if obs_enabled():
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            eprint(
                f"[timemanager.store] load.ok ms={elapsed_ms} projects={len(rows[Project])} "
                f"tasks={len(rows[Task])} entries={len(rows[TimeEntry])}"
            )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "schema_version": LATEST_SCHEMA_VERSION,
            "meta": {"saved_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")},
        }
        for kind in KINDS:
            doc[_DOC_KEYS[kind]] = [ent.to_dict() for ent in self._rows[kind].values()]
        return doc

    def save(self) -> None:
        if self.path is None:
            return
        try:
            write_json_atomic(self.path, self.to_document())
        except OSError as ex:
            raise StoreError(f"Failed to write store {self.path}: {ex}") from ex
        if obs_enabled():
            eprint(f"[timemanager.store] save.ok path={self.path}")

    # --- queries -------------------------------------------------------------

    def get(self, kind: Type[E], entity_id: Optional[str]) -> Optional[E]:
        if not entity_id:
            return None
        return self._rows[kind].get(entity_id)

    def require(self, kind: Type[E], entity_id: Optional[str]) -> E:
        ent = self.get(kind, entity_id)
        if ent is None:
            raise UnknownEntityError(f"Unknown {_kind_label(kind)}: {entity_id!r}")
        return ent

    def resolve(self, kind: Type[E], ref: str) -> E:
        """Look up by full id, or by a unique id prefix."""
        ref = str(ref or "").strip()
        exact = self.get(kind, ref)
        if exact is not None:
            return exact
        matches = [ent for eid, ent in self._rows[kind].items() if ref and eid.startswith(ref)]
        if len(matches) == 1:
            return matches[0]
        label = _kind_label(kind)
        if not matches:
            raise UnknownEntityError(f"Unknown {label}: {ref!r}")
        raise UnknownEntityError(f"Ambiguous {label} prefix {ref!r} ({len(matches)} matches)")

    def all(self, kind: Type[E], sort_by: Optional[str] = None) -> List[E]:
        items = list(self._rows[kind].values())
        if sort_by:
            items.sort(key=lambda ent: getattr(ent, sort_by))
        return items

    def tasks_of(self, project_id: str) -> List[Task]:
        return [t for t in self._rows[Task].values() if t.project_id == project_id]

    def entries_of(self, task_id: str) -> List[TimeEntry]:
        return [e for e in self._rows[TimeEntry].values() if e.task_id == task_id]

    def open_entries(self) -> List[TimeEntry]:
        return [e for e in self._rows[TimeEntry].values() if e.is_open]

    # --- mutations -----------------------------------------------------------

    def insert(self, entity: Entity) -> Entity:
        kind = _kind_of(entity)
        if isinstance(entity, Task):
            self.require(Project, entity.project_id)
        elif isinstance(entity, TimeEntry):
            self.require(Task, entity.task_id)
        self._rows[kind][entity.id] = entity
        return entity

    def delete(self, entity: Entity) -> List[Entity]:
        """Remove entity and all of its descendants; return what was removed."""
        kind = _kind_of(entity)
        if entity.id not in self._rows[kind]:
            return []

        removed: List[Entity] = []
        if isinstance(entity, Project):
            for task in self.tasks_of(entity.id):
                removed.extend(self.delete(task))
        elif isinstance(entity, Task):
            for entry in self.entries_of(entity.id):
                removed.extend(self.delete(entry))

        del self._rows[kind][entity.id]
        removed.append(entity)
        return removed

    def delete_all(self, kind: type) -> int:
        """Remove every entity of a kind, cascading to descendant kinds."""
        count = len(self._rows[kind])
        if kind is Project:
            self._rows[Task].clear()
            self._rows[TimeEntry].clear()
        elif kind is Task:
            self._rows[TimeEntry].clear()
        self._rows[kind].clear()
        return count

    def counts(self) -> Dict[str, int]:
        return {_DOC_KEYS[kind]: len(self._rows[kind]) for kind in KINDS}

    def __iter__(self) -> Iterator[Entity]:
        for kind in KINDS:
            yield from self._rows[kind].values()


__all__ = [
    "Entity",
    "KINDS",
    "Store",
    "StoreError",
    "UnknownEntityError",
]

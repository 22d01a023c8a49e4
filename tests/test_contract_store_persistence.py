from __future__ import annotations

import json
from pathlib import Path

import pytest

from timemanager.catalog import add_project, add_task
from timemanager.model import Project, Task, TimeEntry
from timemanager.store import Store, StoreError, UnknownEntityError
from timemanager.validate import LATEST_SCHEMA_VERSION, StoreValidationError, assert_valid_store_data, validate_store_data


def _seed(store: Store):
    project = add_project(store, "Work", color_hex="#00AA00", life_balance=40)
    task = add_task(store, project.id, "Write")
    entry = store.insert(
        TimeEntry(task_id=task.id, start_ms=1_000, end_ms=61_000, duration=60.0, memo="ok", satisfaction_score=3)
    )
    store.save()
    return project, task, entry


class TestStorePersistenceContract:
    def test_save_then_open_restores_everything(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        project, task, entry = _seed(Store(path))

        reopened = Store.open(path)
        assert reopened.counts() == {"projects": 1, "tasks": 1, "entries": 1}
        assert reopened.get(Project, project.id) == project
        assert reopened.get(Task, task.id) == task
        assert reopened.get(TimeEntry, entry.id) == entry

        doc = json.loads(path.read_text(encoding="utf-8"))
        assert doc["schema_version"] == LATEST_SCHEMA_VERSION
        assert "saved_at" in doc["meta"]
        assert validate_store_data(doc) == []

    def test_open_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = Store.open(tmp_path / "nope.json")
        assert store.counts() == {"projects": 0, "tasks": 0, "entries": 0}

    def test_corrupt_json_raises_store_error(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(StoreError):
            Store.open(path)

    def test_invalid_utf8_raises_store_error_and_keeps_file(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        _seed(Store(path))
        raw = path.read_bytes().replace(b"Work", b"Caf\xe9")
        path.write_bytes(raw)
        with pytest.raises(StoreError) as ei:
            Store.open(path)
        assert "Failed to read store" in str(ei.value)
        assert path.read_bytes() == raw

    def test_invalid_document_raises_store_error(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        doc = {"schema_version": 1, "projects": [], "tasks": [{"id": "t1", "project_id": "p-missing", "order_index": 0}], "entries": []}
        path.write_text(json.dumps(doc), encoding="utf-8")
        with pytest.raises(StoreError) as ei:
            Store.open(path)
        assert "p-missing" in str(ei.value)

    def test_save_leaves_no_temp_files(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        _seed(Store(path))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]


class TestStoreCascadeContract:
    def test_project_delete_removes_descendants(self) -> None:
        store = Store()
        project, task, entry = _seed(store)
        other = add_project(store, "Home")
        removed = store.delete(project)

        assert {type(x) for x in removed} == {Project, Task, TimeEntry}
        assert store.get(Task, task.id) is None
        assert store.get(TimeEntry, entry.id) is None
        assert store.all(Project) == [other]

    def test_task_delete_removes_entries_only(self) -> None:
        store = Store()
        project, task, entry = _seed(store)
        store.delete(task)
        assert store.get(Project, project.id) is project
        assert store.all(TimeEntry) == []

    def test_delete_all_projects_cascades(self) -> None:
        store = Store()
        _seed(store)
        assert store.delete_all(Project) == 1
        assert store.counts() == {"projects": 0, "tasks": 0, "entries": 0}

    def test_insert_requires_parent(self) -> None:
        store = Store()
        with pytest.raises(UnknownEntityError):
            store.insert(Task(name="orphan", project_id="missing"))
        with pytest.raises(UnknownEntityError):
            store.insert(TimeEntry(task_id="missing", start_ms=0))


class TestStoreResolveContract:
    def test_resolve_by_prefix(self) -> None:
        store = Store()
        a = store.insert(Project(name="A", id="abc123"))
        store.insert(Project(name="B", id="abd456", order_index=1))
        assert store.resolve(Project, "abc123") is a
        assert store.resolve(Project, "abc") is a

    def test_ambiguous_or_unknown_prefix_raises(self) -> None:
        store = Store()
        store.insert(Project(name="A", id="abc123"))
        store.insert(Project(name="B", id="abd456", order_index=1))
        with pytest.raises(UnknownEntityError) as ei:
            store.resolve(Project, "ab")
        assert "Ambiguous" in str(ei.value)
        with pytest.raises(UnknownEntityError):
            store.resolve(Project, "zzz")
        with pytest.raises(UnknownEntityError):
            store.resolve(Project, "")


class TestStoreValidationContract:
    def test_gap_in_order_index_is_reported(self) -> None:
        doc = {
            "schema_version": 1,
            "projects": [
                {"id": "p1", "name": "A", "order_index": 0, "life_balance": 0},
                {"id": "p2", "name": "B", "order_index": 2, "life_balance": 0},
            ],
            "tasks": [],
            "entries": [],
        }
        errs = validate_store_data(doc)
        assert any("contiguous" in e for e in errs)
        with pytest.raises(StoreValidationError) as ei:
            assert_valid_store_data(doc)
        assert isinstance(ei.value, ValueError)
        assert ei.value.errors == errs

    def test_entry_rules(self) -> None:
        doc = {
            "schema_version": 1,
            "projects": [{"id": "p1", "name": "A", "order_index": 0, "life_balance": 0}],
            "tasks": [{"id": "t1", "name": "T", "project_id": "p1", "order_index": 0}],
            "entries": [
                {"id": "e1", "task_id": "t1", "start_ms": 10, "end_ms": 5},
                {"id": "e2", "task_id": "t1", "start_ms": 10, "end_ms": None},
                {"id": "e3", "task_id": "t1", "start_ms": 20, "end_ms": None, "satisfaction_score": 7},
            ],
        }
        errs = validate_store_data(doc)
        assert any("end_ms before start_ms" in e for e in errs)
        assert any("open entries" in e for e in errs)
        assert any("satisfaction_score" in e for e in errs)

    def test_wrong_schema_version(self) -> None:
        errs = validate_store_data({"schema_version": 99, "projects": [], "tasks": [], "entries": []})
        assert errs and "schema_version" in errs[0]

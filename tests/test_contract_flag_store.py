from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

from timemanager.flags import FLAG_ENTRY_ID, FLAG_RUNNING, FLAG_START_MS, FlagStore, timer_key


class TestFlagStoreContract:
    def test_writes_are_immediately_durable(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        flags = FlagStore.open(path)
        flags.set("theme", "dark")
        assert json.loads(path.read_text(encoding="utf-8")) == {"theme": "dark"}
        assert FlagStore.open(path).get("theme") == "dark"

    def test_timer_namespace_roundtrip(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        flags = FlagStore.open(path)
        flags.write_timer("task-1", 1234, "entry-1")

        again = FlagStore.open(path)
        assert again.read_timer("task-1") == {FLAG_RUNNING: True, FLAG_START_MS: 1234, FLAG_ENTRY_ID: "entry-1"}
        assert again.get(timer_key("task-1", FLAG_START_MS)) == 1234
        assert again.timer_task_ids() == ["task-1"]

        assert again.clear_timer("task-1") == 3
        assert FlagStore.open(path).keys("timer/") == []

    def test_clear_timer_leaves_other_namespaces(self) -> None:
        flags = FlagStore()
        flags.write_timer("a", 1, "e1")
        flags.write_timer("ab", 2, "e2")
        flags.clear_timer("a")
        assert flags.timer_task_ids() == ["ab"]

    def test_remove_missing_key_is_noop(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        flags = FlagStore.open(path)
        flags.remove("nothing")
        assert not path.exists()

    def test_corrupt_file_is_ignored_with_warning(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        path.write_text("[1, 2", encoding="utf-8")
        with patch.dict(os.environ, {"TIMEMANAGER_OBS_LOG": "1"}, clear=False), patch("timemanager.flags.eprint") as ep:
            flags = FlagStore.open(path)
        assert flags.keys() == []
        combined = "\n".join(str(c.args[0]) for c in ep.call_args_list if c.args)
        assert "[timemanager.flags] WARN: unreadable flag file" in combined

    def test_invalid_utf8_file_is_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        path.write_bytes(b"{\"note\": \"Caf\xe9\"}")
        assert FlagStore.open(path).keys() == []

    def test_non_object_file_is_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "flags.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert FlagStore.open(path).keys() == []

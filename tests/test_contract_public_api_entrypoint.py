from __future__ import annotations

import datetime as dt
import tempfile
import unittest
from pathlib import Path


class TestPublicApiEntrypointContract(unittest.TestCase):
    def test_open_workspace_and_track_time(self) -> None:
        import timemanager
        from timemanager import Settings, open_workspace, report_from_store

        with tempfile.TemporaryDirectory() as td:
            settings = Settings(home=Path(td), tz="UTC")
            store, flags, timer = open_workspace(settings)
            self.assertIs(timemanager.current_timer(), timer)
            self.assertEqual(timer.state, timemanager.STATE_IDLE)

            project = timemanager.add_project(store, "Work")
            task = timemanager.add_task(store, project.id, "Write")
            self.assertIsNotNone(timer.start(task.id))
            entry = timer.stop()
            self.assertIsNotNone(entry.end_ms)

            # reopening sees the persisted entry
            store2, _flags2, timer2 = open_workspace(settings)
            self.assertEqual(timer2.state, timemanager.STATE_IDLE)
            self.assertEqual([e.id for e in timemanager.entries_for_task(store2, task.id)], [entry.id])

            day = dt.datetime.fromtimestamp(entry.end_ms / 1000.0, tz=dt.timezone.utc).date()
            rows = report_from_store(store2, period="day", reference_date=day, tz="UTC")
            self.assertEqual([r.project.id for r in rows], [project.id])


if __name__ == "__main__":
    unittest.main(verbosity=2)

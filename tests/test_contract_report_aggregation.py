from __future__ import annotations

import datetime as dt
import unittest

from timemanager.model import Project, Task, TimeEntry
from timemanager.report import (
    aggregate_by_project,
    period_bounds_ms,
    period_dates,
    report_from_store,
    report_total_seconds,
)
from timemanager.store import Store
from timemanager.util.timeparse import MONDAY, SUNDAY

# Wednesday 2025-07-02 00:00:00 UTC
WED_MS = 1751414400000
HOUR_MS = 3600 * 1000


def _finished(task: Task, end_ms: int, seconds: float) -> TimeEntry:
    start_ms = end_ms - int(seconds * 1000)
    return TimeEntry(task_id=task.id, start_ms=start_ms, end_ms=end_ms, duration=seconds)


class TestReportAggregationContract(unittest.TestCase):
    def setUp(self) -> None:
        self.work = Project(name="Work", order_index=0)
        self.health = Project(name="Health", order_index=1)
        self.write = Task(name="Write", project_id=self.work.id)
        self.run = Task(name="Run", project_id=self.health.id)
        self.projects = {p.id: p for p in (self.work, self.health)}
        self.tasks = {t.id: t for t in (self.write, self.run)}

    def _report(self, entries, period="day", reference=dt.date(2025, 7, 2), week_start=SUNDAY):
        return aggregate_by_project(
            entries,
            self.tasks,
            self.projects,
            period=period,
            reference_date=reference,
            week_start=week_start,
            tz="UTC",
        )

    def test_percentages_and_order(self) -> None:
        entries = [
            _finished(self.run, WED_MS + 9 * HOUR_MS, 1800),
            _finished(self.write, WED_MS + 12 * HOUR_MS, 3600),
        ]
        rows = self._report(entries)
        self.assertEqual([r.project.name for r in rows], ["Work", "Health"])
        self.assertEqual([r.total_seconds for r in rows], [3600.0, 1800.0])
        self.assertAlmostEqual(rows[0].percentage, 66.6667, places=3)
        self.assertAlmostEqual(rows[1].percentage, 33.3333, places=3)
        self.assertAlmostEqual(sum(r.percentage for r in rows), 100.0)
        self.assertEqual(report_total_seconds(rows), 5400.0)

    def test_entries_of_one_project_are_summed(self) -> None:
        entries = [
            _finished(self.write, WED_MS + 9 * HOUR_MS, 600),
            _finished(self.write, WED_MS + 10 * HOUR_MS, 900),
        ]
        rows = self._report(entries)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].total_seconds, 1500.0)
        self.assertEqual(rows[0].percentage, 100.0)

    def test_open_entry_is_excluded(self) -> None:
        entries = [
            _finished(self.write, WED_MS + 9 * HOUR_MS, 600),
            TimeEntry(task_id=self.run.id, start_ms=WED_MS + 10 * HOUR_MS),
        ]
        rows = self._report(entries)
        self.assertEqual([r.project.name for r in rows], ["Work"])

    def test_empty_period_gives_no_rows(self) -> None:
        self.assertEqual(self._report([]), [])
        entries = [_finished(self.write, WED_MS - 2 * 24 * HOUR_MS, 600)]
        self.assertEqual(self._report(entries), [])

    def test_zero_total_gives_zero_percent(self) -> None:
        entries = [_finished(self.write, WED_MS + HOUR_MS, 0)]
        rows = self._report(entries)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].percentage, 0.0)

    def test_bucketed_by_end_time(self) -> None:
        # started Tuesday 23:30, ended Wednesday 00:30
        entry = _finished(self.write, WED_MS + 30 * 60 * 1000, 3600)
        self.assertEqual(len(self._report([entry])), 1)
        self.assertEqual(self._report([entry], reference=dt.date(2025, 7, 1)), [])

    def test_day_end_is_exclusive(self) -> None:
        at_next_midnight = _finished(self.write, WED_MS + 24 * HOUR_MS, 60)
        self.assertEqual(self._report([at_next_midnight]), [])

    def test_orphaned_entries_are_skipped(self) -> None:
        ghost_task = Task(name="Ghost", project_id="missing-project")
        entries = [
            TimeEntry(task_id="missing-task", start_ms=WED_MS, end_ms=WED_MS + 1000, duration=1.0),
            TimeEntry(task_id=ghost_task.id, start_ms=WED_MS, end_ms=WED_MS + 1000, duration=1.0),
        ]
        self.tasks[ghost_task.id] = ghost_task
        self.assertEqual(self._report(entries), [])

    def test_ties_keep_first_seen_order(self) -> None:
        entries = [
            _finished(self.run, WED_MS + HOUR_MS, 600),
            _finished(self.write, WED_MS + 2 * HOUR_MS, 600),
        ]
        rows = self._report(entries)
        self.assertEqual([r.project.name for r in rows], ["Health", "Work"])

    def test_week_start_changes_bucket(self) -> None:
        sunday_entry = _finished(self.write, WED_MS - 3 * 24 * HOUR_MS + HOUR_MS, 600)  # Sun 2025-06-29
        self.assertEqual(len(self._report([sunday_entry], period="week", week_start=SUNDAY)), 1)
        self.assertEqual(self._report([sunday_entry], period="week", week_start=MONDAY), [])

    def test_invalid_period_raises(self) -> None:
        with self.assertRaises(ValueError):
            self._report([], period="year")


class TestPeriodBoundsContract(unittest.TestCase):
    def test_week_dates(self) -> None:
        wed = dt.date(2025, 7, 2)
        self.assertEqual(period_dates("week", wed, SUNDAY), (dt.date(2025, 6, 29), dt.date(2025, 7, 6)))
        self.assertEqual(period_dates("week", wed, MONDAY), (dt.date(2025, 6, 30), dt.date(2025, 7, 7)))
        sunday = dt.date(2025, 6, 29)
        self.assertEqual(period_dates("week", sunday, SUNDAY)[0], sunday)
        self.assertEqual(period_dates("week", sunday, MONDAY)[0], dt.date(2025, 6, 23))

    def test_month_dates(self) -> None:
        self.assertEqual(period_dates("month", dt.date(2025, 7, 17)), (dt.date(2025, 7, 1), dt.date(2025, 8, 1)))
        self.assertEqual(period_dates("month", dt.date(2025, 12, 31)), (dt.date(2025, 12, 1), dt.date(2026, 1, 1)))

    def test_bounds_follow_timezone(self) -> None:
        start_utc, end_utc = period_bounds_ms("day", dt.date(2025, 7, 2), tz="UTC")
        self.assertEqual((start_utc, end_utc), (WED_MS, WED_MS + 24 * HOUR_MS))
        start_tokyo, _ = period_bounds_ms("day", dt.date(2025, 7, 2), tz="+09:00")
        self.assertEqual(start_tokyo, WED_MS - 9 * HOUR_MS)


class TestReportFromStoreContract(unittest.TestCase):
    def test_store_report_includes_archived_projects(self) -> None:
        store = Store()
        p = store.insert(Project(name="Old", is_archived=True))
        t = store.insert(Task(name="T", project_id=p.id))
        store.insert(TimeEntry(task_id=t.id, start_ms=WED_MS, end_ms=WED_MS + 60_000, duration=60.0))
        rows = report_from_store(store, period="month", reference_date=dt.date(2025, 7, 2), tz="UTC")
        self.assertEqual(len(rows), 1)
        self.assertIs(rows[0].project, p)
        self.assertEqual(rows[0].total_seconds, 60.0)


if __name__ == "__main__":
    unittest.main(verbosity=2)

# timemanager/report.py
from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .model import Project, ReportRow, Task, TimeEntry
from .util.timeparse import MONDAY, SUNDAY, parse_week_start
from .util.tz import midnight_epoch_ms, normalize_tz_name, resolve_tz

PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIODS = (PERIOD_DAY, PERIOD_WEEK, PERIOD_MONTH)

# Python weekday() numbering (Monday=0) for each week-start setting.
_WEEK_START_WEEKDAY = {SUNDAY: 6, MONDAY: 0}


def _check_period(period: str) -> str:
    p = str(period or "").strip().lower()
    if p not in PERIODS:
        raise ValueError(f"Invalid period: {period!r} (use one of {', '.join(PERIODS)})")
    return p


def period_dates(period: str, reference: dt.date, week_start: int = SUNDAY) -> Tuple[dt.date, dt.date]:
    """Calendar dates [first, next_first) of the bucket containing reference."""
    p = _check_period(period)
    if p == PERIOD_DAY:
        return reference, reference + dt.timedelta(days=1)
    if p == PERIOD_WEEK:
        start_wd = _WEEK_START_WEEKDAY[parse_week_start(week_start)]
        first = reference - dt.timedelta(days=(reference.weekday() - start_wd) % 7)
        return first, first + dt.timedelta(days=7)
    first = reference.replace(day=1)
    if first.month == 12:
        nxt = first.replace(year=first.year + 1, month=1)
    else:
        nxt = first.replace(month=first.month + 1)
    return first, nxt


def period_bounds_ms(
    period: str,
    reference: dt.date,
    week_start: int = SUNDAY,
    tz: Optional[str] = "local",
) -> Tuple[int, int]:
    """Epoch ms [start, end) of the calendar bucket, with midnights taken in tz."""
    first, nxt = period_dates(period, reference, week_start)
    tzinfo = resolve_tz(normalize_tz_name(tz))
    return midnight_epoch_ms(first, tzinfo), midnight_epoch_ms(nxt, tzinfo)


def aggregate_by_project(
    entries: Iterable[TimeEntry],
    tasks: Mapping[str, Task],
    projects: Mapping[str, Project],
    *,
    period: str,
    reference_date: dt.date,
    week_start: int = SUNDAY,
    tz: Optional[str] = "local",
) -> List[ReportRow]:
    """Group finished entries in the selected bucket by project.

    Entries are bucketed by end time. Open entries and entries whose task or
    project cannot be reached are skipped. Rows are ordered by total duration
    (descending); equal totals keep the order in which their project first
    appeared in ``entries``.
    """
    start_ms, end_ms = period_bounds_ms(period, reference_date, week_start, tz)

    totals: Dict[str, float] = {}
    for entry in entries:
        if entry.end_ms is None:
            continue
        if not (start_ms <= entry.end_ms < end_ms):
            continue
        task = tasks.get(entry.task_id) if entry.task_id else None
        if task is None or not task.project_id:
            continue
        if task.project_id not in projects:
            continue
        totals[task.project_id] = totals.get(task.project_id, 0.0) + float(entry.duration)

    grand_total = sum(totals.values())
    rows = [
        ReportRow(
            project=projects[pid],
            total_seconds=total,
            percentage=(total / grand_total * 100.0) if grand_total > 0 else 0.0,
        )
        for pid, total in totals.items()
    ]
    rows.sort(key=lambda r: r.total_seconds, reverse=True)
    return rows


def report_from_store(
    store,
    *,
    period: str,
    reference_date: dt.date,
    week_start: int = SUNDAY,
    tz: Optional[str] = "local",
) -> List[ReportRow]:
    tasks = {t.id: t for t in store.all(Task)}
    projects = {p.id: p for p in store.all(Project)}
    return aggregate_by_project(
        store.all(TimeEntry, sort_by="start_ms"),
        tasks,
        projects,
        period=period,
        reference_date=reference_date,
        week_start=week_start,
        tz=tz,
    )


def report_total_seconds(rows: Iterable[ReportRow]) -> float:
    return sum(r.total_seconds for r in rows)


__all__ = [
    "PERIOD_DAY",
    "PERIOD_WEEK",
    "PERIOD_MONTH",
    "PERIODS",
    "period_dates",
    "period_bounds_ms",
    "aggregate_by_project",
    "report_from_store",
    "report_total_seconds",
]

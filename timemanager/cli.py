from __future__ import annotations

import argparse
import datetime as dt
import sys
import time
from typing import List, Optional

from .api import open_workspace
from .catalog import (
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
from .config import Settings, load_settings, save_settings_file
from .model import Project, Task, TimeEntry
from .report import PERIODS, period_dates, report_from_store, report_total_seconds
from .store import StoreError, UnknownEntityError
from .timer import STATE_RUNNING, TICK_INTERVAL_S
from .util.duration import format_hms, format_percent
from .util.timeparse import MONDAY, parse_date_yyyy_mm_dd
from .util.tz import local_datetime_from_ms, resolve_tz, today_date

ID_WIDTH = 8


class Workspace:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.store, self.flags, self.timer = open_workspace(settings)


def _short(entity_id: Optional[str]) -> str:
    return (entity_id or "")[:ID_WIDTH]


def _fmt_ts(ms: Optional[int], settings: Settings) -> str:
    if ms is None:
        return "-"
    return local_datetime_from_ms(ms, resolve_tz(settings.tz)).strftime("%Y-%m-%d %H:%M:%S")


# --- project -----------------------------------------------------------------

def _cmd_project_add(ws: Workspace, ns: argparse.Namespace) -> int:
    p = add_project(ws.store, ns.name, color_hex=ns.color, life_balance=ns.balance)
    print(f"{_short(p.id)} {p.name} (position {p.order_index}, balance {p.life_balance}%)")
    return 0


def _cmd_project_list(ws: Workspace, ns: argparse.Namespace) -> int:
    projects = sorted_projects(ws.store, include_archived=ns.all)
    if not projects:
        print("No projects")
        return 0
    for p in projects:
        flag = "  [archived]" if p.is_archived else ""
        print(f"{p.order_index:>3}  {_short(p.id)}  {p.color_hex}  {p.life_balance:>3}%  {p.name}{flag}")
    total = total_life_balance(ws.store)
    hint = "" if total == 100 else "  (adjust life balance to 100%)"
    print(f"Total life balance: {total}%{hint}")
    return 0


def _cmd_project_rename(ws: Workspace, ns: argparse.Namespace) -> int:
    p = rename_project(ws.store, ws.store.resolve(Project, ns.project).id, ns.name)
    print(f"{_short(p.id)} renamed to {p.name}")
    return 0


def _cmd_project_color(ws: Workspace, ns: argparse.Namespace) -> int:
    p = set_project_color(ws.store, ws.store.resolve(Project, ns.project).id, ns.color)
    print(f"{_short(p.id)} color {p.color_hex}")
    return 0


def _cmd_project_archive(ws: Workspace, ns: argparse.Namespace) -> int:
    p = set_project_archived(ws.store, ws.store.resolve(Project, ns.project).id, not ns.undo)
    print(f"{_short(p.id)} {'archived' if p.is_archived else 'active'}")
    return 0


def _cmd_project_balance(ws: Workspace, ns: argparse.Namespace) -> int:
    p = ws.store.resolve(Project, ns.project)
    stored = set_life_balance(ws.store, p.id, ns.value)
    print(f"{_short(p.id)} life balance {stored}% (total {total_life_balance(ws.store)}%)")
    return 0


def _cmd_project_move(ws: Workspace, ns: argparse.Namespace) -> int:
    move_project(ws.store, ns.from_position, ns.to_position)
    return _cmd_project_list(ws, argparse.Namespace(all=True))


def _cmd_project_delete(ws: Workspace, ns: argparse.Namespace) -> int:
    p = ws.store.resolve(Project, ns.project)
    n = delete_project(ws.store, p.id)
    print(f"Deleted project {p.name} ({n} records)")
    return 0


# --- task --------------------------------------------------------------------

def _cmd_task_add(ws: Workspace, ns: argparse.Namespace) -> int:
    p = ws.store.resolve(Project, ns.project)
    t = add_task(ws.store, p.id, ns.name)
    print(f"{_short(t.id)} {t.name} (position {t.order_index} in {p.name})")
    return 0


def _cmd_task_list(ws: Workspace, ns: argparse.Namespace) -> int:
    p = ws.store.resolve(Project, ns.project)
    tasks = sorted_tasks(ws.store, p.id)
    if not tasks:
        print(f"No tasks in {p.name}")
        return 0
    running = ws.timer.running_task_id
    for t in tasks:
        mark = "[x]" if t.is_completed else "[ ]"
        live = "  (running)" if t.id == running else ""
        print(f"{t.order_index:>3}  {_short(t.id)}  {mark} {t.name}  {format_hms(task_total_seconds(ws.store, t.id))}{live}")
    return 0


def _cmd_task_rename(ws: Workspace, ns: argparse.Namespace) -> int:
    t = rename_task(ws.store, ws.store.resolve(Task, ns.task).id, ns.name)
    print(f"{_short(t.id)} renamed to {t.name}")
    return 0


def _cmd_task_done(ws: Workspace, ns: argparse.Namespace) -> int:
    t = toggle_task_completed(ws.store, ws.store.resolve(Task, ns.task).id)
    print(f"{_short(t.id)} {'completed' if t.is_completed else 'open'}")
    return 0


def _cmd_task_move(ws: Workspace, ns: argparse.Namespace) -> int:
    p = ws.store.resolve(Project, ns.project)
    move_task(ws.store, p.id, ns.from_position, ns.to_position)
    return _cmd_task_list(ws, argparse.Namespace(project=p.id))


def _cmd_task_delete(ws: Workspace, ns: argparse.Namespace) -> int:
    t = ws.store.resolve(Task, ns.task)
    n = delete_task(ws.store, t.id)
    print(f"Deleted task {t.name} ({n} records)")
    return 0


# --- timer -------------------------------------------------------------------

def _cmd_timer_start(ws: Workspace, ns: argparse.Namespace) -> int:
    t = ws.store.resolve(Task, ns.task)
    entry = ws.timer.start(t.id)
    if entry is None:
        running = ws.store.get(Task, ws.timer.running_task_id)
        name = running.name if running else "another task"
        print(f"Timer already running for {name}; stop it first", file=sys.stderr)
        return 1
    print(f"Started {t.name} at {_fmt_ts(entry.start_ms, ws.settings)}")
    return 0


def _cmd_timer_stop(ws: Workspace, ns: argparse.Namespace) -> int:
    entry = ws.timer.stop(memo=ns.memo, satisfaction_score=ns.score)
    if entry is None:
        print("No timer running", file=sys.stderr)
        return 1
    task = ws.store.get(Task, entry.task_id)
    print(f"Stopped {task.name if task else '?'}: {format_hms(entry.duration)} (entry {_short(entry.id)})")
    return 0


def _cmd_timer_status(ws: Workspace, ns: argparse.Namespace) -> int:
    if ws.timer.state != STATE_RUNNING:
        print("idle")
        return 0
    task = ws.store.get(Task, ws.timer.running_task_id)
    print(f"running {task.name if task else '?'} {format_hms(ws.timer.tick())}")
    return 0


def _cmd_timer_watch(ws: Workspace, ns: argparse.Namespace) -> int:
    if ws.timer.state != STATE_RUNNING:
        print("idle")
        return 0
    task = ws.store.get(Task, ws.timer.running_task_id)
    name = task.name if task else "?"
    shown = 0
    try:
        while True:
            print(f"\r{name} {format_hms(ws.timer.tick())}", end="", flush=True)
            shown += 1
            if ns.count is not None and shown >= ns.count:
                break
            time.sleep(TICK_INTERVAL_S)
    except KeyboardInterrupt:
        pass
    print()
    return 0


def _cmd_timer_annotate(ws: Workspace, ns: argparse.Namespace) -> int:
    entry = ws.store.resolve(TimeEntry, ns.entry)
    annotate_entry(ws.store, entry.id, memo=ns.memo, satisfaction_score=ns.score)
    print(f"{_short(entry.id)} annotated")
    return 0


# --- entries -----------------------------------------------------------------

def _cmd_entry_list(ws: Workspace, ns: argparse.Namespace) -> int:
    t = ws.store.resolve(Task, ns.task)
    entries = entries_for_task(ws.store, t.id)
    if not entries:
        print(f"No entries for {t.name}")
        return 0
    for e in entries:
        if e.end_ms is None:
            dur = "running"
        else:
            dur = format_hms(e.duration)
        score = f"  score {e.satisfaction_score}" if e.satisfaction_score is not None else ""
        memo = f"  memo: {e.memo}" if e.memo else ""
        print(f"{_short(e.id)}  {_fmt_ts(e.start_ms, ws.settings)} -> {_fmt_ts(e.end_ms, ws.settings)}  {dur}{score}{memo}")
    print(f"Total: {format_hms(task_total_seconds(ws.store, t.id))}")
    return 0


def _cmd_entry_delete(ws: Workspace, ns: argparse.Namespace) -> int:
    e = ws.store.resolve(TimeEntry, ns.entry)
    delete_entry(ws.store, e.id)
    print(f"Deleted entry {_short(e.id)}")
    return 0


# --- report / settings / reset -----------------------------------------------

def _cmd_report(ws: Workspace, ns: argparse.Namespace) -> int:
    s = ws.settings
    ref = parse_date_yyyy_mm_dd(ns.date) if ns.date else today_date(resolve_tz(s.tz))
    rows = report_from_store(ws.store, period=ns.period, reference_date=ref, week_start=s.week_start, tz=s.tz)
    first, nxt = period_dates(ns.period, ref, s.week_start)
    last = nxt - dt.timedelta(days=1)
    span = first.isoformat() if first == last else f"{first.isoformat()}..{last.isoformat()}"
    print(f"Report ({ns.period}) {span} [{s.tz}]")
    if not rows:
        print("No records for this period")
        return 0
    width = max(len(r.project.name) for r in rows)
    for r in rows:
        print(f"  {r.project.name:<{width}}  {format_hms(r.total_seconds)}  {format_percent(r.percentage):>6}")
    print(f"Total: {format_hms(report_total_seconds(rows))}")
    return 0


def _cmd_settings(ws: Workspace, ns: argparse.Namespace) -> int:
    s = ws.settings
    if ns.save:
        path = save_settings_file(s)
        print(f"Saved {path}")
    print(f"home: {s.home}")
    print(f"tz: {s.tz}")
    print(f"week_start: {'monday' if s.week_start == MONDAY else 'sunday'}")
    return 0


def _cmd_reset(ws: Workspace, ns: argparse.Namespace) -> int:
    if not ns.yes:
        print("Refusing to delete all data without --yes", file=sys.stderr)
        return 1
    n = reset_all_data(ws.store, ws.flags)
    ws.timer.recover_on_launch_or_resume()
    print(f"Deleted all data ({n} records)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="timemanager", description="Track time per task and report life balance by project.")
    ap.add_argument("--home", default=None, help="Data directory (default: env TIMEMANAGER_HOME or ~/.timemanager)")
    ap.add_argument("--tz", default=None, help="Report timezone (default: env TIMEMANAGER_TZ, settings.json, or 'local')")
    ap.add_argument("--week-start", default=None, help="sunday or monday (default: env TIMEMANAGER_WEEK_START or sunday)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    proj = sub.add_parser("project", help="Manage projects").add_subparsers(dest="action", required=True)
    p = proj.add_parser("add")
    p.add_argument("name")
    p.add_argument("--color", default="#FF0000", help="Display color as #RRGGBB")
    p.add_argument("--balance", type=int, default=0, help="Life balance weight 0-100")
    p.set_defaults(func=_cmd_project_add)
    p = proj.add_parser("list")
    p.add_argument("--all", action="store_true", help="Include archived projects")
    p.set_defaults(func=_cmd_project_list)
    p = proj.add_parser("rename")
    p.add_argument("project")
    p.add_argument("name")
    p.set_defaults(func=_cmd_project_rename)
    p = proj.add_parser("color")
    p.add_argument("project")
    p.add_argument("color")
    p.set_defaults(func=_cmd_project_color)
    p = proj.add_parser("archive")
    p.add_argument("project")
    p.add_argument("--undo", action="store_true", help="Unarchive")
    p.set_defaults(func=_cmd_project_archive)
    p = proj.add_parser("balance")
    p.add_argument("project")
    p.add_argument("value", type=int)
    p.set_defaults(func=_cmd_project_balance)
    p = proj.add_parser("move")
    p.add_argument("from_position", type=int)
    p.add_argument("to_position", type=int)
    p.set_defaults(func=_cmd_project_move)
    p = proj.add_parser("delete")
    p.add_argument("project")
    p.set_defaults(func=_cmd_project_delete)

    task = sub.add_parser("task", help="Manage tasks").add_subparsers(dest="action", required=True)
    p = task.add_parser("add")
    p.add_argument("project")
    p.add_argument("name")
    p.set_defaults(func=_cmd_task_add)
    p = task.add_parser("list")
    p.add_argument("project")
    p.set_defaults(func=_cmd_task_list)
    p = task.add_parser("rename")
    p.add_argument("task")
    p.add_argument("name")
    p.set_defaults(func=_cmd_task_rename)
    p = task.add_parser("done", help="Toggle completion")
    p.add_argument("task")
    p.set_defaults(func=_cmd_task_done)
    p = task.add_parser("move")
    p.add_argument("project")
    p.add_argument("from_position", type=int)
    p.add_argument("to_position", type=int)
    p.set_defaults(func=_cmd_task_move)
    p = task.add_parser("delete")
    p.add_argument("task")
    p.set_defaults(func=_cmd_task_delete)

    timer = sub.add_parser("timer", help="Start/stop the timer").add_subparsers(dest="action", required=True)
    p = timer.add_parser("start")
    p.add_argument("task")
    p.set_defaults(func=_cmd_timer_start)
    p = timer.add_parser("stop")
    p.add_argument("--memo", default=None)
    p.add_argument("--score", type=int, default=None, help="Satisfaction score 1-5")
    p.set_defaults(func=_cmd_timer_stop)
    p = timer.add_parser("status")
    p.set_defaults(func=_cmd_timer_status)
    p = timer.add_parser("watch", help="Refresh elapsed time every second until Ctrl-C")
    p.add_argument("--count", type=int, default=None, help=argparse.SUPPRESS)
    p.set_defaults(func=_cmd_timer_watch)
    p = timer.add_parser("annotate", help="Set memo/score on a finished entry")
    p.add_argument("entry")
    p.add_argument("--memo", default=None)
    p.add_argument("--score", type=int, default=None)
    p.set_defaults(func=_cmd_timer_annotate)

    entry = sub.add_parser("entry", help="Inspect time entries").add_subparsers(dest="action", required=True)
    p = entry.add_parser("list")
    p.add_argument("task")
    p.set_defaults(func=_cmd_entry_list)
    p = entry.add_parser("delete")
    p.add_argument("entry")
    p.set_defaults(func=_cmd_entry_delete)

    p = sub.add_parser("report", help="Time by project for a day, week or month")
    p.add_argument("--period", choices=PERIODS, default="day")
    p.add_argument("--date", default=None, help="Reference date YYYY-MM-DD (default: today in --tz)")
    p.set_defaults(func=_cmd_report)

    p = sub.add_parser("settings", help="Show resolved settings")
    p.add_argument("--save", action="store_true", help="Write the resolved tz/week start to settings.json")
    p.set_defaults(func=_cmd_settings)

    p = sub.add_parser("reset", help="Delete all data")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=_cmd_reset)
    return ap


def main(argv: List[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        settings = load_settings(home=args.home, tz=args.tz, week_start=args.week_start)
    except ValueError as e:
        raise SystemExit(f"Invalid --week-start value: {e}")
    try:
        resolve_tz(settings.tz)
    except ValueError as e:
        raise SystemExit(f"Invalid --tz value: {e}")

    try:
        ws = Workspace(settings)
        return int(args.func(ws, args))
    except StoreError as e:
        raise SystemExit(f"[timemanager] ERROR: {e}")
    except UnknownEntityError as e:
        raise SystemExit(f"[timemanager] ERROR: {e}")
    except IndexError as e:
        raise SystemExit(f"Invalid position: {e}")
    except ValueError as e:
        raise SystemExit(f"Invalid value: {e}")


if __name__ == "__main__":
    raise SystemExit(main())

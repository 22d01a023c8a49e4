# timemanager/timer.py
"""Single-slot timer state machine with durable recovery.

The flag store, not process memory, is the source of truth for when the
running interval started: elapsed time is always recomputed as
``now - persisted start_ms`` so it survives suspend, kill and relaunch.

One timer runs system-wide. ``start`` while anything is running and ``stop``
while nothing is running are no-ops that return None.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from .flags import FLAG_ENTRY_ID, FLAG_RUNNING, FLAG_START_MS, FlagStore, timer_key
from .model import Task, TimeEntry, check_satisfaction_score
from .store import Store
from .util.console import eprint, obs_enabled

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_STOPPING = "stopping"

TICK_INTERVAL_S = 1.0

Clock = Callable[[], int]


def system_clock_ms() -> int:
    return int(time.time() * 1000)


def _log(msg: str) -> None:
    if obs_enabled():
        eprint(f"[timemanager.timer] {msg}")


class TimerMachine:
    def __init__(self, store: Store, flags: FlagStore, clock: Optional[Clock] = None):
        self.store = store
        self.flags = flags
        self._clock: Clock = clock or system_clock_ms
        self._task_id: Optional[str] = None
        self._entry_id: Optional[str] = None
        self._start_ms: Optional[int] = None
        self._stopped_entry_id: Optional[str] = None

    # --- state ---------------------------------------------------------------

    def now_ms(self) -> int:
        return int(self._clock())

    def _reset(self) -> None:
        self._task_id = None
        self._entry_id = None
        self._start_ms = None
        self._stopped_entry_id = None

    def _entry_alive(self) -> bool:
        if self._entry_id is None:
            return False
        entry = self.store.get(TimeEntry, self._entry_id)
        return entry is not None and entry.end_ms is None

    def _drop_vanished_entry(self) -> None:
        """Reset to idle and clear flags if the running entry vanished (cascade delete) or was closed."""
        if self._entry_id is None or self._entry_alive():
            return
        task_id = self._task_id
        _log(f"WARN: running entry {self._entry_id} is gone; clearing timer for task={task_id}")
        if task_id:
            self.flags.clear_timer(task_id)
        self._reset()

    @property
    def state(self) -> str:
        if self._entry_alive():
            return STATE_RUNNING
        if self._stopped_entry_id is not None:
            return STATE_STOPPING
        return STATE_IDLE

    @property
    def running_task_id(self) -> Optional[str]:
        return self._task_id if self.state == STATE_RUNNING else None

    @property
    def running_entry(self) -> Optional[TimeEntry]:
        if self.state != STATE_RUNNING:
            return None
        return self.store.get(TimeEntry, self._entry_id)

    def persisted_start_ms(self) -> Optional[int]:
        if self._task_id is None:
            return None
        start_ms = self.flags.read_timer(self._task_id).get(FLAG_START_MS)
        if isinstance(start_ms, int) and not isinstance(start_ms, bool):
            return start_ms
        return self._start_ms

    def elapsed_seconds(self) -> float:
        if self.state != STATE_RUNNING:
            return 0.0
        start_ms = self.persisted_start_ms()
        if start_ms is None:
            return 0.0
        return max(0, self.now_ms() - start_ms) / 1000.0

    def tick(self) -> float:
        """Display refresh: recompute elapsed seconds without touching stored state."""
        return self.elapsed_seconds()

    # --- transitions ---------------------------------------------------------

    def start(self, task_id: str) -> Optional[TimeEntry]:
        task = self.store.require(Task, task_id)
        self._drop_vanished_entry()
        state = self.state
        if state != STATE_IDLE:
            _log(f"WARN: start ignored task={task.id} state={state} running_task={self._task_id}")
            return None
        if self.store.open_entries():
            _log(f"WARN: start ignored task={task.id}; an open entry already exists")
            return None

        now = self.now_ms()
        entry = TimeEntry(task_id=task.id, start_ms=now)
        self.store.insert(entry)
        self.store.save()
        self.flags.write_timer(task.id, now, entry.id)

        self._task_id = task.id
        self._entry_id = entry.id
        self._start_ms = now
        _log(f"start.ok task={task.id} entry={entry.id} start_ms={now}")
        return entry

    def stop(
        self,
        task_id: Optional[str] = None,
        *,
        memo: Optional[str] = None,
        satisfaction_score: Optional[int] = None,
        hold: bool = False,
    ) -> Optional[TimeEntry]:
        """Close the running entry.

        With hold=True the machine stays in "stopping" until annotate() or
        dismiss() is called, so memo and score can be collected afterwards.
        """
        self._drop_vanished_entry()
        state = self.state
        if state != STATE_RUNNING:
            _log(f"WARN: stop ignored state={state}")
            return None
        if task_id is not None and task_id != self._task_id:
            _log(f"WARN: stop ignored task={task_id}; running task is {self._task_id}")
            return None
        check_satisfaction_score(satisfaction_score)

        entry = self.store.require(TimeEntry, self._entry_id)
        now = max(self.now_ms(), entry.start_ms)
        entry.end_ms = now
        entry.duration = (now - entry.start_ms) / 1000.0
        if memo is not None:
            entry.memo = memo
        if satisfaction_score is not None:
            entry.satisfaction_score = satisfaction_score
        self.store.save()

        running_task = self._task_id
        if running_task:
            self.flags.clear_timer(running_task)
        self._reset()
        if hold:
            self._stopped_entry_id = entry.id
        _log(f"stop.ok task={running_task} entry={entry.id} duration_s={entry.duration:.0f}")
        return entry

    def annotate(
        self,
        memo: Optional[str] = None,
        satisfaction_score: Optional[int] = None,
    ) -> Optional[TimeEntry]:
        if self.state != STATE_STOPPING:
            _log("WARN: annotate ignored; no entry awaiting annotation")
            return None
        check_satisfaction_score(satisfaction_score)
        entry = self.store.get(TimeEntry, self._stopped_entry_id)
        self._stopped_entry_id = None
        if entry is None:
            return None
        if memo is not None:
            entry.memo = memo
        if satisfaction_score is not None:
            entry.satisfaction_score = satisfaction_score
        self.store.save()
        return entry

    def dismiss(self) -> None:
        self._stopped_entry_id = None

    # --- recovery ------------------------------------------------------------

    def recover_on_launch_or_resume(self) -> str:
        """Rebuild in-memory state from the durable flags.

        A namespace is restored only when running=true and its entry_id
        resolves to an open entry owned by the same task. Anything else is
        stale: its flags are cleared and the machine stays idle. Open entries
        that no valid namespace points at are closed with zero duration so
        they cannot block the next start.
        """
        self._reset()
        for task_id in self.flags.timer_task_ids():
            vals = self.flags.read_timer(task_id)
            entry = self.store.get(TimeEntry, vals.get(FLAG_ENTRY_ID))
            valid = (
                vals.get(FLAG_RUNNING) is True
                and entry is not None
                and entry.task_id == task_id
                and entry.end_ms is None
            )
            if not valid:
                _log(f"WARN: clearing stale timer flags task={task_id} entry={vals.get(FLAG_ENTRY_ID)}")
                self.flags.clear_timer(task_id)
                continue
            if self._entry_id is not None:
                _log(f"WARN: second running timer task={task_id} cleared; keeping task={self._task_id}")
                self.flags.clear_timer(task_id)
                continue
            start_ms = vals.get(FLAG_START_MS)
            if not isinstance(start_ms, int) or isinstance(start_ms, bool):
                start_ms = entry.start_ms
                self.flags.set(timer_key(task_id, FLAG_START_MS), start_ms)
            self._task_id = task_id
            self._entry_id = entry.id
            self._start_ms = int(start_ms)
            _log(f"recover.restored task={task_id} entry={entry.id} start_ms={start_ms}")

        orphans = [e for e in self.store.open_entries() if e.id != self._entry_id]
        for entry in orphans:
            entry.end_ms = entry.start_ms
            entry.duration = 0.0
            _log(f"WARN: closing orphaned open entry {entry.id} task={entry.task_id} with zero duration")
        if orphans:
            self.store.save()

        return self.state

    def on_foreground(self) -> str:
        return self.recover_on_launch_or_resume()


_TIMER: Optional[TimerMachine] = None


def install_timer(store: Store, flags: FlagStore, clock: Optional[Clock] = None) -> TimerMachine:
    """Create the process-wide timer and recover it from the flag store."""
    global _TIMER
    machine = TimerMachine(store, flags, clock=clock)
    machine.recover_on_launch_or_resume()
    _TIMER = machine
    return machine


def current_timer() -> TimerMachine:
    if _TIMER is None:
        raise RuntimeError("timer not installed; call install_timer() at launch")
    return _TIMER


__all__ = [
    "STATE_IDLE",
    "STATE_RUNNING",
    "STATE_STOPPING",
    "TICK_INTERVAL_S",
    "TimerMachine",
    "system_clock_ms",
    "install_timer",
    "current_timer",
]

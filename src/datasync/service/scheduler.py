"""
Cron-driven task scheduler.

Each registered task gets its own trigger thread that sleeps until the task's
next cron fire time and then hands the run to a worker thread. Tasks share no
mutable state: the only synchronization primitive is the per-task run token,
acquired without blocking, so a trigger that fires while the previous run of
the same task is still in flight is skipped instead of queued.

Misfire policy: **run-once** -- if a trigger thread wakes up after several fire
times have passed (slow machine, suspended process), the task fires once and
the next fire time is computed from the current time.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from datasync.connections.base import FileStore
from datasync.connections.sftp import SFTPConnection
from datasync.exceptions import ConfigurationError, ConnectionError_, SyncError
from datasync.service.cron_parser import CronParseError, CronSchedule
from datasync.sync.tree import synchronize
from datasync.sync.types import SyncReport, TaskDescriptor
from datasync.utils.logging import get_logger

logger = get_logger("datasync.service.scheduler")

SessionFactory = Callable[[TaskDescriptor], FileStore]
Synchronizer = Callable[[FileStore, str, str, Any], SyncReport]


@dataclass
class _TaskSlot:
    """Per-task scheduling state; never shared between tasks."""

    task: TaskDescriptor
    schedule: CronSchedule
    # Held for the whole duration of a run
    run_token: threading.Lock = field(default_factory=threading.Lock)
    trigger_thread: threading.Thread | None = None
    next_fire: float | None = None
    last_started: float | None = None
    last_finished: float | None = None
    last_report: SyncReport | None = None
    last_error: str | None = None
    skipped_triggers: int = 0


class TaskScheduler:
    """
    Owns the configured tasks and fires their synchronization runs.

    Args:
        tasks: Task descriptors to register up front
        session_factory: Builds an unopened session for a task; it is opened
            and closed through the context manager protocol around each run
        synchronizer: Tree synchronization entry point
        clock: Wall-clock source (unix timestamp)
    """

    def __init__(
        self,
        tasks: Iterable[TaskDescriptor] = (),
        *,
        session_factory: SessionFactory = SFTPConnection.from_task,
        synchronizer: Synchronizer = synchronize,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self._synchronizer = synchronizer
        self._clock = clock
        self._slots: dict[str, _TaskSlot] = {}
        self._stopping = threading.Event()
        self._running = False
        for task in tasks:
            self.register(task)

    @property
    def tasks(self) -> tuple[TaskDescriptor, ...]:
        return tuple(slot.task for slot in self._slots.values())

    @property
    def running(self) -> bool:
        return self._running

    def register(self, task: TaskDescriptor) -> None:
        """
        Register a task and parse its cron expression.

        Raises:
            ConfigurationError: duplicate task name or invalid cron/timezone
        """
        if task.name in self._slots:
            raise ConfigurationError(f"Task '{task.name}' is already registered", details={"task": task.name})
        try:
            schedule = CronSchedule.parse(task.cron, task.timezone)
            schedule.next_after(self._clock())
        except CronParseError as e:
            raise ConfigurationError(
                f"Task '{task.name}': invalid cron {task.cron!r}: {e}", details={"task": task.name}
            ) from e
        slot = _TaskSlot(task=task, schedule=schedule)
        self._slots[task.name] = slot
        if self._running:
            self._arm(slot)

    def start(self) -> None:
        """Arm one trigger thread per registered task."""
        if self._running:
            return
        self._stopping.clear()
        self._running = True
        for slot in self._slots.values():
            self._arm(slot)
        logger.info(f"Scheduler started with {len(self._slots)} task(s)")

    def stop(self, wait: bool = False, timeout: float | None = None) -> None:
        """
        Stop firing new triggers.

        In-flight runs are not interrupted. With ``wait=True`` this blocks
        until they finish (or ``timeout`` seconds elapse per task).
        """
        self._stopping.set()
        self._running = False
        for slot in self._slots.values():
            if slot.trigger_thread is not None:
                slot.trigger_thread.join(timeout)
                slot.trigger_thread = None
        if wait:
            for slot in self._slots.values():
                if slot.run_token.acquire(timeout=-1 if timeout is None else timeout):
                    slot.run_token.release()
        logger.info("Scheduler stopped")

    def wait(self) -> None:
        """Block until :meth:`stop` is called (from another thread or a signal handler)."""
        while not self._stopping.wait(1.0):
            pass

    def is_running(self, name: str) -> bool:
        """Whether a run of ``name`` currently holds its run token."""
        return self._slot(name).run_token.locked()

    def trigger(self, name: str) -> bool:
        """
        Fire ``name`` now, in a background worker thread.

        Returns False (and logs) if the previous run is still active; the
        firing is dropped, not queued.
        """
        slot = self._slot(name)
        if not slot.run_token.acquire(blocking=False):
            slot.skipped_triggers += 1
            logger.info(f"Task {name}: previous run still active, skipping this trigger")
            return False
        worker = threading.Thread(
            target=self._run_and_release,
            args=(slot,),
            name=f"datasync-run-{name}",
            daemon=True,
        )
        try:
            worker.start()
        except BaseException:
            slot.run_token.release()
            raise
        return True

    def run_now(self, name: str) -> SyncReport | None:
        """
        Run ``name`` in the calling thread, honouring the run token.

        Returns None if the task was already running or the run failed.
        """
        slot = self._slot(name)
        if not slot.run_token.acquire(blocking=False):
            slot.skipped_triggers += 1
            logger.info(f"Task {name}: previous run still active, skipping")
            return None
        try:
            return self._run(slot)
        finally:
            slot.run_token.release()

    def status(self) -> list[dict[str, Any]]:
        """Per-task scheduling state for CLI / log observability."""
        return [self.status_of(name) for name in self._slots]

    def status_of(self, name: str) -> dict[str, Any]:
        slot = self._slot(name)
        next_fire = slot.next_fire
        if next_fire is None:
            try:
                next_fire = slot.schedule.next_after(self._clock())
            except CronParseError:
                next_fire = None
        return {
            "task": name,
            "cron": slot.task.cron,
            "direction": slot.task.direction.value,
            "running": slot.run_token.locked(),
            "next_fire_at": _iso(next_fire, slot.schedule),
            "last_started_at": _iso(slot.last_started, slot.schedule),
            "last_finished_at": _iso(slot.last_finished, slot.schedule),
            "last_report": slot.last_report.as_dict() if slot.last_report else None,
            "last_error": slot.last_error,
            "skipped_triggers": slot.skipped_triggers,
        }

    def _slot(self, name: str) -> _TaskSlot:
        try:
            return self._slots[name]
        except KeyError:
            raise ConfigurationError(f"Unknown task: {name}", details={"task": name}) from None

    def _arm(self, slot: _TaskSlot) -> None:
        # The slot (and its descriptor) is passed by value to this thread only
        thread = threading.Thread(
            target=self._trigger_loop,
            args=(slot,),
            name=f"datasync-trigger-{slot.task.name}",
            daemon=True,
        )
        slot.trigger_thread = thread
        thread.start()

    def _trigger_loop(self, slot: _TaskSlot) -> None:
        reference = self._clock()
        while not self._stopping.is_set():
            try:
                fire_at = slot.schedule.next_after(reference)
            except CronParseError as e:
                logger.error(f"Task {slot.task.name}: cannot compute next fire time, trigger disarmed: {e}")
                return
            slot.next_fire = fire_at
            logger.debug(f"Task {slot.task.name}: next fire at {_iso(fire_at, slot.schedule)}")
            if self._stopping.wait(max(0.0, fire_at - self._clock())):
                return
            self.trigger(slot.task.name)
            reference = max(fire_at, self._clock())

    def _run_and_release(self, slot: _TaskSlot) -> None:
        try:
            self._run(slot)
        finally:
            slot.run_token.release()

    def _attempt(self, task: TaskDescriptor) -> tuple[SyncReport | None, str | None]:
        logger.info(f"Syncing task {task.name}: {task.direction.value} {task.endpoint}:{task.remote_root}")
        session = self._session_factory(task)
        try:
            with session:
                return self._synchronizer(session, task.local_root, task.remote_root, task.direction), None
        except ConnectionError_ as e:
            logger.error(f"Task {task.name}: session failed, will retry at next trigger: {e}")
            return None, str(e)
        except SyncError as e:
            logger.error(f"Task {task.name}: sync failed: {e}")
            return None, str(e)

    def _run(self, slot: _TaskSlot) -> SyncReport | None:
        slot.last_started = self._clock()
        try:
            report, error = self._attempt(slot.task)
        except Exception as e:
            # Unexpected errors end this run only
            logger.exception(f"Task {slot.task.name}: unexpected error: {e}")
            report, error = None, str(e)
        slot.last_report = report
        slot.last_error = error
        slot.last_finished = self._clock()
        return report


def _iso(ts: float | None, schedule: CronSchedule) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=schedule.tz).isoformat()

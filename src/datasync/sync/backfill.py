"""
Backfill runner: synchronize date-partitioned directories over an explicit range.

Runs outside the cron schedule, single-threaded, in ascending date order, so a
partial backfill is easy to resume by hand from the first failed date.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from datasync.connections.base import FileStore
from datasync.connections.local import LocalFileStore
from datasync.connections.sftp import SFTPConnection
from datasync.exceptions import ConnectionError_, SyncError
from datasync.sync.daterange import expand_dates
from datasync.sync.tree import synchronize
from datasync.sync.types import SyncReport, TaskDescriptor
from datasync.utils.logging import get_logger

logger = get_logger("datasync.sync.backfill")

SessionFactory = Callable[[TaskDescriptor], FileStore]


@dataclass
class BackfillResult:
    """Outcome of one (task, date) pair."""

    task: str
    date: str
    report: SyncReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_backfill(
    tasks: Iterable[TaskDescriptor],
    start: date | str,
    end: date | str,
    *,
    session_factory: SessionFactory = SFTPConnection.from_task,
    local: FileStore | None = None,
) -> list[BackfillResult]:
    """
    Synchronize ``<root>/<YYYY-MM-DD>`` pairs for every task and every day in range.

    One session is opened per task and reused for all of its dates. A failed
    date is logged and recorded, then the next date runs; a task whose session
    cannot be opened records every date as failed and the next task runs.

    Raises:
        InvalidDateError: ``start`` or ``end`` is malformed (nothing is synced)
    """
    days = expand_dates(start, end)
    if not days:
        logger.warning(f"Backfill range {start}..{end} is empty, nothing to sync")
        return []

    local = local if local is not None else LocalFileStore()
    results: list[BackfillResult] = []
    for task in tasks:
        logger.info(f"Backfilling task {task.name} ({task.direction.value}) for {len(days)} day(s)")
        session = session_factory(task)
        try:
            with session:
                for day in days:
                    results.append(_backfill_day(session, local, task, day))
        except ConnectionError_ as e:
            logger.error(f"Skipping backfill for task {task.name}: {e}")
            done = {r.date for r in results if r.task == task.name}
            results.extend(BackfillResult(task=task.name, date=d, error=str(e)) for d in days if d not in done)

    failed = sum(1 for r in results if not r.ok)
    totals = summarize(results)
    logger.info(
        f"Backfill completed: {len(results) - failed} succeeded, {failed} failed "
        f"(transferred={totals.transferred} skipped={totals.skipped} errors={totals.errors})"
    )
    return results


def summarize(results: Iterable[BackfillResult]) -> SyncReport:
    """Sum the reports of the dates that synced."""
    totals = SyncReport()
    for result in results:
        if result.report is not None:
            totals.merge(result.report)
    return totals


def _backfill_day(session: FileStore, local: FileStore, task: TaskDescriptor, day: str) -> BackfillResult:
    local_dir = local.join(task.local_root, day)
    remote_dir = session.join(task.remote_root, day)
    logger.info(f"Syncing date {day} for task {task.name}")
    try:
        report = synchronize(session, local_dir, remote_dir, task.direction, local=local)
    except SyncError as e:
        logger.error(f"Failed to sync {task.name} for {day}: {e}")
        return BackfillResult(task=task.name, date=day, error=str(e))
    return BackfillResult(task=task.name, date=day, report=report)

"""
Recursive tree synchronization between an SFTP session and the local filesystem.

The source tree is listed and walked; every regular file is compared with its
destination counterpart by modification time only and copied when the
destination is missing or strictly older. Failures below the root are logged
and absorbed: one bad file or subtree never fails the whole run.
"""

from __future__ import annotations

import shutil

from datasync.connections.base import FileEntry, FileStore
from datasync.connections.local import LocalFileStore
from datasync.exceptions import DataSyncError, EntryNotFoundError, SyncError, TransferError
from datasync.sync.types import Direction, SyncDecision, SyncReport
from datasync.utils.logging import get_logger

logger = get_logger("datasync.sync.tree")

CHUNK_SIZE = 256 * 1024


def decide(source: FileEntry, destination: FileEntry | None) -> SyncDecision:
    """
    Mtime-only change detection.

    Equal timestamps count as in sync, so a source rewritten with an older or
    identical mtime is not picked up.
    """
    if destination is None or source.mtime > destination.mtime:
        return SyncDecision.TRANSFER
    return SyncDecision.SKIP


class TreeSynchronizer:
    """
    Mirror one directory tree onto another.

    ``remote`` is the session for the task's endpoint and ``local`` the host
    filesystem side; the direction passed to :meth:`synchronize` decides which
    of the two is listed and read (source) and which is stat'ed and written
    (destination).
    """

    def __init__(self, remote: FileStore, local: FileStore | None = None):
        self.remote = remote
        self.local = local if local is not None else LocalFileStore()

    def synchronize(self, local_path: str, remote_path: str, direction: Direction | str) -> SyncReport:
        """
        Run one synchronization pass.

        Raises:
            InvalidDirectionError: ``direction`` is neither pull nor push
            ListError: the top-level source directory cannot be listed
        """
        direction = Direction.parse(direction)
        if direction is Direction.PULL:
            source, destination = self.remote, self.local
            src_root, dst_root = remote_path, local_path
        else:
            source, destination = self.local, self.remote
            src_root, dst_root = local_path, remote_path

        logger.info(f"Syncing {source.name}:{src_root} -> {destination.name}:{dst_root} ({direction.value})")
        entries = source.list_dir(src_root)

        report = SyncReport()
        try:
            destination.makedirs(dst_root)
        except SyncError as e:
            logger.error(f"Failed to create destination root {dst_root}: {e}")
            report.errors += 1
            return report

        self._sync_entries(source, destination, src_root, dst_root, entries, report)
        logger.info(
            f"Finished {src_root} -> {dst_root}: transferred={report.transferred} "
            f"skipped={report.skipped} errors={report.errors}"
        )
        return report

    def _sync_dir(
        self, source: FileStore, destination: FileStore, src_dir: str, dst_dir: str, report: SyncReport
    ) -> None:
        try:
            entries = source.list_dir(src_dir)
        except SyncError as e:
            logger.error(f"Skipping directory {src_dir}: {e}")
            report.errors += 1
            return
        self._sync_entries(source, destination, src_dir, dst_dir, entries, report)

    def _sync_entries(
        self,
        source: FileStore,
        destination: FileStore,
        src_dir: str,
        dst_dir: str,
        entries: list[FileEntry],
        report: SyncReport,
    ) -> None:
        for entry in entries:
            src_path = source.join(src_dir, entry.name)
            dst_path = destination.join(dst_dir, entry.name)

            if entry.is_dir:
                try:
                    destination.makedirs(dst_path)
                except SyncError as e:
                    logger.error(f"Skipping directory {src_path}: {e}")
                    report.errors += 1
                    continue
                report.directories += 1
                self._sync_dir(source, destination, src_path, dst_path, report)
            elif entry.is_file:
                self._sync_file(source, destination, entry, src_path, dst_path, report)
            else:
                logger.warning(f"Skipping {src_path}: not a regular file or directory")
                report.skipped += 1

    def _sync_file(
        self,
        source: FileStore,
        destination: FileStore,
        entry: FileEntry,
        src_path: str,
        dst_path: str,
        report: SyncReport,
    ) -> None:
        try:
            current: FileEntry | None = destination.stat(dst_path)
        except EntryNotFoundError:
            current = None
        except SyncError as e:
            logger.warning(f"Skipping {src_path}: {e}")
            report.errors += 1
            return

        if current is not None and current.is_dir:
            logger.warning(f"Skipping {src_path}: destination {dst_path} is a directory")
            report.errors += 1
            return

        if decide(entry, current) is SyncDecision.SKIP:
            logger.debug(f"Up to date: {dst_path}")
            report.skipped += 1
            return

        try:
            self._transfer(source, destination, src_path, dst_path)
        except SyncError as e:
            logger.error(f"Skipping {src_path}: {e}")
            report.errors += 1
            return

        report.transferred += 1
        report.transferred_paths.append(dst_path)
        logger.info(f"Transferred {src_path} -> {dst_path}")

    @staticmethod
    def _transfer(source: FileStore, destination: FileStore, src_path: str, dst_path: str) -> None:
        """
        Stream the whole file, truncating any existing destination in place.

        A destination left partial by a failed copy is removed, so its fresh
        mtime cannot mask the source on the next run.
        """
        try:
            with source.open_read(src_path) as fin:
                fout = destination.open_write(dst_path)
                try:
                    with fout:
                        shutil.copyfileobj(fin, fout, CHUNK_SIZE)
                except Exception:
                    _discard_partial(destination, dst_path)
                    raise
        except DataSyncError:
            raise
        except Exception as e:
            raise TransferError(src_path, cause=e) from e


def _discard_partial(destination: FileStore, dst_path: str) -> None:
    try:
        destination.remove(dst_path)
    except SyncError as e:
        logger.warning(f"Could not remove partial file {dst_path}: {e}")
    else:
        logger.debug(f"Removed partial file {dst_path}")


def synchronize(
    session: FileStore,
    local_path: str,
    remote_path: str,
    direction: Direction | str,
    *,
    local: FileStore | None = None,
) -> SyncReport:
    """Synchronize ``local_path`` with ``remote_path`` on ``session`` in ``direction``."""
    return TreeSynchronizer(session, local).synchronize(local_path, remote_path, direction)

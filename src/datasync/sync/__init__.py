"""
Synchronization engine.

Tree reconciliation by modification time, date-range expansion and the
backfill runner built on both.
"""

from datasync.connections.base import FileEntry
from datasync.sync.types import Direction, SyncDecision, SyncReport, TaskDescriptor
from datasync.sync.daterange import expand_dates
from datasync.sync.tree import TreeSynchronizer, decide, synchronize
from datasync.sync.backfill import BackfillResult, run_backfill

__all__ = [
    "Direction",
    "FileEntry",
    "SyncDecision",
    "SyncReport",
    "TaskDescriptor",
    "TreeSynchronizer",
    "decide",
    "synchronize",
    "expand_dates",
    "BackfillResult",
    "run_backfill",
]

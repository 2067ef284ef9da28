"""
datasync - cron-scheduled SFTP directory mirroring.

Pulls remote trees down or pushes local trees up by modification time, one
independent schedule per task, with a date-range backfill mode.
"""

__version__ = "0.2.0"

from datasync.config import Config, load_config

# Exceptions
from datasync.exceptions import (
    ConfigurationError,
    ConnectionError_,
    DataSyncConnectionError,
    DataSyncError,
    DirectoryCreateError,
    EntryNotFoundError,
    InvalidDateError,
    InvalidDirectionError,
    ListError,
    StatError,
    SyncError,
    TransferError,
)
from datasync.service.scheduler import TaskScheduler
from datasync.sync import (
    BackfillResult,
    Direction,
    FileEntry,
    SyncDecision,
    SyncReport,
    TaskDescriptor,
    TreeSynchronizer,
    decide,
    expand_dates,
    run_backfill,
    synchronize,
)

# Logging utilities
from datasync.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Engine
    "TreeSynchronizer",
    "synchronize",
    "decide",
    "expand_dates",
    "run_backfill",
    "BackfillResult",
    "TaskScheduler",
    # Types
    "Direction",
    "FileEntry",
    "SyncDecision",
    "SyncReport",
    "TaskDescriptor",
    # Config
    "Config",
    "load_config",
    # Exceptions
    "DataSyncError",
    "ConfigurationError",
    "ConnectionError_",
    "DataSyncConnectionError",
    "InvalidDateError",
    "SyncError",
    "ListError",
    "StatError",
    "EntryNotFoundError",
    "TransferError",
    "DirectoryCreateError",
    "InvalidDirectionError",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]

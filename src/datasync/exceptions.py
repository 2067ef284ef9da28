"""
datasync exception hierarchy.

All domain-specific exceptions inherit from DataSyncError, so callers can catch
any engine failure with a single base class while still handling the
per-file and per-run cases separately.

Hierarchy::

    DataSyncError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── ConnectionError_          - SFTP session cannot be opened
    ├── InvalidDateError          - malformed backfill date
    └── SyncError                 - failures inside a synchronization run
        ├── ListError             - directory cannot be listed
        ├── StatError             - file cannot be stat'ed
        │   └── EntryNotFoundError
        ├── TransferError         - file content cannot be copied
        ├── DirectoryCreateError  - destination directory cannot be created
        └── InvalidDirectionError - direction is neither pull nor push
"""

from __future__ import annotations


class DataSyncError(Exception):
    """Base exception for all datasync errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(DataSyncError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Connections -------------------------------------------------------------


class ConnectionError_(DataSyncError):
    """Raised when a transport session cannot be established.

    Named with trailing underscore to avoid shadowing the builtin
    ``ConnectionError``; the public alias ``DataSyncConnectionError``
    is preferred for external use.
    """

    def __init__(self, message: str, *, host: str | None = None, port: int | None = None) -> None:
        super().__init__(message, details={"host": host, "port": port})
        self.host = host
        self.port = port


DataSyncConnectionError = ConnectionError_


# --- Dates -------------------------------------------------------------------


class InvalidDateError(DataSyncError, ValueError):
    """Raised when a backfill date is not a YYYY-MM-DD calendar date."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD", details={"value": value})
        self.value = value


# --- Synchronization ---------------------------------------------------------


class SyncError(DataSyncError):
    """Raised when a synchronization run fails."""


class _PathError(SyncError):
    def __init__(self, path: str, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(f"{message} {path}: {cause}" if cause else f"{message} {path}", details={"path": path})
        self.path = path
        if cause is not None:
            self.__cause__ = cause


class ListError(_PathError):
    """Raised when a directory cannot be listed."""

    def __init__(self, path: str, *, cause: BaseException | None = None) -> None:
        super().__init__(path, "Failed to list directory", cause=cause)


class StatError(_PathError):
    """Raised when a file cannot be stat'ed."""

    def __init__(self, path: str, *, cause: BaseException | None = None) -> None:
        super().__init__(path, "Failed to stat", cause=cause)


class EntryNotFoundError(StatError):
    """Raised by ``stat`` when the path does not exist."""


class TransferError(_PathError):
    """Raised when file content cannot be copied between the two sides."""

    def __init__(self, path: str, *, cause: BaseException | None = None) -> None:
        super().__init__(path, "Failed to transfer", cause=cause)


class DirectoryCreateError(_PathError):
    """Raised when a destination directory cannot be created."""

    def __init__(self, path: str, *, cause: BaseException | None = None) -> None:
        super().__init__(path, "Failed to create directory", cause=cause)


class InvalidDirectionError(SyncError, ValueError):
    """Raised when a direction is neither ``pull`` nor ``push``."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid direction: {value!r} (expected 'pull' or 'push')", details={"value": value})
        self.value = value

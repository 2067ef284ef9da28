"""
Type definitions for sync tasks, decisions and run results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from datasync.exceptions import InvalidDirectionError


class Direction(str, Enum):
    """Which side of a task is the source."""

    PULL = "pull"
    """Remote is the source, local is the destination"""

    PUSH = "push"
    """Local is the source, remote is the destination"""

    @classmethod
    def parse(cls, value: Direction | str) -> Direction:
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidDirectionError(value) from None


class SyncDecision(str, Enum):
    """Outcome of comparing one source file with its destination."""

    SKIP = "skip"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class TaskDescriptor:
    """
    Config for a single synchronization task.

    Built once by the config loader and never mutated.
    """

    name: str
    host: str
    local_root: str
    remote_root: str
    cron: str
    direction: Direction
    port: int = 22
    user: str | None = None
    password: str | None = field(default=None, repr=False)
    timezone: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = field(default=None, repr=False)
    known_hosts_path: str | None = None
    connect_timeout_s: float = 15.0

    @property
    def endpoint(self) -> str:
        user = f"{self.user}@" if self.user else ""
        return f"{user}{self.host}:{self.port}"


@dataclass
class SyncReport:
    """Counters for one synchronization run."""

    transferred: int = 0
    skipped: int = 0
    errors: int = 0
    directories: int = 0
    transferred_paths: list[str] = field(default_factory=list)

    def merge(self, other: SyncReport) -> None:
        self.transferred += other.transferred
        self.skipped += other.skipped
        self.errors += other.errors
        self.directories += other.directories
        self.transferred_paths.extend(other.transferred_paths)

    def as_dict(self) -> dict[str, int]:
        return {
            "transferred": self.transferred,
            "skipped": self.skipped,
            "errors": self.errors,
            "directories": self.directories,
        }

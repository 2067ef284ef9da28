"""
File store capability shared by the remote (SFTP) and local sides.
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from typing import BinaryIO, Protocol


@dataclass(frozen=True)
class FileEntry:
    """
    One listing or stat record, from either side.

    ``mode`` carries the file type bits (``stat.S_IFDIR`` etc.) exactly as
    ``os.stat`` and paramiko's ``SFTPAttributes.st_mode`` report them.
    """

    name: str
    mode: int
    mtime: float
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_file(self) -> bool:
        return stat.S_ISREG(self.mode)


class FileStore(Protocol):
    """
    File store protocol.

    The tree synchronizer is written once against this interface; which
    implementation plays source and which plays destination is decided by the
    task direction. Implementations raise the ``datasync.exceptions`` errors
    (``ListError``, ``StatError``/``EntryNotFoundError``, ``TransferError``,
    ``DirectoryCreateError``) instead of their backend's native exceptions,
    and are context managers that release the session on exit.
    """

    name: str

    def join(self, *parts: str) -> str: ...

    def list_dir(self, path: str) -> list[FileEntry]: ...

    def stat(self, path: str) -> FileEntry: ...

    def open_read(self, path: str) -> BinaryIO: ...

    def open_write(self, path: str) -> BinaryIO: ...

    def remove(self, path: str) -> None: ...

    def makedirs(self, path: str) -> None: ...

    def close(self) -> None: ...

    def __enter__(self) -> FileStore: ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

"""
Local filesystem side of a sync task.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from datasync.connections.base import FileEntry
from datasync.exceptions import DirectoryCreateError, EntryNotFoundError, ListError, StatError, TransferError
from datasync.utils.logging import get_logger

logger = get_logger("datasync.connections.local")


class LocalFileStore:
    """
    Host filesystem wrapper exposing the ``FileStore`` capability.

    Paths are used as given (absolute or relative to the working directory).
    Symlinks are followed, so a link to a directory is synchronized as a
    directory.
    """

    def __init__(self, name: str = "local"):
        self.name = name

    def join(self, *parts: str) -> str:
        return os.path.join(*parts)

    def list_dir(self, path: str) -> list[FileEntry]:
        try:
            with os.scandir(path) as it:
                dir_entries = list(it)
        except OSError as e:
            raise ListError(path, cause=e) from e

        entries: list[FileEntry] = []
        for de in dir_entries:
            try:
                st = de.stat()
            except OSError as e:
                # Broken symlinks and entries removed mid-listing
                logger.warning(f"Skipping unreadable local entry {de.path}: {e}")
                continue
            entries.append(FileEntry(name=de.name, mode=st.st_mode, mtime=st.st_mtime, size=st.st_size))
        entries.sort(key=lambda e: e.name)
        return entries

    def stat(self, path: str) -> FileEntry:
        try:
            st = os.stat(path)
        except FileNotFoundError as e:
            raise EntryNotFoundError(path, cause=e) from e
        except OSError as e:
            raise StatError(path, cause=e) from e
        return FileEntry(name=os.path.basename(path), mode=st.st_mode, mtime=st.st_mtime, size=st.st_size)

    def open_read(self, path: str) -> BinaryIO:
        try:
            return open(path, "rb")
        except OSError as e:
            raise TransferError(path, cause=e) from e

    def open_write(self, path: str) -> BinaryIO:
        try:
            return open(path, "wb")
        except OSError as e:
            raise TransferError(path, cause=e) from e

    def remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise TransferError(path, cause=e) from e

    def makedirs(self, path: str) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(path, cause=e) from e

    def close(self) -> None:
        """Nothing to release for the host filesystem."""

    def __enter__(self) -> LocalFileStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"

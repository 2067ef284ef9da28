"""
SFTP side of a sync task.

Wraps a paramiko ``Transport`` + ``SFTPClient`` pair and exposes the
``FileStore`` capability used by the tree synchronizer.
"""

from __future__ import annotations

import errno
import posixpath
import socket
import stat
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, BinaryIO

import paramiko

from datasync.connections.base import FileEntry
from datasync.exceptions import (
    ConnectionError_,
    DirectoryCreateError,
    EntryNotFoundError,
    ListError,
    StatError,
    TransferError,
)
from datasync.utils.logging import get_logger

if TYPE_CHECKING:
    from datasync.sync.types import TaskDescriptor

logger = get_logger("datasync.connections.sftp")

# paramiko encodes and decodes paths as strict UTF-8
_SFTP_ERRORS = (OSError, paramiko.SSHException, UnicodeError)


@dataclass(frozen=True)
class SFTPConfig:
    host: str
    port: int = 22
    username: str | None = None
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    known_hosts_path: str | None = None
    # Applies to the TCP connect, the SSH banner and authentication
    connect_timeout_s: float = 15.0

    @classmethod
    def from_task(cls, task: TaskDescriptor) -> SFTPConfig:
        return cls(
            host=task.host,
            port=task.port,
            username=task.user,
            password=task.password,
            private_key_path=task.private_key_path,
            private_key_passphrase=task.private_key_passphrase,
            known_hosts_path=task.known_hosts_path,
            connect_timeout_s=task.connect_timeout_s,
        )


def _is_not_found(e: BaseException) -> bool:
    return isinstance(e, FileNotFoundError) or getattr(e, "errno", None) == errno.ENOENT


def _entry_from_attr(name: str, attr: paramiko.SFTPAttributes) -> FileEntry:
    # Servers may omit attributes; a missing mode makes the entry neither file nor directory
    return FileEntry(
        name=name,
        mode=int(getattr(attr, "st_mode", 0) or 0),
        mtime=float(getattr(attr, "st_mtime", 0) or 0),
        size=int(getattr(attr, "st_size", 0) or 0),
    )


class SFTPConnection:
    """
    One SFTP session for one run.

    Sessions are opened per run and closed unconditionally when the run ends;
    use the instance as a context manager. ``connect()`` raises
    ``ConnectionError_`` for any network, handshake, host key or
    authentication failure.
    """

    def __init__(self, name: str, config: SFTPConfig):
        self.name = name
        self.config = config
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    @classmethod
    def from_task(cls, task: TaskDescriptor) -> SFTPConnection:
        return cls(task.name, SFTPConfig.from_task(task))

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self) -> paramiko.SFTPClient:
        """Connect (lazy) and return a live `paramiko.SFTPClient`."""
        if self._client is not None:
            return self._client

        cfg = self.config
        if not cfg.host:
            raise ConnectionError_(f"SFTP connection '{self.name}' missing host", host=cfg.host, port=cfg.port)

        try:
            sock = socket.create_connection((cfg.host, cfg.port), timeout=cfg.connect_timeout_s)
            transport = paramiko.Transport(sock)
            self._transport = transport
            transport.banner_timeout = cfg.connect_timeout_s
            transport.auth_timeout = cfg.connect_timeout_s
            transport.start_client(timeout=cfg.connect_timeout_s)
            self._verify_host_key(transport)

            pkey = self._load_private_key()
            if pkey is not None:
                transport.auth_publickey(cfg.username or "", pkey)
            else:
                transport.auth_password(cfg.username or "", cfg.password or "")

            self._client = paramiko.SFTPClient.from_transport(transport)
        except ConnectionError_:
            self.close()
            raise
        except (paramiko.SSHException, OSError) as e:
            self.close()
            raise ConnectionError_(
                f"Cannot open SFTP session to {cfg.host}:{cfg.port}: {e}", host=cfg.host, port=cfg.port
            ) from e

        if self._client is None:
            self.close()
            raise ConnectionError_(f"SFTP subsystem unavailable on {cfg.host}:{cfg.port}", host=cfg.host, port=cfg.port)
        logger.debug(f"Opened SFTP session {self.name} to {cfg.host}:{cfg.port}")
        return self._client

    def _load_private_key(self) -> paramiko.PKey | None:
        cfg = self.config
        if not cfg.private_key_path:
            return None
        # Try common key types; paramiko raises if incompatible.
        try:
            return paramiko.RSAKey.from_private_key_file(cfg.private_key_path, password=cfg.private_key_passphrase)
        except paramiko.SSHException:
            return paramiko.Ed25519Key.from_private_key_file(cfg.private_key_path, password=cfg.private_key_passphrase)

    def _verify_host_key(self, transport: paramiko.Transport) -> None:
        cfg = self.config
        if not cfg.known_hosts_path:
            return
        host_keys = paramiko.HostKeys(cfg.known_hosts_path)
        lookup = cfg.host if cfg.port == 22 else f"[{cfg.host}]:{cfg.port}"
        server_key = transport.get_remote_server_key()
        if not host_keys.check(lookup, server_key):
            raise ConnectionError_(
                f"Host key for {lookup} ({server_key.get_name()}) not found in {cfg.known_hosts_path}",
                host=cfg.host,
                port=cfg.port,
            )

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def __enter__(self) -> SFTPConnection:
        self.connect()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> None:
        self.close()

    # --- FileStore -----------------------------------------------------------

    def join(self, *parts: str) -> str:
        return posixpath.join(*parts)

    def list_dir(self, path: str) -> list[FileEntry]:
        try:
            attrs = self.connect().listdir_attr(path)
        except _SFTP_ERRORS as e:
            raise ListError(path, cause=e) from e
        return sorted((_entry_from_attr(a.filename, a) for a in attrs), key=lambda e: e.name)

    def stat(self, path: str) -> FileEntry:
        try:
            attr = self.connect().stat(path)
        except _SFTP_ERRORS as e:
            if _is_not_found(e):
                raise EntryNotFoundError(path, cause=e) from e
            raise StatError(path, cause=e) from e
        return _entry_from_attr(posixpath.basename(path), attr)

    def open_read(self, path: str) -> BinaryIO:
        try:
            f = self.connect().open(path, "rb")
            f.prefetch()
        except _SFTP_ERRORS as e:
            raise TransferError(path, cause=e) from e
        return f

    def open_write(self, path: str) -> BinaryIO:
        try:
            f = self.connect().open(path, "wb")
            f.set_pipelined(True)
        except _SFTP_ERRORS as e:
            raise TransferError(path, cause=e) from e
        return f

    def remove(self, path: str) -> None:
        """Delete a file; a path that is already gone is not an error."""
        try:
            self.connect().remove(path)
        except _SFTP_ERRORS as e:
            if _is_not_found(e):
                return
            raise TransferError(path, cause=e) from e

    def makedirs(self, path: str) -> None:
        """Create ``path`` and any missing parents, like ``mkdir -p``."""
        client = self.connect()
        current = "/" if path.startswith("/") else ""
        for part in (p for p in path.split("/") if p):
            current = posixpath.join(current, part) if current else part
            try:
                attr = client.stat(current)
            except _SFTP_ERRORS as e:
                if not _is_not_found(e):
                    raise DirectoryCreateError(current, cause=e) from e
                try:
                    client.mkdir(current)
                except _SFTP_ERRORS as mkdir_err:
                    raise DirectoryCreateError(current, cause=mkdir_err) from mkdir_err
                continue
            if not stat.S_ISDIR(attr.st_mode or 0):
                raise DirectoryCreateError(current, cause=NotADirectoryError(errno.ENOTDIR, "not a directory"))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', host='{self.config.host}', port={self.config.port})"

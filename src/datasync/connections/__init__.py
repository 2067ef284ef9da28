"""
File stores for both sides of a sync task.

The remote side is an SFTP session (paramiko); the local side is the host
filesystem. Both implement the same ``FileStore`` capability.
"""

from datasync.connections.base import FileStore
from datasync.connections.local import LocalFileStore
from datasync.connections.sftp import SFTPConfig, SFTPConnection

__all__ = [
    "FileStore",
    "LocalFileStore",
    "SFTPConfig",
    "SFTPConnection",
]

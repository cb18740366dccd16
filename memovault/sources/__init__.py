"""Filesystem adapters the storage engine runs on."""

from .filesystem import (
    DirEntry,
    FileSystemAdapter,
    LocalFileSystemAdapter,
    NullFileSystemAdapter,
    get_filesystem_adapter,
)
from .webdav import WebDAVFileSystemAdapter

__all__ = [
    "DirEntry",
    "FileSystemAdapter",
    "LocalFileSystemAdapter",
    "NullFileSystemAdapter",
    "WebDAVFileSystemAdapter",
    "get_filesystem_adapter",
]

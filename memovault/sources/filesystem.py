"""Filesystem adapters for the note tree.

Every host the application runs on exposes file access differently. The
storage engine only ever talks to a FileSystemAdapter; the concrete adapter is
picked once at startup by get_filesystem_adapter() and injected everywhere
else. Adapters never retry: every failure is raised to the caller as a
StorageNotFoundError or StorageIOError.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
import aiofiles.os

from memovault.utils.errors import StorageIOError, StorageNotFoundError

if TYPE_CHECKING:
    from memovault.core.config import StorageConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DirEntry:
    """One child of a listed directory."""

    name: str
    path: str
    is_dir: bool


class FileSystemAdapter(ABC):
    """
    Capability interface over a host filesystem.

    Paths are plain strings in the adapter's own convention; callers compose
    them with join/dirname/basename and never by string concatenation.
    """

    platform = "base"
    # False for adapters that have no real storage behind them.
    available = True

    async def close(self) -> None:
        """Release any open connections."""

    @abstractmethod
    def default_root(self) -> str | None:
        """Root used when no storage root is configured."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        """Create a directory and any missing parents."""

    @abstractmethod
    async def read_dir(self, path: str) -> list[DirEntry]:
        """
        List the immediate children of a directory, sorted by name.

        Raises:
            StorageNotFoundError: If the directory does not exist
            StorageIOError: If listing fails
        """

    @abstractmethod
    async def read_file(self, path: str) -> str:
        pass

    @abstractmethod
    async def read_binary_file(self, path: str) -> bytes:
        pass

    @abstractmethod
    async def write_text_file(self, path: str, content: str) -> None:
        """Write a whole file, replacing any previous content."""

    @abstractmethod
    async def write_binary_file(self, path: str, data: bytes) -> None:
        pass

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> None:
        """Move a file or directory. Used for every relocation."""

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Remove a file or a directory tree. Missing paths are ignored."""

    @abstractmethod
    def join(self, *parts: str) -> str:
        pass

    @abstractmethod
    def dirname(self, path: str) -> str:
        pass

    @abstractmethod
    def basename(self, path: str) -> str:
        pass


class NullFileSystemAdapter(FileSystemAdapter):
    """Adapter for hosts without filesystem access; the app then runs in memory only."""

    platform = "null"
    available = False

    def default_root(self) -> str | None:
        return None

    async def exists(self, path: str) -> bool:
        return False

    async def mkdir(self, path: str) -> None:
        pass

    async def read_dir(self, path: str) -> list[DirEntry]:
        return []

    async def read_file(self, path: str) -> str:
        return ""

    async def read_binary_file(self, path: str) -> bytes:
        return b""

    async def write_text_file(self, path: str, content: str) -> None:
        pass

    async def write_binary_file(self, path: str, data: bytes) -> None:
        pass

    async def rename(self, old_path: str, new_path: str) -> None:
        pass

    async def remove(self, path: str) -> None:
        pass

    def join(self, *parts: str) -> str:
        return posixpath.join(*(part.replace("\\", "/") for part in parts))

    def dirname(self, path: str) -> str:
        return posixpath.dirname(path.replace("\\", "/").rstrip("/"))

    def basename(self, path: str) -> str:
        return posixpath.basename(path.replace("\\", "/").rstrip("/"))


@contextmanager
def _translate_errors(operation: str, path: str) -> Iterator[None]:
    try:
        yield
    except FileNotFoundError as e:
        raise StorageNotFoundError(path) from e
    except OSError as e:
        raise StorageIOError(operation, path, e) from e


class LocalFileSystemAdapter(FileSystemAdapter):
    """Adapter for the local disk, backed by aiofiles."""

    platform = "local"

    def default_root(self) -> str | None:
        return str(Path.home() / "Documents" / "MemoVault")

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(path)

    async def mkdir(self, path: str) -> None:
        with _translate_errors("mkdir", path):
            await aiofiles.os.makedirs(path, exist_ok=True)

    async def read_dir(self, path: str) -> list[DirEntry]:
        with _translate_errors("read_dir", path):
            names = await aiofiles.os.listdir(path)

        entries = []
        for name in sorted(names):
            full_path = os.path.join(path, name)
            # A child that vanishes or cannot be stat'ed is reported as a plain file.
            is_dir = await aiofiles.os.path.isdir(full_path)
            entries.append(DirEntry(name=name, path=full_path, is_dir=is_dir))
        return entries

    async def read_file(self, path: str) -> str:
        with _translate_errors("read_file", path):
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                try:
                    return await f.read()
                except UnicodeDecodeError as e:
                    raise StorageIOError("read_file", path, e) from e

    async def read_binary_file(self, path: str) -> bytes:
        with _translate_errors("read_binary_file", path):
            async with aiofiles.open(path, "rb") as f:
                return await f.read()

    async def write_text_file(self, path: str, content: str) -> None:
        with _translate_errors("write_text_file", path):
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(content)

    async def write_binary_file(self, path: str, data: bytes) -> None:
        with _translate_errors("write_binary_file", path):
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)

    async def rename(self, old_path: str, new_path: str) -> None:
        with _translate_errors("rename", old_path):
            await aiofiles.os.rename(old_path, new_path)
        logger.debug("Renamed %s -> %s", old_path, new_path)

    async def remove(self, path: str) -> None:
        with _translate_errors("remove", path):
            if await aiofiles.os.path.isdir(path):
                await asyncio.to_thread(shutil.rmtree, path)
            elif await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
        logger.debug("Removed %s", path)

    def join(self, *parts: str) -> str:
        return os.path.normpath(os.path.join(*parts))

    def dirname(self, path: str) -> str:
        return os.path.dirname(os.path.normpath(path))

    def basename(self, path: str) -> str:
        return os.path.basename(os.path.normpath(path))


def _home_is_writable() -> bool:
    home = Path.home()
    return home.is_dir() and os.access(home, os.W_OK)


def get_filesystem_adapter(config: "StorageConfig") -> FileSystemAdapter:
    """
    Pick the filesystem adapter for this process.

    An explicit backend in the configuration wins. In "auto" mode a configured
    WebDAV URL selects the WebDAV adapter, a writable home directory selects
    the local adapter, and anything else falls back to the null adapter.
    """
    backend = config.backend

    if backend == "null":
        adapter: FileSystemAdapter = NullFileSystemAdapter()
    elif backend == "webdav" or (backend == "auto" and config.webdav_url):
        if not config.webdav_url:
            raise ValueError("WebDAV backend selected but storage.webdav_url is not configured")
        from memovault.sources.webdav import WebDAVFileSystemAdapter

        adapter = WebDAVFileSystemAdapter(
            base_url=config.webdav_url,
            username=config.webdav_username,
            password=config.webdav_password,
            root=config.webdav_root,
            ssl_verify=config.webdav_ssl_verify,
        )
    elif backend == "local" or _home_is_writable():
        adapter = LocalFileSystemAdapter()
    else:
        logger.warning("No writable filesystem detected; notes will be kept in the database only")
        adapter = NullFileSystemAdapter()

    logger.info(f"Storage platform detected: {adapter.platform}")
    return adapter

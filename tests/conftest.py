"""Shared fixtures for the storage engine tests."""

import json
from pathlib import Path

import pytest

from memovault.core.config import AppConfig
from memovault.core.paths import PathResolver
from memovault.core.sync import StorageSyncEngine
from memovault.core.writer import NoteFileWriter
from memovault.sources.filesystem import LocalFileSystemAdapter
from memovault.utils.db import RecordStore
from memovault.utils.errors import StorageIOError


class FlakyAdapter(LocalFileSystemAdapter):
    """Local adapter that fails on demand, keyed by path basename."""

    def __init__(self):
        self.fail_rename: set[str] = set()
        self.fail_read_dir: set[str] = set()
        self.fail_write: set[str] = set()

    async def rename(self, old_path: str, new_path: str) -> None:
        if self.basename(old_path) in self.fail_rename:
            raise StorageIOError("rename", old_path, PermissionError("denied"))
        await super().rename(old_path, new_path)

    async def read_dir(self, path: str):
        if self.basename(path) in self.fail_read_dir:
            raise StorageIOError("read_dir", path, PermissionError("denied"))
        return await super().read_dir(path)

    async def write_text_file(self, path: str, content: str) -> None:
        if self.basename(path) in self.fail_write:
            raise StorageIOError("write_text_file", path, PermissionError("denied"))
        await super().write_text_file(path, content)


def make_note_dir(
    root: Path,
    category: str,
    dir_name: str,
    snapshot: dict | None = None,
    text: str | None = None,
) -> Path:
    """Create ``root/category/dir_name`` with optional data.json and content.txt."""
    note_dir = root / category / dir_name
    note_dir.mkdir(parents=True, exist_ok=True)
    if snapshot is not None:
        (note_dir / "data.json").write_text(json.dumps(snapshot), encoding="utf-8")
    if text is not None:
        (note_dir / "content.txt").write_text(text, encoding="utf-8")
    return note_dir


def snapshot(note_id: str, title: str, updated_at: int = 1000, **overrides) -> dict:
    data = {
        "id": note_id,
        "title": title,
        "content": '{"ops":[{"insert":"hello\\n"}]}',
        "updatedAt": updated_at,
        "folderId": None,
        "tags": [],
        "isDeleted": False,
        "isPinned": False,
    }
    data.update(overrides)
    return data


def read_snapshot(note_dir: Path) -> dict:
    return json.loads((note_dir / "data.json").read_text(encoding="utf-8"))


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "notes"
    path.mkdir()
    return path


@pytest.fixture
async def store(tmp_path: Path) -> RecordStore:
    record_store = RecordStore(tmp_path / "data" / "records.db")
    await record_store.initialize()
    return record_store


@pytest.fixture
def adapter() -> FlakyAdapter:
    return FlakyAdapter()


@pytest.fixture
def resolver(adapter, root) -> PathResolver:
    return PathResolver(adapter, str(root))


@pytest.fixture
def writer(adapter, resolver) -> NoteFileWriter:
    return NoteFileWriter(adapter, resolver)


@pytest.fixture
def engine(adapter, store, writer, root) -> StorageSyncEngine:
    return StorageSyncEngine(adapter, store, writer, str(root))


@pytest.fixture
def app_config(tmp_path: Path, root: Path) -> AppConfig:
    config = AppConfig()
    config.general.data_dir = tmp_path / "data"
    config.storage.root = str(root)
    config.storage.backend = "local"
    return config

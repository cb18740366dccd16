"""Tests for the local and null filesystem adapters and backend selection."""

import pytest

from memovault.core.config import StorageConfig
from memovault.sources import filesystem
from memovault.sources.filesystem import (
    LocalFileSystemAdapter,
    NullFileSystemAdapter,
    get_filesystem_adapter,
)
from memovault.sources.webdav import WebDAVFileSystemAdapter
from memovault.utils.errors import StorageIOError, StorageNotFoundError


class TestLocalAdapter:
    @pytest.fixture
    def local(self):
        return LocalFileSystemAdapter()

    async def test_read_dir_is_sorted_and_typed(self, local, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "a.txt").write_text("x")
        (tmp_path / "C").mkdir()

        entries = await local.read_dir(str(tmp_path))

        assert [entry.name for entry in entries] == ["C", "a.txt", "b"]
        assert [entry.is_dir for entry in entries] == [True, False, True]
        assert entries[0].path == str(tmp_path / "C")

    async def test_read_dir_missing_raises_not_found(self, local, tmp_path):
        with pytest.raises(StorageNotFoundError):
            await local.read_dir(str(tmp_path / "missing"))

    async def test_text_and_binary_roundtrip(self, local, tmp_path):
        text_path = str(tmp_path / "note.txt")
        blob_path = str(tmp_path / "image.png")

        await local.write_text_file(text_path, "héllo")
        await local.write_binary_file(blob_path, b"\x89PNG")

        assert await local.read_file(text_path) == "héllo"
        assert await local.read_binary_file(blob_path) == b"\x89PNG"

    async def test_read_missing_file_raises_not_found(self, local, tmp_path):
        with pytest.raises(StorageNotFoundError):
            await local.read_file(str(tmp_path / "nope.txt"))

    async def test_undecodable_text_raises_io_error(self, local, tmp_path):
        (tmp_path / "latin.txt").write_bytes("café".encode("latin-1"))

        with pytest.raises(StorageIOError):
            await local.read_file(str(tmp_path / "latin.txt"))

    async def test_write_into_missing_directory_raises(self, local, tmp_path):
        with pytest.raises(StorageNotFoundError):
            await local.write_text_file(str(tmp_path / "no" / "file.txt"), "x")

    async def test_mkdir_creates_parents(self, local, tmp_path):
        target = tmp_path / "a" / "b" / "c"

        await local.mkdir(str(target))
        await local.mkdir(str(target))

        assert target.is_dir()

    async def test_rename_directory(self, local, tmp_path):
        (tmp_path / "old").mkdir()
        (tmp_path / "old" / "f.txt").write_text("x")

        await local.rename(str(tmp_path / "old"), str(tmp_path / "new"))

        assert (tmp_path / "new" / "f.txt").read_text() == "x"
        assert not await local.exists(str(tmp_path / "old"))

    async def test_rename_missing_raises(self, local, tmp_path):
        with pytest.raises(StorageNotFoundError):
            await local.rename(str(tmp_path / "ghost"), str(tmp_path / "other"))

    async def test_rename_onto_non_empty_directory_raises_io_error(self, local, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "keep").write_text("x")

        with pytest.raises(StorageIOError):
            await local.rename(str(tmp_path / "a"), str(tmp_path / "b"))

    async def test_remove_tree_file_and_missing(self, local, tmp_path):
        (tmp_path / "tree" / "nested").mkdir(parents=True)
        (tmp_path / "file.txt").write_text("x")

        await local.remove(str(tmp_path / "tree"))
        await local.remove(str(tmp_path / "file.txt"))
        await local.remove(str(tmp_path / "never-existed"))

        assert list(tmp_path.iterdir()) == []

    def test_path_helpers(self, local, tmp_path):
        joined = local.join(str(tmp_path), "Work", "Plan_1")

        assert local.basename(joined) == "Plan_1"
        assert local.dirname(joined) == str(tmp_path / "Work")
        assert local.basename(joined + "/") == "Plan_1"


class TestNullAdapter:
    async def test_reports_nothing(self):
        null = NullFileSystemAdapter()

        assert null.available is False
        assert null.default_root() is None
        assert await null.exists("/anything") is False
        assert await null.read_dir("/anything") == []
        await null.write_text_file("/a.txt", "ignored")
        assert await null.read_file("/a.txt") == ""

    def test_path_helpers_normalize_backslashes(self):
        null = NullFileSystemAdapter()

        assert null.join("C:\\notes", "Work") == "C:/notes/Work"
        assert null.dirname("/root/Work/Plan_1/") == "/root/Work"
        assert null.basename("\\root\\Work\\Plan_1") == "Plan_1"


class TestBackendSelection:
    def test_forced_null(self):
        assert isinstance(get_filesystem_adapter(StorageConfig(backend="null")), NullFileSystemAdapter)

    def test_forced_local(self):
        assert isinstance(get_filesystem_adapter(StorageConfig(backend="local")), LocalFileSystemAdapter)

    async def test_webdav_url_selects_webdav_in_auto_mode(self):
        adapter = get_filesystem_adapter(StorageConfig(backend="auto", webdav_url="https://dav.example.com/files"))
        try:
            assert isinstance(adapter, WebDAVFileSystemAdapter)
            assert adapter.default_root() == "/MemoVault"
        finally:
            await adapter.close()

    def test_forced_webdav_without_url_fails(self):
        with pytest.raises(ValueError):
            get_filesystem_adapter(StorageConfig(backend="webdav"))

    def test_auto_falls_back_to_null_without_writable_home(self, monkeypatch):
        monkeypatch.setattr(filesystem, "_home_is_writable", lambda: False)

        assert isinstance(get_filesystem_adapter(StorageConfig(backend="auto")), NullFileSystemAdapter)

    def test_auto_uses_local_with_writable_home(self, monkeypatch):
        monkeypatch.setattr(filesystem, "_home_is_writable", lambda: True)

        assert isinstance(get_filesystem_adapter(StorageConfig(backend="auto")), LocalFileSystemAdapter)

"""Tests for configuration loading, validation and persistence."""

import pytest
from pydantic import ValidationError

from memovault.core.config import AppConfig, StorageConfig, load_config


def test_defaults():
    config = AppConfig()

    assert config.storage.backend == "auto"
    assert config.storage.metadata_file_name == "data.json"
    assert config.storage.text_file_name == "content.txt"
    assert config.storage.webdav_root == "/MemoVault"
    assert config.general.log_level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MEMOVAULT_STORAGE__BACKEND", "NULL")
    monkeypatch.setenv("MEMOVAULT_GENERAL__DATA_DIR", str(tmp_path))

    config = AppConfig()

    assert config.storage.backend == "null"
    assert config.general.data_dir == tmp_path.resolve()
    assert config.records_db_path == tmp_path.resolve() / "records.db"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"backend": "ftp"},
        {"webdav_url": "dav.example.com"},
        {"metadata_file_name": "../data.json"},
        {"text_file_name": ".hidden"},
    ],
)
def test_invalid_storage_settings(kwargs):
    with pytest.raises(ValidationError):
        StorageConfig(**kwargs)


def test_save_and_load_roundtrip(tmp_path):
    config = AppConfig()
    config.general.data_dir = tmp_path
    config.general.log_overrides = {"sync": "DEBUG"}
    config.storage.root = str(tmp_path / "notes")
    config.storage.webdav_url = "https://dav.example.com/files"
    path = tmp_path / "config.toml"

    config.save_to_file(path)
    loaded = load_config(path)

    assert loaded.storage.root == str(tmp_path / "notes")
    assert loaded.storage.webdav_url == "https://dav.example.com/files"
    assert loaded.general.log_overrides == {"sync": "DEBUG"}
    assert loaded.general.config_file == path
    assert "config_file" not in path.read_text()


def test_missing_file_yields_defaults(tmp_path):
    config = AppConfig.load_from_file(tmp_path / "absent.toml")

    assert config.storage.backend == "auto"

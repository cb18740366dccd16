"""Tests for the memovault command-line interface."""

import pytest
from typer.testing import CliRunner

from memovault.cli.main import app
from memovault.utils import settings_db
from memovault.utils.settings_db import SettingsDB, get_storage_root_override

from .conftest import make_note_dir, snapshot

runner = CliRunner()


@pytest.fixture
def settings(tmp_path, monkeypatch) -> SettingsDB:
    db = SettingsDB(tmp_path / "settings.db")
    monkeypatch.setattr(settings_db, "_settings_db", db)
    return db


@pytest.fixture
def config_path(app_config, settings, tmp_path):
    path = tmp_path / "config.toml"
    app_config.save_to_file(path)
    return path


def invoke(config_path, *args):
    return runner.invoke(app, ["--config", str(config_path), *args])


def test_version(config_path):
    result = invoke(config_path, "version")

    assert result.exit_code == 0
    assert "Version" in result.output


def test_config_show(config_path):
    result = invoke(config_path, "config", "--show")

    assert result.exit_code == 0
    assert "data.json" in result.output


def test_sync_then_list(config_path, root):
    make_note_dir(root, "Work", "Plan_5", snapshot("5", "Plan"))
    make_note_dir(root, "Trash", "Old_6", snapshot("6", "Old"))

    result = invoke(config_path, "sync")
    assert result.exit_code == 0, result.output
    assert "Sync Summary" in result.output

    listed = invoke(config_path, "notes", "list")
    assert listed.exit_code == 0
    assert "Plan" in listed.output
    assert "Old" not in listed.output

    trashed = invoke(config_path, "notes", "list", "--trash")
    assert "Old" in trashed.output

    folders = invoke(config_path, "folders", "list")
    assert "Work" in folders.output


def test_notes_find(config_path, root):
    make_note_dir(root, "Work", "Plan_5", snapshot("5", "Plan"))

    found = invoke(config_path, "notes", "find", "5")
    missing = invoke(config_path, "notes", "find", "404")

    assert found.exit_code == 0
    assert "Plan_5" in found.output.replace("\n", "")
    assert missing.exit_code == 1


def test_set_root_stores_override(config_path, settings, tmp_path):
    target = str(tmp_path / "elsewhere")

    result = invoke(config_path, "set-root", target)

    assert result.exit_code == 0
    assert get_storage_root_override(settings) == target


def test_reset_clears_database(config_path, root):
    make_note_dir(root, "Uncategorized", "Todo_1", snapshot("1", "Todo"))
    invoke(config_path, "sync")

    result = invoke(config_path, "reset", "--yes")
    listed = invoke(config_path, "notes", "list")

    assert result.exit_code == 0
    assert "Total: 0 notes" in listed.output

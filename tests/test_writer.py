"""Tests for mirroring notes into their directories."""

import json

from memovault.core.models import Note
from memovault.core.writer import NoteFileWriter, render_snapshot
from memovault.sources.filesystem import NullFileSystemAdapter

from .conftest import make_note_dir, read_snapshot


async def test_writes_text_and_snapshot(writer, root):
    note_dir = make_note_dir(root, "Uncategorized", "Todo_1")
    note = Note(id="1", title="Todo", updated_at=5, tags=["a"])

    assert await writer.write(note, "buy milk") is True

    assert (note_dir / "content.txt").read_text(encoding="utf-8") == "buy milk"
    assert read_snapshot(note_dir) == note.to_snapshot()


async def test_text_failure_does_not_block_snapshot(writer, adapter, root):
    note_dir = make_note_dir(root, "Uncategorized", "Todo_1")
    adapter.fail_write.add("content.txt")

    assert await writer.write(Note(id="1", title="Todo"), "text") is False

    assert not (note_dir / "content.txt").exists()
    assert read_snapshot(note_dir)["id"] == "1"


async def test_snapshot_failure_does_not_block_text(writer, adapter, root):
    note_dir = make_note_dir(root, "Uncategorized", "Todo_1")
    adapter.fail_write.add("data.json")

    assert await writer.write(Note(id="1", title="Todo"), "text") is False

    assert (note_dir / "content.txt").read_text(encoding="utf-8") == "text"
    assert not (note_dir / "data.json").exists()


async def test_note_without_directory_is_skipped(writer, root):
    assert await writer.write(Note(id="404", title="Ghost"), "text") is False
    assert list(root.iterdir()) == []


async def test_null_adapter_writes_nothing(resolver):
    writer = NoteFileWriter(NullFileSystemAdapter(), resolver)

    assert await writer.write(Note(id="1", title="T"), "text") is False


def test_render_snapshot_is_indented_json():
    rendered = render_snapshot(Note(id="1", title="Café"))

    assert rendered.startswith("{\n  ")
    assert "Café" in rendered
    assert json.loads(rendered)["title"] == "Café"

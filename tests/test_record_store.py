"""Tests for the SQLite-backed record store."""

import pytest

from memovault.utils.db import RecordStore


async def test_put_and_get(store):
    await store.put("notes", {"id": "1", "title": "A"})

    assert await store.get("notes", "1") == {"id": "1", "title": "A"}
    assert await store.get("notes", "2") is None
    assert await store.get("folders", "1") is None


async def test_records_survive_reopen(store, tmp_path):
    await store.put("folders", {"id": "F1", "name": "Work", "isDeleted": False})
    await store.put("notes", {"id": "1", "title": "A"})

    reopened = RecordStore(tmp_path / "data" / "records.db")
    await reopened.initialize()

    assert await reopened.get_all("folders") == [{"id": "F1", "name": "Work", "isDeleted": False}]
    assert await reopened.get("notes", "1") == {"id": "1", "title": "A"}


async def test_get_all_returns_copies(store):
    await store.put("notes", {"id": "1", "title": "A"})

    (record,) = await store.get_all("notes")
    record["title"] = "changed"

    assert (await store.get("notes", "1"))["title"] == "A"


async def test_put_replaces_whole_record(store):
    await store.put("notes", {"id": "1", "title": "A", "tags": ["x"]})
    await store.put("notes", {"id": "1", "title": "B"})

    assert await store.get("notes", "1") == {"id": "1", "title": "B"}


async def test_delete_missing_is_noop(store):
    await store.delete("notes", "nope")

    assert await store.get_all("notes") == []


async def test_apply_batch_across_collections(store):
    await store.put("notes", {"id": "old", "title": "Old"})

    await store.apply_batch(
        puts={"notes": [{"id": "new", "title": "New"}], "folders": [{"id": "F", "name": "Work"}]},
        deletes={"notes": ["old"]},
    )

    assert [record["id"] for record in await store.get_all("notes")] == ["new"]
    assert [record["id"] for record in await store.get_all("folders")] == ["F"]


async def test_failed_batch_changes_nothing(store, tmp_path):
    await store.put("notes", {"id": "1", "title": "A"})

    with pytest.raises(ValueError):
        await store.apply_batch(
            puts={"notes": [{"id": "2", "title": "B"}, {"title": "no id"}]},
            deletes={"notes": ["1"]},
        )

    reopened = RecordStore(tmp_path / "data" / "records.db")
    await reopened.initialize()
    assert [record["id"] for record in await reopened.get_all("notes")] == ["1"]
    assert [record["id"] for record in await store.get_all("notes")] == ["1"]


async def test_unknown_collection_is_rejected(store):
    with pytest.raises(ValueError):
        await store.get_all("tags")
    with pytest.raises(ValueError):
        await store.put("tags", {"id": "1"})


async def test_clear(store):
    await store.put("notes", {"id": "1"})
    await store.put("folders", {"id": "F"})

    await store.clear()

    assert await store.get_all("notes") == []
    assert await store.get_all("folders") == []

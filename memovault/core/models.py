"""Record types persisted in the record store and mirrored on disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from memovault.utils.converters import EMPTY_DOCUMENT
from memovault.utils.errors import SnapshotParseError

logger = logging.getLogger(__name__)

# Sentinel folder ids. Notes in the uncategorized bucket store folderId=None;
# UNCATEGORIZED_ID is what callers pass as a move target or category id.
UNCATEGORIZED_ID = "all"
TRASH_ID = "trash"

UNCATEGORIZED_DIR = "Uncategorized"
TRASH_DIR = "Trash"


@dataclass
class Note:
    """
    A single note.

    Attributes:
        id: Stable decimal id, also embedded in the note's directory name
        title: Display title
        content: Serialized rich-text document, opaque to the storage layer
        updated_at: Last modification time in epoch milliseconds
        folder_id: Folder id, None for uncategorized, TRASH_ID when trashed loose
        tags: Ordered tag list
        is_deleted: True while the note's directory lives under Trash
        is_pinned: Pinned to the top of listings
        order: Optional manual sort key
    """

    id: str
    title: str
    content: str = EMPTY_DOCUMENT
    updated_at: int = 0
    folder_id: str | None = None
    tags: list[str] = field(default_factory=list)
    is_deleted: bool = False
    is_pinned: bool = False
    order: int | None = None

    def to_snapshot(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "updatedAt": self.updated_at,
        }
        if self.order is not None:
            data["order"] = self.order
        data.update(
            {
                "folderId": self.folder_id,
                "tags": list(self.tags),
                "isDeleted": self.is_deleted,
                "isPinned": self.is_pinned,
            }
        )
        return data

    @classmethod
    def from_snapshot(cls, data: Any, source: str = "<snapshot>") -> "Note":
        """
        Build a Note from its snapshot dictionary.

        Raises:
            SnapshotParseError: If required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise SnapshotParseError(source, "snapshot is not an object")

        note_id = data.get("id")
        if isinstance(note_id, int) and not isinstance(note_id, bool):
            note_id = str(note_id)
        if not isinstance(note_id, str) or not note_id:
            raise SnapshotParseError(source, "missing id")

        updated_at = data.get("updatedAt", 0)
        if isinstance(updated_at, bool) or not isinstance(updated_at, (int, float)):
            raise SnapshotParseError(source, "updatedAt is not a number")

        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise SnapshotParseError(source, "tags is not a list of strings")

        content = data.get("content", EMPTY_DOCUMENT)
        if not isinstance(content, str):
            raise SnapshotParseError(source, "content is not text")

        order = data.get("order")
        if order is not None and (isinstance(order, bool) or not isinstance(order, (int, float))):
            raise SnapshotParseError(source, "order is not a number")

        is_deleted = data.get("isDeleted", False)
        is_pinned = data.get("isPinned", False)
        if not isinstance(is_deleted, bool) or not isinstance(is_pinned, bool):
            raise SnapshotParseError(source, "isDeleted and isPinned must be booleans")

        folder_id = data.get("folderId")
        if folder_id is not None:
            folder_id = str(folder_id)

        return cls(
            id=note_id,
            title=str(data.get("title") or ""),
            content=content,
            updated_at=int(updated_at),
            folder_id=folder_id,
            tags=list(tags),
            is_deleted=is_deleted,
            is_pinned=is_pinned,
            order=int(order) if order is not None else None,
        )

    def copy(self) -> "Note":
        return replace(self, tags=list(self.tags))


@dataclass
class Folder:
    """A user folder; maps one-to-one onto a category directory by name."""

    id: str
    name: str
    is_deleted: bool = False

    def to_snapshot(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "isDeleted": self.is_deleted}

    @classmethod
    def from_snapshot(cls, data: Any, source: str = "<snapshot>") -> "Folder":
        if not isinstance(data, dict):
            raise SnapshotParseError(source, "snapshot is not an object")
        folder_id = data.get("id")
        name = data.get("name")
        if not folder_id or not isinstance(name, str):
            raise SnapshotParseError(source, "missing id or name")
        is_deleted = data.get("isDeleted", False)
        if not isinstance(is_deleted, bool):
            raise SnapshotParseError(source, "isDeleted must be a boolean")
        return cls(id=str(folder_id), name=name, is_deleted=is_deleted)


def category_folder_id(folder_id: str | None) -> str:
    """Normalize a stored folderId to the id of the category that holds it."""
    return folder_id or UNCATEGORIZED_ID


def stored_folder_id(category_id: str) -> str | None:
    """Inverse of category_folder_id: the value a note stores for a category."""
    return None if category_id == UNCATEGORIZED_ID else category_id


RecordT = TypeVar("RecordT", Note, Folder)


def parse_snapshots(record_type: type[RecordT], records: list[dict[str, Any]]) -> list[RecordT]:
    """Parse stored snapshots, skipping (and logging) the malformed ones."""
    parsed = []
    for record in records:
        try:
            parsed.append(record_type.from_snapshot(record, source=f"{record_type.__name__.lower()} {record.get('id')}"))
        except SnapshotParseError as e:
            logger.warning(f"Ignoring stored record: {e}")
    return parsed

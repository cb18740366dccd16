"""Locate note directories anywhere under the storage root."""

import logging

from memovault.core.models import TRASH_DIR
from memovault.sources.filesystem import FileSystemAdapter
from memovault.utils.converters import note_dir_has_id
from memovault.utils.errors import MemoVaultError

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Finds the on-disk directory of a note by its id.

    Searches every category directly under the root. Inside Trash it also
    searches one level deeper, because a trashed category keeps its own note
    directories.
    """

    def __init__(self, adapter: FileSystemAdapter, root: str | None):
        self.adapter = adapter
        self.root = root

    async def _find_in(self, dir_path: str, note_id: str) -> str | None:
        try:
            if not await self.adapter.exists(dir_path):
                return None
            for entry in await self.adapter.read_dir(dir_path):
                if entry.is_dir and note_dir_has_id(entry.name, note_id):
                    return entry.path
        except MemoVaultError as e:
            logger.debug(f"Skipping {dir_path} while looking for note {note_id}: {e}")
        return None

    async def find_path(self, note_id: str) -> str | None:
        """
        Return the directory of ``note_id``, or None when it has no directory.

        None is not an error: callers treat the note as having no on-disk
        artifact.
        """
        if not self.root or not self.adapter.available:
            return None

        try:
            categories = await self.adapter.read_dir(self.root)
        except MemoVaultError as e:
            logger.error(f"Cannot list storage root {self.root}: {e}")
            return None

        for category in categories:
            if not category.is_dir:
                continue
            found = await self._find_in(category.path, note_id)
            if found:
                return found

            if category.name == TRASH_DIR:
                try:
                    trashed = await self.adapter.read_dir(category.path)
                except MemoVaultError as e:
                    logger.debug(f"Cannot list {category.path}: {e}")
                    continue
                for item in trashed:
                    if not item.is_dir:
                        continue
                    found = await self._find_in(item.path, note_id)
                    if found:
                        return found

        logger.debug(f"Note path not found for id: {note_id}")
        return None

    def category_path(self, category_name: str) -> str:
        if not self.root:
            raise ValueError("Storage root is not configured")
        return self.adapter.join(self.root, category_name)

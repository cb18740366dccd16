"""Best-effort mirroring of saved notes into their directories."""

import json
import logging

from memovault.core.models import Note
from memovault.core.paths import PathResolver
from memovault.sources.filesystem import FileSystemAdapter
from memovault.utils.errors import MemoVaultError

logger = logging.getLogger(__name__)


def render_snapshot(note: Note) -> str:
    return json.dumps(note.to_snapshot(), indent=2, ensure_ascii=False)


class NoteFileWriter:
    """
    Writes the plain-text rendering and the metadata snapshot of a note.

    The two files are written independently: a failure of one is logged and
    never prevents the other, nor the caller's own save.
    """

    def __init__(
        self,
        adapter: FileSystemAdapter,
        resolver: PathResolver,
        metadata_file_name: str = "data.json",
        text_file_name: str = "content.txt",
    ):
        self.adapter = adapter
        self.resolver = resolver
        self.metadata_file_name = metadata_file_name
        self.text_file_name = text_file_name

    async def write(self, note: Note, plain_text: str) -> bool:
        """
        Mirror ``note`` into its directory.

        Returns:
            True when both files were written
        """
        if not self.adapter.available:
            return False

        note_path = await self.resolver.find_path(note.id)
        if not note_path:
            logger.debug(f"Note {note.id} has no directory; skipping file mirror")
            return False

        text_ok = await self._write(self.adapter.join(note_path, self.text_file_name), plain_text)
        snapshot_ok = await self.write_snapshot(note_path, note)
        return text_ok and snapshot_ok

    async def write_snapshot(self, note_path: str, note: Note) -> bool:
        return await self._write(self.adapter.join(note_path, self.metadata_file_name), render_snapshot(note))

    async def _write(self, path: str, content: str) -> bool:
        try:
            await self.adapter.write_text_file(path, content)
            return True
        except MemoVaultError as e:
            logger.error(f"Failed to write {path}: {e}")
            return False

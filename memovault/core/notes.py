"""Note and folder operations triggered by the user.

Every operation applies its filesystem effect first and updates the record
store second. When the filesystem step fails the store is left as it was, so
it never points at a location the note did not reach.
"""

import logging
from datetime import date

from memovault.core.models import TRASH_ID, UNCATEGORIZED_ID, Folder, Note, parse_snapshots, stored_folder_id
from memovault.core.storage import Storage
from memovault.utils.converters import EMPTY_DOCUMENT, heading_document
from memovault.utils.errors import MemoVaultError
from memovault.utils.ids import generate_id, now_millis

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TITLE = "New note"
DAILY_FOLDER_NAME = "Daily Notes"
DAILY_TAG = "daily"


class NoteService:
    """In-memory note list backed by the storage layer."""

    def __init__(self, storage: Storage):
        self.storage = storage
        self.notes: list[Note] = []

    async def init(self) -> list[Note]:
        records = await self.storage.get_items("notes")
        self.notes = parse_snapshots(Note, records)
        self.notes.sort(key=lambda note: note.order if note.order is not None else note.updated_at, reverse=True)
        return self.notes

    def get_note(self, note_id: str) -> Note | None:
        return next((note for note in self.notes if note.id == note_id), None)

    async def _put(self, note: Note) -> None:
        await self.storage.save_item("notes", note.to_snapshot())

    async def create_note(self, folder_id: str | None = None, title: str = DEFAULT_NOTE_TITLE) -> Note:
        now = now_millis()
        note = Note(
            id=generate_id(),
            title=title,
            content=EMPTY_DOCUMENT,
            updated_at=now,
            order=now,
            folder_id=stored_folder_id(folder_id or UNCATEGORIZED_ID),
        )
        await self.storage.create_note_folder(note.id, note.folder_id, note.title)

        self.notes.insert(0, note)
        await self._put(note)
        return note

    async def save_note(self, note: Note, content: str, plain_text: str, title: str) -> None:
        """
        Save editor content.

        Renames the note directory when the title changed, mirrors the note
        into its directory when there is plain text to write, then stores the
        record. Filesystem failures are logged and never block the store update.
        """
        old_title = note.title
        note.content = content
        note.updated_at = now_millis()
        note.title = title

        if old_title != note.title:
            try:
                await self.storage.rename_note_folder(note.id, note.title)
            except MemoVaultError as e:
                logger.error(f"Failed to rename directory of note {note.id}: {e}")

        if plain_text:
            await self.storage.save_note_to_file(note, plain_text)
        await self._put(note)

    async def delete_note(self, note_id: str, hard: bool = False) -> bool:
        note = self.get_note(note_id)
        if note is None:
            return False

        if hard:
            try:
                await self.storage.delete_note_folder(note_id)
            except MemoVaultError as e:
                logger.error(f"Failed to remove directory of note {note_id}: {e}")
                return False
            await self.storage.delete_item("notes", note_id)
            self.notes.remove(note)
            return True

        try:
            await self.storage.move_note(note_id, TRASH_ID)
        except MemoVaultError as e:
            logger.error(f"Failed to move note {note_id} to trash: {e}")
            return False
        # folder_id is kept so restore knows where the note came from.
        note.is_deleted = True
        await self._put(note)
        return True

    async def restore_note(self, note_id: str) -> bool:
        note = self.get_note(note_id)
        if note is None:
            return False

        target = note.folder_id if note.folder_id not in (None, TRASH_ID) else UNCATEGORIZED_ID
        try:
            await self.storage.move_note(note.id, target)
        except MemoVaultError as e:
            logger.error(f"Failed to restore note {note_id}: {e}")
            return False
        note.folder_id = stored_folder_id(target)
        note.is_deleted = False
        await self._put(note)
        return True

    async def toggle_pin(self, note_id: str) -> Note | None:
        note = self.get_note(note_id)
        if note is None:
            return None
        note.is_pinned = not note.is_pinned
        await self.storage.mirror_snapshot(note)
        await self._put(note)
        return note

    async def move_note(self, note_id: str, target_folder_id: str) -> bool:
        note = self.get_note(note_id)
        if note is None:
            return False

        try:
            await self.storage.move_note(note.id, target_folder_id)
        except MemoVaultError as e:
            logger.error(f"Failed to move note {note_id} to {target_folder_id}: {e}")
            return False

        note.folder_id = stored_folder_id(target_folder_id)
        note.is_deleted = target_folder_id == TRASH_ID
        await self._put(note)
        return True

    async def reorder(self, note_ids: list[str]) -> None:
        """Give the listed notes descending sort keys, one second apart."""
        base_order = now_millis()
        for index, note_id in enumerate(note_ids):
            note = self.get_note(note_id)
            if note is None:
                continue
            note.order = base_order - index * 1000
            await self.storage.mirror_snapshot(note)
            await self._put(note)

    async def attach_file(self, note_id: str, file_name: str, data: bytes) -> str:
        """
        Save an attachment into the note's directory.

        Raises:
            MemoVaultError: If the attachment cannot be written
        """
        return await self.storage.save_note_file(note_id, file_name, data)

    async def open_daily_note(self, folders: "FolderService", today: date | None = None) -> Note:
        """Return today's note in the "Daily Notes" folder, creating both as needed."""
        today = today or date.today()
        title = today.strftime("%Y-%m-%d")

        daily_folder = folders.find_by_name(DAILY_FOLDER_NAME)
        if daily_folder is None:
            daily_folder = await folders.create_folder(DAILY_FOLDER_NAME)

        for note in self.notes:
            if note.title == title and note.folder_id == daily_folder.id and not note.is_deleted:
                return note

        now = now_millis()
        note = Note(
            id=generate_id(),
            title=title,
            content=heading_document(title),
            updated_at=now,
            folder_id=daily_folder.id,
            tags=[DAILY_TAG],
        )
        await self.storage.create_note_folder(note.id, note.folder_id, note.title)
        self.notes.insert(0, note)
        await self._put(note)
        return note


class FolderService:
    """Folder operations; keeps the notes of a folder consistent with it."""

    def __init__(self, storage: Storage, notes: NoteService):
        self.storage = storage
        self.note_service = notes
        self.folders: list[Folder] = []

    async def init(self) -> list[Folder]:
        records = await self.storage.get_items("folders")
        self.folders = parse_snapshots(Folder, records)
        return self.folders

    def get_folder(self, folder_id: str) -> Folder | None:
        return next((folder for folder in self.folders if folder.id == folder_id), None)

    def find_by_name(self, name: str, *, deleted: bool = False) -> Folder | None:
        return next(
            (folder for folder in self.folders if folder.name == name and folder.is_deleted == deleted),
            None,
        )

    def _warn_on_collision(self, name: str, folder_id: str | None = None) -> None:
        # Same-named folders share one directory on disk.
        existing = self.find_by_name(name)
        if existing and existing.id != folder_id:
            logger.warning(f"Folder name '{name}' is already used by folder {existing.id}; both map to one directory")

    async def create_folder(self, name: str) -> Folder:
        self._warn_on_collision(name)
        folder = Folder(id=generate_id(), name=name)
        await self.storage.create_category_folder(name)
        self.folders.append(folder)
        await self.storage.save_item("folders", folder.to_snapshot())
        return folder

    async def rename_folder(self, folder_id: str, new_name: str) -> Folder:
        """
        Rename a folder and its category directory.

        Raises:
            KeyError: If the folder does not exist
            MemoVaultError: If the directory rename fails (store untouched)
        """
        folder = self.get_folder(folder_id)
        if folder is None:
            raise KeyError(folder_id)
        self._warn_on_collision(new_name, folder_id)

        await self.storage.rename_category_folder(folder.name, new_name)
        folder.name = new_name
        await self.storage.save_item("folders", folder.to_snapshot())
        return folder

    def _notes_in(self, folder_id: str, dir_ids: set[str]) -> list[Note]:
        if self.storage.has_filesystem:
            return [note for note in self.note_service.notes if note.id in dir_ids]
        return [note for note in self.note_service.notes if note.folder_id == folder_id]

    async def _set_deleted(self, folder: Folder, deleted: bool, note_ids: set[str]) -> None:
        folder.is_deleted = deleted
        notes = self._notes_in(folder.id, note_ids)
        for note in notes:
            note.is_deleted = deleted
        await self.storage.store.apply_batch(
            puts={
                "folders": [folder.to_snapshot()],
                "notes": [note.to_snapshot() for note in notes],
            }
        )

    async def delete_folder(self, folder_id: str) -> bool:
        """Move a folder and its notes to the trash."""
        folder = self.get_folder(folder_id)
        if folder is None:
            return False

        note_ids = await self.storage.category_note_ids(folder.name)
        try:
            await self.storage.move_category_to_trash(folder.name)
        except MemoVaultError as e:
            logger.error(f"Failed to move folder {folder.name} to trash: {e}")
            return False
        await self._set_deleted(folder, True, note_ids)
        return True

    async def restore_folder(self, folder_id: str) -> bool:
        folder = self.get_folder(folder_id)
        if folder is None:
            return False

        note_ids = await self.storage.category_note_ids(folder.name, in_trash=True)
        try:
            await self.storage.restore_category_from_trash(folder.name)
        except MemoVaultError as e:
            logger.error(f"Failed to restore folder {folder.name}: {e}")
            return False
        await self._set_deleted(folder, False, note_ids)
        return True

    async def hard_delete_folder(self, folder_id: str) -> bool:
        """Remove a folder, its directory and every note inside it."""
        folder = self.get_folder(folder_id)
        if folder is None:
            return False

        # Same lookup order as the removal: top level first, then inside Trash.
        note_ids = await self.storage.category_note_ids(folder.name)
        if not note_ids:
            note_ids = await self.storage.category_note_ids(folder.name, in_trash=True)
        try:
            await self.storage.remove_category_folder(folder.name)
        except MemoVaultError as e:
            logger.error(f"Failed to remove folder {folder.name}: {e}")
            return False

        notes = self._notes_in(folder.id, note_ids)
        await self.storage.store.apply_batch(
            deletes={"folders": [folder.id], "notes": [note.id for note in notes]}
        )
        self.folders.remove(folder)
        removed = {note.id for note in notes}
        self.note_service.notes = [note for note in self.note_service.notes if note.id not in removed]
        return True

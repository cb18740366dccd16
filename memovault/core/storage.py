"""Storage facade: owns the adapter, record store and sync engine for a session."""

import logging
from pathlib import Path

from memovault.core.config import AppConfig
from memovault.core.models import (
    TRASH_DIR,
    TRASH_ID,
    UNCATEGORIZED_DIR,
    UNCATEGORIZED_ID,
    Folder,
    Note,
    parse_snapshots,
)
from memovault.core.paths import PathResolver
from memovault.core.sync import StorageSyncEngine, SyncReport
from memovault.core.writer import NoteFileWriter
from memovault.sources.filesystem import FileSystemAdapter, get_filesystem_adapter
from memovault.utils.converters import format_note_dir_name, parse_note_dir_name, sanitize_filename
from memovault.utils.db import RecordStore
from memovault.utils.errors import MemoVaultError, StorageIOError
from memovault.utils.ids import now_millis
from memovault.utils.settings_db import SettingsDB, get_storage_root_override, set_storage_root_override

logger = logging.getLogger(__name__)


class Storage:
    """
    Entry point used by the rest of the application.

    init() opens the record store, makes sure the storage root exists and runs
    one sync pass; nothing else should read the store before it returns.
    Afterwards the directory helpers below keep the tree in step with user
    actions. They do nothing when the adapter has no filesystem.
    """

    def __init__(
        self,
        config: AppConfig,
        adapter: FileSystemAdapter | None = None,
        store: RecordStore | None = None,
        settings_db: SettingsDB | None = None,
    ):
        self.config = config
        self.adapter = adapter or get_filesystem_adapter(config.storage)
        self.platform = self.adapter.platform
        self.store = store or RecordStore(config.records_db_path)
        self.settings_db = settings_db
        self.root: str | None = None
        self.resolver = PathResolver(self.adapter, None)
        self.writer = NoteFileWriter(
            self.adapter,
            self.resolver,
            metadata_file_name=config.storage.metadata_file_name,
            text_file_name=config.storage.text_file_name,
        )
        self.engine = StorageSyncEngine(self.adapter, self.store, self.writer, None)
        self.last_sync: SyncReport | None = None
        logger.info(f"Storage initializing (platform: {self.platform})")

    @property
    def has_filesystem(self) -> bool:
        return self.adapter.available and bool(self.root)

    async def init(self) -> SyncReport:
        """Open the store, prepare the root and run the startup sync."""
        await self.store.initialize()
        await self.init_filesystem()
        self.last_sync = await self.engine.sync()
        return self.last_sync

    async def close(self) -> None:
        await self.adapter.close()

    def _resolve_root(self) -> str | None:
        override = None
        if self.settings_db is not None:
            override = get_storage_root_override(self.settings_db)
        root = override or self.config.storage.root or self.adapter.default_root()
        if root and self.adapter.platform == "local":
            root = str(Path(root).expanduser())
        return root

    async def init_filesystem(self) -> None:
        """Resolve the storage root and create it if missing."""
        if not self.adapter.available:
            return
        try:
            self.root = self._resolve_root()
            logger.info(f"Storage root: {self.root}")
            if self.root and not await self.adapter.exists(self.root):
                logger.info("Creating storage root...")
                await self.adapter.mkdir(self.root)
        except MemoVaultError as e:
            logger.error(f"File system init failed: {e}")
        self.resolver.root = self.root
        self.engine.root = self.root

    async def sync(self) -> SyncReport:
        self.last_sync = await self.engine.sync()
        return self.last_sync

    def change_storage_root(self, new_root: str) -> None:
        """
        Remember a new storage root; it applies the next time the app starts.

        Raises:
            RuntimeError: If there is no settings database or no filesystem
        """
        if not self.adapter.available:
            raise RuntimeError("Changing the storage root is not supported without a filesystem")
        if self.settings_db is None:
            raise RuntimeError("No settings database configured")
        set_storage_root_override(new_root, self.settings_db)
        logger.info(f"Storage root changed to {new_root}; restart to apply")

    # -- records ----------------------------------------------------------

    async def get_items(self, collection: str) -> list[dict]:
        return await self.store.get_all(collection)

    async def save_item(self, collection: str, item: dict) -> None:
        await self.store.put(collection, item)

    async def delete_item(self, collection: str, item_id: str) -> None:
        await self.store.delete(collection, item_id)

    async def get_folder_name(self, folder_id: str | None) -> str:
        """Category directory name for a folder id (Uncategorized when unknown)."""
        if folder_id == TRASH_ID:
            return TRASH_DIR
        if not folder_id or folder_id == UNCATEGORIZED_ID:
            return UNCATEGORIZED_DIR
        record = await self.store.get("folders", folder_id)
        folders = parse_snapshots(Folder, [record]) if record else []
        return folders[0].name if folders else UNCATEGORIZED_DIR

    # -- category directories ---------------------------------------------

    async def create_category_folder(self, folder_name: str) -> None:
        if not self.has_filesystem:
            return
        try:
            category_path = self.adapter.join(self.root, sanitize_filename(folder_name))
            if not await self.adapter.exists(category_path):
                await self.adapter.mkdir(category_path)
        except MemoVaultError as e:
            logger.error(f"Failed to create category folder {folder_name}: {e}")

    async def rename_category_folder(self, old_name: str, new_name: str) -> None:
        """
        Rename a category directory.

        Raises:
            MemoVaultError: If the rename fails
        """
        if not self.has_filesystem:
            return
        old_safe, new_safe = sanitize_filename(old_name), sanitize_filename(new_name)
        if old_safe == new_safe:
            return

        old_path = self.adapter.join(self.root, old_safe)
        new_path = self.adapter.join(self.root, new_safe)
        try:
            if await self.adapter.exists(old_path):
                await self.adapter.rename(old_path, new_path)
        except MemoVaultError as e:
            logger.error(f"Failed to rename category folder {old_name} -> {new_name}: {e}")
            raise

    async def move_category_to_trash(self, folder_name: str) -> None:
        if not self.has_filesystem:
            return
        safe_name = sanitize_filename(folder_name)
        source = self.adapter.join(self.root, safe_name)
        trash_dir = self.adapter.join(self.root, TRASH_DIR)
        if await self.adapter.exists(source):
            if not await self.adapter.exists(trash_dir):
                await self.adapter.mkdir(trash_dir)
            await self.adapter.rename(source, self.adapter.join(trash_dir, safe_name))

    async def restore_category_from_trash(self, folder_name: str) -> None:
        if not self.has_filesystem:
            return
        safe_name = sanitize_filename(folder_name)
        source = self.adapter.join(self.root, TRASH_DIR, safe_name)
        if await self.adapter.exists(source):
            await self.adapter.rename(source, self.adapter.join(self.root, safe_name))

    async def remove_category_folder(self, folder_name: str) -> None:
        if not self.has_filesystem:
            return
        safe_name = sanitize_filename(folder_name)
        category_path = self.adapter.join(self.root, safe_name)
        if not await self.adapter.exists(category_path):
            category_path = self.adapter.join(self.root, TRASH_DIR, safe_name)
        if await self.adapter.exists(category_path):
            await self.adapter.remove(category_path)

    async def category_note_ids(self, folder_name: str, *, in_trash: bool = False) -> set[str]:
        """Ids of the note directories currently inside a category directory."""
        if not self.has_filesystem:
            return set()
        parts = (TRASH_DIR, sanitize_filename(folder_name)) if in_trash else (sanitize_filename(folder_name),)
        category_path = self.adapter.join(self.root, *parts)
        try:
            if not await self.adapter.exists(category_path):
                return set()
            entries = await self.adapter.read_dir(category_path)
        except MemoVaultError as e:
            logger.warning(f"Cannot list category {folder_name}: {e}")
            return set()
        ids = set()
        for entry in entries:
            parsed = parse_note_dir_name(entry.name) if entry.is_dir else None
            if parsed:
                ids.add(parsed[1])
        return ids

    # -- note directories -------------------------------------------------

    async def find_note_path(self, note_id: str) -> str | None:
        return await self.resolver.find_path(note_id)

    async def create_note_folder(self, note_id: str, folder_id: str | None, title: str) -> str | None:
        logger.debug(f"create_note_folder: id={note_id}, folder={folder_id}, title={title}")
        if not self.has_filesystem:
            return None

        category_name = sanitize_filename(await self.get_folder_name(folder_id))
        category_path = self.adapter.join(self.root, category_name)
        if not await self.adapter.exists(category_path):
            await self.adapter.mkdir(category_path)

        note_path = self.adapter.join(category_path, format_note_dir_name(title, note_id))
        if not await self.adapter.exists(note_path):
            await self.adapter.mkdir(note_path)
        return note_path

    async def rename_note_folder(self, note_id: str, new_title: str) -> None:
        if not self.has_filesystem:
            return
        current_path = await self.find_note_path(note_id)
        if not current_path:
            return

        new_path = self.adapter.join(self.adapter.dirname(current_path), format_note_dir_name(new_title, note_id))
        if current_path != new_path:
            await self.adapter.rename(current_path, new_path)

    async def delete_note_folder(self, note_id: str) -> None:
        if not self.has_filesystem:
            return
        note_path = await self.find_note_path(note_id)
        if note_path and await self.adapter.exists(note_path):
            await self.adapter.remove(note_path)

    async def move_note(self, note_id: str, target_folder_id: str | None) -> None:
        """Move a note directory into the category of ``target_folder_id``."""
        if not self.has_filesystem:
            return
        current_path = await self.find_note_path(note_id)
        if not current_path:
            return

        category_name = sanitize_filename(await self.get_folder_name(target_folder_id))
        category_path = self.adapter.join(self.root, category_name)
        if not await self.adapter.exists(category_path):
            await self.adapter.mkdir(category_path)

        new_path = self.adapter.join(category_path, self.adapter.basename(current_path))
        if current_path != new_path:
            await self.adapter.rename(current_path, new_path)

    async def save_note_to_file(self, note: Note, text_content: str) -> bool:
        return await self.writer.write(note, text_content)

    async def mirror_snapshot(self, note: Note) -> bool:
        """Rewrite only the metadata snapshot of a note (e.g. after pinning)."""
        if not self.has_filesystem:
            return False
        note_path = await self.find_note_path(note.id)
        if not note_path:
            return False
        return await self.writer.write_snapshot(note_path, note)

    async def save_note_file(self, note_id: str, file_name: str, data: bytes) -> str:
        """
        Store an attachment (e.g. a pasted image) inside the note's directory.

        Returns:
            Path of the written file

        Raises:
            StorageIOError: If there is no filesystem or the write fails
        """
        if not self.has_filesystem:
            raise StorageIOError("save_note_file", file_name, RuntimeError("file system not available"))

        note_path = await self.find_note_path(note_id)
        if not note_path:
            note_path = await self.create_note_folder(note_id, UNCATEGORIZED_ID, "Untitled")

        file_path = self.adapter.join(note_path, f"{now_millis()}_{sanitize_filename(file_name)}")
        try:
            await self.adapter.write_binary_file(file_path, data)
        except MemoVaultError as e:
            logger.error(f"Failed to save attachment {file_name}: {e}")
            raise
        logger.info(f"Attachment saved to: {file_path}")
        return file_path

"""Core synchronization logic: record store ↔ note directory tree."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from memovault.core.models import (
    TRASH_DIR,
    TRASH_ID,
    UNCATEGORIZED_DIR,
    UNCATEGORIZED_ID,
    Folder,
    Note,
    category_folder_id,
    parse_snapshots,
    stored_folder_id,
)
from memovault.core.writer import NoteFileWriter
from memovault.sources.filesystem import DirEntry, FileSystemAdapter
from memovault.utils.converters import (
    EMPTY_DOCUMENT,
    document_from_text,
    format_note_dir_name,
    is_hidden,
    parse_note_dir_name,
    sanitize_filename,
)
from memovault.utils.db import RecordStore
from memovault.utils.errors import MemoVaultError, SnapshotParseError
from memovault.utils.ids import generate_id, now_millis

logger = logging.getLogger(__name__)

_LOG_EXTRA = {"log_category": "sync"}


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    # "completed", "skipped" (no filesystem / no root) or "failed" (store untouched)
    status: str = "completed"
    reason: str | None = None
    categories: int = 0
    folders: int = 0
    notes: int = 0
    imported: int = 0
    synthesized: int = 0
    restored_from_store: int = 0
    pruned_folders: int = 0
    pruned_notes: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.status == "completed"


@dataclass(slots=True)
class _Category:
    id: str
    name: str
    path: str
    in_trash: bool

    @property
    def note_folder_id(self) -> str | None:
        return stored_folder_id(self.id)


@dataclass
class _ScanState:
    stored_notes: dict[str, dict[str, Any]]
    stored_folders: list[Folder]
    stored_folder_ids: set[str] = field(default_factory=set)
    folders: dict[str, Folder] = field(default_factory=dict)
    notes: dict[str, Note] = field(default_factory=dict)
    # Notes whose directory exists but could not be processed this pass.
    protected_note_ids: set[str] = field(default_factory=set)
    # Categories whose listing failed; their stored notes must not be pruned.
    unlisted_categories: set[str] = field(default_factory=set)


class StorageSyncEngine:
    """
    Reconciles the record store with the note directory tree.

    The directory tree is the enumeration authority: after a pass the store
    holds exactly the folders and notes that have a directory. Content comes
    from whichever side is newer (``updatedAt``), while a note's folder and
    deletion state always follow the directory it was found in.

    Sync Algorithm:
    1. Load note and folder snapshots from the record store
    2. List the root; every visible directory is a category
    3. Map each category to a folder id (sentinels, name reuse, or a new id)
    4. For every note directory: identify it (or import and rename it),
       load or synthesize its metadata, reconcile against the store
    5. Commit: prune records without a directory, upsert everything found

    A failure on one directory is logged and skipped. A failure to list the
    root leaves the store untouched. The pass itself never raises.
    """

    def __init__(
        self,
        adapter: FileSystemAdapter,
        store: RecordStore,
        writer: NoteFileWriter,
        root: str | None,
    ):
        """
        Initialize the sync engine.

        Args:
            adapter: Filesystem adapter the tree lives on
            store: Record store to reconcile
            writer: Used to write metadata snapshots back into note directories
            root: Storage root; None disables syncing
        """
        self.adapter = adapter
        self.store = store
        self.writer = writer
        self.root = root
        self._running = False

    @property
    def metadata_file_name(self) -> str:
        return self.writer.metadata_file_name

    @property
    def text_file_name(self) -> str:
        return self.writer.text_file_name

    async def sync(self) -> SyncReport:
        """
        Run one full pass.

        Returns:
            SyncReport describing what happened

        Raises:
            RuntimeError: If a pass is already running on this engine
        """
        if self._running:
            raise RuntimeError("Sync is already running")
        self._running = True
        try:
            return await self._sync()
        finally:
            self._running = False

    async def _sync(self) -> SyncReport:
        report = SyncReport()

        if not self.adapter.available or not self.root:
            report.status = "skipped"
            report.reason = "no filesystem available" if not self.adapter.available else "no storage root"
            logger.info(f"Skipping file system sync: {report.reason}")
            return report

        logger.info(f"Syncing with file system: {self.root}", extra=_LOG_EXTRA)

        try:
            stored_notes = {record["id"]: record for record in await self.store.get_all("notes")}
            folder_records = await self.store.get_all("folders")
            stored_folders = parse_snapshots(Folder, folder_records)
            categories = await self.adapter.read_dir(self.root)
        except MemoVaultError as e:
            report.status = "failed"
            report.reason = str(e)
            logger.error(f"Sync failed, record store left untouched: {e}")
            return report

        state = _ScanState(
            stored_notes=stored_notes,
            stored_folders=stored_folders,
            stored_folder_ids={str(record.get("id")) for record in folder_records},
        )

        for entry in categories:
            if not entry.is_dir or is_hidden(entry.name):
                continue
            category = self._resolve_category(entry, state)
            report.categories += 1
            await self._scan_category(category, state, report)

        try:
            await self._commit(state, report)
        except Exception as e:
            report.status = "failed"
            report.reason = f"commit failed: {e}"
            logger.error(f"Sync commit failed, record store left untouched: {e}")
            return report

        logger.info(
            f"Sync complete: {report.folders} folders, {report.notes} notes "
            f"({report.imported} imported, {report.restored_from_store} restored from store, "
            f"{report.pruned_notes} notes and {report.pruned_folders} folders pruned, "
            f"{report.skipped} skipped)",
            extra=_LOG_EXTRA,
        )
        return report

    # -- categories -------------------------------------------------------

    def _resolve_category(self, entry: DirEntry, state: _ScanState) -> _Category:
        if entry.name == UNCATEGORIZED_DIR:
            return _Category(UNCATEGORIZED_ID, entry.name, entry.path, in_trash=False)
        if entry.name == TRASH_DIR:
            return _Category(TRASH_ID, entry.name, entry.path, in_trash=True)
        return self._resolve_folder(entry, state, in_trash=False)

    def _resolve_folder(self, entry: DirEntry, state: _ScanState, *, in_trash: bool) -> _Category:
        """
        Map a category directory to a folder, reusing an existing id by name.

        A record whose deletion state matches the directory's location is
        preferred, and each folder id is claimed at most once per pass.
        """
        candidates = [
            folder
            for folder in state.stored_folders
            if folder.id not in state.folders
            and (folder.name == entry.name or sanitize_filename(folder.name) == entry.name)
        ]
        match = next((f for f in candidates if f.is_deleted == in_trash), None)
        if match is None and candidates:
            match = candidates[0]

        if match:
            folder = Folder(
                id=match.id,
                name=match.name,
                is_deleted=True if in_trash else match.is_deleted,
            )
        else:
            folder = Folder(id=generate_id(), name=entry.name, is_deleted=in_trash)
            logger.info(f"New folder discovered: {entry.name} ({folder.id})", extra=_LOG_EXTRA)

        state.folders[folder.id] = folder
        return _Category(folder.id, entry.name, entry.path, in_trash=in_trash)

    async def _is_trashed_category(self, entry: DirEntry, state: _ScanState) -> bool:
        if any(
            folder.name == entry.name or sanitize_filename(folder.name) == entry.name
            for folder in state.stored_folders
        ):
            return True
        children = await self.adapter.read_dir(entry.path)
        return any(child.is_dir and parse_note_dir_name(child.name) for child in children)

    async def _scan_category(self, category: _Category, state: _ScanState, report: SyncReport) -> None:
        try:
            entries = await self.adapter.read_dir(category.path)
        except MemoVaultError as e:
            state.unlisted_categories.add(category.id)
            report.errors.append(f"{category.path}: {e}")
            logger.error(f"Cannot list category {category.name}: {e}")
            return

        for entry in entries:
            # Hidden names are skipped unless they carry a note id.
            if not entry.is_dir or (is_hidden(entry.name) and parse_note_dir_name(entry.name) is None):
                continue

            try:
                if (
                    category.id == TRASH_ID
                    and parse_note_dir_name(entry.name) is None
                    and await self._is_trashed_category(entry, state)
                ):
                    nested = self._resolve_folder(entry, state, in_trash=True)
                    report.categories += 1
                    await self._scan_category(nested, state, report)
                    continue

                await self._sync_note_dir(entry, category, state, report)
            except Exception as e:
                parsed = parse_note_dir_name(entry.name)
                if parsed:
                    state.protected_note_ids.add(parsed[1])
                report.skipped += 1
                report.errors.append(f"{entry.path}: {e}")
                logger.warning(f"Skipping note directory {entry.path}: {e}")

    # -- notes ------------------------------------------------------------

    async def _sync_note_dir(
        self,
        entry: DirEntry,
        category: _Category,
        state: _ScanState,
        report: SyncReport,
    ) -> None:
        parsed = parse_note_dir_name(entry.name)
        note_path = entry.path

        if parsed:
            title, note_id = parsed
        else:
            title = entry.name
            note_id = generate_id()
            new_path = self.adapter.join(self.adapter.dirname(entry.path), format_note_dir_name(title, note_id))
            logger.info(f"Importing foreign folder: {entry.name}", extra=_LOG_EXTRA)
            try:
                await self.adapter.rename(entry.path, new_path)
            except MemoVaultError as e:
                report.skipped += 1
                report.errors.append(f"{entry.path}: {e}")
                logger.error(f"Failed to rename imported folder {entry.path}: {e}")
                return
            note_path = new_path
            report.imported += 1

        if note_id in state.notes:
            report.skipped += 1
            logger.warning(f"Duplicate directory for note {note_id} ignored: {note_path}")
            return

        candidate, synthesized = await self._load_candidate(note_path, note_id, title)
        if synthesized:
            report.synthesized += 1

        resolved = candidate
        write_back = synthesized
        stored = self._stored_note(state, note_id)
        if stored is not None and stored.updated_at > candidate.updated_at:
            logger.info(f"Conflict: store is newer for {note_id}, restoring to disk", extra=_LOG_EXTRA)
            resolved = stored
            write_back = True
            report.restored_from_store += 1

        # Physical location always wins over what either side recorded.
        resolved.folder_id = category.note_folder_id
        resolved.is_deleted = category.in_trash

        if write_back:
            await self.writer.write_snapshot(note_path, resolved)

        state.notes[note_id] = resolved

    async def _load_candidate(self, note_path: str, note_id: str, title: str) -> tuple[Note, bool]:
        """
        Read the note's metadata snapshot, or synthesize one from the directory.

        Returns:
            (note, synthesized) tuple
        """
        meta_path = self.adapter.join(note_path, self.metadata_file_name)
        note = None
        if await self.adapter.exists(meta_path):
            try:
                raw = await self.adapter.read_file(meta_path)
                note = Note.from_snapshot(json.loads(raw), source=meta_path)
            except (json.JSONDecodeError, UnicodeDecodeError, SnapshotParseError) as e:
                logger.warning(f"Unreadable metadata for note {note_id}, rebuilding it: {e}")
            except MemoVaultError as e:
                logger.warning(f"Failed to read {meta_path} for note {note_id}: {e}")

        if note is not None:
            if note.id != note_id:
                logger.warning(f"Metadata id {note.id} does not match directory {note_path}; using {note_id}")
                note.id = note_id
            return note, False

        content = EMPTY_DOCUMENT
        text_path = self.adapter.join(note_path, self.text_file_name)
        try:
            if await self.adapter.exists(text_path):
                content = document_from_text(await self.adapter.read_file(text_path))
        except (MemoVaultError, UnicodeDecodeError) as e:
            logger.debug(f"Ignoring unreadable {text_path}: {e}")

        return Note(id=note_id, title=title, content=content, updated_at=now_millis()), True

    @staticmethod
    def _stored_note(state: _ScanState, note_id: str) -> Note | None:
        record = state.stored_notes.get(note_id)
        if record is None:
            return None
        try:
            return Note.from_snapshot(record, source=f"stored note {note_id}")
        except SnapshotParseError as e:
            logger.warning(f"Ignoring stored record: {e}")
            return None

    # -- commit -----------------------------------------------------------

    def _is_unlisted(self, record: dict[str, Any], state: _ScanState) -> bool:
        if not state.unlisted_categories:
            return False
        if record.get("isDeleted") and TRASH_ID in state.unlisted_categories:
            return True
        return category_folder_id(record.get("folderId")) in state.unlisted_categories

    async def _commit(self, state: _ScanState, report: SyncReport) -> None:
        trash_unlisted = TRASH_ID in state.unlisted_categories
        kept_deleted = {folder.id for folder in state.stored_folders if trash_unlisted and folder.is_deleted}
        folder_deletes = [
            folder_id
            for folder_id in sorted(state.stored_folder_ids)
            if folder_id not in state.folders and folder_id not in kept_deleted
        ]
        note_deletes = [
            note_id
            for note_id, record in state.stored_notes.items()
            if note_id not in state.notes
            and note_id not in state.protected_note_ids
            and not self._is_unlisted(record, state)
        ]

        for folder_id in folder_deletes:
            logger.info(f"Pruning folder {folder_id}: no directory on disk", extra=_LOG_EXTRA)
        for note_id in note_deletes:
            logger.info(f"Pruning note {note_id}: no directory on disk", extra=_LOG_EXTRA)

        await self.store.apply_batch(
            puts={
                "folders": [folder.to_snapshot() for folder in state.folders.values()],
                "notes": [note.to_snapshot() for note in state.notes.values()],
            },
            deletes={"folders": folder_deletes, "notes": note_deletes},
        )

        report.folders = len(state.folders)
        report.notes = len(state.notes)
        report.pruned_folders = len(folder_deletes)
        report.pruned_notes = len(note_deletes)

"""Command-line interface for MemoVault."""

import asyncio
import logging
import platform
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from memovault import __version__
from memovault.core.config import AppConfig, load_config
from memovault.core.models import TRASH_ID, Folder, Note, parse_snapshots
from memovault.core.storage import Storage
from memovault.core.sync import SyncReport
from memovault.utils.db import RecordStore
from memovault.utils.logging import setup_logging
from memovault.utils.settings_db import (
    get_config_path,
    get_settings_db,
    get_storage_root_override,
    set_config_path,
    set_storage_root_override,
)

app = typer.Typer(
    name="memovault",
    help="Keep your notes database in sync with a browsable folder tree",
    add_completion=False,
)

console = Console()


def _open_storage(cfg: AppConfig, root: Optional[str] = None) -> Storage:
    if root:
        cfg.storage.root = root
        return Storage(cfg)
    return Storage(cfg, settings_db=get_settings_db())


def print_report(report: SyncReport) -> None:
    table = Table(title="Sync Summary")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")

    table.add_row("Status", report.status)
    table.add_row("Categories", str(report.categories))
    table.add_row("Folders", str(report.folders))
    table.add_row("Notes", str(report.notes))
    table.add_row("Imported", str(report.imported))
    table.add_row("Rebuilt metadata", str(report.synthesized))
    table.add_row("Restored from database", str(report.restored_from_store))
    table.add_row("Pruned notes", str(report.pruned_notes))
    table.add_row("Pruned folders", str(report.pruned_folders))
    table.add_row("Skipped", str(report.skipped))

    console.print(table)
    if report.reason:
        console.print(f"[yellow]{report.reason}[/yellow]")
    for error in report.errors:
        console.print(f"  [red]✗[/red] {error}")


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
) -> None:
    """MemoVault - notes stored as plain folders."""
    ctx.ensure_object(dict)
    effective_config_path = config_file
    if effective_config_path is None:
        stored_path = get_config_path()
        if stored_path:
            effective_config_path = stored_path

    cfg = load_config(effective_config_path)
    ctx.obj["config"] = cfg

    if cfg.general.config_file:
        set_config_path(cfg.general.config_file)

    if log_level == "INFO" and cfg.general.log_level != "INFO":
        log_level = cfg.general.log_level
    setup_logging(cfg, level_name=log_level, console=console)


@app.command()
def version() -> None:
    """Show version information."""
    table = Table(title="MemoVault Version Information")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.platform())

    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    init: bool = typer.Option(False, "--init", "-i", help="Create a default configuration file"),
) -> None:
    """Manage configuration."""
    cfg = ctx.obj["config"]

    if init:
        config_path = cfg.default_config_path

        if config_path.exists():
            console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
            overwrite = typer.confirm("Overwrite existing config?")
            if not overwrite:
                console.print("[dim]Config creation cancelled[/dim]")
                raise typer.Exit(0)

        try:
            cfg.save_to_file(config_path)
            set_config_path(config_path)
            console.print(f"[green]✓ Config file created:[/green] {config_path}")
        except ImportError:
            console.print("[red]Error: tomli_w not installed[/red]")
            console.print("[dim]Install with: pip install tomli-w[/dim]")
            raise typer.Exit(1)

    if show or not init:
        table = Table(title="MemoVault Configuration")
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("Config file", str(cfg.general.config_file or "-"))
        table.add_row("Data directory", str(cfg.general.data_dir))
        table.add_row("Log level", cfg.general.log_level)
        table.add_row("Record store", str(cfg.records_db_path))
        table.add_row("Storage backend", cfg.storage.backend)
        table.add_row("Storage root", str(cfg.storage.root or "(adapter default)"))
        table.add_row("Root override", str(get_storage_root_override() or "-"))
        table.add_row("Metadata file", cfg.storage.metadata_file_name)
        table.add_row("Text file", cfg.storage.text_file_name)
        if cfg.storage.webdav_url:
            table.add_row("WebDAV URL", cfg.storage.webdav_url)

        console.print(table)


@app.command()
def health(ctx: typer.Context) -> None:
    """Check application health."""
    cfg = ctx.obj["config"]

    console.print("[bold]Health Check[/bold]\n")

    if cfg.general.data_dir.exists():
        console.print("✓ Data directory exists", style="green")
    else:
        console.print("✗ Data directory does not exist", style="red")

    if cfg.records_db_path.exists():
        console.print(f"✓ Record store ready: {cfg.records_db_path}", style="green")
    else:
        console.print(f"ℹ Record store not initialized: {cfg.records_db_path}", style="yellow")

    async def run_probe():
        storage = _open_storage(cfg)
        try:
            await storage.init_filesystem()
            if not storage.adapter.available:
                console.print("ℹ No filesystem available; notes live in the database only", style="yellow")
            elif storage.root and await storage.adapter.exists(storage.root):
                console.print(f"✓ Storage root ready ({storage.platform}): {storage.root}", style="green")
            else:
                console.print(f"✗ Storage root unavailable: {storage.root}", style="red")
        finally:
            await storage.close()

    try:
        asyncio.run(run_probe())
    except Exception as e:
        console.print(f"✗ Storage probe failed: {e}", style="red")

    console.print("\n[dim]Status: Ready[/dim]")


@app.command()
def sync(
    ctx: typer.Context,
    root: Optional[str] = typer.Option(None, "--root", "-r", help="Sync this storage root instead of the configured one"),
) -> None:
    """Reconcile the database with the folder tree."""
    cfg = ctx.obj["config"]

    async def run_sync() -> SyncReport:
        storage = _open_storage(cfg, root)
        try:
            return await storage.init()
        finally:
            await storage.close()

    try:
        report = asyncio.run(run_sync())
    except Exception as e:
        console.print(f"[red]Sync failed: {e}[/red]")
        logging.exception("Sync operation failed")
        raise typer.Exit(1) from e

    print_report(report)
    if report.status == "failed":
        raise typer.Exit(1)


@app.command("set-root")
def set_root(
    path: str = typer.Argument(..., help="New storage root"),
) -> None:
    """Change where notes are stored (applies on next start)."""
    set_storage_root_override(path)
    console.print(f"[green]✓ Storage root changed:[/green] {path}")
    console.print("[dim]Restart or run 'memovault sync' to apply[/dim]")


@app.command()
def reset(
    ctx: typer.Context,
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Clear the record store (the folder tree is left alone)."""
    cfg = ctx.obj["config"]

    if not confirm:
        console.print("[yellow]⚠ Warning: This will clear all notes and folders from the database![/yellow]")
        console.print("[dim]Your note folders will NOT be deleted; the next sync rebuilds the database from them.[/dim]\n")
        if not typer.confirm("Are you sure you want to reset the database?"):
            console.print("[dim]Reset cancelled[/dim]")
            raise typer.Exit(0)

    async def run_reset():
        store = RecordStore(cfg.records_db_path)
        await store.initialize()
        await store.clear()

    try:
        asyncio.run(run_reset())
    except Exception as e:
        console.print(f"[red]Failed to reset database: {e}[/red]")
        logging.exception("Reset operation failed")
        raise typer.Exit(1) from e

    console.print("[green]✓ Database reset successfully[/green]")


notes_app = typer.Typer(help="Inspect notes")
app.add_typer(notes_app, name="notes")


async def _load_records(cfg: AppConfig) -> tuple[list[Note], list[Folder]]:
    store = RecordStore(cfg.records_db_path)
    await store.initialize()
    notes = parse_snapshots(Note, await store.get_all("notes"))
    folders = parse_snapshots(Folder, await store.get_all("folders"))
    return notes, folders


@notes_app.command("list")
def notes_list(
    ctx: typer.Context,
    trash: bool = typer.Option(False, "--trash", "-t", help="List trashed notes instead"),
    folder: Optional[str] = typer.Option(None, "--folder", "-f", help="Only notes in this folder (by name)"),
) -> None:
    """List notes in the database."""
    cfg = ctx.obj["config"]

    try:
        notes, folders = asyncio.run(_load_records(cfg))
    except Exception as e:
        console.print(f"[red]Failed to list notes: {e}[/red]")
        logging.exception("List operation failed")
        raise typer.Exit(1) from e

    folder_names = {f.id: f.name for f in folders}
    folder_names[TRASH_ID] = "Trash"
    selected = [note for note in notes if note.is_deleted == trash]
    if folder:
        selected = [note for note in selected if folder_names.get(note.folder_id or "") == folder]
    selected.sort(key=lambda note: (not note.is_pinned, -note.updated_at))

    table = Table(title="Trash" if trash else "Notes")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Folder", style="green")
    table.add_column("Tags", style="magenta")
    table.add_column("Pinned", justify="center")

    for note in selected:
        table.add_row(
            note.id,
            note.title,
            folder_names.get(note.folder_id or "", "Uncategorized"),
            ", ".join(note.tags),
            "★" if note.is_pinned else "",
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(selected)} notes[/dim]")


@notes_app.command("find")
def notes_find(
    ctx: typer.Context,
    note_id: str = typer.Argument(..., help="Note id"),
) -> None:
    """Show where a note's folder lives on disk."""
    cfg = ctx.obj["config"]

    async def run_find() -> str | None:
        storage = _open_storage(cfg)
        try:
            await storage.init_filesystem()
            return await storage.find_note_path(note_id)
        finally:
            await storage.close()

    path = asyncio.run(run_find())
    if path:
        console.print(path)
    else:
        console.print(f"[yellow]Note {note_id} has no folder on disk[/yellow]")
        raise typer.Exit(1)


folders_app = typer.Typer(help="Inspect folders")
app.add_typer(folders_app, name="folders")


@folders_app.command("list")
def folders_list(ctx: typer.Context) -> None:
    """List folders in the database."""
    cfg = ctx.obj["config"]

    try:
        notes, folders = asyncio.run(_load_records(cfg))
    except Exception as e:
        console.print(f"[red]Failed to list folders: {e}[/red]")
        logging.exception("List operation failed")
        raise typer.Exit(1) from e

    table = Table(title="Folders")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Notes", justify="right")
    table.add_column("Deleted", justify="center")

    for folder in sorted(folders, key=lambda f: f.name.lower()):
        count = sum(1 for note in notes if note.folder_id == folder.id)
        table.add_row(folder.id, folder.name, str(count), "✓" if folder.is_deleted else "")

    console.print(table)
    console.print(f"\n[dim]Total: {len(folders)} folders[/dim]")


if __name__ == "__main__":
    app()

"""Undo command for reverting a recorded operation.

This module provides the `pkgdeck undo` command, which runs the inverse
of a history entry and marks the entry as undone.
"""

from typing import Annotated

import typer
from rich.markup import escape

from pkgdeck.cli.types import fail, find_installed, get_config, get_manager, get_tracker
from pkgdeck.core.history import HistoryTracker
from pkgdeck.core.manager import PackageManager
from pkgdeck.errors import PkgdeckError
from pkgdeck.models.history import HistoryEntry, HistoryOperation
from pkgdeck.models.package import Package
from pkgdeck.utils.formatting import console, print_error, print_info, print_success


def undo(
    entry_id: Annotated[
        str,
        typer.Argument(help="History entry ID (a unique prefix is enough)."),
    ],
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be undone without executing.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
) -> None:
    """Undo a recorded operation.

    Reverses a history entry:
    - install -> remove
    - remove -> install
    - update -> downgrade to the previous version
    - downgrade -> update

    Examples:
        pkgdeck undo 3f2a9c1e            # Undo with confirmation
        pkgdeck undo 3f2a --dry-run      # Preview only
        pkgdeck undo 3f2a -y             # Skip confirmation
    """
    config = get_config()
    tracker = get_tracker(config)
    entry = tracker.history.get(entry_id)

    if entry is None:
        print_error(f"No history entry matches '{entry_id}'.")
        raise typer.Exit(code=1)
    if entry.undone:
        print_info("This operation was already undone.")
        return
    if not entry.is_reversible:
        print_error(f"{entry.operation.label} operations cannot be undone.")
        raise typer.Exit(code=1)
    if entry.operation in (HistoryOperation.UPDATE, HistoryOperation.EXTERNAL_UPDATE) and not entry.version_before:
        print_error("The previous version is unknown, so the update cannot be reverted.")
        raise typer.Exit(code=1)

    _show_undo_preview(entry)

    if dry_run:
        print_info("[dry-run] No changes made.")
        return

    if not yes:
        confirm = typer.confirm("Do you want to undo this operation?")
        if not confirm:
            print_info("Cancelled.")
            return

    try:
        _execute_undo(entry, get_manager(config), tracker)
    except PkgdeckError as e:
        fail(e)

    tracker.mark_undone(entry.id)
    print_success("Operation undone successfully.")


def _show_undo_preview(entry: HistoryEntry) -> None:
    """Display what the undo will do.

    Args:
        entry: The history entry to preview.
    """
    console.print(f"\n[bold]Undo: {entry.operation.label} -> {entry.operation.undo_label}[/bold]")
    console.print(f"  ID: {entry.id[:8]}")
    console.print(f"  Date: {entry.timestamp.astimezone().strftime('%Y-%m-%d %H:%M')}")
    console.print(f"  Package: {escape(entry.package_name)} ({entry.package_source.display_name})")
    if entry.version_display:
        console.print(f"  Version: {escape(entry.version_display)}")
    console.print()


def _execute_undo(entry: HistoryEntry, manager: PackageManager, tracker: HistoryTracker) -> None:
    """Run the inverse operation and record it.

    Args:
        entry: The history entry to undo.
        manager: Package manager that runs the operation.
        tracker: Tracker the inverse operation is recorded in.

    Raises:
        PkgdeckError: If the inverse operation fails.
    """
    name = entry.package_name
    source = entry.package_source
    operation = entry.operation

    if operation in (HistoryOperation.INSTALL, HistoryOperation.EXTERNAL_INSTALL):
        manager.remove(name, source)
        tracker.record_remove(Package(name=name, version=entry.version_after or "", source=source))
    elif operation in (HistoryOperation.REMOVE, HistoryOperation.EXTERNAL_REMOVE):
        manager.install(name, source)
        installed = find_installed(manager, name, source)
        tracker.record_install(installed or Package(name=name, version=entry.version_before or "", source=source))
    elif operation in (HistoryOperation.UPDATE, HistoryOperation.EXTERNAL_UPDATE):
        target = entry.version_before or ""
        manager.downgrade_to(name, source, target)
        tracker.record_downgrade(Package(name=name, version=entry.version_after or "", source=source), target)
    else:
        manager.update(name, source)
        updated = find_installed(manager, name, source)
        tracker.record_update(
            updated or Package(name=name, version="", source=source),
            old_version=entry.version_after or "",
        )

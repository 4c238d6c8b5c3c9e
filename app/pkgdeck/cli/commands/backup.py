"""Backup commands.

This module provides `pkgdeck backup create` to export the installed
package list and `pkgdeck backup restore` to install it again, for
example on a new machine.
"""

from pathlib import Path
from typing import Annotated

import typer

from pkgdeck.cli.types import fail, get_config, get_manager, get_tracker
from pkgdeck.core.backup import DEFAULT_BACKUP_FILE, load_backup, save_backup
from pkgdeck.core.config import save_config
from pkgdeck.core.manager import PackageManager
from pkgdeck.errors import AlreadyInstalledError, PkgdeckError
from pkgdeck.models.backup import PackageBackup
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    name="backup",
    help="Export and restore the installed package list.",
    no_args_is_help=True,
)


@app.command("create")
def create(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Backup file to write.",
        ),
    ] = Path(DEFAULT_BACKUP_FILE),
) -> None:
    """Write the installed packages of all enabled sources to a file.

    Examples:
        pkgdeck backup create
        pkgdeck backup create -o ~/laptop-packages.json
    """
    config = get_config()
    manager = get_manager(config)

    print_info("Collecting installed packages...")
    backup = PackageBackup.from_packages(
        manager.list_all_installed(),
        enabled_sources=config.enabled_sources,
        ignored_packages=config.ignored_packages,
    )
    try:
        path = save_backup(backup, output)
    except PkgdeckError as e:
        fail(e)

    print_success(
        f"Backup created: {path} ({backup.total_packages} packages from {len(backup.packages)} sources)"
    )


def _installed_names(manager: PackageManager, source: PackageSource) -> set[str]:
    try:
        return {pkg.name for pkg in manager.list_installed(source)}
    except PkgdeckError:
        return set()


@app.command("restore")
def restore(
    file: Annotated[Path, typer.Argument(help="Backup file to restore.")],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
) -> None:
    """Install every package from a backup that is not installed yet.

    Sources that are disabled or missing here are skipped. The ignore
    list of the backup is merged into the config.

    Examples:
        pkgdeck backup restore pkgdeck-backup.json
        pkgdeck backup restore laptop-packages.json -y
    """
    try:
        backup = load_backup(file)
    except PkgdeckError as e:
        fail(e)

    console.print(f"Backup from: {backup.created_at.astimezone().strftime('%Y-%m-%d %H:%M')}")
    console.print(f"Contains {backup.total_packages} packages from {len(backup.packages)} sources")
    if not yes and not typer.confirm("Install all packages from the backup?"):
        print_info("Cancelled.")
        raise typer.Exit()

    config = get_config()
    manager = get_manager(config)
    tracker = get_tracker(config)
    installed = present = failed = 0

    for source in backup.sources():
        entries = backup.packages[source]
        if not manager.is_enabled(source):
            print_warning(f"{source.display_name} is not enabled here, skipping {len(entries)} packages.")
            continue
        already = _installed_names(manager, source)
        print_info(f"Installing {len(entries)} packages from {source.display_name}...")
        for entry in entries:
            if entry.name in already:
                present += 1
                continue
            try:
                manager.install(entry.name, source)
            except AlreadyInstalledError:
                present += 1
                continue
            except PkgdeckError as e:
                failed += 1
                print_warning(f"Failed to install {entry.name}: {e.short_message}")
                continue
            installed += 1
            tracker.record_install(Package(name=entry.name, version="", source=source))

    merged = list(dict.fromkeys([*config.ignored_packages, *backup.ignored_packages]))
    if merged != config.ignored_packages:
        try:
            save_config(config.model_copy(update={"ignored_packages": merged}))
        except PkgdeckError as e:
            fail(e)

    summary = f"Restore complete: {installed} installed, {present} already installed, {failed} failed."
    if failed:
        print_warning(summary)
        raise typer.Exit(code=1)
    print_success(summary)

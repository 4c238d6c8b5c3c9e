"""Package commands.

This module provides the commands that query and change packages:
``list``, ``updates``, ``search``, ``info``, ``install``, ``remove``,
``update``, ``downgrade`` and ``clean``. Queries without ``--source`` go
to every enabled source; changes name a source, except ``update --all``.
"""

import json
from typing import Annotated

import typer
from rich.markup import escape

from pkgdeck.cli.display import create_packages_table, print_package_details
from pkgdeck.cli.types import fail, find_installed, get_config, get_manager, get_tracker
from pkgdeck.core.enrichment import EnrichmentCache
from pkgdeck.core.package_cache import PackageCache
from pkgdeck.errors import PkgdeckError
from pkgdeck.models.package import Package, PackageSource, PackageStatus, format_size
from pkgdeck.utils.formatting import console, print_error, print_info, print_success, print_warning

SourceOption = Annotated[
    PackageSource | None,
    typer.Option(
        "--source",
        "-s",
        case_sensitive=False,
        help="Restrict to one package source.",
    ),
]
RequiredSourceOption = Annotated[
    PackageSource,
    typer.Option(
        "--source",
        "-s",
        case_sensitive=False,
        help="Package source to use.",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON.",
    ),
]
YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Skip confirmation prompt.",
    ),
]


def _print_packages(packages: list[Package], title: str, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps([pkg.to_dict() for pkg in packages], indent=2, ensure_ascii=False))
        return
    if not packages:
        print_info("No packages found.")
        return
    console.print(create_packages_table(packages, title))
    console.print(f"\n[muted]{len(packages)} packages[/muted]")


def _confirm(question: str, yes: bool) -> None:
    if yes:
        return
    if not typer.confirm(question):
        print_info("Cancelled.")
        raise typer.Exit()


def list_packages(
    source: SourceOption = None,
    json_output: JsonOption = False,
    no_snapshot: Annotated[
        bool,
        typer.Option(
            "--no-snapshot",
            help="Do not record external changes or update the snapshot.",
        ),
    ] = False,
) -> None:
    """List installed packages.

    A full listing is compared with the previous one: packages installed,
    removed or updated outside pkgdeck are recorded in the history.

    Examples:
        pkgdeck list                 # All enabled sources
        pkgdeck list --source flatpak
        pkgdeck list --json
    """
    config = get_config()
    manager = get_manager(config)

    if source is not None:
        try:
            packages = manager.list_installed(source)
        except PkgdeckError as e:
            fail(e)
        _print_packages(packages, f"Installed Packages ({source.display_name})", json_output)
        return

    packages, listed = manager.scan_installed()
    cache = PackageCache()
    cache.update(packages)
    cache.save()

    if not no_snapshot:
        tracker = get_tracker(config)
        external = tracker.reconcile(packages, listed)
        if external and not json_output:
            print_info(f"Recorded {len(external)} changes made outside pkgdeck.")

    _print_packages(packages, "Installed Packages", json_output)


def updates(
    source: SourceOption = None,
    json_output: JsonOption = False,
    backfill: Annotated[
        bool,
        typer.Option(
            "--backfill",
            help="Look up installed versions that the source does not report.",
        ),
    ] = False,
) -> None:
    """List packages with an update available.

    Ignored packages from the config are left out.

    Examples:
        pkgdeck updates
        pkgdeck updates --source npm --json
        pkgdeck updates --backfill   # Fill in current Flatpak/Snap/DNF versions
    """
    config = get_config()
    manager = get_manager(config)

    try:
        if source is not None:
            found = [pkg for pkg in manager.check_updates(source) if pkg.available_version]
        else:
            found = manager.check_all_updates()
    except PkgdeckError as e:
        fail(e)

    found = [pkg for pkg in found if not config.is_ignored(pkg.id)]
    if backfill:
        found = manager.backfill_installed_versions(found)
    _print_packages(found, "Available Updates", json_output)


def search(
    query: Annotated[str, typer.Argument(help="Text to search for.")],
    source: SourceOption = None,
    json_output: JsonOption = False,
) -> None:
    """Search enabled sources for packages.

    Examples:
        pkgdeck search ripgrep
        pkgdeck search requests --source pip
    """
    manager = get_manager()
    if source is not None:
        try:
            results = manager.backend_for(source).search(query) if query.strip() else []
        except PkgdeckError as e:
            fail(e)
    else:
        results = manager.search(query)
    _print_packages(results, f"Search Results for '{query}'", json_output)


def info(
    name: Annotated[str, typer.Argument(help="Package name.")],
    source: RequiredSourceOption,
    json_output: JsonOption = False,
) -> None:
    """Show package details with metadata from the online registry.

    Registry data is cached for a week in ~/.cache/pkgdeck.

    Examples:
        pkgdeck info ripgrep --source cargo
        pkgdeck info org.mozilla.firefox --source flatpak
    """
    config = get_config()
    manager = get_manager(config)
    pkg = find_installed(manager, name, source)
    if pkg is None:
        pkg = Package(name=name, version="", source=source, status=PackageStatus.NOT_INSTALLED)

    enrichment = None
    if config.enrichment_enabled:
        cache = EnrichmentCache()
        cache.load()
        enrichment = cache.enrich(pkg)
        cache.flush()

    if json_output:
        data = pkg.to_dict()
        data["enrichment"] = enrichment.to_dict() if enrichment is not None else None
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return
    print_package_details(pkg, enrichment)


def install(
    name: Annotated[str, typer.Argument(help="Package name.")],
    source: RequiredSourceOption,
    yes: YesOption = False,
) -> None:
    """Install a package.

    Examples:
        pkgdeck install htop --source apt
        pkgdeck install httpie --source pipx -y
    """
    _confirm(f"Install {name} from {source.display_name}?", yes)
    config = get_config()
    manager = get_manager(config)
    try:
        manager.install(name, source)
    except PkgdeckError as e:
        fail(e)

    installed = find_installed(manager, name, source) or Package(name=name, version="", source=source)
    get_tracker(config).record_install(installed)
    print_success(f"Installed {name} ({source.display_name}).")


def remove(
    name: Annotated[str, typer.Argument(help="Package name.")],
    source: RequiredSourceOption,
    yes: YesOption = False,
) -> None:
    """Remove a package.

    Examples:
        pkgdeck remove htop --source apt
    """
    _confirm(f"Remove {name} from {source.display_name}?", yes)
    config = get_config()
    manager = get_manager(config)
    before = find_installed(manager, name, source) or Package(name=name, version="", source=source)
    try:
        manager.remove(name, source)
    except PkgdeckError as e:
        fail(e)

    get_tracker(config).record_remove(before)
    print_success(f"Removed {name} ({source.display_name}).")


def update(
    name: Annotated[str | None, typer.Argument(help="Package name. Omit with --all.")] = None,
    source: SourceOption = None,
    update_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Update every package with an available update.",
        ),
    ] = False,
    yes: YesOption = False,
) -> None:
    """Update a package, or every package with --all.

    With --all, ignored packages are skipped and --source limits the
    update to one source.

    Examples:
        pkgdeck update firefox --source snap
        pkgdeck update --all
        pkgdeck update --all --source flatpak -y
    """
    if update_all:
        _update_all(source, yes)
        return
    if name is None or source is None:
        print_error("Give a package name and --source, or use --all.")
        raise typer.Exit(code=1)

    _confirm(f"Update {name} from {source.display_name}?", yes)
    config = get_config()
    manager = get_manager(config)
    before = find_installed(manager, name, source)
    try:
        manager.update(name, source)
    except PkgdeckError as e:
        fail(e)

    after = find_installed(manager, name, source) or Package(name=name, version="", source=source)
    get_tracker(config).record_update(
        after,
        old_version=before.version if before is not None else "",
        old_size=before.size if before is not None else None,
    )
    print_success(f"Updated {name} ({source.display_name}).")


def _update_all(source: PackageSource | None, yes: bool) -> None:
    config = get_config()
    manager = get_manager(config)
    try:
        if source is not None:
            pending = [pkg for pkg in manager.check_updates(source) if pkg.available_version]
        else:
            pending = manager.check_all_updates()
    except PkgdeckError as e:
        fail(e)

    pending = [pkg for pkg in pending if not config.is_ignored(pkg.id)]
    if not pending:
        print_info("All packages are up to date.")
        return

    console.print(create_packages_table(pending, "Available Updates"))
    _confirm(f"Update all {len(pending)} packages?", yes)

    tracker = get_tracker(config)
    failed = 0
    for pkg in pending:
        try:
            manager.update(pkg.name, pkg.source)
        except PkgdeckError as e:
            failed += 1
            print_warning(f"{pkg.id}: {e.short_message}")
            continue
        tracker.record_update(pkg, old_version=pkg.version)

    updated = len(pending) - failed
    if failed:
        print_warning(f"Updated {updated} packages, {failed} failed.")
        raise typer.Exit(code=1)
    print_success(f"Updated {updated} packages.")


def downgrade(
    name: Annotated[str, typer.Argument(help="Package name.")],
    source: RequiredSourceOption,
    to: Annotated[
        str | None,
        typer.Option(
            "--to",
            help="Version to install. Default: the previous version.",
        ),
    ] = None,
    list_versions: Annotated[
        bool,
        typer.Option(
            "--list",
            help="List versions the package can be downgraded to.",
        ),
    ] = False,
    yes: YesOption = False,
) -> None:
    """Downgrade a package.

    Without --to the source's own rollback is used (for example
    ``snap revert`` or ``dnf downgrade``).

    Examples:
        pkgdeck downgrade firefox --source snap
        pkgdeck downgrade typer --source pip --to 0.9.0
        pkgdeck downgrade typer --source pip --list
    """
    config = get_config()
    manager = get_manager(config)

    if list_versions:
        try:
            versions = manager.available_downgrade_versions(name, source)
        except PkgdeckError as e:
            fail(e)
        if not versions:
            print_info(f"{source.display_name} does not list older versions of {name}.")
            return
        for version in versions:
            console.print(escape(version))
        return

    target = f"{name} {to}" if to else name
    _confirm(f"Downgrade {target} ({source.display_name})?", yes)
    before = find_installed(manager, name, source) or Package(name=name, version="", source=source)
    try:
        if to:
            manager.downgrade_to(name, source, to)
        else:
            manager.downgrade(name, source)
    except PkgdeckError as e:
        fail(e)

    target_version = to
    if target_version is None:
        after = find_installed(manager, name, source)
        target_version = after.version if after is not None else None
    get_tracker(config).record_downgrade(before, target_version)
    print_success(f"Downgraded {name} ({source.display_name}).")


def clean(
    source: SourceOption = None,
    yes: YesOption = False,
) -> None:
    """Clean package manager caches.

    Examples:
        pkgdeck clean                # Every enabled source
        pkgdeck clean --source apt
    """
    scope = source.display_name if source is not None else "all enabled sources"
    _confirm(f"Clean caches of {scope}?", yes)
    config = get_config()
    manager = get_manager(config)
    try:
        freed = manager.cleanup(source)
    except PkgdeckError as e:
        fail(e)

    if not freed:
        print_warning("No caches were cleaned.")
        return
    total = sum(freed.values())
    get_tracker(config).record_cleanup(source, total)
    for cleaned, size in freed.items():
        console.print(f"  {cleaned.display_name}: {format_size(size)}")
    print_success(f"Freed {format_size(total)}.")

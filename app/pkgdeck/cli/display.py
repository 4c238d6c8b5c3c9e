"""Shared Rich display functions for CLI commands.

Provides table builders for packages, providers, history entries and
scheduled tasks, and the detail view used by ``pkgdeck info``.
"""

from datetime import datetime

from rich.markup import escape
from rich.table import Table

from pkgdeck.models.history import HistoryEntry, HistoryOperation
from pkgdeck.models.package import Package, PackageEnrichment, format_size
from pkgdeck.models.provider import ProviderStatus
from pkgdeck.models.schedule import ScheduledTask
from pkgdeck.utils.formatting import console, create_package_table, format_package_row


def create_packages_table(packages: list[Package], title: str) -> Table:
    """Create a package table filled with the given packages."""
    table = create_package_table(title=title)
    for pkg in packages:
        table.add_row(*format_package_row(pkg))
    return table


def create_providers_table(statuses: list[ProviderStatus]) -> Table:
    """Create a table showing which package sources can be used.

    Args:
        statuses: Probe results, one per source.

    Returns:
        Rich Table with Source, Status, Version and Details columns.
    """
    table = Table(
        title="Package Sources",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Source", no_wrap=True)
    table.add_column("Status", width=11)
    table.add_column("Version", style="muted")
    table.add_column("Details", style="muted")

    for status in statuses:
        if status.available:
            state = "[success]available[/success]"
            details = ", ".join(status.found_paths)
        else:
            state = "[muted]missing[/muted]"
            details = status.reason or ""
            if status.source.install_hint:
                details = f"{details} ({status.source.install_hint})" if details else status.source.install_hint
        table.add_row(status.display_name, state, escape(status.version or "-"), escape(details))
    return table


_OPERATION_STYLES = {
    HistoryOperation.INSTALL: "added",
    HistoryOperation.EXTERNAL_INSTALL: "added",
    HistoryOperation.REMOVE: "removed",
    HistoryOperation.EXTERNAL_REMOVE: "removed",
    HistoryOperation.UPDATE: "changed",
    HistoryOperation.EXTERNAL_UPDATE: "changed",
    HistoryOperation.DOWNGRADE: "warning",
    HistoryOperation.CLEANUP: "muted",
}


def create_history_table(entries: list[HistoryEntry], now: datetime | None = None) -> Table:
    """Create a Rich table displaying history entries.

    Undone entries are struck through. Columns: ID, When, Operation,
    Package, Source, Version and Size.

    Args:
        entries: History entries, most recent first.
        now: Reference instant for relative times.

    Returns:
        Rich Table configured for history display.
    """
    table = Table(
        title="Package History",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="muted", width=8)
    table.add_column("When", style="muted")
    table.add_column("Operation")
    table.add_column("Package", no_wrap=True)
    table.add_column("Source", style="muted")
    table.add_column("Version", style="muted")
    table.add_column("Size", justify="right", style="muted")

    for entry in entries:
        style = _OPERATION_STYLES.get(entry.operation, "text")
        operation = f"[{style}]{entry.operation.label}[/{style}]"
        if entry.undone:
            operation = f"[strike]{operation}[/strike] [muted](undone)[/muted]"
        size = ""
        if entry.size_change is not None:
            sign = "-" if entry.size_change < 0 else "+"
            size = f"{sign}{format_size(abs(entry.size_change))}"
        table.add_row(
            entry.id[:8],
            entry.relative_time(now),
            operation,
            escape(entry.package_name),
            entry.package_source.display_name,
            escape(entry.version_display or ""),
            size,
        )
    return table


def create_schedule_table(tasks: list[ScheduledTask], now: datetime | None = None) -> Table:
    """Create a Rich table displaying scheduled tasks."""
    table = Table(
        title="Scheduled Operations",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="muted", width=8)
    table.add_column("Operation")
    table.add_column("Package", no_wrap=True)
    table.add_column("Scheduled", style="muted")
    table.add_column("Status")

    for task in tasks:
        if task.failed:
            status = f"[error]failed: {escape(task.error or '')}[/error]"
        elif task.completed:
            status = "[success]done[/success]"
        else:
            status = f"[info]{task.time_until(now)}[/info]"
        table.add_row(
            task.id[:8],
            task.operation.display_name,
            escape(task.package_id),
            task.scheduled_time_display,
            status,
        )
    return table


def print_package_details(pkg: Package, enrichment: PackageEnrichment | None) -> None:
    """Print a package and its registry metadata as a key/value list."""
    console.print(f"\n[bold]{escape(pkg.name)}[/bold] [muted]({pkg.source.display_name})[/muted]")
    rows: list[tuple[str, str | None]] = [
        ("Version", pkg.display_version or None),
        ("Description", pkg.description or None),
        ("Size", pkg.size_display if pkg.size is not None else None),
    ]
    if enrichment is not None:
        rows.extend(
            [
                ("Summary", enrichment.summary),
                ("Developer", enrichment.developer),
                ("Repository", enrichment.repository),
                ("Categories", ", ".join(enrichment.categories) or None),
                ("Keywords", ", ".join(enrichment.keywords) or None),
                ("Downloads", f"{enrichment.downloads:,}" if enrichment.downloads is not None else None),
                ("Rating", f"{enrichment.rating:.1f} / 5" if enrichment.rating is not None else None),
                ("Last updated", enrichment.last_updated),
                ("Icon", enrichment.icon_url),
            ]
        )
    for label, value in rows:
        if value:
            console.print(f"  [muted]{label + ':':<14}[/muted]{escape(value)}")
    console.print()

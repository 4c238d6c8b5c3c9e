"""History command for viewing past operations.

This module provides the `pkgdeck history` command for viewing, exporting
and summarizing recorded package operations.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from pkgdeck.cli.display import create_history_table
from pkgdeck.cli.types import get_tracker
from pkgdeck.models.history import HistoryEntry, HistoryOperation
from pkgdeck.models.package import PackageSource
from pkgdeck.utils.formatting import console, print_info, print_success

app = typer.Typer(
    name="history",
    help="View history of package changes.",
    invoke_without_command=True,
)


class ExportFormat(str, Enum):
    """Formats for ``pkgdeck history export``."""

    JSON = "json"
    CSV = "csv"


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            min=1,
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    source: Annotated[
        PackageSource | None,
        typer.Option(
            "--source",
            "-s",
            case_sensitive=False,
            help="Only show entries of this source.",
        ),
    ] = None,
    operation: Annotated[
        HistoryOperation | None,
        typer.Option(
            "--operation",
            "-o",
            case_sensitive=False,
            help="Only show entries of this operation.",
        ),
    ] = None,
    search: Annotated[
        str | None,
        typer.Option(
            "--search",
            help="Only show packages whose name contains this text.",
        ),
    ] = None,
    since: Annotated[
        str | None,
        typer.Option(
            "--since",
            help="Show entries since date (YYYY-MM-DD).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show history of package changes.

    Lists operations performed through pkgdeck and changes detected on
    the system since the last listing, most recent first.

    Examples:
        pkgdeck history                    # Show last 20 entries
        pkgdeck history -n 50 --source apt
        pkgdeck history --operation external_install
        pkgdeck history --since 2026-01-01 --json
    """
    if ctx.invoked_subcommand is not None:
        return

    tracker = get_tracker()
    entries = tracker.history.entries

    if since:
        try:
            start = datetime.fromisoformat(since)
        except ValueError:
            typer.echo(f"Invalid date format: {since}. Use YYYY-MM-DD.", err=True)
            raise typer.Exit(code=1) from None
        if start.tzinfo is None:
            start = start.astimezone()
        entries = tracker.history.filter_by_date_range(start, datetime.now(UTC))

    if source is not None:
        entries = [e for e in entries if e.package_source == source]
    if operation is not None:
        entries = [e for e in entries if e.operation == operation]
    if search:
        needle = search.lower()
        entries = [e for e in entries if needle in e.package_name.lower()]
    entries = entries[:limit]

    if not entries:
        print_info("No history entries found.")
        return

    if json_output:
        _print_json(entries)
    else:
        console.print(create_history_table(entries))


def _print_json(entries: list[HistoryEntry]) -> None:
    """Print history entries as JSON for scripting."""
    output = [entry.to_dict() for entry in entries]
    typer.echo(json.dumps(output, indent=2, ensure_ascii=False))


@app.command("export")
def export(
    export_format: Annotated[
        ExportFormat,
        typer.Option(
            "--format",
            "-f",
            case_sensitive=False,
            help="Export format.",
        ),
    ] = ExportFormat.JSON,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="File to write. Default: standard output.",
        ),
    ] = None,
) -> None:
    """Export the complete history as JSON or CSV.

    Examples:
        pkgdeck history export > history.json
        pkgdeck history export --format csv -o history.csv
    """
    tracker = get_tracker()
    text = tracker.export_json() if export_format == ExportFormat.JSON else tracker.export_csv()

    if output is None:
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    print_success(f"Exported {len(tracker.history.entries)} entries to {output}")


@app.command("stats")
def stats() -> None:
    """Show how many operations of each kind were recorded."""
    tracker = get_tracker()
    summary = tracker.history.stats()

    table = Table(
        title="History Summary",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Operation")
    table.add_column("Count", justify="right")
    table.add_row("Installs", str(summary.installs))
    table.add_row("Removals", str(summary.removes))
    table.add_row("Updates", str(summary.updates))
    table.add_row("Downgrades", str(summary.downgrades))
    table.add_row("Cleanups", str(summary.cleanups))
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total}[/bold]")
    console.print(table)

    today = tracker.history.today_entries()
    if today:
        print_info(f"{len(today)} operations today.")

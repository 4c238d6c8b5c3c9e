"""Providers command for checking which package sources can be used.

This module provides the `pkgdeck providers` command, which probes the
system for the command-line tools behind every package source.
"""

import json
from typing import Annotated

import typer

from pkgdeck.backends.providers import detect_available_providers, detect_providers
from pkgdeck.cli.display import create_providers_table
from pkgdeck.utils.formatting import console, print_info

app = typer.Typer(
    name="providers",
    help="Show which package sources are available.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def providers(
    ctx: typer.Context,
    available_only: Annotated[
        bool,
        typer.Option(
            "--available",
            "-a",
            help="Only show available sources.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Probe the system for package managers.

    Available sources are listed first, with the resolved tool paths and
    the tool's version.

    Examples:
        pkgdeck providers
        pkgdeck providers --available --json
    """
    if ctx.invoked_subcommand is not None:
        return

    statuses = detect_available_providers() if available_only else detect_providers()

    if json_output:
        typer.echo(json.dumps([status.to_dict() for status in statuses], indent=2))
        return

    if not statuses:
        print_info("No package sources found.")
        return

    console.print(create_providers_table(statuses))
    available = sum(1 for status in statuses if status.available)
    console.print(f"\n[muted]{available} of {len(statuses)} sources available[/muted]")

"""Sources commands for enabling and disabling package sources.

This module provides `pkgdeck sources list|enable|disable`. Changes are
written to ~/.config/pkgdeck/config.toml.
"""

from typing import Annotated

import typer
from rich.table import Table

from pkgdeck.backends.providers import PROBES, probe_available
from pkgdeck.cli.types import fail, get_config
from pkgdeck.core.config import save_config, set_source_enabled
from pkgdeck.errors import ConfigError
from pkgdeck.models.package import PackageSource
from pkgdeck.utils.formatting import console, print_info, print_success

app = typer.Typer(
    name="sources",
    help="Enable or disable package sources.",
    no_args_is_help=True,
)

SourceArgument = Annotated[
    PackageSource,
    typer.Argument(case_sensitive=False, help="Package source."),
]


@app.command("list")
def list_sources() -> None:
    """List every source with its configured and detected state."""
    config = get_config()

    table = Table(
        title="Package Sources",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Source", no_wrap=True)
    table.add_column("Enabled")
    table.add_column("Installed")
    table.add_column("Description", style="muted")

    for source in sorted(PackageSource, key=lambda s: s.order):
        enabled = "[success]yes[/success]" if config.is_source_enabled(source) else "[muted]no[/muted]"
        detected = "[success]yes[/success]" if probe_available(PROBES[source]) else "[muted]no[/muted]"
        table.add_row(f"{source.display_name} [muted]({source.value})[/muted]", enabled, detected, source.description)
    console.print(table)


def _set_enabled(source: PackageSource, enabled: bool) -> None:
    config = get_config()
    if config.is_source_enabled(source) == enabled:
        print_info(f"{source.display_name} is already {'enabled' if enabled else 'disabled'}.")
        return
    try:
        path = save_config(set_source_enabled(config, source, enabled))
    except ConfigError as e:
        fail(e)
    print_success(f"{source.display_name} {'enabled' if enabled else 'disabled'} ({path}).")


@app.command("enable")
def enable(source: SourceArgument) -> None:
    """Enable a package source."""
    _set_enabled(source, True)


@app.command("disable")
def disable(source: SourceArgument) -> None:
    """Disable a package source."""
    _set_enabled(source, False)

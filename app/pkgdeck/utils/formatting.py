"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pkgdeck.core.theme import get_theme
from pkgdeck.models.package import PackageStatus, format_size

if TYPE_CHECKING:
    from pkgdeck.models.package import Package

__all__ = [
    "console",
    "create_package_table",
    "err_console",
    "format_package_row",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_package_table(title: str = "Installed Packages") -> Table:
    """Create a pre-configured table for displaying packages.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for package display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    # Status column: icon only, no header text
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Source", style="muted")
    table.add_column("Version", style="muted")
    table.add_column("Description", style="text", overflow="ellipsis")
    return table


def format_package_row(pkg: Package) -> tuple[str, str, str, str, str]:
    """Format a package as a table row with proper styling.

    Installed packages get a filled circle, packages with an update an
    up arrow and search results an empty circle.

    Args:
        pkg: The package to format.

    Returns:
        Tuple of (icon, name, source, version, description) with Rich markup.
        Text reported by a package manager is escaped.
    """
    if pkg.status == PackageStatus.UPDATE_AVAILABLE:
        style = "package_update"
        icon = "↑"
    elif pkg.status == PackageStatus.NOT_INSTALLED:
        style = "package_available"
        icon = "○"
    else:
        style = "package_installed"
        icon = "●"

    return (
        f"[{style}]{icon}[/]",
        f"[{style}]{escape(pkg.name)}[/]",
        f"[muted]{pkg.source.display_name}[/]",
        f"[muted]{escape(pkg.display_version or '-')}[/]",
        f"[text]{escape(pkg.description or '-')}[/]",
    )


def print_info(message: str) -> None:
    """Print an info message. The message is plain text, not markup."""
    console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")

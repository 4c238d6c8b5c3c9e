"""Shared types and helpers for CLI commands.

Builds the configured PackageManager and HistoryTracker and reports
PkgdeckError failures consistently across command modules.
"""

import logging
from typing import NoReturn

import typer
from rich.markup import escape

from pkgdeck.core.config import AppConfig, load_config
from pkgdeck.core.history import HistoryTracker
from pkgdeck.core.manager import PackageManager
from pkgdeck.errors import ConfigError, PkgdeckError
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.utils.formatting import err_console, print_error, print_warning

logger = logging.getLogger(__name__)


def get_config() -> AppConfig:
    """Load the config file or exit with an error message."""
    try:
        return load_config()
    except ConfigError as e:
        fail(e)


def get_manager(config: AppConfig | None = None) -> PackageManager:
    """Create a PackageManager restricted to the configured sources."""
    config = config or get_config()
    return PackageManager(enabled_sources=config.enabled_sources)


def get_tracker(config: AppConfig | None = None) -> HistoryTracker:
    """Create and load the history tracker."""
    config = config or get_config()
    tracker = HistoryTracker(max_entries=config.history_max_entries)
    tracker.load()
    return tracker


def fail(error: PkgdeckError) -> NoReturn:
    """Print a pkgdeck error and exit with code 1.

    Cancelled authorizations are not failures of the package manager,
    so they are printed without the error prefix. Errors that are not
    error level (already installed, not installed) print as warnings.
    """
    if error.is_cancelled:
        level = logging.INFO
    else:
        level = logging.ERROR if error.is_error_level else logging.WARNING
    logger.log(level, "%s", error.short_message)
    if error.is_cancelled:
        err_console.print(f"[warning]{escape(error.user_message)}[/]")
    elif not error.is_error_level:
        print_warning(error.user_message)
    else:
        print_error(error.user_message)
    raise typer.Exit(code=1)


def find_installed(manager: PackageManager, name: str, source: PackageSource) -> Package | None:
    """Look up an installed package; lookup failures count as not found."""
    try:
        installed = manager.list_installed(source)
    except PkgdeckError:
        return None
    for pkg in installed:
        if pkg.name == name:
            return pkg
    return None

"""Utility modules for pkgdeck.

This module exports commonly used utility functions.
"""

from pkgdeck.utils.formatting import (
    console,
    create_package_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from pkgdeck.utils.shell import CommandResult, command_exists, run_command, which

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_package_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "which",
]

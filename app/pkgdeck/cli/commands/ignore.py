"""Ignore commands.

This module provides `pkgdeck ignore list|add|remove`. Ignored packages
are left out of ``pkgdeck updates`` and ``pkgdeck update --all``. An
entry is either a package id ('APT:vim') or, without ``--source``, a
bare name that matches the package in every source.
"""

from typing import Annotated

import typer

from pkgdeck.cli.types import fail, get_config
from pkgdeck.core.config import save_config, set_package_ignored
from pkgdeck.errors import ConfigError
from pkgdeck.models.package import PackageSource
from pkgdeck.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    name="ignore",
    help="Manage packages excluded from updates.",
    no_args_is_help=True,
)

NameArgument = Annotated[str, typer.Argument(help="Package name.")]
SourceOption = Annotated[
    PackageSource | None,
    typer.Option(
        "--source",
        "-s",
        case_sensitive=False,
        help="Only ignore the package from this source.",
    ),
]


def _package_id(name: str, source: PackageSource | None) -> str:
    return f"{source.display_name}:{name}" if source is not None else name


@app.command("list")
def list_ignored() -> None:
    """List ignored packages."""
    config = get_config()
    if not config.ignored_packages:
        print_info("No packages are currently ignored.")
        return
    for entry in config.ignored_packages:
        console.print(f"  {entry}", markup=False)


@app.command("add")
def add(name: NameArgument, source: SourceOption = None) -> None:
    """Ignore a package in update lists.

    Examples:
        pkgdeck ignore add linux-firmware --source apt
        pkgdeck ignore add node
    """
    package_id = _package_id(name, source)
    config = get_config()
    if package_id in config.ignored_packages:
        print_warning(f"Package '{package_id}' is already ignored.")
        return
    try:
        save_config(set_package_ignored(config, package_id, True))
    except ConfigError as e:
        fail(e)
    print_success(f"Package '{package_id}' will be ignored from updates.")


@app.command("remove")
def remove(name: NameArgument, source: SourceOption = None) -> None:
    """Stop ignoring a package."""
    package_id = _package_id(name, source)
    config = get_config()
    if package_id not in config.ignored_packages:
        print_warning(f"Package '{package_id}' was not in the ignore list.")
        return
    try:
        save_config(set_package_ignored(config, package_id, False))
    except ConfigError as e:
        fail(e)
    print_success(f"Package '{package_id}' will no longer be ignored.")

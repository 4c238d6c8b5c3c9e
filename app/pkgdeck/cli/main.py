"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from pkgdeck import __version__
from pkgdeck.cli.commands import backup, history, ignore, packages, providers, schedule, sources, undo
from pkgdeck.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="pkgdeck",
    help="One front end for every package manager on your Linux system.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pkgdeck version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log debug messages.
        quiet: Log errors only. Ignored when verbose is set.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=verbose)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """pkgdeck - One front end for every package manager.

    List, search, install, update and downgrade packages from APT, DNF,
    Pacman, Flatpak, Snap, npm, pip, Cargo and more with one command set.
    """
    configure_logging(verbose=verbose, quiet=quiet)
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.command(name="list")(packages.list_packages)
app.command(name="updates")(packages.updates)
app.command(name="search")(packages.search)
app.command(name="info")(packages.info)
app.command(name="install")(packages.install)
app.command(name="remove")(packages.remove)
app.command(name="update")(packages.update)
app.command(name="downgrade")(packages.downgrade)
app.command(name="clean")(packages.clean)
app.command(name="undo")(undo.undo)
app.add_typer(providers.app, name="providers")
app.add_typer(history.app, name="history")
app.add_typer(schedule.app, name="schedule")
app.add_typer(sources.app, name="sources")
app.add_typer(ignore.app, name="ignore")
app.add_typer(backup.app, name="backup")


if __name__ == "__main__":
    app()

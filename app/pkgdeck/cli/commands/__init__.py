"""CLI command modules."""

from pkgdeck.cli.commands import backup, history, ignore, packages, providers, schedule, sources, undo

__all__ = ["backup", "history", "ignore", "packages", "providers", "schedule", "sources", "undo"]

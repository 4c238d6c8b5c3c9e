"""Provider availability model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pkgdeck.models.package import PackageSource


@dataclass(frozen=True, slots=True)
class ProviderStatus:
    """Availability of one package source on this system.

    Attributes:
        source: Package source.
        display_name: Human-readable source name.
        available: Whether the source can be used.
        list_cmds: Commands needed to list packages.
        privileged_cmds: Commands needed for privileged operations.
        found_paths: Resolved paths of the commands that exist, sorted.
        version: First line of the tool's version output.
        reason: Why the source is unavailable.
    """

    source: PackageSource
    display_name: str
    available: bool
    list_cmds: tuple[str, ...] = ()
    privileged_cmds: tuple[str, ...] = ()
    found_paths: tuple[str, ...] = ()
    version: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "source": self.source.value,
            "display_name": self.display_name,
            "available": self.available,
            "list_cmds": list(self.list_cmds),
            "privileged_cmds": list(self.privileged_cmds),
            "found_paths": list(self.found_paths),
            "version": self.version,
            "reason": self.reason,
        }

"""Snap backend implementation."""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

# Base snaps and runtimes that are system components rather than apps
_SYSTEM_SNAPS = frozenset({"bare", "snapd"})
_SYSTEM_SNAP_PREFIXES = ("core", "gnome-", "gtk-", "mesa-")


def is_system_snap(name: str) -> bool:
    """Check if a snap is a base snap or shared runtime."""
    return name in _SYSTEM_SNAPS or name.startswith(_SYSTEM_SNAP_PREFIXES)


def parse_snap_list(text: str) -> list[Package]:
    """Parse ``snap list`` output, skipping the header and system snaps."""
    packages: list[Package] = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 2 or is_system_snap(parts[0]):
            continue
        packages.append(Package(name=parts[0], version=parts[1], source=PackageSource.SNAP))
    return packages


def parse_snap_refresh_list(text: str) -> list[Package]:
    """Parse ``snap refresh --list`` output.

    The listed version is the one available in the store; the installed
    version is not reported, so ``version`` is left empty.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("Name") or "All snaps up to date" in line:
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        packages.append(
            Package(
                name=parts[0],
                version="",
                source=PackageSource.SNAP,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=parts[1],
            )
        )
    return packages


def parse_snap_find(text: str) -> list[Package]:
    """Parse ``snap find`` output.

    Columns are Name, Version, Publisher, Notes, Summary; the summary is
    everything after the fourth column.
    """
    packages: list[Package] = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        packages.append(
            Package(
                name=parts[0],
                version=parts[1],
                source=PackageSource.SNAP,
                status=PackageStatus.NOT_INSTALLED,
                description=" ".join(parts[4:]),
                maintainer=parts[2],
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class SnapBackend(Backend):
    """Backend for Snap packages."""

    source = PackageSource.SNAP
    probe = PROBES[PackageSource.SNAP]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["snap", "list"])
        return parse_snap_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet(["snap", "refresh", "--list"])
        return parse_snap_refresh_list(result.stdout) if result else []

    def install(self, name: str) -> None:
        self._snap("install", name, f"Failed to install snap {name}")

    def remove(self, name: str) -> None:
        self._snap("remove", name, f"Failed to remove snap {name}")

    def update(self, name: str) -> None:
        self._snap("refresh", name, f"Failed to update snap {name}")

    def downgrade(self, name: str) -> None:
        """Revert a snap to the previously installed revision."""
        self._snap("revert", name, f"Failed to revert snap {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["snap", "find", "--", query])
        return parse_snap_find(result.stdout) if result else []

    def _snap(self, command: str, name: str, context: str) -> None:
        args = [command, "--", name]
        run_pkexec("snap", args, context, sudo_command("snap", args))

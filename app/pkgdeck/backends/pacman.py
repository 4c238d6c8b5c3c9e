"""Pacman backend implementation (Arch Linux and derivatives)."""

import logging
from pathlib import Path

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.parsing import parse_human_size, parse_key_value_blocks, parse_two_line_blocks
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus
from pkgdeck.utils.shell import command_exists

logger = logging.getLogger(__name__)

PACMAN_CACHE_DIR = Path("/var/cache/pacman/pkg")


def _none_if_empty(value: str | None) -> str | None:
    if not value or value == "None":
        return None
    return value


def parse_pacman_info(text: str) -> list[Package]:
    """Parse ``pacman -Qi`` key/value blocks.

    Args:
        text: Command output.

    Returns:
        Installed packages with metadata.
    """
    packages: list[Package] = []
    for record in parse_key_value_blocks(text, name_key="Name"):
        depends = _none_if_empty(record.get("Depends On"))
        packages.append(
            Package(
                name=record["Name"],
                version=record.get("Version", ""),
                source=PackageSource.PACMAN,
                description=record.get("Description", ""),
                homepage=_none_if_empty(record.get("URL")),
                license=_none_if_empty(record.get("Licenses")),
                maintainer=_none_if_empty(record.get("Packager")),
                size=parse_human_size(record.get("Installed Size", "")),
                dependencies=tuple(depends.split()) if depends else (),
                install_date=_none_if_empty(record.get("Install Date")),
            )
        )
    return packages


def parse_arrow_updates(text: str, source: PackageSource) -> list[Package]:
    """Parse ``name old -> new`` update listings.

    Args:
        text: Command output.
        source: Source to assign to the packages.

    Returns:
        Packages with an update available.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4 or parts[2] != "->":
            continue
        packages.append(
            Package(
                name=parts[0],
                version=parts[1],
                source=source,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=parts[3],
            )
        )
    return packages


def parse_sync_search(text: str, source: PackageSource) -> list[Package]:
    """Parse ``-Ss`` search output into at most SEARCH_LIMIT packages."""
    return [
        Package(
            name=hit.name,
            version=hit.version,
            source=source,
            status=PackageStatus.NOT_INSTALLED,
            description=hit.description,
        )
        for hit in parse_two_line_blocks(text)[:SEARCH_LIMIT]
    ]


class PacmanBackend(Backend):
    """Backend for pacman packages."""

    source = PackageSource.PACMAN
    probe = PROBES[PackageSource.PACMAN]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["pacman", "-Qi"])
        return parse_pacman_info(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        # checkupdates uses a temporary database and needs no root
        args = ["checkupdates"] if command_exists("checkupdates") else ["pacman", "-Qu"]
        result = self._run_quiet(args)
        return parse_arrow_updates(result.stdout, PackageSource.PACMAN) if result else []

    def install(self, name: str) -> None:
        self._pacman(["-S", "--noconfirm", "--", name], f"Failed to install pacman package {name}")

    def remove(self, name: str) -> None:
        self._pacman(["-Rs", "--noconfirm", "--", name], f"Failed to remove pacman package {name}")

    def update(self, name: str) -> None:
        self._pacman(["-S", "--noconfirm", "--", name], f"Failed to update pacman package {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["pacman", "-Ss", "--", query])
        return parse_sync_search(result.stdout, PackageSource.PACMAN) if result else []

    def cleanup_cache(self) -> int:
        """Remove cached package files, keeping the latest version of each.

        Returns:
            Bytes freed from the pacman package cache.
        """
        before = self._cache_size()
        if command_exists("paccache"):
            args = ["-rk1"]
            run_pkexec(
                "paccache",
                args,
                "Failed to clean pacman cache with paccache",
                sudo_command("paccache", args),
            )
        else:
            self._pacman(["-Sc", "--noconfirm"], "Failed to clean pacman cache")
        return max(before - self._cache_size(), 0)

    def _cache_size(self) -> int:
        if not PACMAN_CACHE_DIR.exists():
            return 0
        result = self._run_quiet(["du", "-sb", str(PACMAN_CACHE_DIR)])
        if result is None:
            return 0
        first = result.stdout.split(maxsplit=1)
        return int(first[0]) if first and first[0].isdigit() else 0

    def _pacman(self, args: list[str], context: str) -> None:
        run_pkexec("pacman", args, context, sudo_command("pacman", args))

"""AUR backend using an AUR helper (paru or yay).

Helpers run as the invoking user and elevate on their own; removal goes
through pacman, which needs pkexec.
"""

import logging

from pkgdeck.backends.base import Backend
from pkgdeck.backends.pacman import parse_arrow_updates, parse_sync_search
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.utils.shell import command_exists

logger = logging.getLogger(__name__)


def parse_foreign_list(text: str) -> list[Package]:
    """Parse ``-Qm`` output (``name version`` per line)."""
    packages: list[Package] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        packages.append(Package(name=parts[0], version=parts[1], source=PackageSource.AUR))
    return packages


class AurBackend(Backend):
    """Backend for foreign packages managed by an AUR helper."""

    source = PackageSource.AUR
    probe = PROBES[PackageSource.AUR]

    def __init__(self) -> None:
        self.helper = "paru" if command_exists("paru") else "yay"

    def list_installed(self) -> list[Package]:
        result = self._run_quiet([self.helper, "-Qm"])
        return parse_foreign_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet([self.helper, "-Qua"])
        return parse_arrow_updates(result.stdout, PackageSource.AUR) if result else []

    def install(self, name: str) -> None:
        logger.info("Installing AUR package with %s: %s", self.helper, name)
        self._run_checked(
            [self.helper, "-S", "--noconfirm", "--needed", "--", name],
            f"Failed to install AUR package {name}",
        )

    def remove(self, name: str) -> None:
        args = ["-R", "--noconfirm", "--", name]
        run_pkexec("pacman", args, f"Failed to remove AUR package {name}", sudo_command("pacman", args))

    def update(self, name: str) -> None:
        logger.info("Updating AUR package with %s: %s", self.helper, name)
        self._run_checked(
            [self.helper, "-S", "--noconfirm", "--", name], f"Failed to update AUR package {name}"
        )

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet([self.helper, "-Ss", "--", query])
        return parse_sync_search(result.stdout, PackageSource.AUR) if result else []

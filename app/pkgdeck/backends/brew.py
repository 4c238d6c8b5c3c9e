"""Homebrew backend implementation."""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.parsing import load_json
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)


def parse_brew_list(text: str) -> list[Package]:
    """Parse ``brew list --versions`` output.

    A formula may list several installed versions; the last one is used.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        version = parts[-1] if len(parts) > 1 else ""
        packages.append(Package(name=parts[0], version=version, source=PackageSource.BREW))
    return packages


def parse_brew_outdated(text: str) -> list[Package]:
    """Parse the ``formulae`` array of ``brew outdated --json=v2``."""
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    packages: list[Package] = []
    for item in data.get("formulae") or []:
        if not isinstance(item, dict) or not item.get("name") or not item.get("current_version"):
            continue
        installed = item.get("installed_versions") or [""]
        packages.append(
            Package(
                name=item["name"],
                version=installed[0],
                source=PackageSource.BREW,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=item["current_version"],
            )
        )
    return packages


def parse_brew_search(text: str) -> list[Package]:
    """Parse ``brew search`` output, one name per line.

    Section headers such as ``==> Formulae`` are skipped.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        name = line.strip()
        if not name or name.startswith("==>"):
            continue
        packages.append(
            Package(name=name, version="", source=PackageSource.BREW, status=PackageStatus.NOT_INSTALLED)
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class BrewBackend(Backend):
    """Backend for Homebrew formulae."""

    source = PackageSource.BREW
    probe = PROBES[PackageSource.BREW]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["brew", "list", "--versions"])
        return parse_brew_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet(["brew", "outdated", "--json=v2"])
        return parse_brew_outdated(result.stdout) if result else []

    def install(self, name: str) -> None:
        logger.info("Installing brew formula: %s", name)
        self._run_checked(["brew", "install", name], f"Failed to install brew package {name}")

    def remove(self, name: str) -> None:
        logger.info("Removing brew formula: %s", name)
        self._run_checked(["brew", "uninstall", name], f"Failed to remove brew package {name}")

    def update(self, name: str) -> None:
        logger.info("Upgrading brew formula: %s", name)
        self._run_checked(["brew", "upgrade", name], f"Failed to update brew package {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["brew", "search", "--", query])
        return parse_brew_search(result.stdout) if result else []

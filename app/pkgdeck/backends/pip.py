"""pip backend for user-installed Python packages."""

import logging

from pkgdeck.backends.base import Backend
from pkgdeck.backends.http import fetch_json
from pkgdeck.backends.parsing import load_json
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus
from pkgdeck.utils.shell import command_exists

logger = logging.getLogger(__name__)

PYPI_URL = "https://pypi.org/pypi/{name}/json"


def parse_pip_list(text: str) -> list[Package]:
    """Parse ``pip list --format=json`` output."""
    data = load_json(text)
    if not isinstance(data, list):
        return []
    return [
        Package(name=item["name"], version=item.get("version") or "", source=PackageSource.PIP)
        for item in data
        if isinstance(item, dict) and item.get("name")
    ]


def parse_pip_outdated(text: str) -> list[Package]:
    """Parse ``pip list --outdated --format=json`` output."""
    data = load_json(text)
    if not isinstance(data, list):
        return []
    packages: list[Package] = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name") or not item.get("latest_version"):
            continue
        packages.append(
            Package(
                name=item["name"],
                version=item.get("version") or "",
                source=PackageSource.PIP,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=item["latest_version"],
            )
        )
    return packages


def parse_index_versions(text: str) -> list[str]:
    """Parse the ``Available versions:`` line of ``pip index versions``."""
    for line in text.splitlines():
        label, sep, versions = line.partition("Available versions:")
        if sep and not label.strip():
            return [version.strip() for version in versions.split(",") if version.strip()]
    return []


def package_from_pypi(data: object, source: PackageSource, status: PackageStatus) -> Package | None:
    """Build a Package from a PyPI JSON document.

    Args:
        data: Decoded ``/pypi/<name>/json`` response.
        source: Source to assign.
        status: Status to assign.

    Returns:
        The package, or None if the document has no name.
    """
    if not isinstance(data, dict):
        return None
    info = data.get("info") or {}
    if not info.get("name"):
        return None
    return Package(
        name=info["name"],
        version=info.get("version") or "",
        source=source,
        status=status,
        description=info.get("summary") or "",
        homepage=info.get("home_page") or info.get("project_url") or None,
        license=info.get("license") or None,
        maintainer=info.get("author") or None,
    )


class PipBackend(Backend):
    """Backend for packages installed with ``pip --user``."""

    source = PackageSource.PIP
    probe = PROBES[PackageSource.PIP]

    def __init__(self) -> None:
        self.pip = "pip3" if command_exists("pip3") else "pip"

    def list_installed(self) -> list[Package]:
        result = self._run_quiet([self.pip, "list", "--format=json"])
        return parse_pip_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet([self.pip, "list", "--outdated", "--format=json"])
        return parse_pip_outdated(result.stdout) if result else []

    def install(self, name: str) -> None:
        logger.info("Installing pip package: %s", name)
        self._run_checked([self.pip, "install", "--user", name], f"Failed to install pip package {name}")

    def remove(self, name: str) -> None:
        logger.info("Removing pip package: %s", name)
        self._run_checked([self.pip, "uninstall", "-y", name], f"Failed to remove pip package {name}")

    def update(self, name: str) -> None:
        logger.info("Updating pip package: %s", name)
        self._run_checked(
            [self.pip, "install", "--user", "--upgrade", name], f"Failed to update pip package {name}"
        )

    def downgrade_to(self, name: str, version: str) -> None:
        spec = f"{name}=={version}"
        self._run_checked([self.pip, "install", "--user", spec], f"Failed to install {spec}")

    def available_downgrade_versions(self, name: str) -> list[str]:
        result = self._run_quiet([self.pip, "index", "versions", name])
        return parse_index_versions(result.stdout) if result else []

    def search(self, query: str) -> list[Package]:
        """Look up an exact project name on PyPI.

        ``pip search`` was disabled by PyPI, so only exact matches are found.
        """
        data = fetch_json(PYPI_URL.format(name=query.strip()))
        pkg = package_from_pypi(data, PackageSource.PIP, PackageStatus.NOT_INSTALLED)
        return [pkg] if pkg else []

    def cleanup_cache(self) -> int:
        self._run_checked([self.pip, "cache", "purge"], "Failed to purge pip cache")
        return 0

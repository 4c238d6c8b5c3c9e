"""pipx backend for isolated Python applications."""

import logging

from pkgdeck.backends.base import Backend
from pkgdeck.backends.http import fetch_json
from pkgdeck.backends.parsing import is_newer_version, load_json
from pkgdeck.backends.pip import PYPI_URL
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)


def parse_pipx_list(text: str) -> list[Package]:
    """Parse ``pipx list --json`` output.

    Each venv reports its main package under
    ``metadata.main_package.package_version``.
    """
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    venvs = data.get("venvs") or {}
    packages: list[Package] = []
    for name, venv in venvs.items():
        main_package = ((venv or {}).get("metadata") or {}).get("main_package") or {}
        packages.append(
            Package(
                name=name,
                version=main_package.get("package_version") or "",
                source=PackageSource.PIPX,
            )
        )
    return packages


def latest_pypi_version(name: str) -> str | None:
    """Return the latest version published on PyPI, or None."""
    data = fetch_json(PYPI_URL.format(name=name))
    if not isinstance(data, dict):
        return None
    return (data.get("info") or {}).get("version") or None


class PipxBackend(Backend):
    """Backend for pipx-managed applications."""

    source = PackageSource.PIPX
    probe = PROBES[PackageSource.PIPX]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["pipx", "list", "--json"])
        return parse_pipx_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        updates: list[Package] = []
        for pkg in self.list_installed():
            if not pkg.version:
                continue
            latest = latest_pypi_version(pkg.name)
            if latest and is_newer_version(latest, pkg.version):
                updates.append(
                    Package(
                        name=pkg.name,
                        version=pkg.version,
                        source=PackageSource.PIPX,
                        status=PackageStatus.UPDATE_AVAILABLE,
                        available_version=latest,
                    )
                )
        return updates

    def install(self, name: str) -> None:
        logger.info("Installing pipx package: %s", name)
        self._run_checked(["pipx", "install", name], f"Failed to install pipx package {name}")

    def remove(self, name: str) -> None:
        logger.info("Removing pipx package: %s", name)
        self._run_checked(["pipx", "uninstall", name], f"Failed to remove pipx package {name}")

    def update(self, name: str) -> None:
        logger.info("Updating pipx package: %s", name)
        self._run_checked(["pipx", "upgrade", name], f"Failed to update pipx package {name}")

    def downgrade_to(self, name: str, version: str) -> None:
        spec = f"{name}=={version}"
        self._run_checked(["pipx", "install", "--force", spec], f"Failed to install {spec}")

    def search(self, query: str) -> list[Package]:
        return []

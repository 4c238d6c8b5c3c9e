"""Conda and mamba backends for the base environment.

Both tools share the same CLI for listing and mutating packages. Only
mamba offers a usable JSON dry-run for updates and a JSON search.
"""

import logging
from typing import ClassVar

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.parsing import load_json
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)


def parse_conda_list(text: str, source: PackageSource) -> list[Package] | None:
    """Parse ``conda list --json`` output.

    Returns:
        Packages, or None if the output is not a JSON array.
    """
    data = load_json(text)
    if not isinstance(data, list):
        return None
    return [
        Package(name=item["name"], version=item.get("version") or "", source=source)
        for item in data
        if isinstance(item, dict) and item.get("name")
    ]


def parse_dry_run_updates(text: str, installed: dict[str, str], source: PackageSource) -> list[Package]:
    """Parse ``actions.LINK`` of an ``update --all --dry-run --json`` run.

    Only packages that are installed with a different version are
    reported.

    Args:
        text: Command output.
        installed: Installed versions keyed by package name.
        source: Source to assign.

    Returns:
        Packages with an update available.
    """
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    links = (data.get("actions") or {}).get("LINK") or []
    packages: list[Package] = []
    for item in links:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        name = item["name"]
        new_version = item.get("version") or ""
        current = installed.get(name)
        if current is None or not new_version or new_version == current:
            continue
        packages.append(
            Package(
                name=name,
                version=current,
                source=source,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=new_version,
            )
        )
    return packages


def parse_json_search(text: str, source: PackageSource) -> list[Package]:
    """Parse ``search --json`` output.

    The document maps package names to lists of builds; the last build is
    the newest. Its channel is used as the description.
    """
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    packages: list[Package] = []
    for name, builds in data.items():
        if not isinstance(builds, list) or not builds or not isinstance(builds[-1], dict):
            continue
        latest = builds[-1]
        packages.append(
            Package(
                name=name,
                version=latest.get("version") or "",
                source=source,
                status=PackageStatus.NOT_INSTALLED,
                description=latest.get("channel") or "",
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class CondaBackend(Backend):
    """Backend for conda packages in the base environment."""

    source = PackageSource.CONDA
    probe = PROBES[PackageSource.CONDA]
    tool: ClassVar[str] = "conda"

    def list_installed(self) -> list[Package]:
        # Prefer the base environment and fall back to the active one
        for args in ([self.tool, "list", "-n", "base", "--json"], [self.tool, "list", "--json"]):
            result = self._run(args, f"Failed to list {self.tool} packages")
            packages = parse_conda_list(result.stdout, self.source)
            if packages is not None:
                return packages
        return []

    def check_updates(self) -> list[Package]:
        return []

    def install(self, name: str) -> None:
        self._env_command("install", name, f"Failed to install {self.tool} package {name}")

    def remove(self, name: str) -> None:
        self._env_command("remove", name, f"Failed to remove {self.tool} package {name}")

    def update(self, name: str) -> None:
        self._env_command("update", name, f"Failed to update {self.tool} package {name}")

    def downgrade_to(self, name: str, version: str) -> None:
        spec = f"{name}={version}"
        self._env_command("install", spec, f"Failed to install {spec}")

    def search(self, query: str) -> list[Package]:
        return []

    def _env_command(self, command: str, target: str, context: str) -> None:
        logger.info("Running %s %s %s", self.tool, command, target)
        self._run_checked([self.tool, command, "-n", "base", "-y", target], context)


class MambaBackend(CondaBackend):
    """Backend for mamba packages in the base environment."""

    source = PackageSource.MAMBA
    probe = PROBES[PackageSource.MAMBA]
    tool = "mamba"

    def check_updates(self) -> list[Package]:
        installed = {pkg.name: pkg.version for pkg in self.list_installed()}
        if not installed:
            return []
        result = self._run_quiet([self.tool, "update", "-n", "base", "--all", "--dry-run", "--json"])
        return parse_dry_run_updates(result.stdout, installed, self.source) if result else []

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet([self.tool, "search", "--json", "--", query])
        return parse_json_search(result.stdout, self.source) if result else []

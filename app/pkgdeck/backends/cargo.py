"""Cargo backend for crates installed with ``cargo install``.

Update checks and version listings query crates.io since cargo itself
has no command for either.
"""

import logging
import re

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.http import fetch_json
from pkgdeck.backends.parsing import is_newer_version
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

CRATE_URL = "https://crates.io/api/v1/crates/{name}"
CRATE_VERSIONS_URL = "https://crates.io/api/v1/crates/{name}/versions"

_SEARCH_LINE_RE = re.compile(r'^(?P<name>[\w-]+)\s*=\s*"(?P<version>[^"]*)"\s*(?:#\s*(?P<desc>.*))?$')


def parse_install_list(text: str) -> list[Package]:
    """Parse ``cargo install --list`` output.

    Crate headers look like ``ripgrep v14.1.0:`` (optionally with a path or
    git source before the colon); indented lines name the installed
    binaries and are skipped.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        if not line or line[0].isspace() or not line.rstrip().endswith(":"):
            continue
        fields = line.rstrip().removesuffix(":").split()
        if len(fields) < 2:
            continue
        packages.append(
            Package(name=fields[0], version=fields[1].removeprefix("v"), source=PackageSource.CARGO)
        )
    return packages


def parse_cargo_search(text: str) -> list[Package]:
    """Parse ``cargo search`` output (``name = "ver"    # description``)."""
    packages: list[Package] = []
    for line in text.splitlines():
        match = _SEARCH_LINE_RE.match(line.strip())
        if match is None:
            continue
        packages.append(
            Package(
                name=match["name"],
                version=match["version"],
                source=PackageSource.CARGO,
                status=PackageStatus.NOT_INSTALLED,
                description=(match["desc"] or "").strip(),
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


def parse_crate_versions(data: object) -> list[str]:
    """Extract non-yanked version numbers from a crates.io versions document."""
    if not isinstance(data, dict):
        return []
    return [
        item["num"]
        for item in data.get("versions") or []
        if isinstance(item, dict) and item.get("num") and not item.get("yanked", False)
    ]


def latest_crate_version(name: str) -> str | None:
    """Return ``crate.max_version`` from crates.io, or None."""
    data = fetch_json(CRATE_URL.format(name=name))
    if not isinstance(data, dict):
        return None
    return (data.get("crate") or {}).get("max_version") or None


class CargoBackend(Backend):
    """Backend for cargo-installed binaries."""

    source = PackageSource.CARGO
    probe = PROBES[PackageSource.CARGO]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["cargo", "install", "--list"])
        return parse_install_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        updates: list[Package] = []
        for pkg in self.list_installed():
            latest = latest_crate_version(pkg.name)
            if latest and is_newer_version(latest, pkg.version):
                updates.append(
                    Package(
                        name=pkg.name,
                        version=pkg.version,
                        source=PackageSource.CARGO,
                        status=PackageStatus.UPDATE_AVAILABLE,
                        available_version=latest,
                    )
                )
        return updates

    def install(self, name: str) -> None:
        logger.info("Installing crate: %s", name)
        self._run_checked(["cargo", "install", name], f"Failed to install crate {name}")

    def remove(self, name: str) -> None:
        logger.info("Uninstalling crate: %s", name)
        self._run_checked(["cargo", "uninstall", name], f"Failed to remove crate {name}")

    def update(self, name: str) -> None:
        logger.info("Reinstalling crate: %s", name)
        self._run_checked(["cargo", "install", "--force", name], f"Failed to update crate {name}")

    def downgrade_to(self, name: str, version: str) -> None:
        self._run_checked(
            ["cargo", "install", name, "--version", version, "--force"],
            f"Failed to install {name} {version}",
        )

    def available_downgrade_versions(self, name: str) -> list[str]:
        return parse_crate_versions(fetch_json(CRATE_VERSIONS_URL.format(name=name)))

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["cargo", "search", "--limit", str(SEARCH_LIMIT), "--", query])
        return parse_cargo_search(result.stdout) if result else []

"""Dart backend for ``pub global`` activated packages."""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend, BackendCommandError
from pkgdeck.backends.http import fetch_json
from pkgdeck.backends.parsing import is_newer_version
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus
from pkgdeck.utils.shell import command_exists

logger = logging.getLogger(__name__)

PUB_DEV_URL = "https://pub.dev/api/packages/{name}"


def parse_pub_global_list(text: str) -> list[Package]:
    """Parse ``pub global list`` output (``name version`` per line)."""
    packages: list[Package] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.endswith(":") or stripped.startswith("Activated"):
            continue
        parts = stripped.split()
        packages.append(
            Package(
                name=parts[0],
                version=parts[1] if len(parts) > 1 else "",
                source=PackageSource.DART,
            )
        )
    return packages


def parse_pub_search(text: str) -> list[Package]:
    """Parse ``pub search`` output (``name description...`` per line)."""
    packages: list[Package] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("Showing", "Package")):
            continue
        name, _, description = stripped.partition(" ")
        packages.append(
            Package(
                name=name,
                version="",
                source=PackageSource.DART,
                status=PackageStatus.NOT_INSTALLED,
                description=" ".join(description.split()),
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


def latest_pub_version(name: str) -> str | None:
    """Return ``latest.version`` from pub.dev, or None."""
    data = fetch_json(PUB_DEV_URL.format(name=name))
    if not isinstance(data, dict):
        return None
    return (data.get("latest") or {}).get("version") or None


class DartBackend(Backend):
    """Backend for globally activated Dart packages."""

    source = PackageSource.DART
    probe = PROBES[PackageSource.DART]

    def __init__(self) -> None:
        self.cmd = "dart" if command_exists("dart") else "flutter"

    def list_installed(self) -> list[Package]:
        result = self._run_quiet([self.cmd, "pub", "global", "list"])
        return parse_pub_global_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        updates: list[Package] = []
        for pkg in self.list_installed():
            if not pkg.version:
                continue
            latest = latest_pub_version(pkg.name)
            if latest is None:
                logger.debug("No pub.dev version for %s", pkg.name)
                continue
            if is_newer_version(latest, pkg.version):
                updates.append(
                    Package(
                        name=pkg.name,
                        version=pkg.version,
                        source=PackageSource.DART,
                        status=PackageStatus.UPDATE_AVAILABLE,
                        available_version=latest,
                    )
                )
        return updates

    def install(self, name: str) -> None:
        self._pub_global(["activate", name], f"Failed to activate dart package {name}")

    def remove(self, name: str) -> None:
        self._pub_global(["deactivate", name], f"Failed to deactivate dart package {name}")

    def update(self, name: str) -> None:
        # Activating again picks up the newest version
        self._pub_global(["activate", name], f"Failed to update dart package {name}")

    def downgrade_to(self, name: str, version: str) -> None:
        if not version.strip():
            msg = "Version is required"
            raise BackendCommandError(msg)
        self._pub_global(["activate", name, version], f"Failed to activate {name} {version}")

    def search(self, query: str) -> list[Package]:
        # pub search only exists on recent SDKs
        result = self._run_quiet([self.cmd, "pub", "search", query])
        return parse_pub_search(result.stdout) if result else []

    def _pub_global(self, args: list[str], context: str) -> None:
        logger.info("Running %s pub global %s", self.cmd, " ".join(args))
        self._run_checked([self.cmd, "pub", "global", *args], context)

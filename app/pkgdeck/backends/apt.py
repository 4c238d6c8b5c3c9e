"""APT backend implementation.

Lists installed packages with dpkg-query, checks updates with
``apt list --upgradable`` and runs mutations through pkexec.
"""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

# dpkg-query format string: Package, Version, Summary
_DPKG_FORMAT = "${Package}\\t${Version}\\t${binary:Summary}\\n"


def parse_dpkg_query(text: str) -> list[Package]:
    """Parse tab-separated dpkg-query output.

    Args:
        text: Output of ``dpkg-query -W --showformat=...``.

    Returns:
        Installed packages.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 2 or not parts[0].strip():
            logger.debug("Skipping malformed dpkg line: %r", line[:100])
            continue
        packages.append(
            Package(
                name=parts[0].strip(),
                version=parts[1].strip(),
                source=PackageSource.APT,
                description=parts[2].strip() if len(parts) > 2 else "",
            )
        )
    return packages


def parse_apt_upgradable(text: str) -> list[Package]:
    """Parse ``apt list --upgradable`` output.

    Lines look like ``name/suite 2.0 amd64 [upgradable from: 1.0]``.

    Args:
        text: Command output.

    Returns:
        Packages with an update available.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("Listing") or "/" not in line:
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        name = line.split("/", 1)[0]
        _, marker, old = line.partition("from: ")
        packages.append(
            Package(
                name=name,
                version=old.rstrip("]").strip() if marker else "",
                source=PackageSource.APT,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=parts[1],
            )
        )
    return packages


def parse_apt_cache_search(text: str) -> list[Package]:
    """Parse ``apt-cache search`` output (``name - description``).

    Args:
        text: Command output.

    Returns:
        At most SEARCH_LIMIT search results.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        name, sep, description = line.partition(" - ")
        if not sep or not name.strip():
            continue
        packages.append(
            Package(
                name=name.strip(),
                version="",
                source=PackageSource.APT,
                status=PackageStatus.NOT_INSTALLED,
                description=description.strip(),
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class AptBackend(Backend):
    """Backend for APT/dpkg packages (Debian, Ubuntu and derivatives)."""

    source = PackageSource.APT
    probe = PROBES[PackageSource.APT]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["dpkg-query", "-W", f"--showformat={_DPKG_FORMAT}"])
        return parse_dpkg_query(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet(["apt", "list", "--upgradable"])
        return parse_apt_upgradable(result.stdout) if result else []

    def install(self, name: str) -> None:
        self._apt(["install", "-y", "--", name], f"Failed to install APT package {name}")

    def remove(self, name: str) -> None:
        self._apt(["remove", "-y", "--", name], f"Failed to remove APT package {name}")

    def update(self, name: str) -> None:
        self._apt(
            ["install", "--only-upgrade", "-y", "--", name],
            f"Failed to update APT package {name}",
        )

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["apt-cache", "search", "--", query])
        return parse_apt_cache_search(result.stdout) if result else []

    def _apt(self, args: list[str], context: str) -> None:
        logger.info("Running apt %s", " ".join(args))
        run_pkexec("apt", args, context, sudo_command("apt", args))

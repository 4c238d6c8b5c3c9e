"""DNF backend implementation (Fedora, RHEL and derivatives)."""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.parsing import split_columns
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

# dnf check-update exits 100 when updates are available
_UPDATES_AVAILABLE = 100


def _strip_arch(name_arch: str) -> str:
    """Drop the trailing '.arch' from a 'name.arch' token."""
    name, dot, _ = name_arch.rpartition(".")
    return name if dot and name else name_arch


def parse_repoquery(text: str) -> list[Package]:
    """Parse ``dnf repoquery --queryformat %{NAME}|%{VERSION}|%{SUMMARY}`` output."""
    packages: list[Package] = []
    for line in text.splitlines():
        parts = split_columns(line, "|", 3)
        if parts is None or not parts[0]:
            continue
        packages.append(
            Package(
                name=parts[0],
                version=parts[1],
                source=PackageSource.DNF,
                description=parts[2],
            )
        )
    return packages


def parse_check_update(text: str) -> list[Package]:
    """Parse ``dnf check-update`` output.

    Lines look like ``name.arch  version  repo``. The installed version is
    not part of the output, so ``version`` is left empty.

    Args:
        text: Command output.

    Returns:
        Packages with an update available.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 3 or parts[0].endswith(":"):
            continue
        packages.append(
            Package(
                name=_strip_arch(parts[0]),
                version="",
                source=PackageSource.DNF,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=parts[1],
            )
        )
    return packages


def parse_dnf_search(text: str) -> list[Package]:
    """Parse ``dnf search`` output (``name.arch : summary``)."""
    packages: list[Package] = []
    for line in text.splitlines():
        name_arch, sep, summary = line.partition(" : ")
        if not sep or not name_arch.strip() or " " in name_arch.strip():
            continue
        packages.append(
            Package(
                name=_strip_arch(name_arch.strip()),
                version="",
                source=PackageSource.DNF,
                status=PackageStatus.NOT_INSTALLED,
                description=summary.strip(),
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class DnfBackend(Backend):
    """Backend for DNF/RPM packages."""

    source = PackageSource.DNF
    probe = PROBES[PackageSource.DNF]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(
            [
                "dnf",
                "repoquery",
                "--installed",
                "--queryformat",
                "%{NAME}|%{VERSION}|%{SUMMARY}\\n",
            ]
        )
        return parse_repoquery(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run(["dnf", "check-update", "-q"], "Failed to check DNF updates")
        if result.returncode == _UPDATES_AVAILABLE:
            return parse_check_update(result.stdout)
        if not result.success:
            logger.debug("dnf check-update exited with %d", result.returncode)
        return []

    def install(self, name: str) -> None:
        self._dnf(["install", "-y", "--", name], f"Failed to install DNF package {name}")

    def remove(self, name: str) -> None:
        self._dnf(["remove", "-y", "--", name], f"Failed to remove DNF package {name}")

    def update(self, name: str) -> None:
        self._dnf(["upgrade", "-y", "--", name], f"Failed to update DNF package {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["dnf", "search", "-q", "--", query])
        return parse_dnf_search(result.stdout) if result else []

    def _dnf(self, args: list[str], context: str) -> None:
        run_pkexec("dnf", args, context, sudo_command("dnf", args))

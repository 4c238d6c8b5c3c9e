"""Zypper backend implementation (openSUSE)."""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend
from pkgdeck.backends.parsing import split_columns
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)


def _is_table_header(columns: list[str], name_column: int) -> bool:
    return columns[0].startswith("S") or columns[name_column].lower() == "name"


def parse_rpm_query(text: str) -> list[Package]:
    """Parse ``rpm -qa --qf %{NAME}\\t%{VERSION}-%{RELEASE}\\n`` output."""
    packages: list[Package] = []
    for line in text.splitlines():
        name, _, version = line.partition("\t")
        if not name.strip():
            continue
        packages.append(Package(name=name.strip(), version=version.strip(), source=PackageSource.ZYPPER))
    return packages


def parse_list_updates(text: str) -> list[Package]:
    """Parse the ``zypper lu`` table.

    Columns: S | Repository | Name | Current Version | Available Version | Arch.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        columns = split_columns(line, "|", 6)
        if columns is None or _is_table_header(columns, 2):
            continue
        name, current, available = columns[2], columns[3], columns[4]
        if not name or not available:
            continue
        packages.append(
            Package(
                name=name,
                version=current,
                source=PackageSource.ZYPPER,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=available,
            )
        )
    return packages


def parse_search(text: str) -> list[Package]:
    """Parse the ``zypper se -s`` table.

    Columns: S | Name | Type | Version | Arch | Repository. Shorter tables
    fall back to the third column for the version.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        columns = split_columns(line, "|", 4)
        if columns is None or _is_table_header(columns, 1) or not columns[1]:
            continue
        version = columns[3] if len(columns) >= 6 else columns[2]
        repository = columns[5] if len(columns) >= 6 else ""
        packages.append(
            Package(
                name=columns[1],
                version=version,
                source=PackageSource.ZYPPER,
                status=PackageStatus.NOT_INSTALLED,
                description=f"Repository: {repository}" if repository else "",
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


class ZypperBackend(Backend):
    """Backend for zypper/RPM packages."""

    source = PackageSource.ZYPPER
    probe = PROBES[PackageSource.ZYPPER]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["rpm", "-qa", "--qf", "%{NAME}\\t%{VERSION}-%{RELEASE}\\n"])
        return parse_rpm_query(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet(["zypper", "--non-interactive", "--quiet", "lu"])
        return parse_list_updates(result.stdout) if result else []

    def install(self, name: str) -> None:
        self._zypper("install", name, f"Failed to install zypper package {name}")

    def remove(self, name: str) -> None:
        self._zypper("remove", name, f"Failed to remove zypper package {name}")

    def update(self, name: str) -> None:
        self._zypper("update", name, f"Failed to update zypper package {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["zypper", "--non-interactive", "--quiet", "se", "-s", "--", query])
        return parse_search(result.stdout) if result else []

    def _zypper(self, command: str, name: str, context: str) -> None:
        args = ["--non-interactive", command, "-y", "--", name]
        run_pkexec("zypper", args, context, sudo_command("zypper", args))

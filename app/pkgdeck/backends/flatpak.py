"""Flatpak backend implementation.

Flatpak runs per-user without pkexec. Applications are identified by
their application id (e.g., 'org.mozilla.firefox'); the human-readable
name is kept as the description.
"""

import logging

from pkgdeck.backends.base import SEARCH_LIMIT, Backend, CommandFailedError
from pkgdeck.backends.parsing import parse_human_size, split_columns
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

# Number of previous commits offered for a downgrade
MAX_DOWNGRADE_COMMITS = 10

# Commit hashes are shown and passed abbreviated to this length
SHORT_COMMIT_LENGTH = 12


def parse_flatpak_list(text: str) -> list[Package]:
    """Parse ``flatpak list --columns=application,version,name,size`` output."""
    packages: list[Package] = []
    for line in text.splitlines():
        parts = split_columns(line, "\t", 3)
        if parts is None or not parts[0]:
            continue
        packages.append(
            Package(
                name=parts[0],
                version=parts[1],
                source=PackageSource.FLATPAK,
                description=parts[2],
                size=parse_human_size(parts[3]) if len(parts) > 3 else None,
            )
        )
    return packages


def parse_flatpak_updates(text: str) -> list[Package]:
    """Parse ``flatpak remote-ls --updates`` output.

    The installed version is not part of the listing, so ``version`` is
    left empty.
    """
    packages: list[Package] = []
    for line in text.splitlines():
        parts = split_columns(line, "\t", 3)
        if parts is None or not parts[0]:
            continue
        pkg = Package(
            name=parts[0],
            version="",
            source=PackageSource.FLATPAK,
            status=PackageStatus.UPDATE_AVAILABLE,
            available_version=parts[1],
            description=parts[2],
        )
        packages.append(pkg)
    return packages


def parse_flatpak_search(text: str) -> list[Package]:
    """Parse ``flatpak search --columns=application,version,name,description`` output."""
    packages: list[Package] = []
    for line in text.splitlines():
        parts = split_columns(line, "\t", 3)
        if parts is None or not parts[0]:
            continue
        description = parts[3] if len(parts) > 3 and parts[3] else parts[2]
        packages.append(
            Package(
                name=parts[0],
                version=parts[1],
                source=PackageSource.FLATPAK,
                status=PackageStatus.NOT_INSTALLED,
                description=description,
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


def parse_commit_log(text: str) -> list[str]:
    """Extract abbreviated commit hashes from ``flatpak remote-info --log`` output.

    Returns:
        Hashes newest first, each truncated to SHORT_COMMIT_LENGTH characters.
    """
    commits: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith("Commit:"):
            continue
        full_hash = stripped.removeprefix("Commit:").strip()
        if full_hash:
            commits.append(full_hash[:SHORT_COMMIT_LENGTH])
    return commits


class FlatpakBackend(Backend):
    """Backend for Flatpak applications."""

    source = PackageSource.FLATPAK
    probe = PROBES[PackageSource.FLATPAK]

    def list_installed(self) -> list[Package]:
        result = self._run_quiet(["flatpak", "list", "--app", "--columns=application,version,name,size"])
        return parse_flatpak_list(result.stdout) if result else []

    def check_updates(self) -> list[Package]:
        result = self._run_quiet(
            ["flatpak", "remote-ls", "--updates", "--app", "--columns=application,version,name"]
        )
        return parse_flatpak_updates(result.stdout) if result else []

    def install(self, name: str) -> None:
        logger.info("Installing Flatpak: %s", name)
        self._run_checked(["flatpak", "install", "-y", "--", name], f"Failed to install flatpak {name}")

    def remove(self, name: str) -> None:
        logger.info("Removing Flatpak: %s", name)
        self._run_checked(["flatpak", "uninstall", "-y", "--", name], f"Failed to remove flatpak {name}")

    def update(self, name: str) -> None:
        logger.info("Updating Flatpak: %s", name)
        self._run_checked(["flatpak", "update", "-y", "--", name], f"Failed to update flatpak {name}")

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(
            ["flatpak", "search", "--columns=application,version,name,description", "--", query]
        )
        return parse_flatpak_search(result.stdout) if result else []

    def downgrade_to(self, name: str, version: str) -> None:
        """Check out a specific commit of an application.

        Args:
            name: Application id.
            version: Commit hash (full or abbreviated).
        """
        logger.info("Downgrading Flatpak %s to commit %s", name, version)
        self._run_checked(
            ["flatpak", "update", "-y", f"--commit={version}", "--", name],
            f"Failed to downgrade {name} to commit {version}",
        )

    def available_downgrade_versions(self, name: str) -> list[str]:
        """List previous commits of an application, newest first.

        Raises:
            CommandFailedError: If the application is not installed.
        """
        origin = self._run_checked(
            ["flatpak", "info", "--show-origin", name], f"Failed to get flatpak info for {name}"
        ).stdout.strip()
        app_ref = self._run_checked(
            ["flatpak", "info", "--show-ref", name], f"Failed to get flatpak ref for {name}"
        ).stdout.strip()
        if not origin or not app_ref:
            raise CommandFailedError(f"flatpak info {name}", None, f"Could not determine remote for {name}")

        result = self._run_quiet(["flatpak", "remote-info", "--log", origin, app_ref])
        commits = parse_commit_log(result.stdout) if result else []
        # The first commit is the one currently installed
        return commits[1 : 1 + MAX_DOWNGRADE_COMMITS]

    def cleanup_cache(self) -> int:
        """Uninstall unused runtimes.

        Returns:
            Combined size of the runtimes that were unused before cleanup.
        """
        result = self._run_quiet(["flatpak", "list", "--unused", "--columns=size"])
        freed = 0
        if result is not None:
            for line in result.stdout.splitlines():
                freed += parse_human_size(line.strip()) or 0

        self._run_checked(["flatpak", "uninstall", "-y", "--unused"], "Failed to remove unused flatpaks")
        return freed

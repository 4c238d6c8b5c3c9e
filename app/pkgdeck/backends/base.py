"""Abstract base class for package manager backends.

This module defines the Backend interface that every package source
implements, plus the command helpers and errors shared by all backends.
"""

import logging
import shlex
from abc import ABC, abstractmethod
from typing import ClassVar

from pkgdeck.backends.providers import ProbeSpec, probe_available
from pkgdeck.errors import BackendCommandError, CommandFailedError
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

# Maximum number of results a search returns
SEARCH_LIMIT = 50

__all__ = [
    "SEARCH_LIMIT",
    "Backend",
    "BackendCommandError",
    "CommandFailedError",
    "CommandSpawnError",
    "UnsupportedOperationError",
]


class CommandSpawnError(BackendCommandError):
    """The package manager executable could not be started."""

    def __init__(self, command: list[str], context: str, reason: str) -> None:
        self.command = command
        super().__init__(f"{context}: failed to run '{shlex.join(command)}': {reason}")


class UnsupportedOperationError(BackendCommandError):
    """The backend does not support the requested operation."""

    def __init__(self, source: PackageSource, operation: str) -> None:
        self.source = source
        self.operation = operation
        super().__init__(f"{source.display_name} does not support {operation}")


class Backend(ABC):
    """Abstract base class for all package manager backends.

    A backend translates the uniform operations below into the CLI of one
    package manager and parses its output into Package records.

    Informational operations (listing, update checks, search) return an
    empty list when the tool fails; mutating operations raise.

    Example:
        >>> if AptBackend.is_available():
        ...     for pkg in AptBackend().list_installed():
        ...         print(f"{pkg.name}: {pkg.version}")
    """

    source: ClassVar[PackageSource]
    probe: ClassVar[ProbeSpec]

    @classmethod
    def is_available(cls) -> bool:
        """Check if this package manager is available on the system.

        Returns:
            True if the tools described by ``probe`` are present.
        """
        return probe_available(cls.probe)

    @abstractmethod
    def list_installed(self) -> list[Package]:
        """List installed packages.

        Returns:
            Packages with status INSTALLED.
        """

    @abstractmethod
    def check_updates(self) -> list[Package]:
        """List installed packages that have a newer version available.

        Returns:
            Packages with status UPDATE_AVAILABLE and available_version set.
        """

    @abstractmethod
    def install(self, name: str) -> None:
        """Install a package.

        Args:
            name: Package name.

        Raises:
            BackendCommandError: If the installation fails.
        """

    @abstractmethod
    def remove(self, name: str) -> None:
        """Remove a package.

        Args:
            name: Package name.

        Raises:
            BackendCommandError: If the removal fails.
        """

    @abstractmethod
    def update(self, name: str) -> None:
        """Update a package to the latest version.

        Args:
            name: Package name.

        Raises:
            BackendCommandError: If the update fails.
        """

    @abstractmethod
    def search(self, query: str) -> list[Package]:
        """Search the package index.

        Args:
            query: Search text.

        Returns:
            At most SEARCH_LIMIT packages with status NOT_INSTALLED.
        """

    def downgrade(self, name: str) -> None:
        """Revert a package to its previous version.

        Raises:
            UnsupportedOperationError: Unless the backend overrides it.
        """
        raise UnsupportedOperationError(self.source, "downgrade")

    def downgrade_to(self, name: str, version: str) -> None:
        """Install a specific older version of a package.

        Raises:
            UnsupportedOperationError: Unless the backend overrides it.
        """
        raise UnsupportedOperationError(self.source, "downgrading to a specific version")

    def available_downgrade_versions(self, name: str) -> list[str]:
        """List versions a package can be downgraded to, newest first."""
        return []

    def cleanup_cache(self) -> int:
        """Clean the package manager cache.

        Returns:
            Number of bytes freed, or 0 when unknown.
        """
        return 0

    def _run(self, args: list[str], context: str) -> CommandResult:
        """Run a command and capture its output.

        Args:
            args: Command and arguments.
            context: Description used in error messages.

        Returns:
            CommandResult regardless of exit status.

        Raises:
            CommandSpawnError: If the executable cannot be started.
        """
        logger.debug("Running: %s", shlex.join(args))
        try:
            return run_command(args)
        except OSError as e:
            raise CommandSpawnError(args, context, e.strerror or str(e)) from e

    def _run_checked(self, args: list[str], context: str) -> CommandResult:
        """Run a command and require a zero exit status.

        Args:
            args: Command and arguments.
            context: Description used in error messages.

        Returns:
            CommandResult of the successful run.

        Raises:
            CommandSpawnError: If the executable cannot be started.
            CommandFailedError: If the command exits non-zero.
        """
        result = self._run(args, context)
        if not result.success:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise CommandFailedError(shlex.join(args), result.returncode, stderr)
        return result

    def _run_quiet(self, args: list[str]) -> CommandResult | None:
        """Run an informational command, returning None on a non-zero exit.

        Raises:
            CommandSpawnError: If the executable cannot be started.
        """
        result = self._run(args, f"Failed to query {self.source.display_name}")
        if not result.success:
            logger.debug(
                "%s exited with %d: %s",
                shlex.join(args),
                result.returncode,
                result.stderr.strip()[:200],
            )
            return None
        return result

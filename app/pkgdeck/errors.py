"""Error types for pkgdeck.

Every error carries two renderings: ``user_message`` is the detailed text
with the next action a user can take, ``short_message`` is a single line
suitable for a status bar or a log record. ``str(error)`` is the user message.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import ClassVar

from pkgdeck.models.package import PackageSource, format_size


class BackendOperation(str, Enum):
    """Kinds of operation a backend performs."""

    INSTALL = "install"
    REMOVE = "remove"
    UPDATE = "update"
    DOWNGRADE = "downgrade"
    SEARCH = "search"
    LIST = "list"
    CHECK_UPDATES = "check_updates"
    ADD_REPOSITORY = "add_repository"
    REMOVE_REPOSITORY = "remove_repository"
    REFRESH_CACHE = "refresh_cache"

    @property
    def display_name(self) -> str:
        """Noun used in error messages (e.g., 'Installation')."""
        return {
            BackendOperation.INSTALL: "Installation",
            BackendOperation.REMOVE: "Removal",
            BackendOperation.UPDATE: "Update",
            BackendOperation.DOWNGRADE: "Downgrade",
            BackendOperation.SEARCH: "Search",
            BackendOperation.LIST: "List",
            BackendOperation.CHECK_UPDATES: "Update check",
            BackendOperation.ADD_REPOSITORY: "Add repository",
            BackendOperation.REMOVE_REPOSITORY: "Remove repository",
            BackendOperation.REFRESH_CACHE: "Cache refresh",
        }[self]

    def __str__(self) -> str:
        return self.display_name


class PkgdeckError(Exception):
    """Base class for all pkgdeck errors.

    Args:
        message: Detailed, user-facing message.
        short: One-line summary. Defaults to the first line of message.
    """

    cancelled: ClassVar[bool] = False
    error_level: ClassVar[bool] = True

    def __init__(self, message: str, short: str | None = None) -> None:
        super().__init__(message)
        self._short = short

    @property
    def user_message(self) -> str:
        """Detailed message including suggestions."""
        return str(self.args[0]) if self.args else ""

    @property
    def short_message(self) -> str:
        """One-line summary of the error."""
        if self._short is not None:
            return self._short
        return self.user_message.splitlines()[0] if self.user_message else "Error"

    @property
    def is_cancelled(self) -> bool:
        """Check if the user cancelled the operation."""
        return self.cancelled

    @property
    def is_error_level(self) -> bool:
        """Check if this error should be logged at error level rather than warning."""
        return self.error_level


class PackageNotFoundError(PkgdeckError):
    """Package not found in any source."""

    def __init__(
        self,
        name: str,
        source: PackageSource | None = None,
        suggestions: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.source = source
        self.suggestions = tuple(suggestions)
        if source is not None:
            message = f"Package '{name}' was not found in {source.display_name}"
        else:
            message = f"Package '{name}' was not found in any available source"
        if self.suggestions:
            message += "\n\nDid you mean:"
            for suggestion in self.suggestions[:5]:
                message += f"\n  - {suggestion}"
        super().__init__(message, f"Package '{name}' not found")


class SourceNotAvailableError(PkgdeckError):
    """Package source is not available on this system."""

    def __init__(self, source: PackageSource) -> None:
        self.source = source
        self.install_hint = source.install_hint
        message = f"{source.display_name} is not available on this system"
        if self.install_hint:
            message += f"\n\nTo use {source.display_name}: {self.install_hint}"
        super().__init__(message, f"{source.display_name} not available")


class SourceDisabledError(PkgdeckError):
    """Package source is disabled in the configuration."""

    def __init__(self, source: PackageSource) -> None:
        self.source = source
        message = (
            f"{source.display_name} is currently disabled.\n\n"
            f"Enable it by running: pkgdeck sources enable {source.value}"
        )
        super().__init__(message, f"{source.display_name} is disabled")


class BackendError(PkgdeckError):
    """A backend operation failed for a package."""

    def __init__(
        self,
        operation: BackendOperation,
        package: str,
        source: PackageSource,
        details: str = "",
        suggestion: str | None = None,
    ) -> None:
        self.operation = operation
        self.package = package
        self.source = source
        self.details = details
        self.suggestion = suggestion
        message = f"{operation.display_name} failed for '{package}' ({source.display_name})"
        if details:
            message += f"\n\nDetails: {details}"
        if suggestion:
            message += f"\n\nSuggestion: {suggestion}"
        super().__init__(message, f"{operation.display_name} failed for '{package}'")

    @classmethod
    def from_exception(
        cls,
        operation: BackendOperation,
        package: str,
        source: PackageSource,
        error: BaseException,
    ) -> PkgdeckError:
        """Build the error for a failed backend command.

        Known failures (a locked database, a full disk, a dependency
        conflict, a missing package and so on) become their typed error.
        Anything else becomes a BackendError, with a suggested command
        embedded in the exception text split off into ``suggestion`` and
        removed from ``details``.

        Args:
            operation: Operation that failed.
            package: Package name the operation targeted.
            source: Source of the package.
            error: Exception raised by the backend.

        Returns:
            A typed PkgdeckError, or a BackendError with cleaned details.
        """
        from pkgdeck.backends.pkexec import clean_error_message, extract_suggestion

        text = str(error)
        details = clean_error_message(text)
        typed = match_error(details, package, source, operation)
        if typed is not None and not isinstance(typed, (CommandFailedError, AuthorizationFailedError)):
            return typed
        return cls(
            operation,
            package,
            source,
            details=details,
            suggestion=extract_suggestion(text),
        )


class AuthorizationFailedError(PkgdeckError):
    """Elevated privileges were requested and not granted."""

    cancelled = True

    def __init__(self, operation: str, suggestion: str) -> None:
        self.operation = operation
        self.suggestion = suggestion
        message = (
            f"{operation} requires elevated privileges.\n\n"
            f"Authorization was cancelled or denied.\n\n{suggestion}"
        )
        super().__init__(message, "Authorization failed")

    @classmethod
    def for_command(cls, operation: str, command: str | None) -> AuthorizationFailedError:
        """Build the error, suggesting a manual command when one is known.

        Args:
            operation: Human-readable operation name.
            command: Command the user can run themselves, if any.

        Returns:
            AuthorizationFailedError instance.
        """
        if command:
            return cls(operation, f"Try running: {command}")
        return cls(operation, "Try again with proper authorization")


class NetworkError(PkgdeckError):
    """Network request failed."""

    def __init__(self, message: str, is_timeout: bool = False) -> None:
        self.message = message
        self.is_timeout = is_timeout
        if is_timeout:
            self.suggestion = "Check your internet connection and try again"
        elif "SSL" in message or "TLS" in message or "certificate" in message:
            self.suggestion = (
                "There may be a certificate issue. Check your system time and certificates"
            )
        else:
            self.suggestion = "Check your internet connection and firewall settings"
        super().__init__(f"Network error: {message}\n\n{self.suggestion}", "Network error")


class PermissionDeniedError(PkgdeckError):
    """File system or other permission was denied."""

    def __init__(self, path: str, suggestion: str = "Try running with elevated privileges") -> None:
        self.path = path
        self.suggestion = suggestion
        super().__init__(
            f"Permission denied accessing: {path}\n\n{suggestion}",
            "Permission denied",
        )


class AlreadyInstalledError(PkgdeckError):
    """Package is already installed."""

    error_level = False

    def __init__(self, name: str, source: PackageSource | None = None, version: str = "") -> None:
        self.name = name
        self.source = source
        self.version = version
        message = f"Package '{name}' is already installed"
        if source is not None:
            message += f" from {source.display_name}"
        if version:
            message += f" (version {version})"
        super().__init__(message, f"'{name}' already installed")


class NotInstalledError(PkgdeckError):
    """Package is not installed."""

    error_level = False

    def __init__(self, name: str, source: PackageSource | None = None) -> None:
        self.name = name
        self.source = source
        if source is not None:
            message = f"Package '{name}' is not installed from {source.display_name}"
        else:
            message = f"Package '{name}' is not installed"
        super().__init__(message, f"'{name}' not installed")


class InvalidPackageNameError(PkgdeckError):
    """Package name cannot be passed to a package manager."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid package name '{name}': {reason}", f"Invalid name: '{name}'")


class VersionNotAvailableError(PkgdeckError):
    """Requested version does not exist for a package."""

    def __init__(self, package: str, version: str, available_versions: Sequence[str] = ()) -> None:
        self.package = package
        self.version = version
        self.available_versions = list(available_versions)
        message = f"Version '{version}' is not available for '{package}'"
        if self.available_versions:
            message += "\n\nAvailable versions:"
            for available in self.available_versions[:10]:
                message += f"\n  - {available}"
            if len(self.available_versions) > 10:
                message += f"\n  ... and {len(self.available_versions) - 10} more"
        super().__init__(message, f"Version '{version}' not available")


class DependencyConflictError(PkgdeckError):
    """Package cannot be installed because of conflicting dependencies."""

    def __init__(
        self,
        package: str,
        conflicts: Sequence[str],
        suggestion: str | None = None,
    ) -> None:
        self.package = package
        self.conflicts = list(conflicts)
        self.suggestion = suggestion
        message = f"Cannot install '{package}' due to dependency conflicts:"
        for conflict in self.conflicts[:5]:
            message += f"\n  - {conflict}"
        if suggestion:
            message += f"\n\n{suggestion}"
        super().__init__(message, f"Conflict for '{package}'")


class InsufficientDiskSpaceError(PkgdeckError):
    """Not enough disk space for an operation."""

    def __init__(self, required: int | None = None, available: int | None = None) -> None:
        self.required = required
        self.available = available
        message = "Insufficient disk space for this operation"
        if required is not None and available is not None:
            message += f"\n\nRequired: {format_size(required)}\nAvailable: {format_size(available)}"
        message += "\n\nFree up some disk space and try again"
        super().__init__(message, "Insufficient disk space")


class PackageInUseError(PkgdeckError):
    """Package is running, or the package database is locked by another process."""

    def __init__(
        self,
        name: str,
        suggestion: str = "Close all running instances of the application and try again",
    ) -> None:
        self.name = name
        self.suggestion = suggestion
        super().__init__(
            f"Package '{name}' is currently in use.\n\n{suggestion}",
            f"'{name}' is in use",
        )


class ConfigError(PkgdeckError):
    """Configuration file could not be read or is invalid."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        if path is not None:
            text = f"Configuration error in '{path}': {message}"
        else:
            text = f"Configuration error: {message}"
        super().__init__(text, "Configuration error")


class CacheError(PkgdeckError):
    """Cache could not be read or written."""

    def __init__(self, message: str, suggestion: str = "Delete the cache directory and try again") -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(f"Cache error: {message}\n\n{suggestion}", "Cache error")


class BackupError(PkgdeckError):
    """Backup file could not be read, parsed or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        text = f"Backup error in '{path}': {message}" if path is not None else f"Backup error: {message}"
        super().__init__(text, "Backup error")


class OperationCancelledError(PkgdeckError):
    """Operation was cancelled by the user."""

    cancelled = True
    error_level = False

    def __init__(self) -> None:
        super().__init__("Operation was cancelled", "Cancelled")


class BackendCommandError(PkgdeckError):
    """Base class for errors raised while running a package manager command."""


class CommandFailedError(BackendCommandError):
    """External command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int | None = None, stderr: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Command '{command}' failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"
        if stderr:
            message += f"\n\n{stderr}"
        super().__init__(message, "Command failed")


_IN_USE_PATTERNS = ("has running apps", "currently in use", "text file busy")
_LOCK_PATTERNS = (
    "could not get lock",
    "unable to lock",
    "database is locked",
    "waiting for cache lock",
    "another app is currently holding",
)
_DISK_PATTERNS = (
    "no space left on device",
    "not enough free space",
    "not enough space",
    "insufficient disk space",
    "disk quota exceeded",
)
_NETWORK_PATTERNS = (
    "network",
    "connection",
    "timeout",
    "timed out",
    "could not resolve",
    "temporary failure resolving",
)
_CONFLICT_PATTERNS = ("conflict", "unmet dependencies", "broken packages", "eresolve")
_ALREADY_INSTALLED_PATTERNS = ("is already installed", "already the newest version")
_NOT_INSTALLED_PATTERNS = (
    "is not installed",
    "not currently installed",
    "no packages marked for removal",
    "nothing to uninstall",
)
_NOT_FOUND_PATTERNS = (
    "unable to locate package",
    "no match for argument",
    "target not found",
    "no matching distribution",
    "e404",
    '" not found',
)


def _conflict_lines(message: str) -> list[str]:
    lines = [
        line.strip()
        for line in message.splitlines()
        if any(word in line.lower() for word in ("conflict", "depends", "unmet", "broken"))
    ]
    return lines or [message.strip().splitlines()[-1]]


def match_error(
    message: str,
    package: str = "unknown",
    source: PackageSource | None = None,
    operation: BackendOperation | None = None,
) -> PkgdeckError | None:
    """Recognise a known failure in the output of a package manager.

    Args:
        message: Error text, typically stderr of an external tool.
        package: Package the failed operation targeted.
        source: Source of the package, if known.
        operation: Operation that failed. A missing target of a removal
            means the package is not installed rather than unknown.

    Returns:
        A typed PkgdeckError, or None if no pattern matches.
    """
    lowered = message.lower()
    if package != "unknown":
        # package names never count as a pattern match
        lowered = lowered.replace(package.lower(), "")

    if "command not found" in lowered or "pkexec is not installed" in lowered or (
        "no such file" in lowered and ("command" in lowered or "pkexec" in lowered)
    ):
        return CommandFailedError("unknown", None, message)

    if "permission denied" in lowered:
        return PermissionDeniedError("unknown")

    if "authorization" in lowered or "authentication" in lowered:
        from pkgdeck.backends.pkexec import extract_suggestion

        return AuthorizationFailedError(
            "Operation",
            extract_suggestion(message) or "Try again with proper authorization",
        )

    if any(pattern in lowered for pattern in _LOCK_PATTERNS):
        return PackageInUseError(
            package, "Another package manager is running. Wait for it to finish and try again"
        )
    if any(pattern in lowered for pattern in _IN_USE_PATTERNS):
        return PackageInUseError(package)

    if any(pattern in lowered for pattern in _DISK_PATTERNS):
        return InsufficientDiskSpaceError()

    if any(pattern in lowered for pattern in _NETWORK_PATTERNS):
        is_timeout = "timeout" in lowered or "timed out" in lowered
        return NetworkError(message, is_timeout)

    if any(pattern in lowered for pattern in _CONFLICT_PATTERNS):
        return DependencyConflictError(package, _conflict_lines(message))

    if any(pattern in lowered for pattern in _ALREADY_INSTALLED_PATTERNS):
        return AlreadyInstalledError(package, source)

    if any(pattern in lowered for pattern in _NOT_INSTALLED_PATTERNS):
        return NotInstalledError(package, source)

    if any(pattern in lowered for pattern in _NOT_FOUND_PATTERNS):
        if operation == BackendOperation.REMOVE:
            return NotInstalledError(package, source)
        return PackageNotFoundError(package, source)

    return None


def classify_error(message: str) -> PkgdeckError:
    """Turn a free-form error message into the closest typed error.

    Args:
        message: Error text, typically from an external tool.

    Returns:
        A PkgdeckError subclass instance matching the message, or a plain
        PkgdeckError when nothing matches.
    """
    error = match_error(message)
    if error is not None:
        return error
    return PkgdeckError(f"Error: {message}", "Error")

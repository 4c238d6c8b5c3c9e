"""Aggregate package manager across all enabled sources.

The PackageManager fans informational queries out to every enabled
backend concurrently and routes mutating operations to the backend of
the package's source, translating backend failures into PkgdeckError
subclasses with user-facing messages.
"""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from pkgdeck.backends.base import Backend, BackendCommandError
from pkgdeck.backends.pkexec import AuthorizationError, extract_suggestion
from pkgdeck.backends.registry import available_backends
from pkgdeck.errors import (
    AuthorizationFailedError,
    BackendError,
    BackendOperation,
    InvalidPackageNameError,
    PkgdeckError,
    SourceDisabledError,
    SourceNotAvailableError,
    VersionNotAvailableError,
)
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

MAX_PACKAGE_NAME_LENGTH = 256

T = TypeVar("T")


def validate_package_name(name: str) -> None:
    """Reject names that could be mistaken for options or corrupt a command.

    Args:
        name: Package name to check.

    Raises:
        InvalidPackageNameError: If the name is empty, starts with '-',
            is longer than MAX_PACKAGE_NAME_LENGTH or contains control
            characters.
    """
    if not name or not name.strip():
        raise InvalidPackageNameError(name, "Package name cannot be empty")
    if name.startswith("-"):
        raise InvalidPackageNameError(name, "Package name cannot start with '-'")
    if len(name) > MAX_PACKAGE_NAME_LENGTH:
        raise InvalidPackageNameError(
            name, f"Package name is longer than {MAX_PACKAGE_NAME_LENGTH} characters"
        )
    if any(ord(char) < 32 or ord(char) == 127 for char in name):
        raise InvalidPackageNameError(name, "Package name contains control characters")


def _sort_key(pkg: Package) -> tuple[str, int]:
    return pkg.name.lower(), pkg.source.order


class PackageManager:
    """Front end over the backends of all available sources.

    Attributes:
        backends: Backend instances keyed by source, available sources only.

    Example:
        >>> manager = PackageManager()
        >>> for pkg in manager.check_all_updates():
        ...     print(pkg.id, pkg.display_version)
    """

    def __init__(
        self,
        backends: dict[PackageSource, Backend] | None = None,
        enabled_sources: Iterable[PackageSource] | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Initialize PackageManager.

        Args:
            backends: Backends to use. Default: every available backend.
            enabled_sources: Sources to use. Default: all available sources.
            max_workers: Thread pool size for aggregate queries.
        """
        self.backends = backends if backends is not None else available_backends()
        self._max_workers = max_workers
        self._requested: set[PackageSource] = set(PackageSource)
        if enabled_sources is not None:
            self.set_enabled_sources(enabled_sources)

    def available_sources(self) -> list[PackageSource]:
        """Sources with a backend, in display order."""
        return sorted(self.backends, key=lambda s: s.order)

    @property
    def enabled_sources(self) -> list[PackageSource]:
        """Enabled sources that have a backend, in display order."""
        return sorted((s for s in self._requested if s in self.backends), key=lambda s: s.order)

    def set_enabled_sources(self, sources: Iterable[PackageSource]) -> None:
        """Enable exactly the given sources; sources without a backend stay unused."""
        self._requested = set(sources)

    def is_enabled(self, source: PackageSource) -> bool:
        return source in self._requested and source in self.backends

    def backend_for(self, source: PackageSource) -> Backend:
        """Return the backend of an enabled, available source.

        Raises:
            SourceDisabledError: If the source is disabled in the config.
            SourceNotAvailableError: If the source has no backend.
        """
        if source not in self._requested:
            raise SourceDisabledError(source)
        if source not in self.backends:
            raise SourceNotAvailableError(source)
        return self.backends[source]

    def _gather(
        self, label: str, call: Callable[[Backend], list[T]]
    ) -> tuple[list[T], list[PackageSource]]:
        """Run ``call`` on every enabled backend concurrently.

        A failing source logs a warning and contributes nothing.

        Returns:
            The combined results and the sources that answered.
        """
        backends = [self.backends[source] for source in self.enabled_sources]
        if not backends:
            return [], []

        results: list[T] = []
        answered: list[PackageSource] = []
        with ThreadPoolExecutor(max_workers=self._max_workers or len(backends)) as pool:
            futures = [(backend, pool.submit(call, backend)) for backend in backends]
            for backend, future in futures:
                try:
                    results.extend(future.result())
                except PkgdeckError as e:
                    logger.warning("%s failed for %s: %s", label, backend.source.display_name, e.short_message)
                    logger.debug("%s failure details for %s: %s", label, backend.source.display_name, e)
                    continue
                except Exception:
                    logger.exception("%s failed unexpectedly for %s", label, backend.source.display_name)
                    continue
                answered.append(backend.source)
        return results, answered

    def scan_installed(self) -> tuple[list[Package], list[PackageSource]]:
        """List installed packages and report which sources were listed.

        Returns:
            Packages sorted by name, and the enabled sources whose listing
            succeeded.
        """
        packages, answered = self._gather("Listing packages", lambda b: b.list_installed())
        return sorted(packages, key=_sort_key), answered

    def list_all_installed(self) -> list[Package]:
        """List installed packages across enabled sources, sorted by name."""
        return self.scan_installed()[0]

    def check_all_updates(self) -> list[Package]:
        """List available updates across enabled sources, sorted by name."""
        updates, _ = self._gather("Checking updates", lambda b: b.check_updates())
        return sorted((pkg for pkg in updates if pkg.available_version), key=_sort_key)

    def search(self, query: str) -> list[Package]:
        """Search every enabled source, sorted by name."""
        if not query.strip():
            return []
        results, _ = self._gather("Search", lambda b: b.search(query))
        return sorted(results, key=_sort_key)

    def list_installed(self, source: PackageSource) -> list[Package]:
        return self.backend_for(source).list_installed()

    def check_updates(self, source: PackageSource) -> list[Package]:
        return self.backend_for(source).check_updates()

    def _run_mutation(
        self,
        operation: BackendOperation,
        name: str,
        source: PackageSource,
        action: Callable[[Backend], T],
    ) -> T:
        validate_package_name(name)
        backend = self.backend_for(source)
        try:
            return action(backend)
        except AuthorizationError as e:
            logger.info("%s of %s cancelled: authorization denied", operation.display_name, name)
            raise AuthorizationFailedError.for_command(operation.display_name, extract_suggestion(str(e))) from e
        except BackendCommandError as e:
            error = BackendError.from_exception(operation, name, source, e)
            logger.log(
                logging.ERROR if error.is_error_level else logging.WARNING,
                "%s of %s (%s) failed: %s",
                operation.display_name,
                name,
                source.display_name,
                error.short_message,
            )
            logger.debug("%s failure details: %s", operation.display_name, e)
            raise error from e

    def install(self, name: str, source: PackageSource) -> None:
        """Install a package from a source.

        Raises:
            InvalidPackageNameError: If the name is unsafe.
            SourceDisabledError: If the source is disabled.
            SourceNotAvailableError: If the source is not available.
            AuthorizationFailedError: If elevation was denied.
            BackendError: If the package manager reports a failure. Known
                failures raise their own kind instead, such as
                AlreadyInstalledError or PackageInUseError.
        """
        logger.info("Installing %s from %s", name, source.display_name)
        self._run_mutation(BackendOperation.INSTALL, name, source, lambda b: b.install(name))

    def remove(self, name: str, source: PackageSource) -> None:
        """Remove a package. Raises like install()."""
        logger.info("Removing %s from %s", name, source.display_name)
        self._run_mutation(BackendOperation.REMOVE, name, source, lambda b: b.remove(name))

    def update(self, name: str, source: PackageSource) -> None:
        """Update a package to the latest version. Raises like install()."""
        logger.info("Updating %s from %s", name, source.display_name)
        self._run_mutation(BackendOperation.UPDATE, name, source, lambda b: b.update(name))

    def downgrade(self, name: str, source: PackageSource) -> None:
        """Revert a package to its previous version. Raises like install()."""
        logger.info("Downgrading %s from %s", name, source.display_name)
        self._run_mutation(BackendOperation.DOWNGRADE, name, source, lambda b: b.downgrade(name))

    def downgrade_to(self, name: str, source: PackageSource, version: str) -> None:
        """Install a specific older version of a package.

        Raises:
            VersionNotAvailableError: If the source lists its versions and
                ``version`` is not one of them.
            Everything install() raises.
        """
        available = self.available_downgrade_versions(name, source)
        if available and version not in available:
            raise VersionNotAvailableError(name, version, available)
        logger.info("Downgrading %s from %s to %s", name, source.display_name, version)
        self._run_mutation(
            BackendOperation.DOWNGRADE, name, source, lambda b: b.downgrade_to(name, version)
        )

    def available_downgrade_versions(self, name: str, source: PackageSource) -> list[str]:
        """List versions a package can be downgraded to, newest first."""
        return self._run_mutation(
            BackendOperation.DOWNGRADE, name, source, lambda b: b.available_downgrade_versions(name)
        )

    def cleanup(self, source: PackageSource | None = None) -> dict[PackageSource, int]:
        """Clean package manager caches.

        Args:
            source: Source to clean, or None for every enabled source.

        Returns:
            Bytes freed per cleaned source.

        Raises:
            SourceDisabledError: If ``source`` is disabled.
            SourceNotAvailableError: If ``source`` is not available.
            BackendError: If cleaning a single source fails.
        """
        if source is not None:
            backend = self.backend_for(source)
            try:
                return {source: backend.cleanup_cache()}
            except AuthorizationError as e:
                raise AuthorizationFailedError.for_command(
                    "Cache cleanup", extract_suggestion(str(e))
                ) from e
            except BackendCommandError as e:
                raise BackendError.from_exception(
                    BackendOperation.REFRESH_CACHE, f"{source.display_name} cache", source, e
                ) from e

        freed: dict[PackageSource, int] = {}
        for enabled in self.enabled_sources:
            try:
                freed[enabled] = self.backends[enabled].cleanup_cache()
            except PkgdeckError as e:
                logger.warning("Cache cleanup failed for %s: %s", enabled.display_name, e.short_message)
            except Exception:
                logger.exception("Cache cleanup failed unexpectedly for %s", enabled.display_name)
        return freed

    def backfill_installed_versions(self, updates: list[Package]) -> list[Package]:
        """Fill in missing current versions of update records.

        Some sources (Flatpak, Snap, DNF) only report the new version. For
        those, the installed listing is queried once per source.

        Args:
            updates: Update records from check_all_updates().

        Returns:
            New list with ``version`` filled where the package is installed.
        """
        sources = {pkg.source for pkg in updates if not pkg.version}
        installed: dict[tuple[str, PackageSource], str] = {}
        for source in sources:
            if source not in self.backends:
                continue
            try:
                for pkg in self.backends[source].list_installed():
                    installed[(pkg.name, source)] = pkg.version
            except PkgdeckError as e:
                logger.warning("Could not backfill versions for %s: %s", source.display_name, e.short_message)

        result: list[Package] = []
        for pkg in updates:
            version = installed.get((pkg.name, pkg.source))
            if pkg.version or not version:
                result.append(pkg)
                continue
            result.append(
                Package(
                    name=pkg.name,
                    version=version,
                    source=pkg.source,
                    status=PackageStatus.UPDATE_AVAILABLE,
                    available_version=pkg.available_version,
                    description=pkg.description,
                    size=pkg.size,
                )
            )
        return result

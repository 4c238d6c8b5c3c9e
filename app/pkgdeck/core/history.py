"""Operation history persistence and external change detection.

The HistoryTracker keeps two files in the data directory:

- history.json: the bounded operation history, newest first.
- snapshot.json: the installed package set seen last time, used as the
  baseline for detecting changes made outside pkgdeck.

Persistence is best effort: write failures are logged and never
propagated, so a read-only data directory does not break package
operations.
"""

import csv
import io
import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pkgdeck.core.paths import ensure_data_dir, get_data_dir
from pkgdeck.core.storage import read_json, write_json_atomic
from pkgdeck.models.history import (
    DEFAULT_MAX_ENTRIES,
    HistoryEntry,
    HistoryOperation,
    OperationHistory,
    PackageSnapshot,
)
from pkgdeck.models.package import Package, PackageSource

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "timestamp",
    "operation",
    "package",
    "source",
    "version_before",
    "version_after",
    "size_change",
    "undone",
)
CSV_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _csv_value(value: object) -> str:
    return "" if value is None else str(value)


class HistoryTracker:
    """Records package operations and detects external changes.

    Typical use after listing installed packages:

        >>> tracker = HistoryTracker()
        >>> tracker.load()
        >>> tracker.reconcile(manager.list_all_installed())

    Attributes:
        history: In-memory operation history.
        snapshot: Baseline package set, or None before the first snapshot.
    """

    HISTORY_FILENAME = "history.json"
    SNAPSHOT_FILENAME = "snapshot.json"

    def __init__(self, data_dir: Path | None = None, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        """Initialize HistoryTracker.

        Args:
            data_dir: Optional override for the data directory.
                Default: ~/.local/share/pkgdeck
            max_entries: Maximum number of history entries kept.
        """
        self._data_dir = data_dir if data_dir is not None else get_data_dir()
        self.history = OperationHistory(max_entries=max_entries)
        self.snapshot: PackageSnapshot | None = None

    @property
    def history_path(self) -> Path:
        return self._data_dir / self.HISTORY_FILENAME

    @property
    def snapshot_path(self) -> Path:
        return self._data_dir / self.SNAPSHOT_FILENAME

    def load(self) -> None:
        """Load history and snapshot from disk.

        A missing or corrupt history file yields an empty history. A
        missing or corrupt snapshot leaves ``snapshot`` as None.

        Raises:
            RuntimeError: If the data directory cannot be created.
        """
        ensure_data_dir(self._data_dir)
        max_entries = self.history.max_entries

        try:
            data = read_json(self.history_path)
            history = OperationHistory.from_dict(data) if data is not None else OperationHistory()
            history.max_entries = max_entries
            history.prune()
            self.history = history
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable history file %s: %s", self.history_path, e)
            self.history = OperationHistory(max_entries=max_entries)

        try:
            data = read_json(self.snapshot_path)
            self.snapshot = PackageSnapshot.from_dict(data) if data is not None else None
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable snapshot file %s: %s", self.snapshot_path, e)
            self.snapshot = None

    def save(self) -> None:
        """Persist the history. Failures are logged, never raised."""
        try:
            write_json_atomic(self.history_path, self.history.to_dict())
        except OSError as e:
            logger.warning("Failed to save history to %s: %s", self.history_path, e)

    def _save_snapshot(self) -> None:
        if self.snapshot is None:
            return
        try:
            write_json_atomic(self.snapshot_path, self.snapshot.to_dict())
        except OSError as e:
            logger.warning("Failed to save snapshot to %s: %s", self.snapshot_path, e)

    def _record(self, entry: HistoryEntry) -> HistoryEntry:
        self.history.add(entry)
        self.save()
        logger.debug("Recorded %s of %s", entry.operation.value, entry.package_name)
        return entry

    def record_install(self, pkg: Package) -> HistoryEntry:
        """Record an installation."""
        return self._record(
            HistoryEntry(
                operation=HistoryOperation.INSTALL,
                package_name=pkg.name,
                package_source=pkg.source,
                version_after=pkg.version or None,
                size_change=pkg.size,
            )
        )

    def record_remove(self, pkg: Package) -> HistoryEntry:
        """Record a removal; the freed size is negative."""
        return self._record(
            HistoryEntry(
                operation=HistoryOperation.REMOVE,
                package_name=pkg.name,
                package_source=pkg.source,
                version_before=pkg.version or None,
                size_change=-pkg.size if pkg.size is not None else None,
            )
        )

    def record_update(self, pkg: Package, old_version: str, old_size: int | None = None) -> HistoryEntry:
        """Record an update.

        Args:
            pkg: Package after the update; ``available_version`` wins over
                ``version`` as the new version.
            old_version: Version before the update.
            old_size: Size before the update, if known.

        Returns:
            The recorded entry.
        """
        size_change = None
        if pkg.size is not None and old_size is not None:
            size_change = pkg.size - old_size
        return self._record(
            HistoryEntry(
                operation=HistoryOperation.UPDATE,
                package_name=pkg.name,
                package_source=pkg.source,
                version_before=old_version or None,
                version_after=pkg.available_version or pkg.version or None,
                size_change=size_change,
            )
        )

    def record_downgrade(self, pkg: Package, target_version: str | None) -> HistoryEntry:
        """Record a downgrade from ``pkg.version`` to ``target_version``."""
        return self._record(
            HistoryEntry(
                operation=HistoryOperation.DOWNGRADE,
                package_name=pkg.name,
                package_source=pkg.source,
                version_before=pkg.version or None,
                version_after=target_version or None,
            )
        )

    def record_cleanup(self, source: PackageSource | None, freed_bytes: int) -> HistoryEntry:
        """Record a cache cleanup of one source or of all sources.

        Cleanup entries of all sources are attributed to APT for storage;
        the package name carries the scope.
        """
        scope = source.display_name if source is not None else "all"
        return self._record(
            HistoryEntry(
                operation=HistoryOperation.CLEANUP,
                package_name=f"{scope} cache",
                package_source=source if source is not None else PackageSource.APT,
                size_change=-freed_bytes,
            )
        )

    def detect_external_changes(
        self,
        current_packages: Iterable[Package],
        sources: Iterable[PackageSource] | None = None,
    ) -> list[HistoryEntry]:
        """Diff the baseline against the current package set.

        Args:
            current_packages: Installed packages as listed now.
            sources: Sources that were listed. Baseline entries of other
                sources are left out of the comparison. Default: all.

        Returns:
            External entries; empty when no baseline exists yet.
        """
        if self.snapshot is None:
            return []
        baseline = self.snapshot if sources is None else self.snapshot.for_sources(sources)
        current = PackageSnapshot.from_packages(current_packages)
        return baseline.to_history_entries(current)

    def apply_external_changes(self, entries: list[HistoryEntry]) -> None:
        """Add detected external entries to the history and save."""
        if not entries:
            return
        for entry in entries:
            self.history.add(entry)
        logger.info("Recorded %d external package changes", len(entries))
        self.save()

    def take_snapshot(
        self,
        packages: Iterable[Package],
        sources: Iterable[PackageSource] | None = None,
    ) -> None:
        """Replace the baseline with the given package set and persist it.

        When ``sources`` is given, only those sources are replaced and the
        baseline entries of every other source are kept.
        """
        snapshot = PackageSnapshot.from_packages(packages)
        if sources is not None and self.snapshot is not None:
            listed = set(sources)
            for key, entry in self.snapshot.packages.items():
                if entry.source not in listed:
                    snapshot.packages.setdefault(key, entry)
        self.snapshot = snapshot
        self._save_snapshot()

    def reconcile(
        self,
        packages: list[Package],
        sources: Iterable[PackageSource] | None = None,
    ) -> list[HistoryEntry]:
        """Detect and record external changes, then take a new snapshot.

        Args:
            packages: Current listing of installed packages.
            sources: Sources that were listed successfully. A source that
                failed or is disabled keeps its baseline, so its packages
                are not reported as removed. Default: all sources.

        Returns:
            The external entries that were recorded.
        """
        listed = list(sources) if sources is not None else None
        entries = self.detect_external_changes(packages, listed)
        self.apply_external_changes(entries)
        self.take_snapshot(packages, listed)
        return entries

    def mark_undone(self, entry_id: str) -> bool:
        """Flag an entry as undone and save.

        Returns:
            True if the entry exists.
        """
        if not self.history.mark_undone(entry_id):
            return False
        self.save()
        return True

    def export_json(self) -> str:
        """Export all entries as pretty JSON, most recent first."""
        return json.dumps([entry.to_dict() for entry in self.history.entries], indent=2, ensure_ascii=False)

    def export_csv(self) -> str:
        """Export all entries as CSV, most recent first.

        Missing optional values are written as empty fields.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry in self.history.entries:
            writer.writerow(
                [
                    entry.timestamp.strftime(CSV_TIMESTAMP_FORMAT),
                    entry.operation.label,
                    entry.package_name,
                    entry.package_source.display_name,
                    _csv_value(entry.version_before),
                    _csv_value(entry.version_after),
                    _csv_value(entry.size_change),
                    "true" if entry.undone else "false",
                ]
            )
        return buffer.getvalue()

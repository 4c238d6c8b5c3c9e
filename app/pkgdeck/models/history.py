"""Operation history and package snapshot models.

This module defines the data structures for recording package operations,
both those run through pkgdeck and those detected afterwards by comparing
snapshots of the installed package set.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pkgdeck.models.package import Package, PackageSource

DEFAULT_MAX_ENTRIES = 500


def _now() -> datetime:
    return datetime.now().astimezone()


class HistoryOperation(str, Enum):
    """Type of operation recorded in history.

    Attributes:
        INSTALL: Package installed through pkgdeck.
        REMOVE: Package removed through pkgdeck.
        UPDATE: Package updated through pkgdeck.
        DOWNGRADE: Package downgraded through pkgdeck.
        CLEANUP: Package manager cache cleaned.
        EXTERNAL_INSTALL: Installation detected from a snapshot diff.
        EXTERNAL_REMOVE: Removal detected from a snapshot diff.
        EXTERNAL_UPDATE: Version change detected from a snapshot diff.
    """

    INSTALL = "install"
    REMOVE = "remove"
    UPDATE = "update"
    DOWNGRADE = "downgrade"
    CLEANUP = "cleanup"
    EXTERNAL_INSTALL = "external_install"
    EXTERNAL_REMOVE = "external_remove"
    EXTERNAL_UPDATE = "external_update"

    @property
    def label(self) -> str:
        """Past-tense label for display."""
        return {
            HistoryOperation.INSTALL: "Installed",
            HistoryOperation.REMOVE: "Removed",
            HistoryOperation.UPDATE: "Updated",
            HistoryOperation.DOWNGRADE: "Downgraded",
            HistoryOperation.CLEANUP: "Cleaned up",
            HistoryOperation.EXTERNAL_INSTALL: "Installed (external)",
            HistoryOperation.EXTERNAL_REMOVE: "Removed (external)",
            HistoryOperation.EXTERNAL_UPDATE: "Updated (external)",
        }[self]

    @property
    def undo_label(self) -> str:
        """Name of the operation that reverses this one."""
        if self in (HistoryOperation.INSTALL, HistoryOperation.EXTERNAL_INSTALL):
            return "Uninstall"
        if self in (HistoryOperation.REMOVE, HistoryOperation.EXTERNAL_REMOVE):
            return "Reinstall"
        if self in (HistoryOperation.UPDATE, HistoryOperation.EXTERNAL_UPDATE):
            return "Downgrade"
        if self == HistoryOperation.DOWNGRADE:
            return "Upgrade"
        return "N/A"

    @property
    def is_reversible(self) -> bool:
        """Check if this kind of operation can be undone."""
        return self != HistoryOperation.CLEANUP

    @property
    def is_external(self) -> bool:
        """Check if this operation was detected rather than performed."""
        return self in (
            HistoryOperation.EXTERNAL_INSTALL,
            HistoryOperation.EXTERNAL_REMOVE,
            HistoryOperation.EXTERNAL_UPDATE,
        )


@dataclass(slots=True)
class HistoryEntry:
    """Record of a single package operation.

    Entries are mutable only through the ``undone`` flag, which marks an
    entry as reversed without deleting it.

    Attributes:
        operation: Kind of operation.
        package_name: Name of the affected package.
        package_source: Source of the affected package.
        version_before: Version before the operation, if any.
        version_after: Version after the operation, if any.
        size_change: Signed change in bytes, if known.
        undone: Whether the operation has been reversed.
        id: Unique identifier (hex UUID).
        timestamp: When the operation happened (timezone-aware, local).
    """

    operation: HistoryOperation
    package_name: str
    package_source: PackageSource
    version_before: str | None = None
    version_after: str | None = None
    size_change: int | None = None
    undone: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.package_name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if self.timestamp.tzinfo is None:
            msg = "History timestamp must be timezone-aware"
            raise ValueError(msg)

    @property
    def is_reversible(self) -> bool:
        """Check if this entry can still be undone."""
        return self.operation.is_reversible and not self.undone

    @property
    def version_display(self) -> str | None:
        """Version text appropriate for the operation, or None."""
        if self.operation in (
            HistoryOperation.UPDATE,
            HistoryOperation.DOWNGRADE,
            HistoryOperation.EXTERNAL_UPDATE,
        ):
            if self.version_before is not None and self.version_after is not None:
                return f"{self.version_before} → {self.version_after}"
            return None
        if self.operation in (HistoryOperation.INSTALL, HistoryOperation.EXTERNAL_INSTALL):
            return self.version_after
        if self.operation in (HistoryOperation.REMOVE, HistoryOperation.EXTERNAL_REMOVE):
            return self.version_before
        return None

    def relative_time(self, now: datetime | None = None) -> str:
        """Describe how long ago the operation happened.

        Args:
            now: Reference time. Defaults to the current local time.

        Returns:
            Text such as 'Just now', '5 min ago' or 'Mar 02, 2025'.
        """
        elapsed = (now or _now()) - self.timestamp
        minutes = int(elapsed.total_seconds() // 60)
        hours = minutes // 60
        days = elapsed.days

        if minutes < 1:
            return "Just now"
        if minutes < 60:
            return f"{minutes} min ago"
        if hours < 24:
            return f"{hours} hours ago"
        if days == 1:
            return "Yesterday"
        if days < 7:
            return f"{days} days ago"
        return self.timestamp.strftime("%b %d, %Y")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the history entry.
        """
        return {
            "id": self.id,
            "operation": self.operation.value,
            "package_name": self.package_name,
            "package_source": self.package_source.value,
            "version_before": self.version_before,
            "version_after": self.version_after,
            "timestamp": self.timestamp.isoformat(),
            "size_change": self.size_change,
            "undone": self.undone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing entry data.

        Returns:
            HistoryEntry instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If operation, source or timestamp is invalid.
        """
        return cls(
            id=data["id"],
            operation=HistoryOperation(data["operation"]),
            package_name=data["package_name"],
            package_source=PackageSource(data["package_source"]),
            version_before=data.get("version_before"),
            version_after=data.get("version_after"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            size_change=data.get("size_change"),
            undone=data.get("undone", False),
        )


@dataclass(frozen=True, slots=True)
class HistoryStats:
    """Operation counts over a history.

    External operations count toward their base kind.
    """

    total: int = 0
    installs: int = 0
    removes: int = 0
    updates: int = 0
    downgrades: int = 0
    cleanups: int = 0

    def to_dict(self) -> dict[str, int]:
        """Serialize to dictionary."""
        return {
            "total": self.total,
            "installs": self.installs,
            "removes": self.removes,
            "updates": self.updates,
            "downgrades": self.downgrades,
            "cleanups": self.cleanups,
        }


@dataclass(slots=True)
class OperationHistory:
    """Bounded list of history entries, most recent first.

    Attributes:
        entries: Entries ordered newest first.
        max_entries: Maximum number of entries kept.
    """

    entries: list[HistoryEntry] = field(default_factory=lambda: [])
    max_entries: int = DEFAULT_MAX_ENTRIES

    def add(self, entry: HistoryEntry) -> None:
        """Insert an entry at the front and drop the oldest beyond the cap."""
        self.entries.insert(0, entry)
        self.prune()

    def prune(self) -> None:
        """Drop the oldest entries beyond ``max_entries``."""
        if len(self.entries) > self.max_entries:
            del self.entries[self.max_entries :]

    def get(self, entry_id: str) -> HistoryEntry | None:
        """Find an entry by id (full id or unique prefix).

        Args:
            entry_id: Entry id or a prefix of it.

        Returns:
            Matching entry, or None when missing or ambiguous.
        """
        matches = [entry for entry in self.entries if entry.id.startswith(entry_id)]
        for entry in matches:
            if entry.id == entry_id:
                return entry
        return matches[0] if len(matches) == 1 else None

    def mark_undone(self, entry_id: str) -> bool:
        """Flag an entry as undone.

        Args:
            entry_id: Id of the entry to flag.

        Returns:
            True if the entry exists, False otherwise.
        """
        for entry in self.entries:
            if entry.id == entry_id:
                entry.undone = True
                return True
        return False

    def filter_by_operation(self, operation: HistoryOperation) -> list[HistoryEntry]:
        return [entry for entry in self.entries if entry.operation == operation]

    def filter_by_source(self, source: PackageSource) -> list[HistoryEntry]:
        return [entry for entry in self.entries if entry.package_source == source]

    def filter_by_date_range(self, start: datetime, end: datetime) -> list[HistoryEntry]:
        """Return entries with ``start <= timestamp <= end``."""
        return [entry for entry in self.entries if start <= entry.timestamp <= end]

    def search(self, query: str) -> list[HistoryEntry]:
        """Return entries whose package name contains query, ignoring case."""
        needle = query.lower()
        return [entry for entry in self.entries if needle in entry.package_name.lower()]

    def group_by_date(self) -> dict[date, list[HistoryEntry]]:
        """Group entries by their local calendar date, newest first."""
        groups: dict[date, list[HistoryEntry]] = {}
        for entry in self.entries:
            groups.setdefault(entry.timestamp.astimezone().date(), []).append(entry)
        return groups

    def recent(self, count: int) -> list[HistoryEntry]:
        return self.entries[:count]

    def reversible_entries(self) -> list[HistoryEntry]:
        return [entry for entry in self.entries if entry.is_reversible]

    def today_entries(self, today: date | None = None) -> list[HistoryEntry]:
        day = today or _now().date()
        return [entry for entry in self.entries if entry.timestamp.astimezone().date() == day]

    def stats(self) -> HistoryStats:
        """Count entries per operation kind.

        Returns:
            HistoryStats for the whole history.
        """
        counts = dict.fromkeys(("installs", "removes", "updates", "downgrades", "cleanups"), 0)
        for entry in self.entries:
            if entry.operation in (HistoryOperation.INSTALL, HistoryOperation.EXTERNAL_INSTALL):
                counts["installs"] += 1
            elif entry.operation in (HistoryOperation.REMOVE, HistoryOperation.EXTERNAL_REMOVE):
                counts["removes"] += 1
            elif entry.operation in (HistoryOperation.UPDATE, HistoryOperation.EXTERNAL_UPDATE):
                counts["updates"] += 1
            elif entry.operation == HistoryOperation.DOWNGRADE:
                counts["downgrades"] += 1
            else:
                counts["cleanups"] += 1
        return HistoryStats(total=len(self.entries), **counts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "max_entries": self.max_entries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OperationHistory:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing history data.

        Returns:
            OperationHistory instance.

        Raises:
            KeyError: If an entry lacks required fields.
            ValueError: If an entry contains invalid values.
        """
        history = cls(
            entries=[HistoryEntry.from_dict(item) for item in data.get("entries", [])],
            max_entries=data.get("max_entries") or DEFAULT_MAX_ENTRIES,
        )
        history.prune()
        return history


@dataclass(frozen=True, slots=True)
class SnapshotEntry:
    """One package as recorded in a snapshot."""

    name: str
    version: str
    source: PackageSource

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version, "source": self.source.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotEntry:
        return cls(
            name=data["name"],
            version=data.get("version", ""),
            source=PackageSource(data["source"]),
        )


@dataclass(frozen=True, slots=True)
class UpdatedEntry:
    """A package whose version differs between two snapshots."""

    name: str
    source: PackageSource
    old_version: str
    new_version: str


def _entry_order(entry: SnapshotEntry | UpdatedEntry) -> tuple[int, str]:
    return entry.source.order, entry.name


@dataclass(frozen=True, slots=True)
class SnapshotDiff:
    """Difference between a baseline snapshot and a current one.

    Each list is ordered by source, then name.
    """

    added: tuple[SnapshotEntry, ...] = ()
    removed: tuple[SnapshotEntry, ...] = ()
    updated: tuple[UpdatedEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.removed) + len(self.updated)


@dataclass(slots=True)
class PackageSnapshot:
    """Installed package set at a point in time.

    Keys are package ids ('APT:vim'), so the same name from two sources
    is tracked separately.

    Attributes:
        packages: Mapping of package id to snapshot entry.
        timestamp: When the snapshot was taken.
    """

    packages: dict[str, SnapshotEntry] = field(default_factory=lambda: {})
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def from_packages(cls, packages: Iterable[Package]) -> PackageSnapshot:
        """Build a snapshot from a package listing.

        Args:
            packages: Installed packages.

        Returns:
            New PackageSnapshot stamped with the current time.
        """
        snapshot = cls()
        for pkg in packages:
            snapshot.add(pkg.name, pkg.version, pkg.source)
        return snapshot

    def add(self, name: str, version: str, source: PackageSource) -> None:
        """Record a package, replacing any entry with the same id."""
        key = f"{source.display_name}:{name}"
        self.packages[key] = SnapshotEntry(name=name, version=version, source=source)

    def for_sources(self, sources: Iterable[PackageSource]) -> PackageSnapshot:
        """Return a copy holding only the entries of the given sources."""
        wanted = set(sources)
        return PackageSnapshot(
            packages={key: entry for key, entry in self.packages.items() if entry.source in wanted},
            timestamp=self.timestamp,
        )

    def diff(self, current: PackageSnapshot) -> SnapshotDiff:
        """Compare this baseline against a newer snapshot.

        Args:
            current: Snapshot of the present state.

        Returns:
            SnapshotDiff listing added, removed and updated packages.
        """
        added: list[SnapshotEntry] = []
        updated: list[UpdatedEntry] = []
        for key, entry in current.packages.items():
            old = self.packages.get(key)
            if old is None:
                added.append(entry)
            elif old.version != entry.version:
                updated.append(
                    UpdatedEntry(
                        name=entry.name,
                        source=entry.source,
                        old_version=old.version,
                        new_version=entry.version,
                    )
                )
        removed = [entry for key, entry in self.packages.items() if key not in current.packages]

        return SnapshotDiff(
            added=tuple(sorted(added, key=_entry_order)),
            removed=tuple(sorted(removed, key=_entry_order)),
            updated=tuple(sorted(updated, key=_entry_order)),
        )

    def to_history_entries(self, current: PackageSnapshot) -> list[HistoryEntry]:
        """Convert the diff against current into external history entries.

        Args:
            current: Snapshot of the present state.

        Returns:
            External install, remove and update entries, in that order.
        """
        diff = self.diff(current)
        entries: list[HistoryEntry] = [
            HistoryEntry(
                operation=HistoryOperation.EXTERNAL_INSTALL,
                package_name=added.name,
                package_source=added.source,
                version_after=added.version,
            )
            for added in diff.added
        ]
        entries.extend(
            HistoryEntry(
                operation=HistoryOperation.EXTERNAL_REMOVE,
                package_name=removed.name,
                package_source=removed.source,
                version_before=removed.version,
            )
            for removed in diff.removed
        )
        entries.extend(
            HistoryEntry(
                operation=HistoryOperation.EXTERNAL_UPDATE,
                package_name=updated.name,
                package_source=updated.source,
                version_before=updated.old_version,
                version_after=updated.new_version,
            )
            for updated in diff.updated
        )
        return entries

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "packages": {key: entry.to_dict() for key, entry in self.packages.items()},
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageSnapshot:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If a source or timestamp is invalid.
        """
        return cls(
            packages={
                key: SnapshotEntry.from_dict(value) for key, value in data["packages"].items()
            },
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

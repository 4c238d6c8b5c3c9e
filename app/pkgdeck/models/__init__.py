"""Data models for pkgdeck.

This module exports the core data structures used throughout the application.
"""

from pkgdeck.models.history import (
    HistoryEntry,
    HistoryOperation,
    HistoryStats,
    OperationHistory,
    PackageSnapshot,
    SnapshotDiff,
    SnapshotEntry,
    UpdatedEntry,
)
from pkgdeck.models.package import (
    Package,
    PackageEnrichment,
    PackageSource,
    PackageStatus,
    UpdateCategory,
)
from pkgdeck.models.provider import ProviderStatus
from pkgdeck.models.schedule import (
    ScheduledOperation,
    ScheduledTask,
    SchedulePreset,
    SchedulerState,
)

__all__ = [
    "HistoryEntry",
    "HistoryOperation",
    "HistoryStats",
    "OperationHistory",
    "Package",
    "PackageEnrichment",
    "PackageSnapshot",
    "PackageSource",
    "PackageStatus",
    "ProviderStatus",
    "ScheduledOperation",
    "ScheduledTask",
    "SchedulePreset",
    "SchedulerState",
    "SnapshotDiff",
    "SnapshotEntry",
    "UpdateCategory",
    "UpdatedEntry",
]

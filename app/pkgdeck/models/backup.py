"""Backup models for exporting and restoring the installed package list.

A backup records, per source, the names and versions of installed
packages together with the source and ignore settings, so the same set
of packages can be installed on another machine.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from pkgdeck.models.package import Package, PackageSource

BACKUP_FORMAT_VERSION = 1


class BackupEntry(BaseModel):
    """One installed package in a backup.

    Attributes:
        name: Package name as the source knows it.
        version: Version installed when the backup was made.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Package name")]
    version: Annotated[str, Field(description="Installed version")] = ""


class PackageBackup(BaseModel):
    """Installed packages and settings at a point in time.

    Attributes:
        version: Backup format version.
        created_at: When the backup was made.
        enabled_sources: Sources enabled at the time.
        ignored_packages: Ignore list at the time.
        packages: Installed packages grouped by source.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[int, Field(description="Backup format version")] = BACKUP_FORMAT_VERSION
    created_at: Annotated[datetime, Field(description="When the backup was made")]
    enabled_sources: Annotated[
        list[PackageSource],
        Field(default_factory=list, description="Sources enabled at backup time"),
    ]
    ignored_packages: Annotated[
        list[str],
        Field(default_factory=list, description="Ignore list at backup time"),
    ]
    packages: Annotated[
        dict[PackageSource, list[BackupEntry]],
        Field(default_factory=dict, description="Installed packages by source"),
    ]

    @classmethod
    def from_packages(
        cls,
        packages: Iterable[Package],
        enabled_sources: Iterable[PackageSource] = (),
        ignored_packages: Iterable[str] = (),
    ) -> "PackageBackup":
        """Build a backup from an installed package listing.

        Args:
            packages: Installed packages.
            enabled_sources: Sources enabled in the config.
            ignored_packages: Ignore list from the config.

        Returns:
            New PackageBackup stamped with the current time.
        """
        grouped: dict[PackageSource, list[BackupEntry]] = {}
        for pkg in packages:
            grouped.setdefault(pkg.source, []).append(BackupEntry(name=pkg.name, version=pkg.version))
        return cls(
            created_at=datetime.now().astimezone(),
            enabled_sources=list(enabled_sources),
            ignored_packages=list(ignored_packages),
            packages=grouped,
        )

    @property
    def total_packages(self) -> int:
        return sum(len(entries) for entries in self.packages.values())

    def sources(self) -> list[PackageSource]:
        """Sources with packages in the backup, in display order."""
        return sorted(self.packages, key=lambda s: s.order)

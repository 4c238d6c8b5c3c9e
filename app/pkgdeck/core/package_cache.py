"""Cached package listing.

Listing every source can take several seconds, so the last complete
listing is kept in ~/.cache/pkgdeck/package_cache.json and reused while
it is fresh.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pkgdeck.core.paths import get_package_cache_path
from pkgdeck.core.storage import read_json, write_json_atomic
from pkgdeck.models.package import Package

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=1)


@dataclass(slots=True)
class PackageCache:
    """Last known package listing.

    Attributes:
        packages: Cached packages.
        last_updated: When the listing was taken, or None if never.
    """

    packages: list[Package] = field(default_factory=lambda: [])
    last_updated: datetime | None = None

    def is_stale(self, max_age: timedelta = DEFAULT_MAX_AGE, now: datetime | None = None) -> bool:
        if self.last_updated is None:
            return True
        return (now or datetime.now(UTC)) - self.last_updated > max_age

    def update(self, packages: list[Package], now: datetime | None = None) -> None:
        self.packages = list(packages)
        self.last_updated = now or datetime.now(UTC)

    @classmethod
    def load(cls, path: Path | None = None) -> "PackageCache":
        """Read the cache; a missing or corrupt file yields an empty cache."""
        cache_path = path or get_package_cache_path()
        try:
            data = read_json(cache_path)
            if data is None:
                return cls()
            last_updated = data.get("last_updated")
            return cls(
                packages=[Package.from_dict(item) for item in data.get("packages", [])],
                last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
            )
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug("Ignoring unreadable package cache %s: %s", cache_path, e)
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Write the cache. Failures are logged, never raised."""
        cache_path = path or get_package_cache_path()
        data = {
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "packages": [pkg.to_dict() for pkg in self.packages],
        }
        try:
            write_json_atomic(cache_path, data)
        except OSError as e:
            logger.warning("Failed to save package cache to %s: %s", cache_path, e)

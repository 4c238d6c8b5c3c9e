"""Unit tests for the cached package listing."""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from pkgdeck.core.package_cache import DEFAULT_MAX_AGE, PackageCache
from pkgdeck.models.package import Package, PackageSource

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestStaleness:
    """Tests for PackageCache.is_stale."""

    def test_empty_cache_is_stale(self) -> None:
        """A cache that was never filled is stale."""
        assert PackageCache().is_stale(now=NOW)

    def test_fresh_and_stale(self) -> None:
        """Freshness follows the maximum age."""
        cache = PackageCache()
        cache.update([], now=NOW)

        assert not cache.is_stale(now=NOW + DEFAULT_MAX_AGE)
        assert cache.is_stale(now=NOW + DEFAULT_MAX_AGE + timedelta(seconds=1))
        assert cache.is_stale(max_age=timedelta(minutes=5), now=NOW + timedelta(minutes=6))


class TestPersistence:
    """Tests for PackageCache load and save."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Saved packages load back unchanged."""
        path = tmp_path / "package_cache.json"
        cache = PackageCache()
        cache.update(
            [
                Package(name="vim", version="9.0", source=PackageSource.APT, size=3_000_000),
                Package(name="ripgrep", version="14.1.0", source=PackageSource.CARGO),
            ],
            now=NOW,
        )
        cache.save(path)

        loaded = PackageCache.load(path)

        assert loaded.last_updated == NOW
        assert [(p.name, p.version, p.size) for p in loaded.packages] == [
            ("vim", "9.0", 3_000_000),
            ("ripgrep", "14.1.0", None),
        ]

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file loads as an empty, stale cache."""
        loaded = PackageCache.load(tmp_path / "absent.json")
        assert loaded.packages == []
        assert loaded.last_updated is None

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """Unreadable content is ignored."""
        path = tmp_path / "package_cache.json"
        path.write_text('{"last_updated": "yesterday", "packages": []}')
        assert PackageCache.load(path).last_updated is None

    def test_default_path(self, isolated_xdg_dirs: Path) -> None:
        """Without a path the cache lives in the XDG cache directory."""
        PackageCache().save()
        assert (isolated_xdg_dirs / "cache" / "pkgdeck" / "package_cache.json").exists()

    def test_save_failure_is_logged(self, tmp_path: Path) -> None:
        """Write failures do not propagate."""
        with patch("pkgdeck.core.package_cache.write_json_atomic", side_effect=OSError("read-only")):
            PackageCache().save(tmp_path / "package_cache.json")

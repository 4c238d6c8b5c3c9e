"""Unit tests for Package models.

Tests for PackageSource, PackageStatus, Package and format_size.
"""

import pytest
from pkgdeck.models.package import (
    Package,
    PackageEnrichment,
    PackageSource,
    PackageStatus,
    UpdateCategory,
    format_size,
)


class TestPackageSource:
    """Tests for PackageSource enum."""

    def test_seventeen_sources(self) -> None:
        """Every supported package manager has a source."""
        assert len(PackageSource) == 17

    def test_order_follows_declaration(self) -> None:
        """order is the declaration index."""
        assert PackageSource.APT.order == 0
        assert PackageSource.APPIMAGE.order == len(PackageSource) - 1

    def test_display_names(self) -> None:
        """Display names keep the tools' own spelling."""
        assert PackageSource.APT.display_name == "APT"
        assert PackageSource.NPM.display_name == "npm"
        assert PackageSource.APPIMAGE.display_name == "AppImage"
        assert str(PackageSource.FLATPAK) == "Flatpak"

    def test_from_str(self) -> None:
        """from_str ignores case and surrounding whitespace."""
        assert PackageSource.from_str("AppImage") == PackageSource.APPIMAGE
        assert PackageSource.from_str(" apt ") == PackageSource.APT
        assert PackageSource.from_str("portage") is None

    def test_install_hint(self) -> None:
        """APT has no hint; optional tools do."""
        assert PackageSource.APT.install_hint is None
        assert PackageSource.SNAP.install_hint == "Install `snapd`"


class TestPackageStatus:
    """Tests for PackageStatus enum."""

    @pytest.mark.parametrize(
        "status", [PackageStatus.INSTALLING, PackageStatus.REMOVING, PackageStatus.UPDATING]
    )
    def test_transient_statuses_persist_as_installed(self, status: PackageStatus) -> None:
        """Transient statuses are stored as installed."""
        assert status.is_transient
        assert status.persisted() == PackageStatus.INSTALLED

    def test_stable_status_persists_unchanged(self) -> None:
        """Other statuses are stored as they are."""
        assert PackageStatus.UPDATE_AVAILABLE.persisted() == PackageStatus.UPDATE_AVAILABLE


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (512, "512 B"),
            (1536, "1.5 KiB"),
            (5 * 1024**2, "5.0 MiB"),
            (int(2.5 * 1024**3), "2.5 GiB"),
            (3 * 1024**4, "3.0 TiB"),
        ],
    )
    def test_format_size(self, size: int, expected: str) -> None:
        """Sizes use binary units with one decimal."""
        assert format_size(size) == expected


class TestPackage:
    """Tests for Package dataclass."""

    def test_empty_name_rejected(self) -> None:
        """A package needs a name."""
        with pytest.raises(ValueError, match="cannot be empty"):
            Package(name="", version="1.0", source=PackageSource.APT)

    def test_identity_is_name_and_source(self) -> None:
        """Version and status do not affect equality."""
        a = Package(name="vim", version="9.0", source=PackageSource.APT)
        b = Package(name="vim", version="9.1", source=PackageSource.APT, status=PackageStatus.UPDATE_AVAILABLE)
        c = Package(name="vim", version="9.0", source=PackageSource.SNAP)

        assert a == b
        assert hash(a) == hash(b)
        assert a != c
        assert len({a, b, c}) == 2

    def test_id(self) -> None:
        """id combines source display name and package name."""
        assert Package(name="vim", version="9.0", source=PackageSource.APT).id == "APT:vim"

    def test_display_version_with_update(self) -> None:
        """An available update is shown as an arrow."""
        pkg = Package(
            name="vim",
            version="9.0",
            source=PackageSource.APT,
            status=PackageStatus.UPDATE_AVAILABLE,
            available_version="9.1",
        )
        assert pkg.has_update
        assert pkg.display_version == "9.0 → 9.1"

    def test_display_version_without_update(self) -> None:
        """Without an update only the version is shown."""
        pkg = Package(name="vim", version="9.0", source=PackageSource.APT, available_version="9.1")
        assert pkg.display_version == "9.0"

    def test_size_display(self) -> None:
        """Unknown sizes are labelled."""
        assert Package(name="a", version="1", source=PackageSource.APT).size_display == "Unknown"
        assert Package(name="a", version="1", source=PackageSource.APT, size=2048).size_display == "2.0 KiB"

    @pytest.mark.parametrize(
        ("name", "old", "new", "expected"),
        [
            ("openssl", "3.0.2", "3.0.3", UpdateCategory.SECURITY),
            ("vim", "9.0.0", "10.0.0", UpdateCategory.FEATURE),
            ("vim", "9.0.0", "9.1.0", UpdateCategory.FEATURE),
            ("vim", "9.0.0", "9.0.1", UpdateCategory.BUGFIX),
            ("vim", "2:9.0-1", "2:9.0-2", UpdateCategory.MINOR),
        ],
    )
    def test_detect_update_category(self, name: str, old: str, new: str, expected: UpdateCategory) -> None:
        """Security names win; otherwise semantic versions decide."""
        pkg = Package(name=name, version=old, source=PackageSource.APT, available_version=new)
        assert pkg.detect_update_category() == expected

    def test_to_dict_persists_transient_status(self) -> None:
        """A package being updated is stored as installed."""
        pkg = Package(name="vim", version="9.0", source=PackageSource.APT, status=PackageStatus.UPDATING)
        data = pkg.to_dict()

        assert data["status"] == "installed"
        assert data["source"] == "apt"

    def test_from_dict_restores_enrichment(self) -> None:
        """Nested enrichment and tuples are rebuilt."""
        pkg = Package(
            name="requests",
            version="2.31.0",
            source=PackageSource.PIP,
            dependencies=("urllib3", "idna"),
            update_category=UpdateCategory.BUGFIX,
            enrichment=PackageEnrichment(summary="HTTP for Humans", keywords=("http",)),
        )
        restored = Package.from_dict(pkg.to_dict())

        assert restored.dependencies == ("urllib3", "idna")
        assert restored.update_category == UpdateCategory.BUGFIX
        assert restored.enrichment == PackageEnrichment(summary="HTTP for Humans", keywords=("http",))

    def test_from_dict_invalid_source(self) -> None:
        """Unknown sources raise ValueError."""
        with pytest.raises(ValueError):
            Package.from_dict({"name": "x", "source": "portage"})

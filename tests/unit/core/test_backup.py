"""Unit tests for backup models and file I/O."""

import json
from pathlib import Path

import pytest
from pkgdeck.core.backup import load_backup, save_backup
from pkgdeck.errors import BackupError
from pkgdeck.models.backup import PackageBackup
from pkgdeck.models.package import Package, PackageSource

PACKAGES = [
    Package(name="vim", version="9.0", source=PackageSource.APT),
    Package(name="spotify", version="1.2", source=PackageSource.SNAP),
    Package(name="curl", version="8.5.0", source=PackageSource.APT),
]


class TestPackageBackup:
    """Tests for PackageBackup."""

    def test_from_packages_groups_by_source(self) -> None:
        """Entries are grouped per source and sources follow display order."""
        backup = PackageBackup.from_packages(PACKAGES, ignored_packages=["vim"])

        assert backup.total_packages == 3
        assert [entry.name for entry in backup.packages[PackageSource.APT]] == ["vim", "curl"]
        assert backup.sources() == [PackageSource.APT, PackageSource.SNAP]
        assert backup.ignored_packages == ["vim"]
        assert backup.created_at.tzinfo is not None


class TestBackupFile:
    """Tests for save_backup and load_backup."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        """A saved backup is plain JSON keyed by source value."""
        path = tmp_path / "backup.json"

        save_backup(PackageBackup.from_packages(PACKAGES), path)

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["packages"]["apt"][0] == {"name": "vim", "version": "9.0"}
        loaded = load_backup(path)
        assert loaded.total_packages == 3
        assert loaded.packages[PackageSource.SNAP][0].name == "spotify"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is reported with its path."""
        with pytest.raises(BackupError, match="Backup file not found"):
            load_backup(tmp_path / "nope.json")

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            '{"packages": {}}',
            '{"created_at": "2026-03-02T12:00:00+00:00", "packages": {"nosuchsource": []}}',
            '{"created_at": "2026-03-02T12:00:00+00:00", "packages": {"apt": [{"name": ""}]}}',
        ],
    )
    def test_invalid_content(self, tmp_path: Path, content: str) -> None:
        """Broken JSON and schema violations become BackupError."""
        path = tmp_path / "backup.json"
        path.write_text(content)

        with pytest.raises(BackupError, match="Invalid backup content"):
            load_backup(path)

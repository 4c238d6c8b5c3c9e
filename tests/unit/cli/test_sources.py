"""Unit tests for the sources command group."""

import tomllib
from pathlib import Path
from unittest.mock import patch

from pkgdeck.cli.main import app
from pkgdeck.core.config import load_config
from pkgdeck.models.package import PackageSource
from typer.testing import CliRunner

runner = CliRunner()


class TestSourcesCommand:
    """Tests for pkgdeck sources."""

    def test_list(self) -> None:
        """Every source is listed with its detection state."""
        with patch("pkgdeck.cli.commands.sources.probe_available", return_value=False):
            result = runner.invoke(app, ["sources", "list"])

        assert result.exit_code == 0
        assert "Flatpak" in result.stdout
        assert "AppImage" in result.stdout

    def test_disable_and_enable(self, isolated_xdg_dirs: Path) -> None:
        """Changes are written to the config file."""
        result = runner.invoke(app, ["sources", "disable", "snap"])

        assert result.exit_code == 0
        config_path = isolated_xdg_dirs / "config" / "pkgdeck" / "config.toml"
        data = tomllib.loads(config_path.read_text())
        assert "snap" not in data["enabled_sources"]
        assert not load_config().is_source_enabled(PackageSource.SNAP)

        result = runner.invoke(app, ["sources", "enable", "SNAP"])

        assert result.exit_code == 0
        assert load_config().is_source_enabled(PackageSource.SNAP)

    def test_enable_already_enabled(self) -> None:
        """Enabling an enabled source changes nothing."""
        result = runner.invoke(app, ["sources", "enable", "apt"])

        assert result.exit_code == 0
        assert "already enabled" in result.stdout

    def test_unknown_source(self) -> None:
        """Unknown source names are rejected by the parser."""
        result = runner.invoke(app, ["sources", "enable", "portage"])
        assert result.exit_code != 0

"""Unit tests for XDG path management."""

from pathlib import Path
from unittest.mock import patch

import pytest
from pkgdeck.core.paths import (
    APP_NAME,
    ensure_cache_dir,
    ensure_data_dir,
    ensure_state_dir,
    get_cache_dir,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_enrichment_cache_path,
    get_package_cache_path,
    get_schedule_path,
    get_state_dir,
    get_theme_path,
)


class TestXdgDirs:
    """Tests for the XDG directory getters."""

    @pytest.mark.parametrize(
        ("env_var", "getter", "default"),
        [
            ("XDG_CONFIG_HOME", get_config_dir, ".config"),
            ("XDG_DATA_HOME", get_data_dir, ".local/share"),
            ("XDG_STATE_HOME", get_state_dir, ".local/state"),
            ("XDG_CACHE_HOME", get_cache_dir, ".cache"),
        ],
    )
    def test_default_without_env(self, monkeypatch: pytest.MonkeyPatch, env_var, getter, default) -> None:
        """Without the variable the directory lives under the home directory."""
        monkeypatch.delenv(env_var, raising=False)
        assert getter() == Path.home() / default / APP_NAME

    def test_env_override(self, isolated_xdg_dirs: Path) -> None:
        """XDG variables take precedence."""
        assert get_config_dir() == isolated_xdg_dirs / "config" / APP_NAME
        assert get_data_dir() == isolated_xdg_dirs / "data" / APP_NAME

    def test_empty_env_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty variable is ignored."""
        monkeypatch.setenv("XDG_CACHE_HOME", "")
        assert get_cache_dir() == Path.home() / ".cache" / APP_NAME


class TestFilePaths:
    """Tests for file path helpers."""

    def test_files(self, isolated_xdg_dirs: Path) -> None:
        """Each file lives in its category directory."""
        assert get_config_path() == isolated_xdg_dirs / "config" / APP_NAME / "config.toml"
        assert get_theme_path().name == "theme.toml"
        assert get_schedule_path() == isolated_xdg_dirs / "state" / APP_NAME / "schedule.json"
        assert get_package_cache_path() == isolated_xdg_dirs / "cache" / APP_NAME / "package_cache.json"
        assert get_enrichment_cache_path().name == "enrichment.json"


class TestEnsureDirs:
    """Tests for directory creation."""

    def test_creates_directories(self, isolated_xdg_dirs: Path) -> None:
        """ensure_* creates missing directories."""
        assert ensure_state_dir().is_dir()
        assert ensure_cache_dir().is_dir()
        assert ensure_data_dir(isolated_xdg_dirs / "custom").is_dir()

    def test_permission_error_is_runtime_error(self) -> None:
        """Creation failures are reported as RuntimeError."""
        with patch.object(Path, "mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(RuntimeError, match="Permission denied"):
                ensure_state_dir()

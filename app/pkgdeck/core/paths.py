"""XDG-compliant path management for pkgdeck.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, data, state, and cache storage.

XDG defaults:
- Config: ~/.config/pkgdeck/
- Data: ~/.local/share/pkgdeck/
- State: ~/.local/state/pkgdeck/
- Cache: ~/.cache/pkgdeck/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "pkgdeck"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/pkgdeck/ (or XDG_CONFIG_HOME/pkgdeck/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_data_dir() -> Path:
    """Get the data directory path.

    Data includes the operation history and the package snapshot,
    which cannot be regenerated once lost.

    Returns:
        Path to ~/.local/share/pkgdeck/ (or XDG_DATA_HOME/pkgdeck/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes scheduled tasks that should persist between
    runs but is not configuration.

    Returns:
        Path to ~/.local/state/pkgdeck/ (or XDG_STATE_HOME/pkgdeck/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Cache data includes package listings and enrichment metadata
    that can be regenerated.

    Returns:
        Path to ~/.cache/pkgdeck/ (or XDG_CACHE_HOME/pkgdeck/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_config_path() -> Path:
    """Get the main configuration file path.

    Returns:
        Path to ~/.config/pkgdeck/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/pkgdeck/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_schedule_path() -> Path:
    """Get the scheduled tasks file path.

    Returns:
        Path to ~/.local/state/pkgdeck/schedule.json.
    """
    return get_state_dir() / "schedule.json"


def get_package_cache_path() -> Path:
    """Get the package listing cache path.

    Returns:
        Path to ~/.cache/pkgdeck/package_cache.json.
    """
    return get_cache_dir() / "package_cache.json"


def get_enrichment_cache_path() -> Path:
    """Get the enrichment metadata cache path.

    Returns:
        Path to ~/.cache/pkgdeck/enrichment.json.
    """
    return get_cache_dir() / "enrichment.json"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


def ensure_data_dir(path: Path | None = None) -> Path:
    """Create the data directory if it doesn't exist.

    Args:
        path: Optional override for the data directory.

    Returns:
        Path to the data directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(path if path is not None else get_data_dir(), "data")


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Returns:
        Path to the state directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")


def ensure_cache_dir() -> Path:
    """Create the cache directory if it doesn't exist.

    Returns:
        Path to the cache directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_cache_dir(), "cache")

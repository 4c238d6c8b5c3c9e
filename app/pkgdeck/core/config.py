"""Application configuration.

Configuration is stored in ~/.config/pkgdeck/config.toml. A missing file
means defaults; an invalid file is an error rather than being silently
replaced.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pkgdeck.core.paths import get_config_path
from pkgdeck.core.storage import write_bytes_atomic
from pkgdeck.errors import ConfigError
from pkgdeck.models.package import PackageSource

logger = logging.getLogger(__name__)


def _all_sources() -> list[PackageSource]:
    return list(PackageSource)


class AppConfig(BaseModel):
    """User preferences.

    Attributes:
        enabled_sources: Sources pkgdeck queries and manages.
        ignored_packages: Package ids ('APT:vim') or bare names hidden from
            update lists.
        check_updates_on_startup: Check for updates when the CLI starts.
        update_check_interval: Hours between automatic update checks (1-168).
        history_max_entries: Maximum number of history entries kept (10-10000).
        enrichment_enabled: Fetch package metadata from online registries.
    """

    model_config = ConfigDict(extra="forbid")

    enabled_sources: Annotated[
        list[PackageSource],
        Field(description="Sources to query and manage"),
    ] = Field(default_factory=_all_sources)
    ignored_packages: Annotated[
        list[str],
        Field(description="Package ids excluded from update lists"),
    ] = Field(default_factory=list)
    check_updates_on_startup: bool = True
    update_check_interval: Annotated[
        int,
        Field(ge=1, le=168, description="Hours between update checks (1-168)"),
    ] = 24
    history_max_entries: Annotated[
        int,
        Field(ge=10, le=10000, description="History entries kept (10-10000)"),
    ] = 500
    enrichment_enabled: bool = True

    @field_validator("enabled_sources", mode="before")
    @classmethod
    def normalize_sources(cls, value: Any) -> Any:
        """Accept source names case-insensitively and drop duplicates."""
        if not isinstance(value, list):
            return value
        seen: list[Any] = []
        for item in value:
            normalized = item.strip().lower() if isinstance(item, str) else item
            if normalized not in seen:
                seen.append(normalized)
        return seen

    def is_source_enabled(self, source: PackageSource) -> bool:
        return source in self.enabled_sources

    def is_ignored(self, package_id: str) -> bool:
        """Check a package id ('APT:vim') against ids and bare names in the ignore list."""
        _, _, name = package_id.partition(":")
        return package_id in self.ignored_packages or (bool(name) and name in self.ignored_packages)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated AppConfig; defaults if the file doesn't exist.

    Raises:
        ConfigError: If the file cannot be read, has invalid TOML syntax
            or doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}", str(config_path)) from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}", str(config_path)) from e

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}", str(config_path)) from e


def save_config(config: AppConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file atomically.

    Args:
        config: Configuration to save.
        path: Path to save to. If None, uses the default path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    data = _config_to_dict(config)
    try:
        write_bytes_atomic(config_path, tomli_w.dumps(data).encode("utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to write config: {e}", str(config_path)) from e
    return config_path


def set_source_enabled(config: AppConfig, source: PackageSource, enabled: bool) -> AppConfig:
    """Return a copy of the config with a source enabled or disabled.

    Sources keep display order.
    """
    sources = set(config.enabled_sources)
    if enabled:
        sources.add(source)
    else:
        sources.discard(source)
    ordered = sorted(sources, key=lambda s: s.order)
    return config.model_copy(update={"enabled_sources": ordered})


def set_package_ignored(config: AppConfig, package_id: str, ignored: bool) -> AppConfig:
    """Return a copy of the config with a package id added to or removed from the ignore list."""
    entries = [entry for entry in config.ignored_packages if entry != package_id]
    if ignored:
        entries.append(package_id)
    return config.model_copy(update={"ignored_packages": entries})


def _config_to_dict(config: AppConfig) -> dict[str, object]:
    """Convert AppConfig to a dictionary for TOML serialization."""
    return {
        "enabled_sources": [source.value for source in config.enabled_sources],
        "ignored_packages": list(config.ignored_packages),
        "check_updates_on_startup": config.check_updates_on_startup,
        "update_check_interval": config.update_check_interval,
        "history_max_entries": config.history_max_entries,
        "enrichment_enabled": config.enrichment_enabled,
    }

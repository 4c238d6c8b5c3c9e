"""Console color theme for the pkgdeck CLI.

Colors default to the values baked into ThemeColors; a partial or full
override can be placed in ~/.config/pkgdeck/theme.toml under [colors].
"""

import logging
import string
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from pkgdeck.core.paths import get_theme_path

logger = logging.getLogger(__name__)


class ThemeColors(BaseModel):
    """Color configuration for pkgdeck CLI.

    All colors must be valid hex codes (#RRGGBB or #RGB).
    """

    model_config = ConfigDict(extra="forbid")

    # Base colors
    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    # Semantic colors
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # History operations
    added: str = "#c1ff62"
    removed: str = "#f53263"
    changed: str = "#0e8ac8"

    # Package status
    package_installed: str = "#69B9A1"
    package_update: str = "#f5b332"
    package_available: str = "#226666"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, value: object, info: Any) -> str:
        """Reject anything but #RGB or #RRGGBB."""
        name = info.field_name
        if not isinstance(value, str):
            msg = f"{name}: color must be a string"
            raise ValueError(msg)
        color = value.strip()
        if color[:1] != "#":
            msg = f"{name}: color must start with '#'"
            raise ValueError(msg)
        digits = color[1:]
        if len(digits) not in (3, 6):
            msg = f"{name}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        if not set(digits) <= set(string.hexdigits):
            msg = f"{name}: invalid hex color '{color}'"
            raise ValueError(msg)
        return color


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the [colors] table of a theme file.

    Returns:
        String-valued entries of [colors], or None if the file is missing,
        unreadable or has no usable [colors] table.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return None

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Invalid 'colors' section in %s", path)
        return None
    return {key: value for key, value in colors.items() if isinstance(value, str)}


def load_theme(path: Path | None = None) -> ThemeColors:
    """Load theme colors with user override support.

    Args:
        path: Theme file to read. If None, uses the user theme path.

    Returns:
        ThemeColors instance; defaults when the override is missing or invalid.
    """
    theme_path = path or get_theme_path()
    overrides = _load_toml_colors(theme_path)
    if overrides is None:
        return ThemeColors()

    try:
        colors = ThemeColors(**overrides)
    except ValidationError as e:
        logger.warning("Theme validation failed, using defaults: %s", e)
        return ThemeColors()
    logger.debug("Loaded user theme overrides from %s", theme_path)
    return colors


# Rich style name -> (ThemeColors field, bold)
_STYLES: dict[str, tuple[str, bool]] = {
    "text": ("text", False),
    "muted": ("muted", False),
    "dim": ("muted", False),
    "header": ("header", False),
    "bold_header": ("header", True),
    "border": ("border", False),
    "success": ("success", False),
    "warning": ("warning", False),
    "error": ("error", True),
    "info": ("info", False),
    "added": ("added", False),
    "removed": ("removed", False),
    "changed": ("changed", False),
    "package_installed": ("package_installed", True),
    "package_update": ("package_update", True),
    "package_available": ("package_available", False),
}


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme used by every console.

    Args:
        colors: Colors to use. If None, the user theme is loaded.
    """
    colors = colors or load_theme()
    styles = {}
    for style, (field, bold) in _STYLES.items():
        color = getattr(colors, field)
        styles[style] = f"bold {color}" if bold else color
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Return the Rich theme, building it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme

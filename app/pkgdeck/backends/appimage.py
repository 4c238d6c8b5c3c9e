"""Backend for AppImage files in common application directories.

AppImages have no package database: listing scans a fixed set of
directories and removal deletes the file.
"""

import logging
import os
from pathlib import Path

from pkgdeck.backends.base import Backend, BackendCommandError, UnsupportedOperationError
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource

logger = logging.getLogger(__name__)

# Type 1 and 2 AppImages carry "AI" at offset 8 of the ELF header
APPIMAGE_MAGIC = b"AI"
APPIMAGE_MAGIC_OFFSET = 8


def appimage_search_dirs() -> list[Path]:
    """Directories scanned for AppImages."""
    home = Path.home()
    return [
        home / "Applications",
        home / "apps",
        home / ".local" / "bin",
        home / "AppImages",
        Path("/opt"),
    ]


def is_appimage(path: Path) -> bool:
    """Check for a ``.appimage`` suffix or executable with the AppImage magic."""
    if path.name.lower().endswith(".appimage"):
        return True
    if not path.is_file() or not os.access(path, os.X_OK):
        return False
    try:
        with path.open("rb") as f:
            f.seek(APPIMAGE_MAGIC_OFFSET)
            return f.read(len(APPIMAGE_MAGIC)) == APPIMAGE_MAGIC
    except OSError:
        return False


def display_name(path: Path) -> str:
    """Turn ``my-tool_x86.AppImage`` into ``My tool x86``."""
    stem = path.stem if path.suffix.lower() == ".appimage" else path.name
    name = stem.replace("-", " ").replace("_", " ")
    return name[:1].upper() + name[1:] if name else "Unknown"


def find_appimages(dirs: list[Path]) -> list[Path]:
    """List AppImages directly inside the given directories."""
    found: list[Path] = []
    for directory in dirs:
        if not directory.is_dir():
            continue
        try:
            found.extend(sorted(p for p in directory.iterdir() if is_appimage(p)))
        except OSError as e:
            logger.debug("Cannot scan %s: %s", directory, e)
    return found


class AppImageBackend(Backend):
    """Backend for AppImage files."""

    source = PackageSource.APPIMAGE
    probe = PROBES[PackageSource.APPIMAGE]

    def list_installed(self) -> list[Package]:
        return [
            Package(
                name=display_name(path),
                version="local",
                source=PackageSource.APPIMAGE,
                description=f"AppImage at {path}",
            )
            for path in find_appimages(appimage_search_dirs())
        ]

    def check_updates(self) -> list[Package]:
        return []

    def install(self, name: str) -> None:
        raise UnsupportedOperationError(
            self.source, "installation (download the .AppImage file and place it in ~/Applications)"
        )

    def remove(self, name: str) -> None:
        """Delete the first AppImage whose name contains ``name``.

        Raises:
            BackendCommandError: If no AppImage matches or deletion fails.
        """
        needle = name.lower()
        for path in find_appimages(appimage_search_dirs()):
            if needle not in display_name(path).lower():
                continue
            logger.info("Deleting AppImage %s", path)
            try:
                path.unlink()
            except OSError as e:
                msg = f"Failed to remove {path}: {e.strerror or e}"
                raise BackendCommandError(msg) from e
            return
        msg = f"AppImage '{name}' not found"
        raise BackendCommandError(msg)

    def update(self, name: str) -> None:
        raise UnsupportedOperationError(self.source, "automatic updates (download the new version manually)")

    def search(self, query: str) -> list[Package]:
        return []

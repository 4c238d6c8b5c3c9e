"""Backup file I/O.

Backups are JSON files validated with the PackageBackup model. They are
written atomically so an interrupted export never leaves half a file.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from pkgdeck.core.storage import write_bytes_atomic
from pkgdeck.errors import BackupError
from pkgdeck.models.backup import PackageBackup

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_FILE = "pkgdeck-backup.json"


def save_backup(backup: PackageBackup, path: Path) -> Path:
    """Write a backup file.

    Args:
        backup: Backup to write.
        path: Destination file.

    Returns:
        Path where the backup was saved.

    Raises:
        BackupError: If the file cannot be written.
    """
    try:
        write_bytes_atomic(path, (backup.model_dump_json(indent=2) + "\n").encode("utf-8"))
    except OSError as e:
        raise BackupError(f"Failed to write backup: {e}", str(path)) from e
    logger.info("Saved backup of %d packages to %s", backup.total_packages, path)
    return path


def load_backup(path: Path) -> PackageBackup:
    """Read and validate a backup file.

    Args:
        path: Backup file.

    Returns:
        Validated PackageBackup.

    Raises:
        BackupError: If the file is missing, unreadable or invalid.
    """
    if not path.exists():
        raise BackupError("Backup file not found", str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise BackupError(f"Failed to read backup: {e}", str(path)) from e
    try:
        return PackageBackup.model_validate_json(text)
    except ValidationError as e:
        raise BackupError(f"Invalid backup content: {e}", str(path)) from e

"""Atomic file writes shared by the persistence layers."""

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Write bytes to a file atomically.

    The data is written to a temporary file in the same directory and
    moved into place with os.replace(). The temporary file is removed on
    failure.

    Args:
        path: Destination file. Parent directories are created.
        data: File content.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            f.write(data)
        os.replace(tmp_path, path)
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Write pretty-printed JSON to a file atomically.

    Raises:
        OSError: If the file cannot be written.
    """
    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    write_bytes_atomic(path, text.encode("utf-8"))


def read_json(path: Path) -> Any | None:
    """Read a JSON file.

    Returns:
        Decoded content, or None if the file does not exist.

    Raises:
        OSError: If the file exists but cannot be read.
        ValueError: If the content is not valid JSON.
    """
    if not path.exists():
        return None
    with path.open(encoding="utf-8") as f:
        return json.load(f)

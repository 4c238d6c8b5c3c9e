"""Output grammar helpers shared by several backends.

All functions are pure: they take the captured text of a command and
return parsed records. Malformed lines are skipped, never raised on.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_SIZE_UNITS: dict[str, int] = {
    "b": 1,
    "bytes": 1,
    "kb": 1024,
    "kib": 1024,
    "k": 1024,
    "mb": 1024**2,
    "mib": 1024**2,
    "m": 1024**2,
    "gb": 1024**3,
    "gib": 1024**3,
    "g": 1024**3,
    "tb": 1024**4,
    "tib": 1024**4,
}

_SIZE_RE = re.compile(r"^\s*([\d.,]+)\s*([A-Za-z]*)\s*$")
_VERSION_SPLIT_RE = re.compile(r"[.\-+]")


@dataclass(frozen=True, slots=True)
class SearchHit:
    """One result of a 'repo/name version' style search listing."""

    repository: str
    name: str
    version: str
    description: str


def parse_two_line_blocks(text: str) -> list[SearchHit]:
    """Parse pacman-style search output.

    Each result is a header line ``repo/name version [flags]`` followed by
    an indented description line. A line without a ``/`` before the first
    space is not a header and is skipped on its own.

    Args:
        text: Command output.

    Returns:
        Parsed search hits in output order.
    """
    lines = text.splitlines()
    hits: list[SearchHit] = []
    index = 0
    while index < len(lines):
        header = lines[index]
        repo_name, _, rest = header.partition(" ")
        repository, slash, name = repo_name.partition("/")
        if not slash or not name or header[:1].isspace():
            index += 1
            continue

        fields = rest.split()
        version = fields[0] if fields else ""
        description = lines[index + 1].strip() if index + 1 < len(lines) else ""
        hits.append(SearchHit(repository, name, version, description))
        index += 2
    return hits


def parse_key_value_blocks(text: str, name_key: str = "Name") -> list[dict[str, str]]:
    """Parse blank-line separated ``Key : Value`` records.

    Args:
        text: Command output.
        name_key: Key that must be present for a record to be kept.

    Returns:
        One dict per record that contained ``name_key``.
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}

    def flush() -> None:
        if current.get(name_key):
            records.append(dict(current))
        current.clear()

    for line in text.splitlines():
        if not line.strip():
            flush()
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        current[key.strip()] = value.strip()

    flush()
    return records


def split_columns(line: str, sep: str | None, minimum: int) -> list[str] | None:
    """Split a line into stripped columns.

    Args:
        line: Line to split.
        sep: Column separator, or None to split on whitespace.
        minimum: Minimum number of columns required.

    Returns:
        Stripped columns, or None if the line has fewer than ``minimum``.
    """
    parts = [part.strip() for part in line.split(sep)]
    if len(parts) < minimum:
        logger.debug("Skipping line with %d columns (need %d): %r", len(parts), minimum, line[:100])
        return None
    return parts


def parse_human_size(text: str) -> int | None:
    """Parse sizes such as '12.5 MB', '1,2 GB' or '512 KiB' into bytes.

    Binary multiples are used for every unit. A comma is read as a
    decimal separator.

    Args:
        text: Size text.

    Returns:
        Size in bytes, or None if the text is not a size.
    """
    match = _SIZE_RE.match(text)
    if match is None:
        return None
    number_text, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.lower() or "b")
    if multiplier is None:
        return None
    try:
        number = float(number_text.replace(",", "."))
    except ValueError:
        return None
    return int(number * multiplier)


def _numeric_parts(version: str) -> list[int]:
    return [int(part) for part in _VERSION_SPLIT_RE.split(version) if part.isdigit()]


def is_newer_version(new: str, old: str) -> bool:
    """Compare dotted versions numerically.

    Non-numeric segments are ignored and missing segments count as zero,
    so '1.2' equals '1.2.0'.

    Args:
        new: Candidate newer version.
        old: Installed version.

    Returns:
        True if ``new`` is strictly greater than ``old``.
    """
    new_parts = _numeric_parts(new)
    old_parts = _numeric_parts(old)
    width = max(len(new_parts), len(old_parts))
    new_parts += [0] * (width - len(new_parts))
    old_parts += [0] * (width - len(old_parts))
    return new_parts > old_parts


def load_json(text: str) -> Any | None:
    """Decode JSON command output.

    Args:
        text: Command output.

    Returns:
        Decoded value, or None if the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug("Ignoring malformed JSON output: %s", e)
        return None

"""Availability probing for package sources.

Each source has one ProbeSpec naming the executables it needs. The same
descriptor decides ``Backend.is_available`` and the detailed ProviderStatus
shown by ``pkgdeck providers``.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from pkgdeck.models.package import PackageSource
from pkgdeck.models.provider import ProviderStatus
from pkgdeck.utils.shell import run_command, which

logger = logging.getLogger(__name__)


class ProbeMode(str, Enum):
    """How the list commands decide availability.

    Attributes:
        ALL: Every list command must be on PATH.
        ANY: At least one list command must be on PATH.
        ALWAYS: The source is always available.
    """

    ALL = "all"
    ANY = "any"
    ALWAYS = "always"


@dataclass(frozen=True, slots=True)
class ProbeSpec:
    """Executables a source depends on.

    Attributes:
        list_cmds: Commands used to query packages.
        privileged_cmds: Commands used to elevate privileges.
        version_cmd: Command and arguments printing the tool version.
        mode: How list_cmds decide availability.
    """

    list_cmds: tuple[str, ...] = ()
    privileged_cmds: tuple[str, ...] = ()
    version_cmd: tuple[str, ...] | None = None
    mode: ProbeMode = ProbeMode.ALL


_PKEXEC = ("pkexec",)

PROBES: dict[PackageSource, ProbeSpec] = {
    PackageSource.APT: ProbeSpec(("apt", "dpkg-query"), _PKEXEC, ("apt", "--version")),
    PackageSource.DNF: ProbeSpec(("dnf",), _PKEXEC, ("dnf", "--version")),
    PackageSource.PACMAN: ProbeSpec(("pacman",), _PKEXEC, ("pacman", "-V")),
    PackageSource.ZYPPER: ProbeSpec(("zypper",), _PKEXEC, ("zypper", "--version")),
    PackageSource.FLATPAK: ProbeSpec(("flatpak",), (), ("flatpak", "--version")),
    PackageSource.SNAP: ProbeSpec(("snap",), _PKEXEC, ("snap", "version")),
    PackageSource.NPM: ProbeSpec(("npm",), (), ("npm", "--version")),
    PackageSource.PIP: ProbeSpec(("pip3", "pip"), (), ("python3", "--version"), ProbeMode.ANY),
    PackageSource.PIPX: ProbeSpec(("pipx",), (), ("pipx", "--version")),
    PackageSource.CARGO: ProbeSpec(("cargo",), (), ("cargo", "--version")),
    PackageSource.BREW: ProbeSpec(("brew",), (), ("brew", "--version")),
    PackageSource.AUR: ProbeSpec(("yay", "paru"), (), None, ProbeMode.ANY),
    PackageSource.CONDA: ProbeSpec(("conda",), (), ("conda", "--version")),
    PackageSource.MAMBA: ProbeSpec(("mamba",), (), ("mamba", "--version")),
    PackageSource.DART: ProbeSpec(("dart", "flutter"), (), ("dart", "--version"), ProbeMode.ANY),
    PackageSource.DEB: ProbeSpec(("dpkg",), _PKEXEC, ("dpkg", "--version")),
    PackageSource.APPIMAGE: ProbeSpec(mode=ProbeMode.ALWAYS),
}


def probe_available(spec: ProbeSpec) -> bool:
    """Decide availability from a probe spec.

    Args:
        spec: Probe spec of the source.

    Returns:
        True if the source can be used.
    """
    if spec.mode == ProbeMode.ALWAYS:
        return True
    found = [which(cmd) is not None for cmd in spec.list_cmds]
    if spec.mode == ProbeMode.ANY:
        return any(found)
    return bool(found) and all(found)


def _query_version(command: tuple[str, ...]) -> str | None:
    """Return the first non-empty output line of a version command."""
    try:
        result = run_command(list(command))
    except OSError as e:
        logger.debug("Version query %s failed: %s", command[0], e)
        return None
    if not result.success:
        return None

    text = result.stdout.strip() or result.stderr.strip()
    if not text:
        return None
    first_line = text.splitlines()[0].strip()
    return first_line or None


def probe_provider(source: PackageSource) -> ProviderStatus:
    """Probe one source.

    Args:
        source: Package source to probe.

    Returns:
        ProviderStatus describing availability, paths and version.
    """
    spec = PROBES[source]

    paths = {which(cmd) for cmd in (*spec.list_cmds, *spec.privileged_cmds)}
    found_paths = tuple(sorted(path for path in paths if path is not None))

    available = probe_available(spec)

    version = None
    if available and spec.version_cmd is not None:
        version = _query_version(spec.version_cmd)

    reason = None
    if not available:
        if spec.list_cmds:
            missing = [cmd for cmd in spec.list_cmds if which(cmd) is None]
            reason = f"Missing: {', '.join(missing)}"
        else:
            reason = "Not available on this system"

    return ProviderStatus(
        source=source,
        display_name=source.display_name,
        available=available,
        list_cmds=spec.list_cmds,
        privileged_cmds=spec.privileged_cmds,
        found_paths=found_paths,
        version=version,
        reason=reason,
    )


def detect_providers() -> list[ProviderStatus]:
    """Probe every source.

    Returns:
        Statuses sorted with available sources first, then by name.
    """
    rows = [probe_provider(source) for source in PackageSource]
    rows.sort(key=lambda row: (not row.available, row.display_name.lower()))
    return rows


def detect_available_providers() -> list[ProviderStatus]:
    """Probe every source and keep the available ones."""
    return [row for row in detect_providers() if row.available]

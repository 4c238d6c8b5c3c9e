"""Package models shared by every backend.

This module defines the core data structures for representing
packages from all supported sources (system package managers,
sandboxed app stores, language tool installers and local files).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Name fragments that mark an update as security relevant
_SECURITY_KEYWORDS = (
    "security",
    "cve",
    "ssl",
    "openssl",
    "gnutls",
    "gpg",
    "gnupg",
    "crypto",
    "firewall",
    "apparmor",
    "selinux",
)

_SEMVER_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")


class PackageSource(str, Enum):
    """Enumeration of supported package sources.

    Declaration order is the display order used for deterministic sorting.
    """

    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    FLATPAK = "flatpak"
    SNAP = "snap"
    NPM = "npm"
    PIP = "pip"
    PIPX = "pipx"
    CARGO = "cargo"
    BREW = "brew"
    AUR = "aur"
    CONDA = "conda"
    MAMBA = "mamba"
    DART = "dart"
    DEB = "deb"
    APPIMAGE = "appimage"

    @property
    def display_name(self) -> str:
        """Human-readable source name."""
        return _DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        """One-line description of what the source manages."""
        return _DESCRIPTIONS[self]

    @property
    def install_hint(self) -> str | None:
        """How to make this source available, if it needs tooling."""
        return _INSTALL_HINTS.get(self)

    @property
    def order(self) -> int:
        """Position of this source in display order."""
        return list(PackageSource).index(self)

    @classmethod
    def from_str(cls, value: str) -> PackageSource | None:
        """Parse a source name case-insensitively.

        Args:
            value: Source name such as 'apt' or 'AppImage'.

        Returns:
            Matching PackageSource, or None for unknown names.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES: dict[PackageSource, str] = {
    PackageSource.APT: "APT",
    PackageSource.DNF: "DNF",
    PackageSource.PACMAN: "Pacman",
    PackageSource.ZYPPER: "Zypper",
    PackageSource.FLATPAK: "Flatpak",
    PackageSource.SNAP: "Snap",
    PackageSource.NPM: "npm",
    PackageSource.PIP: "pip",
    PackageSource.PIPX: "pipx",
    PackageSource.CARGO: "cargo",
    PackageSource.BREW: "brew",
    PackageSource.AUR: "AUR",
    PackageSource.CONDA: "conda",
    PackageSource.MAMBA: "mamba",
    PackageSource.DART: "dart",
    PackageSource.DEB: "DEB",
    PackageSource.APPIMAGE: "AppImage",
}

_DESCRIPTIONS: dict[PackageSource, str] = {
    PackageSource.APT: "System packages (Debian/Ubuntu)",
    PackageSource.DNF: "System packages (Fedora/RHEL)",
    PackageSource.PACMAN: "System packages (Arch Linux)",
    PackageSource.ZYPPER: "System packages (openSUSE)",
    PackageSource.FLATPAK: "Sandboxed applications",
    PackageSource.SNAP: "Snap packages (Ubuntu)",
    PackageSource.NPM: "Node.js packages (global)",
    PackageSource.PIP: "Python packages",
    PackageSource.PIPX: "Python app packages (pipx)",
    PackageSource.CARGO: "Rust crates (cargo install)",
    PackageSource.BREW: "Homebrew packages (Linuxbrew)",
    PackageSource.AUR: "Arch User Repository (AUR helper)",
    PackageSource.CONDA: "Conda packages (base env)",
    PackageSource.MAMBA: "Mamba packages (base env)",
    PackageSource.DART: "Dart/Flutter global tools (pub global)",
    PackageSource.DEB: "Local .deb packages",
    PackageSource.APPIMAGE: "Portable AppImage applications",
}

_INSTALL_HINTS: dict[PackageSource, str] = {
    PackageSource.DNF: "Install `dnf` (Fedora/RHEL)",
    PackageSource.PACMAN: "Install `pacman` (Arch Linux)",
    PackageSource.ZYPPER: "Install `zypper` (openSUSE)",
    PackageSource.FLATPAK: "Install `flatpak`",
    PackageSource.SNAP: "Install `snapd`",
    PackageSource.NPM: "Install Node.js + `npm`",
    PackageSource.PIP: "Install Python + `pip` (python3-pip)",
    PackageSource.PIPX: "Install `pipx` (and Python)",
    PackageSource.CARGO: "Install Rust (rustup)",
    PackageSource.BREW: "Install Homebrew",
    PackageSource.AUR: "Install an AUR helper (e.g. `yay`)",
    PackageSource.CONDA: "Install Conda (Miniforge/Anaconda)",
    PackageSource.MAMBA: "Install Mamba (Miniforge/Mambaforge)",
    PackageSource.DART: "Install Dart/Flutter SDK",
    PackageSource.DEB: "Install `dpkg`/APT (Debian-based)",
}


class PackageStatus(str, Enum):
    """Package status as seen by pkgdeck.

    INSTALLING, REMOVING and UPDATING are transient projections for
    display only and are never persisted.
    """

    INSTALLED = "installed"
    UPDATE_AVAILABLE = "update_available"
    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    REMOVING = "removing"
    UPDATING = "updating"

    @property
    def is_transient(self) -> bool:
        """Check if this status only exists while an operation runs."""
        return self in (PackageStatus.INSTALLING, PackageStatus.REMOVING, PackageStatus.UPDATING)

    def persisted(self) -> PackageStatus:
        """Return the status to store on disk for this status."""
        return PackageStatus.INSTALLED if self.is_transient else self


class UpdateCategory(str, Enum):
    """Rough classification of an available update."""

    SECURITY = "security"
    BUGFIX = "bugfix"
    FEATURE = "feature"
    MINOR = "minor"

    @property
    def label(self) -> str:
        """Capitalized label for display."""
        return self.value.capitalize()


def _parse_semver(version: str) -> tuple[int, int, int] | None:
    match = _SEMVER_RE.match(version.strip())
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def format_size(size_bytes: int) -> str:
    """Format a byte count using binary units.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Human-readable size such as '1.5 MiB'.
    """
    size = float(size_bytes)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(size) < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


@dataclass(frozen=True, slots=True)
class PackageEnrichment:
    """Optional metadata fetched from a network index.

    Attributes:
        icon_url: Application icon URL.
        screenshots: Screenshot URLs.
        categories: Store or registry categories.
        developer: Developer or publisher name.
        rating: Average rating, if the index has one.
        downloads: Download count, if the index has one.
        summary: Long-form summary.
        repository: Source repository URL.
        keywords: Registry keywords/tags.
        last_updated: Last publish timestamp as reported by the index.
    """

    icon_url: str | None = None
    screenshots: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    developer: str | None = None
    rating: float | None = None
    downloads: int | None = None
    summary: str | None = None
    repository: str | None = None
    keywords: tuple[str, ...] = ()
    last_updated: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the enrichment.
        """
        return {
            "icon_url": self.icon_url,
            "screenshots": list(self.screenshots),
            "categories": list(self.categories),
            "developer": self.developer,
            "rating": self.rating,
            "downloads": self.downloads,
            "summary": self.summary,
            "repository": self.repository,
            "keywords": list(self.keywords),
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageEnrichment:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing enrichment data.

        Returns:
            PackageEnrichment instance.
        """
        return cls(
            icon_url=data.get("icon_url"),
            screenshots=tuple(data.get("screenshots") or ()),
            categories=tuple(data.get("categories") or ()),
            developer=data.get("developer"),
            rating=data.get("rating"),
            downloads=data.get("downloads"),
            summary=data.get("summary"),
            repository=data.get("repository"),
            keywords=tuple(data.get("keywords") or ()),
            last_updated=data.get("last_updated"),
        )


@dataclass(frozen=True, slots=True, eq=False)
class Package:
    """One managed unit reported by a backend.

    Identity is the (name, source) pair: two packages with the same name
    and source compare equal and hash alike regardless of version or
    status, so a package can be tracked across listings.

    Attributes:
        name: Package name (e.g., 'vim', 'org.mozilla.firefox').
        version: Installed version; may be empty when the tool omits it.
        source: Package manager that owns this package.
        status: Installation status.
        available_version: Newer version offered by the source.
        description: Short description.
        size: Installed or download size in bytes.
        homepage: Project homepage URL.
        license: License identifier.
        maintainer: Maintainer or packager.
        dependencies: Names of direct dependencies.
        install_date: Free-form install timestamp as reported by the tool.
        update_category: Classification of the available update.
        enrichment: Metadata fetched from a network index.
    """

    name: str
    version: str
    source: PackageSource
    status: PackageStatus = PackageStatus.INSTALLED
    available_version: str | None = field(default=None)
    description: str = field(default="")
    size: int | None = field(default=None)
    homepage: str | None = field(default=None)
    license: str | None = field(default=None)
    maintainer: str | None = field(default=None)
    dependencies: tuple[str, ...] = field(default=())
    install_date: str | None = field(default=None)
    update_category: UpdateCategory | None = field(default=None)
    enrichment: PackageEnrichment | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.name == other.name and self.source == other.source

    def __hash__(self) -> int:
        return hash((self.name, self.source))

    @property
    def id(self) -> str:
        """Stable identifier in the form 'Source:name'."""
        return f"{self.source.display_name}:{self.name}"

    @property
    def has_update(self) -> bool:
        """Check if an update is available."""
        return self.status == PackageStatus.UPDATE_AVAILABLE

    @property
    def display_version(self) -> str:
        """Version string, showing 'old → new' when an update is available."""
        if self.available_version and self.has_update:
            return f"{self.version} → {self.available_version}"
        return self.version

    @property
    def size_display(self) -> str:
        """Return human-readable size string."""
        if self.size is None:
            return "Unknown"
        return format_size(self.size)

    def detect_update_category(self) -> UpdateCategory:
        """Classify the available update.

        Security-related package names win; otherwise a semantic version
        comparison decides between feature, bugfix and minor.

        Returns:
            The detected UpdateCategory.
        """
        name_lower = self.name.lower()
        if any(keyword in name_lower for keyword in _SECURITY_KEYWORDS):
            return UpdateCategory.SECURITY

        current = _parse_semver(self.version)
        available = _parse_semver(self.available_version or "")
        if current is not None and available is not None:
            if available[0] > current[0] or available[1] > current[1]:
                return UpdateCategory.FEATURE
            if available[2] > current[2]:
                return UpdateCategory.BUGFIX

        return UpdateCategory.MINOR

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Transient statuses are stored as installed.

        Returns:
            Dictionary representation of the package.
        """
        return {
            "name": self.name,
            "version": self.version,
            "source": self.source.value,
            "status": self.status.persisted().value,
            "available_version": self.available_version,
            "description": self.description,
            "size": self.size,
            "homepage": self.homepage,
            "license": self.license,
            "maintainer": self.maintainer,
            "dependencies": list(self.dependencies),
            "install_date": self.install_date,
            "update_category": self.update_category.value if self.update_category else None,
            "enrichment": self.enrichment.to_dict() if self.enrichment else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Package:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing package data.

        Returns:
            Package instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If source or status is invalid.
        """
        category = data.get("update_category")
        enrichment = data.get("enrichment")
        return cls(
            name=data["name"],
            version=data.get("version", ""),
            source=PackageSource(data["source"]),
            status=PackageStatus(data.get("status", PackageStatus.INSTALLED.value)),
            available_version=data.get("available_version"),
            description=data.get("description", ""),
            size=data.get("size"),
            homepage=data.get("homepage"),
            license=data.get("license"),
            maintainer=data.get("maintainer"),
            dependencies=tuple(data.get("dependencies") or ()),
            install_date=data.get("install_date"),
            update_category=UpdateCategory(category) if category else None,
            enrichment=PackageEnrichment.from_dict(enrichment) if enrichment else None,
        )

"""Mapping from package sources to backend classes.

BACKENDS is the only place a backend is registered; everything else
looks backends up through it.
"""

from pkgdeck.backends.appimage import AppImageBackend
from pkgdeck.backends.apt import AptBackend
from pkgdeck.backends.aur import AurBackend
from pkgdeck.backends.base import Backend
from pkgdeck.backends.brew import BrewBackend
from pkgdeck.backends.cargo import CargoBackend
from pkgdeck.backends.conda import CondaBackend, MambaBackend
from pkgdeck.backends.dart import DartBackend
from pkgdeck.backends.deb import DebBackend
from pkgdeck.backends.dnf import DnfBackend
from pkgdeck.backends.flatpak import FlatpakBackend
from pkgdeck.backends.npm import NpmBackend
from pkgdeck.backends.pacman import PacmanBackend
from pkgdeck.backends.pip import PipBackend
from pkgdeck.backends.pipx import PipxBackend
from pkgdeck.backends.snap import SnapBackend
from pkgdeck.backends.zypper import ZypperBackend
from pkgdeck.models.package import PackageSource

BACKENDS: dict[PackageSource, type[Backend]] = {
    PackageSource.APT: AptBackend,
    PackageSource.DNF: DnfBackend,
    PackageSource.PACMAN: PacmanBackend,
    PackageSource.ZYPPER: ZypperBackend,
    PackageSource.FLATPAK: FlatpakBackend,
    PackageSource.SNAP: SnapBackend,
    PackageSource.NPM: NpmBackend,
    PackageSource.PIP: PipBackend,
    PackageSource.PIPX: PipxBackend,
    PackageSource.CARGO: CargoBackend,
    PackageSource.BREW: BrewBackend,
    PackageSource.AUR: AurBackend,
    PackageSource.CONDA: CondaBackend,
    PackageSource.MAMBA: MambaBackend,
    PackageSource.DART: DartBackend,
    PackageSource.DEB: DebBackend,
    PackageSource.APPIMAGE: AppImageBackend,
}


def create_backend(source: PackageSource) -> Backend:
    """Instantiate the backend for a source.

    Args:
        source: Package source.

    Returns:
        A new backend instance.
    """
    return BACKENDS[source]()


def available_backends(sources: list[PackageSource] | None = None) -> dict[PackageSource, Backend]:
    """Instantiate the backends that are available on this system.

    Args:
        sources: Sources to consider; all registered sources when None.

    Returns:
        Backends keyed by source, in source order.
    """
    candidates = sources if sources is not None else list(BACKENDS)
    return {
        source: create_backend(source)
        for source in sorted(candidates, key=lambda s: s.order)
        if BACKENDS[source].is_available()
    }

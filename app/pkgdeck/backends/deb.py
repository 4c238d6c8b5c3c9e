"""Backend for standalone .deb files found in download locations.

Listed packages are files on disk that can be installed with dpkg, so
they carry the NOT_INSTALLED status.
"""

import logging
from pathlib import Path

from pkgdeck.backends.base import Backend, BackendCommandError, UnsupportedOperationError
from pkgdeck.backends.pkexec import run_pkexec, sudo_command
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

DEB_SHOW_FORMAT = "--showformat=${Package}\\n${Version}\\n${Description}"


def deb_search_dirs() -> list[Path]:
    """Directories scanned for .deb files."""
    home = Path.home()
    return [home / "Downloads", home / "Desktop", Path("/tmp")]


def find_deb_files(dirs: list[Path]) -> list[Path]:
    """List ``*.deb`` files directly inside the given directories."""
    files: list[Path] = []
    for directory in dirs:
        if not directory.is_dir():
            continue
        try:
            files.extend(sorted(p for p in directory.iterdir() if p.suffix == ".deb" and p.is_file()))
        except OSError as e:
            logger.debug("Cannot scan %s: %s", directory, e)
    return files


def parse_deb_show(text: str) -> tuple[str, str, str] | None:
    """Parse ``dpkg-deb --show`` output in DEB_SHOW_FORMAT.

    Returns:
        (name, version, description), or None with fewer than two lines.
    """
    lines = text.splitlines()
    if len(lines) < 2 or not lines[0].strip():
        return None
    description = lines[2].strip() if len(lines) > 2 else ""
    return lines[0].strip(), lines[1].strip(), description


class DebBackend(Backend):
    """Backend for local .deb package files."""

    source = PackageSource.DEB
    probe = PROBES[PackageSource.DEB]

    def list_installed(self) -> list[Package]:
        packages: list[Package] = []
        for path in find_deb_files(deb_search_dirs()):
            info = self._read_deb(path)
            if info is None:
                continue
            name, version, description = info
            packages.append(
                Package(
                    name=name,
                    version=version,
                    source=PackageSource.DEB,
                    status=PackageStatus.NOT_INSTALLED,
                    description=description,
                )
            )
        return packages

    def check_updates(self) -> list[Package]:
        return []

    def install(self, name: str) -> None:
        """Install the .deb file whose package name matches.

        Raises:
            BackendCommandError: If no matching file is found or dpkg fails.
        """
        path = self._find_package_file(name)
        if path is None:
            msg = f".deb file for '{name}' not found in Downloads"
            raise BackendCommandError(msg)

        args = ["-i", "--", str(path)]
        run_pkexec("dpkg", args, "Failed to install .deb package", sudo_command("dpkg", args))

        fix_args = ["install", "-f", "-y"]
        try:
            run_pkexec("apt-get", fix_args, "Failed to fix dependencies", sudo_command("apt-get", fix_args))
        except BackendCommandError as e:
            logger.warning("Dependency fix after installing %s failed: %s", name, e)

    def remove(self, name: str) -> None:
        args = ["-r", "--", name]
        run_pkexec("dpkg", args, f"Failed to remove {name}", sudo_command("dpkg", args))

    def update(self, name: str) -> None:
        raise UnsupportedOperationError(self.source, "updates of local .deb files")

    def search(self, query: str) -> list[Package]:
        return []

    def _read_deb(self, path: Path) -> tuple[str, str, str] | None:
        result = self._run_quiet(["dpkg-deb", "--show", DEB_SHOW_FORMAT, str(path)])
        return parse_deb_show(result.stdout) if result else None

    def _find_package_file(self, name: str) -> Path | None:
        for path in find_deb_files(deb_search_dirs()):
            info = self._read_deb(path)
            if info is not None and info[0] == name:
                return path
        return None

"""Unit tests for provider probing."""

from unittest.mock import patch

from pkgdeck.backends.providers import (
    PROBES,
    ProbeMode,
    ProbeSpec,
    detect_available_providers,
    detect_providers,
    probe_available,
    probe_provider,
)
from pkgdeck.models.package import PackageSource
from pkgdeck.utils.shell import CommandResult


def _which_from(found: dict[str, str]):
    return lambda cmd: found.get(cmd)


class TestProbeAvailable:
    """Tests for probe_available."""

    def test_all_mode_needs_every_command(self) -> None:
        """APT needs both apt and dpkg-query."""
        with patch("pkgdeck.backends.providers.which", _which_from({"apt": "/usr/bin/apt"})):
            assert probe_available(PROBES[PackageSource.APT]) is False

    def test_any_mode_accepts_one_command(self) -> None:
        """pip works with only pip."""
        with patch("pkgdeck.backends.providers.which", _which_from({"pip": "/usr/bin/pip"})):
            assert probe_available(PROBES[PackageSource.PIP]) is True

    def test_always_mode(self) -> None:
        """AppImage support is always available."""
        with patch("pkgdeck.backends.providers.which", _which_from({})):
            assert probe_available(PROBES[PackageSource.APPIMAGE]) is True

    def test_all_mode_without_commands_is_unavailable(self) -> None:
        """An ALL spec with no commands is not available."""
        assert probe_available(ProbeSpec(mode=ProbeMode.ALL)) is False


class TestProbeProvider:
    """Tests for probe_provider."""

    def test_available_source_reports_paths_and_version(self) -> None:
        """Found paths are sorted and deduplicated; the version is the first line."""
        found = {"apt": "/usr/bin/apt", "dpkg-query": "/usr/bin/dpkg-query", "pkexec": "/usr/bin/pkexec"}
        with (
            patch("pkgdeck.backends.providers.which", _which_from(found)),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="\napt 2.7.14 (amd64)\nmore\n", stderr="", returncode=0)
            status = probe_provider(PackageSource.APT)

        assert status.available is True
        assert status.found_paths == ("/usr/bin/apt", "/usr/bin/dpkg-query", "/usr/bin/pkexec")
        assert status.version == "apt 2.7.14 (amd64)"
        assert status.reason is None
        mock_run.assert_called_once_with(["apt", "--version"])

    def test_version_falls_back_to_stderr(self) -> None:
        """Tools that print their version on stderr are supported."""
        with (
            patch("pkgdeck.backends.providers.which", _which_from({"pacman": "/usr/bin/pacman"})),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="", stderr="Pacman v6.1.0\n", returncode=0)
            assert probe_provider(PackageSource.PACMAN).version == "Pacman v6.1.0"

    def test_version_ignored_on_failure(self) -> None:
        """A failing version command leaves the version empty."""
        with (
            patch("pkgdeck.backends.providers.which", _which_from({"npm": "/usr/bin/npm"})),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="10.2.4", stderr="", returncode=1)
            assert probe_provider(PackageSource.NPM).version is None

    def test_unavailable_source_names_missing_commands(self) -> None:
        """The reason lists exactly the missing list commands."""
        with (
            patch("pkgdeck.backends.providers.which", _which_from({"apt": "/usr/bin/apt"})),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            status = probe_provider(PackageSource.APT)

        assert status.available is False
        assert status.reason == "Missing: dpkg-query"
        mock_run.assert_not_called()

    def test_aur_has_no_version_command(self) -> None:
        """AUR helpers are probed without a version query."""
        with (
            patch("pkgdeck.backends.providers.which", _which_from({"paru": "/usr/bin/paru"})),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            status = probe_provider(PackageSource.AUR)

        assert status.available is True
        assert status.version is None
        mock_run.assert_not_called()


class TestDetectProviders:
    """Tests for detect_providers."""

    def test_available_sources_first_then_by_name(self) -> None:
        """Rows sort by availability, then case-insensitively by name."""
        found = {"flatpak": "/usr/bin/flatpak", "npm": "/usr/bin/npm"}
        with (
            patch("pkgdeck.backends.providers.which", _which_from(found)),
            patch("pkgdeck.backends.providers.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(stdout="1.0", stderr="", returncode=0)
            rows = detect_providers()
            available = detect_available_providers()

        assert len(rows) == len(PackageSource)
        assert [row.display_name for row in rows[:3]] == ["AppImage", "Flatpak", "npm"]
        assert all(not row.available for row in rows[3:])
        unavailable_names = [row.display_name.lower() for row in rows[3:]]
        assert unavailable_names == sorted(unavailable_names)
        assert [row.source for row in available] == [PackageSource.APPIMAGE, PackageSource.FLATPAK, PackageSource.NPM]

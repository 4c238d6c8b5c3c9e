"""Unit tests for SnapBackend."""

from unittest.mock import patch

from pkgdeck.backends.snap import (
    SnapBackend,
    is_system_snap,
    parse_snap_find,
    parse_snap_list,
    parse_snap_refresh_list,
)
from pkgdeck.models.package import PackageStatus

SNAP_FIND_OUTPUT = """Name       Version   Publisher      Notes    Summary
vlc        3.0.20    videolan✓      -        The ultimate media player
spotify    1.2.31    spotify✓       -        Music for everyone
broken     1.0"""


class TestSnapParsers:
    """Tests for Snap parsers."""

    def test_parse_list_skips_system_snaps(self, mock_snap_list_output: str) -> None:
        """Base snaps and runtimes are not listed."""
        packages = parse_snap_list(mock_snap_list_output)
        assert [(pkg.name, pkg.version) for pkg in packages] == [("firefox", "128.0-2"), ("spotify", "1.2.31.1205")]

    def test_is_system_snap(self) -> None:
        """Known system snaps are detected by name or prefix."""
        assert is_system_snap("snapd")
        assert is_system_snap("core24")
        assert is_system_snap("gtk-common-themes")
        assert not is_system_snap("firefox")

    def test_parse_refresh_list(self) -> None:
        """The store version is the available version."""
        text = "Name     Version  Rev   Size   Publisher  Notes\nfirefox  129.0-1  4700  250MB  mozilla✓   -"
        packages = parse_snap_refresh_list(text)

        assert len(packages) == 1
        assert packages[0].version == ""
        assert packages[0].available_version == "129.0-1"
        assert packages[0].status == PackageStatus.UPDATE_AVAILABLE

    def test_parse_refresh_list_up_to_date(self) -> None:
        """The up-to-date message yields no packages."""
        assert parse_snap_refresh_list("All snaps up to date.") == []

    def test_parse_find(self) -> None:
        """The summary is everything after the fourth column."""
        packages = parse_snap_find(SNAP_FIND_OUTPUT)

        assert [pkg.name for pkg in packages] == ["vlc", "spotify"]
        assert packages[0].description == "The ultimate media player"
        assert packages[0].maintainer == "videolan✓"


class TestSnapBackend:
    """Tests for SnapBackend commands."""

    def test_mutations_use_pkexec(self) -> None:
        """install, remove, refresh and revert go through pkexec."""
        backend = SnapBackend()
        with patch("pkgdeck.backends.snap.run_pkexec") as mock_pkexec:
            backend.install("vlc")
            backend.remove("vlc")
            backend.update("vlc")
            backend.downgrade("vlc")

        calls = [(c[0][0], c[0][1]) for c in mock_pkexec.call_args_list]
        assert calls == [
            ("snap", ["install", "--", "vlc"]),
            ("snap", ["remove", "--", "vlc"]),
            ("snap", ["refresh", "--", "vlc"]),
            ("snap", ["revert", "--", "vlc"]),
        ]

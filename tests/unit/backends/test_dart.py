"""Unit tests for DartBackend."""

from unittest.mock import patch

import pytest
from pkgdeck.backends.dart import DartBackend, latest_pub_version, parse_pub_global_list, parse_pub_search
from pkgdeck.errors import BackendCommandError
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.utils.shell import CommandResult


@pytest.fixture
def backend() -> DartBackend:
    """Create DartBackend using the dart executable."""
    with patch("pkgdeck.backends.dart.command_exists", return_value=True):
        return DartBackend()


class TestDartParsers:
    """Tests for pub output parsers."""

    def test_parse_global_list(self) -> None:
        """Status lines are skipped."""
        text = "Activated packages:\nfvm 3.1.7\nvery_good_cli 0.22.0\n"
        packages = parse_pub_global_list(text)
        assert [(pkg.name, pkg.version) for pkg in packages] == [("fvm", "3.1.7"), ("very_good_cli", "0.22.0")]

    def test_parse_search(self) -> None:
        """The rest of the line is the description."""
        packages = parse_pub_search("Showing 2 results\nhttp   A composable HTTP client\ndio  Powerful client\n")
        assert [(pkg.name, pkg.description) for pkg in packages] == [
            ("http", "A composable HTTP client"),
            ("dio", "Powerful client"),
        ]


class TestDartBackend:
    """Tests for DartBackend commands."""

    def test_falls_back_to_flutter(self) -> None:
        """flutter is used when dart is not on PATH."""
        with patch("pkgdeck.backends.dart.command_exists", return_value=False):
            assert DartBackend().cmd == "flutter"

    def test_latest_pub_version(self) -> None:
        """latest.version is read from pub.dev."""
        with patch("pkgdeck.backends.dart.fetch_json", return_value={"latest": {"version": "3.2.0"}}):
            assert latest_pub_version("fvm") == "3.2.0"

    def test_check_updates(self, backend: DartBackend) -> None:
        """Packages missing on pub.dev are skipped."""
        installed = [
            Package(name="fvm", version="3.1.7", source=PackageSource.DART),
            Package(name="private_tool", version="1.0.0", source=PackageSource.DART),
        ]
        with (
            patch.object(backend, "list_installed", return_value=installed),
            patch("pkgdeck.backends.dart.latest_pub_version", side_effect={"fvm": "3.2.0"}.get),
        ):
            updates = backend.check_updates()

        assert [(pkg.name, pkg.available_version) for pkg in updates] == [("fvm", "3.2.0")]

    def test_downgrade_to_activates_version(self, backend: DartBackend) -> None:
        """downgrade_to activates the given version."""
        ok = CommandResult(stdout="", stderr="", returncode=0)
        with patch("pkgdeck.backends.base.run_command", return_value=ok) as mock_run:
            backend.downgrade_to("fvm", "3.0.0")
        mock_run.assert_called_once_with(["dart", "pub", "global", "activate", "fvm", "3.0.0"])

    def test_downgrade_to_requires_version(self, backend: DartBackend) -> None:
        """A blank version is rejected before running anything."""
        with pytest.raises(BackendCommandError, match="Version is required"):
            backend.downgrade_to("fvm", "  ")

"""Unit tests for CargoBackend."""

from unittest.mock import patch

import pytest
from pkgdeck.backends.cargo import (
    CRATE_VERSIONS_URL,
    CargoBackend,
    latest_crate_version,
    parse_cargo_search,
    parse_crate_versions,
    parse_install_list,
)
from pkgdeck.models.package import Package, PackageSource, PackageStatus
from pkgdeck.utils.shell import CommandResult

INSTALL_LIST_OUTPUT = """bat v0.24.0:
    bat
ripgrep v14.1.0:
    rg
tool v0.1.0 (/home/user/src/tool):
    tool
"""

SEARCH_OUTPUT = """ripgrep = "14.1.0"          # ripgrep is a line-oriented search tool
ripgrep_all = "0.10.6"      # rga: ripgrep, but also search in PDFs
... and 120 crates more (use --limit N to see more)
"""


class TestCargoParsers:
    """Tests for cargo parsers."""

    def test_parse_install_list(self) -> None:
        """Crate headers are parsed; binary lines are skipped."""
        packages = parse_install_list(INSTALL_LIST_OUTPUT)
        assert [(pkg.name, pkg.version) for pkg in packages] == [
            ("bat", "0.24.0"),
            ("ripgrep", "14.1.0"),
            ("tool", "0.1.0"),
        ]

    def test_parse_search(self) -> None:
        """Search lines carry the comment as description."""
        packages = parse_cargo_search(SEARCH_OUTPUT)

        assert [pkg.name for pkg in packages] == ["ripgrep", "ripgrep_all"]
        assert packages[0].version == "14.1.0"
        assert packages[0].description == "ripgrep is a line-oriented search tool"
        assert packages[0].status == PackageStatus.NOT_INSTALLED

    def test_parse_crate_versions_skips_yanked(self) -> None:
        """Yanked versions are not offered."""
        data = {"versions": [{"num": "14.1.0"}, {"num": "14.0.2", "yanked": True}, {"num": "13.0.0"}]}
        assert parse_crate_versions(data) == ["14.1.0", "13.0.0"]
        assert parse_crate_versions(None) == []


class TestCargoBackend:
    """Tests for CargoBackend commands."""

    @pytest.fixture
    def backend(self) -> CargoBackend:
        """Create CargoBackend instance."""
        return CargoBackend()

    def test_latest_crate_version(self) -> None:
        """max_version is read from the crate document."""
        with patch("pkgdeck.backends.cargo.fetch_json", return_value={"crate": {"max_version": "14.1.0"}}):
            assert latest_crate_version("ripgrep") == "14.1.0"
        with patch("pkgdeck.backends.cargo.fetch_json", return_value=None):
            assert latest_crate_version("ripgrep") is None

    def test_check_updates_compares_versions(self, backend: CargoBackend) -> None:
        """Only crates with a newer registry version are reported."""
        installed = [
            Package(name="bat", version="0.24.0", source=PackageSource.CARGO),
            Package(name="ripgrep", version="14.1.0", source=PackageSource.CARGO),
        ]
        latest = {"bat": "0.25.0", "ripgrep": "14.1.0"}
        with (
            patch.object(backend, "list_installed", return_value=installed),
            patch("pkgdeck.backends.cargo.latest_crate_version", side_effect=latest.get),
        ):
            updates = backend.check_updates()

        assert len(updates) == 1
        assert updates[0].name == "bat"
        assert updates[0].available_version == "0.25.0"

    def test_downgrade_to_forces_version(self, backend: CargoBackend) -> None:
        """downgrade_to reinstalls the given version."""
        ok = CommandResult(stdout="", stderr="", returncode=0)
        with patch("pkgdeck.backends.base.run_command", return_value=ok) as mock_run:
            backend.downgrade_to("bat", "0.23.0")
        mock_run.assert_called_once_with(["cargo", "install", "bat", "--version", "0.23.0", "--force"])

    def test_available_downgrade_versions(self, backend: CargoBackend) -> None:
        """Versions come from the crates.io versions endpoint."""
        with patch("pkgdeck.backends.cargo.fetch_json", return_value={"versions": [{"num": "0.24.0"}]}) as mock_fetch:
            assert backend.available_downgrade_versions("bat") == ["0.24.0"]
        mock_fetch.assert_called_once_with(CRATE_VERSIONS_URL.format(name="bat"))

    def test_search_limits_results(self, backend: CargoBackend) -> None:
        """cargo search is asked for at most 50 results."""
        result = CommandResult(stdout=SEARCH_OUTPUT, stderr="", returncode=0)
        with patch("pkgdeck.backends.base.run_command", return_value=result) as mock_run:
            backend.search("ripgrep")
        mock_run.assert_called_once_with(["cargo", "search", "--limit", "50", "--", "ripgrep"])

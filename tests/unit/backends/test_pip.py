"""Unit tests for the pip and pipx backends."""

from unittest.mock import patch

import pytest
from pkgdeck.backends.pip import (
    PipBackend,
    package_from_pypi,
    parse_index_versions,
    parse_pip_list,
    parse_pip_outdated,
)
from pkgdeck.backends.pipx import PipxBackend, parse_pipx_list
from pkgdeck.models.package import PackageSource, PackageStatus
from pkgdeck.utils.shell import CommandResult

PIPX_LIST_OUTPUT = """{
  "pipx_spec_version": "0.1",
  "venvs": {
    "black": {"metadata": {"main_package": {"package": "black", "package_version": "24.1.0"}}},
    "httpie": {"metadata": {"main_package": {"package": "httpie", "package_version": "3.2.2"}}},
    "odd": {"metadata": {}}
  }
}"""


class TestPipParsers:
    """Tests for pip parsers."""

    def test_parse_list(self, mock_pip_list_output: str) -> None:
        """pip list JSON becomes installed packages."""
        packages = parse_pip_list(mock_pip_list_output)
        assert [(pkg.name, pkg.version) for pkg in packages] == [("requests", "2.31.0"), ("rich", "13.7.0")]

    def test_parse_outdated(self) -> None:
        """Outdated entries need a latest_version."""
        text = '[{"name": "rich", "version": "13.7.0", "latest_version": "13.7.1"}, {"name": "x", "version": "1"}]'
        packages = parse_pip_outdated(text)
        assert len(packages) == 1
        assert packages[0].available_version == "13.7.1"
        assert packages[0].status == PackageStatus.UPDATE_AVAILABLE

    def test_parse_index_versions(self) -> None:
        """The 'Available versions' line lists versions newest first."""
        text = "rich (13.7.1)\nAvailable versions: 13.7.1, 13.7.0, 13.6.0\n  INSTALLED: 13.7.0\n  LATEST:    13.7.1"
        assert parse_index_versions(text) == ["13.7.1", "13.7.0", "13.6.0"]
        assert parse_index_versions("ERROR: No matching distribution found") == []

    def test_package_from_pypi(self) -> None:
        """A PyPI document becomes a package; documents without a name do not."""
        data = {"info": {"name": "requests", "version": "2.31.0", "summary": "HTTP for Humans.", "license": ""}}
        pkg = package_from_pypi(data, PackageSource.PIP, PackageStatus.NOT_INSTALLED)

        assert pkg is not None
        assert pkg.name == "requests"
        assert pkg.description == "HTTP for Humans."
        assert pkg.license is None
        assert package_from_pypi({"info": {}}, PackageSource.PIP, PackageStatus.NOT_INSTALLED) is None
        assert package_from_pypi(None, PackageSource.PIP, PackageStatus.NOT_INSTALLED) is None


class TestPipBackend:
    """Tests for PipBackend commands."""

    @pytest.fixture
    def backend(self) -> PipBackend:
        """Create PipBackend using pip3."""
        with patch("pkgdeck.backends.pip.command_exists", return_value=True):
            return PipBackend()

    def test_prefers_pip3(self, backend: PipBackend) -> None:
        """pip3 is chosen when present."""
        assert backend.pip == "pip3"

    def test_falls_back_to_pip(self) -> None:
        """pip is used when pip3 is missing."""
        with patch("pkgdeck.backends.pip.command_exists", return_value=False):
            assert PipBackend().pip == "pip"

    def test_install_is_user_install(self, backend: PipBackend) -> None:
        """Packages are installed with --user."""
        with patch("pkgdeck.backends.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)
            backend.install("rich")
        mock_run.assert_called_once_with(["pip3", "install", "--user", "rich"])

    def test_downgrade_to_pins_version(self, backend: PipBackend) -> None:
        """downgrade_to installs name==version."""
        with patch("pkgdeck.backends.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)
            backend.downgrade_to("rich", "13.0.0")
        mock_run.assert_called_once_with(["pip3", "install", "--user", "rich==13.0.0"])

    def test_search_uses_pypi(self, backend: PipBackend) -> None:
        """search looks up the exact name on PyPI."""
        data = {"info": {"name": "rich", "version": "13.7.1", "summary": "Rich text"}}
        with patch("pkgdeck.backends.pip.fetch_json", return_value=data) as mock_fetch:
            packages = backend.search(" rich ")

        mock_fetch.assert_called_once_with("https://pypi.org/pypi/rich/json")
        assert packages[0].status == PackageStatus.NOT_INSTALLED

    def test_search_not_found(self, backend: PipBackend) -> None:
        """A missing project yields no results."""
        with patch("pkgdeck.backends.pip.fetch_json", return_value=None):
            assert backend.search("no-such-project") == []


class TestPipxBackend:
    """Tests for PipxBackend."""

    def test_parse_list(self) -> None:
        """Versions come from each venv's main package."""
        packages = parse_pipx_list(PIPX_LIST_OUTPUT)
        versions = {pkg.name: pkg.version for pkg in packages}
        assert versions["black"] == "24.1.0"
        assert versions["httpie"] == "3.2.2"
        assert all(pkg.source == PackageSource.PIPX for pkg in packages)

    def test_check_updates_compares_with_pypi(self) -> None:
        """Only packages with a newer PyPI release are updates."""
        latest = {"black": "24.2.0", "httpie": "3.2.2"}
        with (
            patch("pkgdeck.backends.base.run_command") as mock_run,
            patch("pkgdeck.backends.pipx.latest_pypi_version", side_effect=lambda name: latest.get(name)),
        ):
            mock_run.return_value = CommandResult(stdout=PIPX_LIST_OUTPUT, stderr="", returncode=0)
            updates = PipxBackend().check_updates()

        assert [(pkg.name, pkg.version, pkg.available_version) for pkg in updates] == [("black", "24.1.0", "24.2.0")]

    def test_search_is_unsupported(self) -> None:
        """pipx has no search."""
        assert PipxBackend().search("black") == []

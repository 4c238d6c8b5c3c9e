"""Unit tests for DnfBackend."""

from unittest.mock import patch

from pkgdeck.backends.dnf import DnfBackend, parse_check_update, parse_dnf_search, parse_repoquery
from pkgdeck.models.package import PackageStatus
from pkgdeck.utils.shell import CommandResult

CHECK_UPDATE_OUTPUT = """
firefox.x86_64                      129.0-1.fc40                updates
python3.12.x86_64                   3.12.4-1.fc40               updates
Obsoleting Packages:
kernel-core.x86_64                  6.9.7-200.fc40              updates
"""


class TestDnfParsers:
    """Tests for DNF parsers."""

    def test_parse_repoquery(self) -> None:
        """Lines need three '|' separated columns."""
        packages = parse_repoquery("bash|5.2.26|The GNU Bourne Again shell\nbroken|1.0\n")
        assert len(packages) == 1
        assert packages[0].name == "bash"
        assert packages[0].description == "The GNU Bourne Again shell"

    def test_parse_check_update_strips_arch(self) -> None:
        """The architecture suffix is removed at the last dot."""
        packages = parse_check_update(CHECK_UPDATE_OUTPUT)

        assert [pkg.name for pkg in packages] == ["firefox", "python3.12", "kernel-core"]
        assert packages[0].version == ""
        assert packages[0].available_version == "129.0-1.fc40"
        assert packages[0].status == PackageStatus.UPDATE_AVAILABLE

    def test_parse_search(self) -> None:
        """Search lines are 'name.arch : summary'."""
        text = "======== Name Matched: htop ========\nhtop.x86_64 : Interactive process viewer\n"
        packages = parse_dnf_search(text)
        assert [(pkg.name, pkg.description) for pkg in packages] == [("htop", "Interactive process viewer")]


class TestDnfBackend:
    """Tests for DnfBackend commands."""

    def test_check_updates_exit_100_means_updates(self) -> None:
        """Exit status 100 is parsed; exit 0 means no updates."""
        backend = DnfBackend()
        with patch("pkgdeck.backends.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout=CHECK_UPDATE_OUTPUT, stderr="", returncode=100)
            assert len(backend.check_updates()) == 3
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)
            assert backend.check_updates() == []
            mock_run.return_value = CommandResult(stdout="", stderr="Error: repo", returncode=1)
            assert backend.check_updates() == []

    def test_update_uses_upgrade(self) -> None:
        """update runs dnf upgrade through pkexec."""
        with patch("pkgdeck.backends.dnf.run_pkexec") as mock_pkexec:
            DnfBackend().update("firefox")
        assert mock_pkexec.call_args[0][:2] == ("dnf", ["upgrade", "-y", "--", "firefox"])

"""Unit tests for privileged command execution."""

from unittest.mock import patch

import pytest
from pkgdeck.backends.pkexec import (
    SUGGEST_PREFIX,
    AuthorizationError,
    Suggest,
    clean_error_message,
    extract_suggestion,
    run_pkexec,
    sudo_command,
)
from pkgdeck.errors import BackendCommandError
from pkgdeck.utils.shell import CommandResult

SUGGEST = Suggest(command="sudo apt install -y -- vim")


class TestRunPkexec:
    """Tests for run_pkexec."""

    def test_success(self) -> None:
        """A zero exit returns None and runs pkexec with the program first."""
        with patch("pkgdeck.backends.pkexec.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)
            assert run_pkexec("apt", ["install", "-y", "--", "vim"], "Failed to install vim", SUGGEST) is None

        mock_run.assert_called_once_with(["pkexec", "apt", "install", "-y", "--", "vim"])

    def test_missing_pkexec(self) -> None:
        """A missing pkexec binary gives the exact install hint message."""
        with patch("pkgdeck.backends.pkexec.run_command", side_effect=FileNotFoundError()):
            with pytest.raises(BackendCommandError) as exc_info:
                run_pkexec("apt", ["install"], "Failed to install vim", SUGGEST)

        assert str(exc_info.value) == (
            f"Failed to install vim. pkexec is not installed.\n\n{SUGGEST_PREFIX} sudo apt install -y -- vim\n"
        )

    def test_failure_with_stderr(self) -> None:
        """stderr is appended to the context."""
        with patch("pkgdeck.backends.pkexec.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="E: Unable to locate package vim\n", returncode=100)
            with pytest.raises(BackendCommandError) as exc_info:
                run_pkexec("apt", ["install"], "Failed to install vim", SUGGEST)

        assert not isinstance(exc_info.value, AuthorizationError)
        assert str(exc_info.value) == (
            "Failed to install vim: E: Unable to locate package vim\n\n"
            f"{SUGGEST_PREFIX} sudo apt install -y -- vim\n"
        )

    def test_failure_without_stderr(self) -> None:
        """Without stderr the exit code is reported."""
        with patch("pkgdeck.backends.pkexec.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=1)
            with pytest.raises(BackendCommandError, match=r"Failed to install vim \(exit code 1\)"):
                run_pkexec("apt", ["install"], "Failed to install vim", SUGGEST)

    @pytest.mark.parametrize(
        "stderr",
        [
            "Error executing command as another user: Not authorized",
            "Request dismissed: Authentication failed",
            "polkit authorization was denied",
        ],
    )
    def test_authorization_failure(self, stderr: str) -> None:
        """Cancelled or denied authentication raises AuthorizationError."""
        with patch("pkgdeck.backends.pkexec.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr=stderr, returncode=126)
            with pytest.raises(AuthorizationError) as exc_info:
                run_pkexec("apt", ["install"], "Failed to install vim", SUGGEST)

        message = str(exc_info.value)
        assert "Authorization was canceled or denied." in message
        assert message.endswith(f"\n\n{SUGGEST_PREFIX} sudo apt install -y -- vim\n")


class TestSuggestions:
    """Tests for suggestion helpers."""

    def test_sudo_command_quotes_arguments(self) -> None:
        """Arguments with spaces are shell-quoted."""
        assert sudo_command("apt", ["install", "--", "my pkg"]).command == "sudo apt install -- 'my pkg'"

    def test_extract_suggestion(self) -> None:
        """The command after the marker is returned trimmed."""
        message = f"Failed.\n\n{SUGGEST_PREFIX} sudo snap refresh -- firefox\n"
        assert extract_suggestion(message) == "sudo snap refresh -- firefox"

    def test_extract_suggestion_missing_or_empty(self) -> None:
        """No marker or an empty suggestion yields None."""
        assert extract_suggestion("Failed.") is None
        assert extract_suggestion(f"Failed.\n\n{SUGGEST_PREFIX}   \n") is None

    def test_clean_error_message(self) -> None:
        """The marker and everything after it are removed."""
        message = f"Failed to install vim: oops\n\n{SUGGEST_PREFIX} sudo apt install vim\n"
        assert clean_error_message(message) == "Failed to install vim: oops"
        assert clean_error_message("plain") == "plain"

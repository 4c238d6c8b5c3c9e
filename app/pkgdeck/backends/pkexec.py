"""Privileged command execution through pkexec.

Failures carry a suggested manual command after SUGGEST_PREFIX, so callers
can show the user what to run in a terminal instead.
"""

import logging
import shlex
from dataclasses import dataclass

from pkgdeck.errors import BackendCommandError
from pkgdeck.utils.shell import run_command

logger = logging.getLogger(__name__)

# Marker separating an error message from its suggested command
SUGGEST_PREFIX = "PKGDECK_SUGGEST:"

_AUTH_MARKERS = ("authentication", "authorization", "not authorized")


class AuthorizationError(BackendCommandError):
    """The user cancelled the authentication dialog or polkit denied it."""


@dataclass(frozen=True, slots=True)
class Suggest:
    """Command the user can run manually when pkexec fails."""

    command: str


def sudo_command(program: str, args: list[str]) -> Suggest:
    """Build the sudo equivalent of a pkexec invocation.

    Args:
        program: Program to run.
        args: Program arguments.

    Returns:
        Suggest with a shell-quoted sudo command.
    """
    return Suggest(command=shlex.join(["sudo", program, *args]))


def run_pkexec(program: str, args: list[str], context: str, suggest: Suggest) -> None:
    """Run a program as root through pkexec.

    Args:
        program: Program to run.
        args: Program arguments; package names come last, after ``--``.
        context: Description used as the start of error messages.
        suggest: Command suggested to the user on failure.

    Raises:
        AuthorizationError: If authentication was cancelled or denied.
        BackendCommandError: If pkexec is missing or the program fails.
    """
    command = ["pkexec", program, *args]
    logger.info("Running privileged: %s", shlex.join(command))

    try:
        result = run_command(command)
    except FileNotFoundError:
        msg = f"{context}. pkexec is not installed.\n\n{SUGGEST_PREFIX} {suggest.command}\n"
        raise BackendCommandError(msg) from None
    except OSError as e:
        msg = f"{context}: {e}\n\n{SUGGEST_PREFIX} {suggest.command}\n"
        raise BackendCommandError(msg) from e

    if result.success:
        return

    stderr = result.stderr.strip()
    message = context
    if stderr:
        message += f": {stderr}"
    else:
        message += f" (exit code {result.returncode})"

    lowered = stderr.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        message += "\n\nAuthorization was canceled or denied."
        logger.info("Authorization cancelled or denied for %s", program)
        raise AuthorizationError(f"{message}\n\n{SUGGEST_PREFIX} {suggest.command}\n")

    raise BackendCommandError(f"{message}\n\n{SUGGEST_PREFIX} {suggest.command}\n")


def extract_suggestion(message: str) -> str | None:
    """Return the suggested command embedded in an error message.

    Args:
        message: Error message, possibly containing SUGGEST_PREFIX.

    Returns:
        The trimmed command after the marker, or None if absent or empty.
    """
    index = message.find(SUGGEST_PREFIX)
    if index == -1:
        return None
    command = message[index + len(SUGGEST_PREFIX) :].strip()
    return command or None


def clean_error_message(message: str) -> str:
    """Strip the suggestion marker and everything after it.

    Args:
        message: Error message, possibly containing SUGGEST_PREFIX.

    Returns:
        The trimmed text before the marker, or the message unchanged.
    """
    index = message.find(SUGGEST_PREFIX)
    if index == -1:
        return message
    return message[:index].strip()

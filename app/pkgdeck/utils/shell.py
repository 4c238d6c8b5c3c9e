"""Shell execution utilities.

Provides subprocess execution without a shell, capturing stdout and
stderr separately.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Execute a command and return the result.

    The command is never passed through a shell, so package names
    containing shell metacharacters are handed to the tool verbatim.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait. None waits forever.
        cwd: Working directory for the command. If None, uses current directory.
        env: Additional environment variables (merged with current env).

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    full_env = {**os.environ, **env} if env else None
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        errors="replace",
        check=check,
        timeout=timeout,
        cwd=cwd,
        env=full_env,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


def which(name: str) -> str | None:
    """Resolve a command name to its absolute path.

    Args:
        name: Command name to resolve.

    Returns:
        Absolute path of the executable, or None if not on PATH.
    """
    return shutil.which(name)

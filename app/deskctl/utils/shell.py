"""Subprocess helpers for package manager queries.

Commands run under the C locale: resolvers match dpkg messages such as
"no path found matching pattern" literally.
"""

import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_COMMAND_TIMEOUT = 60.0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of a finished command."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if the command exited with status 0."""
        return self.returncode == 0


def _c_locale_env() -> dict[str, str]:
    env = dict(os.environ)
    env["LC_ALL"] = "C"
    env.pop("LANGUAGE", None)
    return env


def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = DEFAULT_COMMAND_TIMEOUT,
) -> CommandResult:
    """Run a command with untranslated output and capture it.

    A non-zero exit status is returned, not raised.

    Args:
        args: Program and arguments.
        timeout: Seconds before the command is killed; None waits forever.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds timeout.
        OSError: If the program cannot be started.
    """
    completed = subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        env=_c_locale_env(),
    )
    return CommandResult(completed.stdout, completed.stderr, completed.returncode)


def command_exists(name: str) -> bool:
    """Check if a program is on PATH."""
    return shutil.which(name) is not None

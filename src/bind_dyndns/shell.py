"""Running external commands."""
from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class ExternalProcessError(Exception):
    """An external command could not be run or exited unsuccessfully.

    Attributes:
        command: The argument vector that was run.
        returncode: Exit status, or None if the command never completed.
        output: Captured standard error, stripped.
    """

    def __init__(self, command: Sequence[str], returncode: int | None, output: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.returncode is None:
            status = "did not complete"
        else:
            status = f"returned non-zero exit status {self.returncode}"
        detail = f": {self.output}" if self.output else ""
        return f"Command `{' '.join(self.command)}` {status}{detail}"


def call_and_check(command: Sequence[str], timeout: float | None = None) -> str:
    """Execute a command, similar to ``subprocess.check_call()``.

    Args:
        command: Command line, as a list of strings.
        timeout: Seconds after which the command is killed.

    Returns:
        The command's standard output.

    Raises:
        ExternalProcessError: If the command is missing, times out or
            returns nonzero.
    """
    logger.debug("running %s", " ".join(command))
    try:
        proc = subprocess.run(
            list(command), capture_output=True, text=True, timeout=timeout, check=False
        )
    except FileNotFoundError as exc:
        raise ExternalProcessError(command, None, f"executable not found: {exc.filename}") from exc
    except OSError as exc:
        raise ExternalProcessError(command, None, str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise ExternalProcessError(command, None, f"timed out after {timeout}s") from exc

    if proc.returncode != 0:
        raise ExternalProcessError(command, proc.returncode, (proc.stderr or "").strip())
    return proc.stdout

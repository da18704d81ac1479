"""Delivery of the address file to the DNS host."""
from __future__ import annotations

import logging
import shlex
from collections.abc import Sequence

from .errors import TransferFailed
from .shell import ExternalProcessError, call_and_check

logger = logging.getLogger(__name__)


def rsync_command(
    path: str,
    destination: str,
    ssh_options: Sequence[str] = (),
    rsync: str = "rsync",
) -> list[str]:
    """Build the rsync argument vector.

    ``-a`` keeps permissions and timestamps, ``-z`` compresses. rsync
    writes into a temporary file on the receiver and renames it, so the
    server never reads a half-transferred address.
    """
    ssh = ["ssh"]
    for option in ssh_options:
        ssh += ["-o", option]
    return [rsync, "-az", "-e", shlex.join(ssh), path, destination]


def push_address(
    path: str,
    destination: str,
    timeout: float | None = None,
    ssh_options: Sequence[str] = (),
    rsync: str = "rsync",
) -> None:
    """Copy the address file to ``destination`` (``user@host:dir/``).

    Raises:
        TransferFailed: If rsync is missing, fails or times out.
    """
    logger.info("syncing %s to %s", path, destination)
    command = rsync_command(path, destination, ssh_options=ssh_options, rsync=rsync)
    try:
        call_and_check(command, timeout=timeout)
    except ExternalProcessError as exc:
        raise TransferFailed(f"transfer of {path} to {destination} failed: {exc}") from exc

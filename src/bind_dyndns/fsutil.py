"""Atomic file replacement, locking and backup snapshots."""
from __future__ import annotations

import fcntl
import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

logger = logging.getLogger(__name__)


def atomic_write(content: bytes, filename: str, mode: int = 0o644) -> None:
    """Write ``content`` into ``filename`` in an atomic fashion.

    The data goes to a temporary file in the same directory (so that it is
    on the same filesystem as the destination) which is then renamed over
    the original. Readers see either the old or the new complete file.

    Args:
        content: Bytes to write.
        filename: Destination path.
        mode: Access permissions for the new file.

    Raises:
        TypeError: If ``content`` is not bytes.
        OSError: If the file cannot be written or renamed.
    """
    if not isinstance(content, bytes):
        raise TypeError(f"Content must be bytes, got: {content!r}")

    directory = os.path.dirname(os.path.abspath(filename))
    fd, temp_file = tempfile.mkstemp(
        dir=directory, prefix=f".{os.path.basename(filename)}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_file, mode)
        os.replace(temp_file, filename)
    except BaseException:
        if os.path.exists(temp_file):
            os.remove(temp_file)
        raise


def atomic_copy(source: str, destination: str) -> None:
    """Copy ``source`` over ``destination`` with a rename into place."""
    with open(source, "rb") as f:
        content = f.read()
    mode = os.stat(source).st_mode & 0o777
    atomic_write(content, destination, mode=mode)


@contextmanager
def exclusive_lock(path: str) -> Iterator[None]:
    """Hold an exclusive ``flock`` on ``path`` for the duration of the block.

    Blocks while another invocation holds the lock. The lock file is left
    in place; only the lock itself is released.
    """
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "a") as f:
        logger.debug("acquiring lock %s", path)
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            logger.debug("released lock %s", path)


def backup_file(path: str, backup_dir: str, now: datetime | None = None) -> str:
    """Copy ``path`` to a timestamped file in ``backup_dir``.

    Snapshots are named ``<basename>.<YYYYmmdd_HHMMSS>.bak``; a counter is
    appended when that name is already taken.

    Returns:
        Path of the snapshot.

    Raises:
        OSError: If the directory cannot be created or the copy fails.
    """
    now = now or datetime.now()
    os.makedirs(backup_dir, exist_ok=True)
    stem = f"{os.path.basename(path)}.{now:%Y%m%d_%H%M%S}"
    target = os.path.join(backup_dir, f"{stem}.bak")
    n = 1
    while os.path.exists(target):
        target = os.path.join(backup_dir, f"{stem}.{n}.bak")
        n += 1
    shutil.copy2(path, target)
    logger.info("backup created: %s", target)
    return target

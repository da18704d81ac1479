import fcntl

import pytest

from bind_dyndns.fsutil import exclusive_lock


def try_lock(path):
    """Attempt a non-blocking exclusive lock through a separate open file."""
    with open(path, "a") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def test_lock_excludes_other_holders(tmp_path):
    path = str(tmp_path / "run.lock")
    with exclusive_lock(path):
        with pytest.raises(BlockingIOError):
            try_lock(path)
    try_lock(path)


def test_lock_released_on_exception(tmp_path):
    path = str(tmp_path / "run.lock")
    with pytest.raises(RuntimeError):
        with exclusive_lock(path):
            raise RuntimeError("boom")
    try_lock(path)


def test_lock_creates_parent_directory(tmp_path):
    path = tmp_path / "state" / "run.lock"
    with exclusive_lock(str(path)):
        assert path.exists()

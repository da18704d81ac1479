"""IPv4 address record validation and storage."""
from __future__ import annotations

import logging
import re

from .errors import InvalidAddress, StorageError
from .fsutil import atomic_write

logger = logging.getLogger(__name__)

# ASCII digits only; \d would also accept other Unicode decimals.
_IPV4_RE = re.compile(r"^([0-9]{1,3}\.){3}[0-9]{1,3}$")


def is_valid_address(value: str | bytes) -> bool:
    """Check whether ``value`` is a dotted-quad IPv4 address.

    Never raises: any ``str`` or ``bytes`` input yields a bool.

    Args:
        value: Candidate text. Bytes must be ASCII to be valid.

    Returns:
        True if ``value`` has four octets in the range 0-255 and nothing else.
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            return False
    if not isinstance(value, str) or _IPV4_RE.fullmatch(value) is None:
        return False
    return all(int(octet) <= 255 for octet in value.split("."))


def validate_address(value: str | bytes, source: str = "input") -> str:
    """Return ``value`` as a str if it is a valid address.

    Args:
        value: Candidate text.
        source: Where the value came from, used in the error message.

    Raises:
        InvalidAddress: If ``value`` is not a valid IPv4 address.
    """
    if not is_valid_address(value):
        raise InvalidAddress(f"invalid IPv4 address from {source}: {value!r}")
    if isinstance(value, bytes):
        return value.decode("ascii")
    return value


def strip_whitespace(text: str) -> str:
    return "".join(text.split())


def read_address(path: str) -> str:
    """Read and validate the address stored in ``path``.

    Raises:
        StorageError: If the file is missing or unreadable.
        InvalidAddress: If the file is empty or holds an invalid address.
    """
    try:
        with open(path, "r", encoding="ascii", errors="replace") as f:
            raw = f.read()
    except OSError as exc:
        raise StorageError(f"cannot read address file {path}: {exc}") from exc

    value = strip_whitespace(raw)
    if not value:
        raise InvalidAddress(f"address file is empty: {path}")
    return validate_address(value, source=path)


def read_previous_address(path: str) -> str | None:
    """Return the stored address, or None when there is no usable one.

    A missing file is the normal first-run case. An empty or corrupted file
    is logged and treated the same way so that the next store repairs it.
    """
    try:
        return read_address(path)
    except StorageError as exc:
        if isinstance(exc.__cause__, FileNotFoundError):
            logger.debug("no stored address at %s", path)
        else:
            logger.warning("ignoring unreadable stored address: %s", exc)
    except InvalidAddress as exc:
        logger.warning("ignoring stored address: %s", exc)
    return None


def store_address(path: str, address: str) -> None:
    """Atomically replace ``path`` with ``address`` plus a newline.

    Raises:
        StorageError: If the file cannot be written.
    """
    try:
        atomic_write((address + "\n").encode("ascii"), path, mode=0o644)
    except OSError as exc:
        raise StorageError(f"cannot write address file {path}: {exc}") from exc

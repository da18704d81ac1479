"""External address lookup and change detection."""
from __future__ import annotations

import logging
import os

import requests

from .address import read_previous_address, store_address, strip_whitespace, validate_address
from .config import ClientConfig
from .errors import FetchFailed, StorageError
from .fsutil import exclusive_lock
from .records import FetchResult

logger = logging.getLogger(__name__)

USER_AGENT = "bind-dyndns"


def fetch_address(url: str, timeout: float, session: requests.Session | None = None) -> str:
    """Ask the IP service for the caller's external address.

    Args:
        url: Endpoint answering with the address as plain text.
        timeout: Seconds to wait for connect and read.
        session: Optional session to issue the request with.

    Returns:
        The validated address, with all whitespace removed.

    Raises:
        FetchFailed: On transport errors, timeouts and non-2xx responses.
        InvalidAddress: If the body is not a valid IPv4 address.
    """
    http = session or requests
    logger.info("fetching external IP from %s", url)
    try:
        response = http.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchFailed(f"cannot fetch external IP from {url}: {exc}") from exc

    return validate_address(strip_whitespace(response.text), source=url)


def check_address(config: ClientConfig, session: requests.Session | None = None) -> FetchResult:
    """Fetch the external address and store it if it changed.

    The stored record is left untouched when the address is unchanged.

    Raises:
        FetchFailed: If the IP service is unreachable.
        InvalidAddress: If the service returned garbage.
        StorageError: If the storage directory or file cannot be written.
    """
    address = fetch_address(config.ip_service_url, config.timeout, session=session)
    logger.info("external IP detected: %s", address)

    storage_dir = os.path.dirname(config.ip_file)
    if not os.path.isdir(storage_dir):
        logger.info("creating local directory: %s", storage_dir)

    try:
        os.makedirs(storage_dir, exist_ok=True)
        with exclusive_lock(config.lock_file):
            previous = read_previous_address(config.ip_file)
            if previous == address:
                logger.info("IP unchanged (%s), no update needed", address)
                return FetchResult(address=address, previous=previous, changed=False)

            if previous is not None:
                logger.info("IP changed from %s to %s", previous, address)
            logger.info("saving IP to %s", config.ip_file)
            store_address(config.ip_file, address)
    except OSError as exc:
        raise StorageError(f"cannot use storage directory {storage_dir}: {exc}") from exc

    return FetchResult(address=address, previous=previous, changed=True)

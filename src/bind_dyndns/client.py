"""Client-side update cycle: detect the external address and push it."""
from __future__ import annotations

import logging
import os

import requests

from .address import store_address
from .config import ClientConfig
from .errors import StorageError, TransferFailed
from .fetcher import check_address
from .records import FetchResult
from .transfer import push_address

logger = logging.getLogger(__name__)


def _rollback(config: ClientConfig, previous: str | None) -> None:
    """Restore the stored address so the next run retries the transfer."""
    try:
        if previous is None:
            os.remove(config.ip_file)
        else:
            store_address(config.ip_file, previous)
    except (OSError, StorageError) as exc:
        logger.error("cannot restore %s after failed transfer: %s", config.ip_file, exc)
    else:
        logger.info("restored previous address record in %s", config.ip_file)


def run(config: ClientConfig, session: requests.Session | None = None) -> FetchResult:
    """Fetch the external address and push it to the DNS host if it changed.

    When the transfer fails the stored address is rolled back, otherwise
    the next run would see no change and never retry the push.

    Returns:
        FetchResult: The detected address and whether it changed.

    Raises:
        FetchFailed, InvalidAddress, StorageError, TransferFailed
    """
    logger.info("starting dynamic DNS update")
    result = check_address(config, session=session)
    if not result.changed:
        return result

    try:
        push_address(
            config.ip_file,
            config.destination,
            timeout=config.transfer_timeout,
            ssh_options=config.ssh_options,
            rsync=config.rsync,
        )
    except TransferFailed:
        _rollback(config, result.previous)
        raise
    logger.info("dynamic DNS update completed successfully")
    return result

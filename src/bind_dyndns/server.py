"""Server-side update cycle: render the zone and reload BIND."""
from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime

from .address import read_address
from .config import ServerConfig
from .control import reload_zone
from .errors import StorageError
from .fsutil import exclusive_lock
from .records import UpdateResult
from .zone import ZoneDeployer

logger = logging.getLogger(__name__)


def run(
    config: ServerConfig,
    force_reload: bool = False,
    clock: Callable[[], datetime] = datetime.now,
) -> UpdateResult:
    """Update the zone from the address file pushed by the client.

    The whole read, render, deploy and reload sequence runs under an
    exclusive lock so that overlapping invocations cannot interleave. A
    reload that failed on an earlier run is retried even when the zone is
    already up to date.

    Args:
        config: Server settings.
        force_reload: Reload BIND even when the zone did not change.
        clock: Time source for the serial and backup names.

    Returns:
        UpdateResult: What was deployed.

    Raises:
        StorageError: If the address file is missing or a file cannot be written.
        InvalidAddress: If the address file is empty or invalid.
        RenderError: If the zone cannot be rendered.
        ReloadFailed: If the zone was written but BIND did not reload.
    """
    logger.info("starting BIND zone update")
    try:
        with exclusive_lock(config.lock_file):
            return _update(config, force_reload or config.reload_always, clock)
    except OSError as exc:
        raise StorageError(f"cannot lock {config.lock_file}: {exc}") from exc


def _mark_pending(path: str) -> None:
    try:
        with open(path, "w", encoding="ascii") as f:
            f.write("reload pending\n")
    except OSError as exc:
        raise StorageError(f"cannot write reload marker {path}: {exc}") from exc


def _clear_pending(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise StorageError(f"cannot remove reload marker {path}: {exc}") from exc


def _update(config: ServerConfig, reload_always: bool, clock: Callable[[], datetime]) -> UpdateResult:
    try:
        address = read_address(config.ip_file)
    except StorageError:
        logger.error("make sure the client has synced the IP file")
        raise
    logger.info("external IP to use: %s", address)

    # The marker outlives a failed reload so the next run retries it.
    marker = config.reload_marker
    pending = os.path.exists(marker)
    if pending:
        logger.warning("previous reload did not complete; reloading again")
    _mark_pending(marker)
    try:
        result = ZoneDeployer(config, clock=clock).deploy(address)
    except BaseException:
        if not pending:
            _clear_pending(marker)
        raise

    if result.changed or pending or reload_always:
        reload_zone(
            config.zone_name,
            timeout=config.reload_timeout,
            rndc=config.rndc,
            rndc_conf=config.rndc_conf,
        )
        result = UpdateResult(
            address=result.address,
            serial=result.serial,
            changed=result.changed,
            backup=result.backup,
            reloaded=True,
        )
    _clear_pending(marker)
    logger.info("zone update completed, %s now points to %s", config.zone_filename, address)
    return result

"""Name server control: asking BIND to reload zone data."""
from __future__ import annotations

import logging

from .errors import ReloadFailed
from .shell import ExternalProcessError, call_and_check

logger = logging.getLogger(__name__)


def rndc_command(zone: str | None = None, rndc: str = "rndc", rndc_conf: str | None = None) -> list[str]:
    cmd = [rndc]
    if rndc_conf:
        cmd += ["-c", rndc_conf]
    cmd.append("reload")
    if zone:
        cmd.append(zone)
    return cmd


def reload_zone(
    zone: str | None = None,
    timeout: float | None = None,
    rndc: str = "rndc",
    rndc_conf: str | None = None,
) -> None:
    """Ask BIND to reload ``zone``, or all zones when ``zone`` is None.

    Raises:
        ReloadFailed: If rndc is missing, fails or times out. The zone file
            on disk is already up to date at that point.
    """
    target = zone or "all zones"
    logger.info("reloading BIND (%s)", target)
    try:
        call_and_check(rndc_command(zone, rndc=rndc, rndc_conf=rndc_conf), timeout=timeout)
    except ExternalProcessError as exc:
        raise ReloadFailed(
            f"zone file written but reloading BIND ({target}) failed;"
            f" check rndc configuration: {exc}"
        ) from exc
    logger.info("BIND reloaded successfully (%s)", target)

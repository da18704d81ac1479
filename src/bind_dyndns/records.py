"""Data structures describing the outcome of an update cycle."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class FetchResult:
    """Outcome of one client-side address check.

    Attributes:
        address (str): Address reported by the IP service.
        previous (str | None): Address stored before this run, if any.
        changed (bool): True when ``address`` differs from ``previous`` and
            has been stored.
    """

    address: str
    previous: str | None
    changed: bool


@dataclass(slots=True, frozen=True)
class UpdateResult:
    """Outcome of one server-side zone update.

    Attributes:
        address (str): Address substituted into the zone.
        serial (int | None): SOA serial of the deployed zone.
        changed (bool): True when a new zone file was deployed.
        backup (str | None): Path of the backup snapshot, if one was taken.
        reloaded (bool): True when the name server was asked to reload.
    """

    address: str
    serial: int | None
    changed: bool
    backup: str | None = None
    reloaded: bool = False

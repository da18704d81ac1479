"""Error taxonomy and process exit codes."""
from __future__ import annotations


class DynDNSError(Exception):
    """Base class for failures that abort an update cycle.

    Attributes:
        exit_code (int): Process exit status reported by the CLI.
    """

    exit_code = 1


class ConfigError(DynDNSError, ValueError):
    """Configuration file missing, malformed or holding invalid values."""

    exit_code = 2


class FetchFailed(DynDNSError):
    """The IP service could not be reached or answered with an error."""

    exit_code = 3


class InvalidAddress(DynDNSError):
    """A value is not a dotted-quad IPv4 address."""

    exit_code = 4


class StorageError(DynDNSError):
    """A local file could not be read or written."""

    exit_code = 5


class TransferFailed(DynDNSError):
    """rsync did not deliver the address file to the DNS host."""

    exit_code = 6


class RenderError(DynDNSError):
    """The zone file could not be produced from the template."""

    exit_code = 7


class TemplateNotFound(RenderError):
    """The zone template file does not exist."""


class SubstitutionIncomplete(RenderError):
    """The placeholder is still present after substitution."""

    exit_code = 8


class ZoneSyntaxError(RenderError):
    """The rendered zone does not parse as a DNS zone."""

    exit_code = 9


class ReloadFailed(DynDNSError):
    """The zone was written but the name server did not reload it."""

    exit_code = 10

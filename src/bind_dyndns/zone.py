"""Zone file rendering, SOA serial maintenance and deployment."""
from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from datetime import date, datetime

import dns.exception
import dns.name
import dns.zone

from .config import ServerConfig
from .errors import StorageError, SubstitutionIncomplete, TemplateNotFound, ZoneSyntaxError
from .fsutil import atomic_copy, atomic_write, backup_file
from .records import UpdateResult

logger = logging.getLogger(__name__)

SERIAL_MODULUS = 1 << 32

_SOA_RE = re.compile(r"\bSOA\b", re.IGNORECASE)
_INCLUDE_RE = re.compile(r'^(\$INCLUDE[ \t]+)("?)([^\s"]+)("?)', re.IGNORECASE | re.MULTILINE)
_QUOTED_RE = re.compile(r'"(?:\\.|[^"\\])*"')


def _in_comment(text: str, pos: int) -> bool:
    """Whether ``pos`` lies after a ``;`` on its line, outside quotes."""
    line = text[text.rfind("\n", 0, pos) + 1 : pos]
    return ";" in _QUOTED_RE.sub("", line)


def _search_code(pattern: re.Pattern[str], text: str, pos: int = 0) -> re.Match[str] | None:
    for match in pattern.finditer(text, pos):
        if not _in_comment(text, match.start()):
            return match
    return None


def _absolute_includes(text: str, base_dir: str) -> str:
    """Make ``$INCLUDE`` file names absolute, relative to ``base_dir``."""

    def repl(m: re.Match[str]) -> str:
        name = os.path.join(base_dir, os.path.expanduser(m.group(3)))
        return f"{m.group(1)}{m.group(2)}{name}{m.group(4)}"

    return _INCLUDE_RE.sub(repl, text)


def substitute(template: str, placeholder: str, address: str) -> str:
    """Replace every literal occurrence of ``placeholder`` with ``address``.

    Neither argument is interpreted as a pattern, so characters such as
    ``&``, ``/`` or ``\\`` anywhere in the template survive unchanged.
    """
    return template.replace(placeholder, address)


def render_zone(template: str, placeholder: str, address: str, strict: bool = True) -> str:
    """Substitute ``address`` into ``template`` and check the result.

    Args:
        template: Zone template text.
        placeholder: Literal token marking the address field.
        address: Validated IPv4 address.
        strict: Raise instead of warning when the placeholder survives.

    Returns:
        The rendered zone text.

    Raises:
        SubstitutionIncomplete: If ``placeholder`` or ``address`` is empty, or
            if the placeholder is still present after substitution and
            ``strict`` is set.
    """
    if not placeholder:
        raise SubstitutionIncomplete("placeholder token is empty")
    if not address:
        raise SubstitutionIncomplete(f"empty address for placeholder {placeholder!r}")
    if placeholder not in template:
        logger.warning("placeholder %r not found in template", placeholder)

    rendered = substitute(template, placeholder, address)
    if placeholder in rendered:
        message = (
            f"placeholder {placeholder!r} still present after substituting {address!r};"
            " substitution may have failed"
        )
        if strict:
            raise SubstitutionIncomplete(message)
        logger.warning(message)
    return rendered


def read_serial(text: str, origin: str | None = None, base_dir: str | None = None) -> int | None:
    """Parse ``text`` as a zone and return its SOA serial.

    Args:
        text: Zone file contents.
        origin: Zone origin for relative names; the root when None.
        base_dir: Directory relative ``$INCLUDE`` files are read from;
            the current directory when None.

    Returns:
        The serial of the first SOA record, or None if the zone has none.

    Raises:
        ZoneSyntaxError: If ``text`` does not parse as a zone file.
    """
    try:
        zone = dns.zone.from_text(
            _absolute_includes(text, base_dir) if base_dir else text,
            origin=dns.name.from_text(origin) if origin else dns.name.root,
            relativize=True,
            allow_include=True,
            check_origin=False,
        )
    except (dns.exception.DNSException, KeyError, ValueError, OSError) as exc:
        raise ZoneSyntaxError(f"zone does not parse: {exc}") from exc

    for _name, rdataset in zone.iterate_rdatasets("SOA"):
        return int(rdataset[0].serial)
    return None


def next_serial(current: int, scheme: str = "date", today: date | None = None) -> int:
    """Return the serial following ``current``.

    The ``date`` scheme produces ``YYYYMMDDnn`` values: the first change of
    a day jumps to ``YYYYMMDD00`` and later changes increment from there.
    ``increment`` just adds one. Serials wrap modulo 2**32.
    """
    candidate = current + 1
    if scheme == "date":
        today = today or date.today()
        candidate = max(candidate, int(today.strftime("%Y%m%d")) * 100)
    elif scheme != "increment":
        raise ValueError(f"unknown serial scheme {scheme!r}")
    return candidate % SERIAL_MODULUS


def replace_serial(text: str, old: int, new: int) -> str:
    """Rewrite the SOA serial literal ``old`` as ``new``.

    Only the first standalone ``old`` after the ``SOA`` keyword is touched;
    text inside ``;`` comments is skipped.

    Raises:
        ZoneSyntaxError: If the serial literal cannot be located.
    """
    soa = _search_code(_SOA_RE, text)
    if soa is None:
        raise ZoneSyntaxError("no SOA record found")
    serial_re = re.compile(r"(?<![\w.])0*%d(?![\w.])" % old)
    match = _search_code(serial_re, text, soa.end())
    if match is None:
        raise ZoneSyntaxError(f"SOA serial {old} not found in zone text")
    return text[: match.start()] + str(new) + text[match.end():]


class ZoneDeployer:
    """Renders the template and installs it as the live zone file.

    Args:
        config: Server-side settings.
        clock: Returns the current time; used for the serial and backups.
    """

    def __init__(self, config: ServerConfig, clock: Callable[[], datetime] = datetime.now) -> None:
        self.config = config
        self.clock = clock

    @property
    def base_dir(self) -> str:
        return os.path.expanduser(self.config.zones_dir)

    def _read_template(self) -> str:
        path = self.config.template_file
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise TemplateNotFound(f"template file not found: {path}") from exc
        except OSError as exc:
            raise StorageError(f"cannot read template {path}: {exc}") from exc

    def _read_deployed(self) -> str | None:
        path = self.config.zone_file
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"cannot read zone file {path}: {exc}") from exc

    def _deployed_serial(self, deployed: str) -> int | None:
        try:
            return read_serial(deployed, self.config.zone_name, self.base_dir)
        except ZoneSyntaxError as exc:
            logger.warning("ignoring serial of deployed zone %s: %s", self.config.zone_file, exc)
            return None

    def deploy(self, address: str) -> UpdateResult:
        """Render the zone for ``address`` and deploy it when it changed.

        Returns:
            What was deployed. ``changed`` is False when the live zone
            already holds the same records.

        Raises:
            TemplateNotFound: If the template is missing.
            SubstitutionIncomplete: If the placeholder survives (strict mode).
            ZoneSyntaxError: If the rendered zone does not parse.
            StorageError: If a zone, working or backup file cannot be written.
        """
        cfg = self.config
        logger.info("creating working copy from template %s", cfg.template_file)
        template = self._read_template()

        logger.info("substituting IP address in zone file")
        rendered = render_zone(template, cfg.placeholder, address, strict=cfg.strict_substitution)
        template_serial = read_serial(rendered, cfg.zone_name, self.base_dir)

        deployed = self._read_deployed()
        deployed_serial = self._deployed_serial(deployed) if deployed is not None else None

        if deployed is not None:
            same = rendered
            if template_serial is not None and deployed_serial is not None:
                same = replace_serial(rendered, template_serial, deployed_serial)
            if same == deployed:
                logger.info("zone %s already up to date", cfg.zone_file)
                return UpdateResult(address=address, serial=deployed_serial, changed=False)

        serial = None
        if template_serial is None:
            logger.warning("no SOA record in %s; serial not bumped", cfg.template_file)
        else:
            serial = next_serial(
                max(template_serial, deployed_serial or 0),
                scheme=cfg.serial_scheme,
                today=self.clock().date(),
            )
            rendered = replace_serial(rendered, template_serial, serial)
            logger.info("zone serial set to %d", serial)

        backup = None
        if cfg.enable_backup and deployed is not None:
            try:
                backup = backup_file(cfg.zone_file, cfg.backups, now=self.clock())
            except OSError as exc:
                raise StorageError(f"cannot back up {cfg.zone_file} to {cfg.backups}: {exc}") from exc

        try:
            atomic_write(rendered.encode("utf-8"), cfg.working_file, mode=0o644)
            logger.info("copying to final zone file: %s", cfg.zone_file)
            atomic_copy(cfg.working_file, cfg.zone_file)
        except OSError as exc:
            raise StorageError(f"cannot write zone file {cfg.zone_file}: {exc}") from exc

        return UpdateResult(address=address, serial=serial, changed=True, backup=backup)

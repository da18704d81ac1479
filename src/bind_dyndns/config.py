"""Configuration loading for the client and server halves."""
from __future__ import annotations

import logging
import os
from dataclasses import MISSING, dataclass, fields
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

SERIAL_SCHEMES: tuple[str, ...] = ("date", "increment")


@dataclass(slots=True, frozen=True)
class ClientConfig:
    """Settings for the host whose external address is published.

    Attributes:
        ip_service_url: Endpoint returning the caller's IPv4 as plain text.
        timeout: Fetch timeout, in seconds.
        storage_dir: Directory holding the local address file.
        ip_filename: Name of the address file (also used on the server).
        remote_user: SSH user on the DNS host.
        remote_host: DNS host name.
        remote_path: Directory on the DNS host receiving the address file.
        transfer_timeout: rsync timeout, in seconds.
        ssh_options: ``-o`` options passed to ssh.
        rsync: rsync executable.
    """

    remote_user: str
    remote_host: str
    ip_service_url: str = "http://icanhazip.com"
    timeout: float = 30.0
    storage_dir: str = "~/.dyndns"
    ip_filename: str = "homeip"
    remote_path: str = "/etc/bind/zones"
    transfer_timeout: float = 60.0
    ssh_options: tuple[str, ...] = ("BatchMode=yes",)
    rsync: str = "rsync"

    @property
    def ip_file(self) -> str:
        return os.path.join(os.path.expanduser(self.storage_dir), self.ip_filename)

    @property
    def lock_file(self) -> str:
        return self.ip_file + ".lock"

    @property
    def destination(self) -> str:
        return f"{self.remote_user}@{self.remote_host}:{self.remote_path.rstrip('/')}/"


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Settings for the BIND host.

    File names are relative to ``zones_dir`` unless absolute. ``backup_dir``
    defaults to ``<zones_dir>/backups``.
    """

    zones_dir: str = "/etc/bind/zones"
    ip_filename: str = "homeip"
    template_filename: str = "HOME.example"
    working_filename: str = "HOME"
    zone_filename: str = "db.HOST.COM"
    placeholder: str = "HOMEREPLACEME"
    enable_backup: bool = True
    backup_dir: str | None = None
    zone_name: str | None = None
    strict_substitution: bool = True
    serial_scheme: str = "date"
    reload_timeout: float = 30.0
    reload_always: bool = False
    rndc: str = "rndc"
    rndc_conf: str | None = None
    lock_filename: str = ".dyndns.lock"
    pending_filename: str = ".dyndns.reload-pending"

    def path(self, name: str) -> str:
        return os.path.join(os.path.expanduser(self.zones_dir), os.path.expanduser(name))

    @property
    def ip_file(self) -> str:
        return self.path(self.ip_filename)

    @property
    def template_file(self) -> str:
        return self.path(self.template_filename)

    @property
    def working_file(self) -> str:
        return self.path(self.working_filename)

    @property
    def zone_file(self) -> str:
        return self.path(self.zone_filename)

    @property
    def lock_file(self) -> str:
        return self.path(self.lock_filename)

    @property
    def reload_marker(self) -> str:
        return self.path(self.pending_filename)

    @property
    def backups(self) -> str:
        return self.path(self.backup_dir if self.backup_dir else "backups")


def _coerce(section: str, name: str, value: Any, default: Any) -> Any:
    """Convert a YAML value to the type of the field default."""
    where = f"{section}.{name}"
    if value is None:
        if default is None:
            return None
        raise ConfigError(f"{where}: value required")
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{where}: boolean required, got {value!r}")
        return value
    if isinstance(default, float):
        if isinstance(value, bool):
            raise ConfigError(f"{where}: number required, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{where}: invalid number: {exc}") from exc
        if number <= 0:
            raise ConfigError(f"{where}: must be positive (got {value!r})")
        return number
    if isinstance(default, tuple):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ConfigError(f"{where}: list required, got {type(value).__name__}")
        return tuple(str(v) for v in value)
    if isinstance(value, (dict, list)):
        raise ConfigError(f"{where}: scalar required, got {type(value).__name__}")
    text = str(value).strip()
    if not text:
        raise ConfigError(f"{where}: must not be empty")
    return text


def _build(cls: type, section: str, raw: Any) -> Any:
    if not isinstance(raw, dict):
        raise ConfigError(f"'{section}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(str(k) for k in set(raw) - set(known))
    if unknown:
        raise ConfigError(f"{section}: unknown option(s): {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for name, f in known.items():
        if name not in raw:
            continue
        # Required fields are strings.
        default = "" if f.default is MISSING else f.default
        kwargs[name] = _coerce(section, name, raw[name], default)

    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ConfigError(f"{section}: {exc}") from exc


def client_config_from_dict(raw: Any) -> ClientConfig:
    """Build a :class:`ClientConfig` from a parsed ``client`` section.

    Raises:
        ConfigError: On unknown options or invalid values.
    """
    return _build(ClientConfig, "client", raw)


def server_config_from_dict(raw: Any) -> ServerConfig:
    """Build a :class:`ServerConfig` from a parsed ``server`` section.

    Raises:
        ConfigError: On unknown options or invalid values.
    """
    cfg: ServerConfig = _build(ServerConfig, "server", raw)
    if cfg.serial_scheme not in SERIAL_SCHEMES:
        raise ConfigError(
            f"server.serial_scheme: expected one of {', '.join(SERIAL_SCHEMES)}"
            f" (got {cfg.serial_scheme!r})"
        )
    if cfg.placeholder.strip() != cfg.placeholder:
        raise ConfigError("server.placeholder: must not contain surrounding whitespace")
    return cfg


def load_yaml(path: str) -> dict[str, Any]:
    """Read the YAML configuration file.

    Raises:
        ConfigError: If the file is missing or not a YAML mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parsing error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    logger.debug("configuration loaded from %s", path)
    return data


def load_client_config(path: str) -> ClientConfig:
    data = load_yaml(path)
    if "client" not in data:
        raise ConfigError(f"{path}: missing 'client' section")
    return client_config_from_dict(data["client"])


def load_server_config(path: str) -> ServerConfig:
    data = load_yaml(path)
    if "server" not in data:
        raise ConfigError(f"{path}: missing 'server' section")
    return server_config_from_dict(data["server"] or {})

import os

import pytest

from bind_dyndns.config import (
    ClientConfig,
    ServerConfig,
    client_config_from_dict,
    load_client_config,
    load_server_config,
    server_config_from_dict,
)
from bind_dyndns.errors import ConfigError

CONFIG = """\
client:
  ip_service_url: https://ipv4.icanhazip.com
  timeout: 10
  storage_dir: /var/lib/dyndns
  remote_user: dns
  remote_host: ns.example.com
  ssh_options: [BatchMode=yes, ConnectTimeout=5]
server:
  zones_dir: /etc/bind/zones
  zone_filename: db.example.com
  zone_name: example.com
  enable_backup: false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "dyndns.yaml"
    path.write_text(CONFIG)
    return str(path)


def test_load_client(config_file):
    cfg = load_client_config(config_file)
    assert cfg == ClientConfig(
        remote_user="dns",
        remote_host="ns.example.com",
        ip_service_url="https://ipv4.icanhazip.com",
        timeout=10.0,
        storage_dir="/var/lib/dyndns",
        ssh_options=("BatchMode=yes", "ConnectTimeout=5"),
    )
    assert cfg.ip_file == "/var/lib/dyndns/homeip"
    assert cfg.destination == "dns@ns.example.com:/etc/bind/zones/"


def test_load_server(config_file):
    cfg = load_server_config(config_file)
    assert cfg.zone_file == "/etc/bind/zones/db.example.com"
    assert cfg.template_file == "/etc/bind/zones/HOME.example"
    assert cfg.working_file == "/etc/bind/zones/HOME"
    assert cfg.ip_file == "/etc/bind/zones/homeip"
    assert cfg.backups == "/etc/bind/zones/backups"
    assert cfg.enable_backup is False
    assert cfg.zone_name == "example.com"
    assert cfg.strict_substitution is True


def test_config_is_immutable():
    cfg = ServerConfig()
    with pytest.raises(AttributeError):
        cfg.placeholder = "OTHER"


def test_absolute_names_override_zones_dir():
    cfg = ServerConfig(zones_dir="/etc/bind/zones", backup_dir="/var/backups/bind")
    assert cfg.backups == "/var/backups/bind"


def test_storage_dir_expands_user(monkeypatch):
    monkeypatch.setenv("HOME", "/home/someone")
    cfg = ClientConfig(remote_user="u", remote_host="h")
    assert cfg.ip_file == os.path.join("/home/someone", ".dyndns", "homeip")


def test_empty_server_section_uses_defaults(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("server:\n")
    assert load_server_config(str(path)) == ServerConfig()


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"remote_host": "h"}, "remote_user"),
        ({"remote_user": "u", "remote_host": "h", "port": 22}, "unknown option"),
        ({"remote_user": "u", "remote_host": "h", "timeout": "soon"}, "timeout"),
        ({"remote_user": "u", "remote_host": "h", "timeout": 0}, "positive"),
        ({"remote_user": "u", "remote_host": "h", "timeout": True}, "number required"),
        ({"remote_user": "u", "remote_host": ""}, "remote_host"),
        ({"remote_user": "u", "remote_host": "h", "ssh_options": {"a": 1}}, "list required"),
    ],
)
def test_invalid_client_sections(raw, message):
    with pytest.raises(ConfigError, match=message):
        client_config_from_dict(raw)


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"enable_backup": "yes"}, "boolean"),
        ({"serial_scheme": "weekly"}, "serial_scheme"),
        ({"placeholder": ""}, "placeholder"),
        ({"zone_filename": None}, "value required"),
        ({"zones_dir": ["a"]}, "scalar"),
    ],
)
def test_invalid_server_sections(raw, message):
    with pytest.raises(ConfigError, match=message):
        server_config_from_dict(raw)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_client_config(str(tmp_path / "nope.yaml"))


def test_bad_yaml(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("client: [unclosed\n")
    with pytest.raises(ConfigError, match="YAML"):
        load_client_config(str(path))


def test_missing_section(config_file, tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("server: {}\n")
    with pytest.raises(ConfigError, match="'client'"):
        load_client_config(str(path))

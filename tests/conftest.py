"""Shared fixtures: fake HTTP sessions, zone templates and configs."""
from __future__ import annotations

from datetime import datetime

import pytest
import requests

from bind_dyndns.config import ClientConfig, ServerConfig

ZONE_TEMPLATE = """\
$TTL 300
@       IN      SOA     ns1.example.com. hostmaster.example.com. (
                        2024010100 ; serial
                        3600       ; refresh
                        900        ; retry
                        604800     ; expire
                        300 )      ; minimum
@       IN      NS      ns1.example.com.
ns1     IN      A       192.0.2.53
home IN A HOMEREPLACEME
"""

FIXED_NOW = datetime(2025, 3, 14, 15, 9, 26)


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for ``requests.Session``; records every GET."""

    def __init__(self, body: str = "", status_code: int = 200, error: Exception | None = None) -> None:
        self.body = body
        self.status_code = status_code
        self.error = error
        self.calls: list[tuple[str, float]] = []

    def get(self, url: str, timeout: float | None = None, **kwargs) -> FakeResponse:
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.body, self.status_code)


@pytest.fixture
def client_config(tmp_path) -> ClientConfig:
    return ClientConfig(
        remote_user="dns",
        remote_host="ns.example.com",
        ip_service_url="http://ip.example.test",
        timeout=5.0,
        storage_dir=str(tmp_path / "client"),
    )


@pytest.fixture
def zones_dir(tmp_path):
    path = tmp_path / "zones"
    path.mkdir()
    (path / "HOME.example").write_text(ZONE_TEMPLATE)
    return path


@pytest.fixture
def server_config(zones_dir) -> ServerConfig:
    return ServerConfig(zones_dir=str(zones_dir), zone_filename="db.example.com", zone_name="example.com")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW

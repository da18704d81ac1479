import os

import pytest
import requests

from bind_dyndns.errors import FetchFailed, InvalidAddress, StorageError
from bind_dyndns.fetcher import check_address, fetch_address

from conftest import FakeSession


def test_fetch_strips_all_whitespace():
    session = FakeSession(" 203.0.113.7\n")
    assert fetch_address("http://ip.example.test", 5.0, session=session) == "203.0.113.7"
    assert session.calls == [("http://ip.example.test", 5.0)]


@pytest.mark.parametrize(
    "error",
    [requests.ConnectionError("refused"), requests.Timeout("slow")],
)
def test_fetch_transport_errors(error):
    with pytest.raises(FetchFailed, match="ip.example.test"):
        fetch_address("http://ip.example.test", 5.0, session=FakeSession(error=error))


def test_fetch_http_error_status():
    with pytest.raises(FetchFailed):
        fetch_address("http://ip.example.test", 5.0, session=FakeSession("10.0.0.1", status_code=503))


def test_fetch_invalid_body():
    with pytest.raises(InvalidAddress):
        fetch_address("http://ip.example.test", 5.0, session=FakeSession("<html>oops</html>"))


def test_first_run_stores_address(client_config):
    result = check_address(client_config, session=FakeSession("10.0.0.2\n"))

    assert result.changed
    assert result.previous is None
    assert result.address == "10.0.0.2"
    with open(client_config.ip_file) as f:
        assert f.read() == "10.0.0.2\n"


def test_changed_address_overwrites(client_config):
    os.makedirs(os.path.dirname(client_config.ip_file))
    with open(client_config.ip_file, "w") as f:
        f.write("10.0.0.1\n")

    result = check_address(client_config, session=FakeSession("10.0.0.2"))

    assert result.changed
    assert result.previous == "10.0.0.1"
    with open(client_config.ip_file) as f:
        assert f.read() == "10.0.0.2\n"


def test_unchanged_address_is_not_rewritten(client_config):
    session = FakeSession("10.0.0.5")
    check_address(client_config, session=session)
    os.utime(client_config.ip_file, (1_000_000, 1_000_000))
    inode = os.stat(client_config.ip_file).st_ino

    for _ in range(2):
        result = check_address(client_config, session=session)
        assert not result.changed
        assert result.previous == result.address == "10.0.0.5"

    st = os.stat(client_config.ip_file)
    assert st.st_mtime == 1_000_000
    assert st.st_ino == inode


def test_invalid_body_writes_nothing(client_config):
    with pytest.raises(InvalidAddress):
        check_address(client_config, session=FakeSession("not-an-ip"))
    assert not os.path.exists(os.path.dirname(client_config.ip_file))


def test_unwritable_storage_is_storage_error(client_config, tmp_path):
    # A regular file where the storage directory should be.
    (tmp_path / "client").write_text("")
    with pytest.raises(StorageError):
        check_address(client_config, session=FakeSession("10.0.0.2"))

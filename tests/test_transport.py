import os
import socket

import pytest

from clamav_wire.clamd import transport
from clamav_wire.clamd import Address, AddressError, ClamdException, \
    ClamdConnection, ConnectError
from clamav_wire.clamd.transport import open_connection, parse_address

from .fakes import FakeSocket


@pytest.mark.parametrize("address,expected", [
    ("tcp://localhost:3310", Address("tcp", host="localhost", port=3310)),
    ("tcp://127.0.0.1:1", Address("tcp", host="127.0.0.1", port=1)),
    ("tcp://[::1]:3310", Address("tcp", host="::1", port=3310)),
    ("TCP://clamav:3310", Address("tcp", host="clamav", port=3310)),
])
def test_parse_tcp(address, expected):
    assert parse_address(address) == expected


@pytest.mark.parametrize("address,path", [
    ("unix:///var/run/clamd.sock", "/var/run/clamd.sock"),
    ("unix:///tmp/clamd.sock", "/tmp/clamd.sock"),
    ("/var/run/clamav/clamd.ctl", "/var/run/clamav/clamd.ctl"),
    ("clamd.sock", "clamd.sock"),
    # no known scheme never means TCP
    ("localhost:3310", "localhost:3310"),
    ("http://localhost:3310", "http://localhost:3310"),
])
def test_parse_unix(address, path):
    assert parse_address(address) == Address("unix", path=path)


@pytest.mark.parametrize("address", [
    "",
    "tcp://",
    "tcp://localhost",
    "tcp://localhost:",
    "tcp://localhost:clamd",
    "tcp://localhost:99999",
    "tcp://:3310",
    "unix://",
])
def test_parse_invalid(address):
    with pytest.raises(AddressError):
        parse_address(address)


def test_address_str():
    assert str(Address("tcp", host="localhost", port=3310)) == \
        "tcp://localhost:3310"
    assert str(Address("tcp", host="::1", port=3310)) == "tcp://[::1]:3310"
    assert str(Address("unix", path="/tmp/clamd.sock")) == \
        "unix:///tmp/clamd.sock"


@pytest.fixture()
def dials(monkeypatch):
    """Record which dial function open_connection picks."""
    calls = []

    def fake_dial(kind):
        def dial(address, timeout):
            calls.append((kind, address, timeout))
            return FakeSocket()
        return dial

    monkeypatch.setattr(transport, "dial_tcp", fake_dial("tcp"))
    monkeypatch.setattr(transport, "dial_unix", fake_dial("unix"))
    return calls


@pytest.mark.parametrize("address", [
    "tcp://localhost:3310",
    "tcp://10.0.0.1:3310",
])
def test_open_selects_tcp(dials, address):
    conn = open_connection(address, timeout=5, cmd_terminator=b"\n",
                           buffer_size=1024)

    assert isinstance(conn, ClamdConnection)
    assert [kind for kind, _, _ in dials] == ["tcp"]
    assert dials[0][2] == 5


@pytest.mark.parametrize("address", [
    "unix:///var/run/clamd.sock",
    "/var/run/clamd.sock",
    "relative/clamd.sock",
])
def test_open_selects_unix(dials, address):
    open_connection(address, timeout=5, cmd_terminator=b"\n",
                    buffer_size=1024)

    assert [kind for kind, _, _ in dials] == ["unix"]
    assert dials[0][1].path.endswith("clamd.sock")


def test_open_bad_terminator_closes_socket(monkeypatch):
    sock = FakeSocket()
    monkeypatch.setattr(transport, "dial_unix", lambda a, t: sock)

    with pytest.raises(ClamdException):
        open_connection("/tmp/clamd.sock", timeout=5, cmd_terminator=b";",
                        buffer_size=1024)
    assert sock.closed


def test_open_invalid_address_does_not_dial(dials):
    with pytest.raises(AddressError):
        open_connection("tcp://localhost", timeout=5, cmd_terminator=b"\n",
                        buffer_size=1024)
    assert not dials


def test_unix_socket_not_found(socket_dir):
    path = os.path.join(socket_dir, "missing.sock")

    with pytest.raises(ConnectError, match="Is the clamd daemon running"):
        open_connection(path, timeout=5, cmd_terminator=b"\n",
                        buffer_size=1024)


def test_tcp_connection_refused():
    # grab a free port and release it, nobody listens there anymore
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]

    with pytest.raises(ConnectError) as exc_info:
        open_connection(f"tcp://127.0.0.1:{port}", timeout=5,
                        cmd_terminator=b"\n", buffer_size=1024)
    assert isinstance(exc_info.value.__cause__, OSError)


def test_open_real_unix_socket(fake_clamd):
    conn = open_connection(fake_clamd.address, timeout=5,
                           cmd_terminator=b"\n", buffer_size=1024)
    conn.close()
    assert conn.closed


def test_open_real_tcp_socket(fake_clamd_tcp):
    conn = open_connection(fake_clamd_tcp.address, timeout=5,
                           cmd_terminator=b"\n", buffer_size=1024)
    conn.close()
    assert conn.closed

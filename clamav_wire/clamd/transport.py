"""Resolve a clamd address and open a connection to it.

Accepted addresses:
 - tcp://host:port for clamd listening on a TCP socket ('TCPSocket'
   option in clamd.conf)
 - unix:///path/to/clamd.sock for clamd listening on a Unix domain
   socket ('LocalSocket' option in clamd.conf)
 - /path/to/clamd.sock, any string without one of the schemes above
   is taken as a Unix socket path

"""
import logging
import socket
from urllib.parse import urlsplit

from .connection import ClamdConnection
from .types import Address, AddressError, ConnectError


def parse_address(address: str) -> Address:
    """Parse a clamd address string.

    :param address: Address of clamd, see module documentation
    :return: Parsed address
    :raise AddressError: If the address is malformed
    """
    if not address:
        raise AddressError("Empty clamd address")

    try:
        url = urlsplit(address)
        scheme = url.scheme.lower()

        if scheme == "tcp":
            host, port = url.hostname, url.port
            if not host or port is None:
                raise AddressError(f"Expected tcp://host:port, got {address}")
            return Address(scheme="tcp", host=host, port=port)

        if scheme == "unix":
            if not url.path:
                raise AddressError(f"Missing socket path in {address}")
            return Address(scheme="unix", path=url.path)
    except ValueError as e:
        # urlsplit and port conversion complain with ValueError
        raise AddressError(f"Invalid clamd address {address}: {e}") from e

    # no known scheme: the whole string is the socket path
    return Address(scheme="unix", path=address)


def dial_tcp(address: Address, timeout: float) -> socket.socket:
    """Open a TCP connection to clamd.
    """
    try:
        return socket.create_connection((address.host, address.port),
                                        timeout=timeout)
    except OSError as e:
        raise ConnectError(f"Unable to connect to clamd at {address}: "
                           f"{e}") from e


def dial_unix(address: Address, timeout: float) -> socket.socket:
    """Open a Unix domain socket connection to clamd.
    """
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(address.path)
    except FileNotFoundError as e:
        sock.close()
        raise ConnectError("clamd unix socket not found at " +
                           address.path +
                           ". Is the clamd daemon running?") from e
    except OSError as e:
        sock.close()
        raise ConnectError(f"Unable to connect to clamd at {address}: "
                           f"{e}") from e
    return sock


def open_connection(address: str,
                    timeout: float,
                    cmd_terminator: bytes,
                    buffer_size: int) -> ClamdConnection:
    """Connect to clamd at the given address.

    :param address: Address of clamd, see module documentation
    :param timeout: Timeout of the socket in seconds
    :param cmd_terminator: Terminator of clamd commands
    :param buffer_size: Size of the buffer to read from clamd
    :return: Connection ready to send a command
    """
    parsed = parse_address(address)
    logging.debug("Connecting to clamd at %s", parsed)

    if parsed.scheme == "tcp":
        sock = dial_tcp(parsed, timeout)
    else:
        sock = dial_unix(parsed, timeout)

    try:
        return ClamdConnection(sock,
                               cmd_terminator=cmd_terminator,
                               buffer_size=buffer_size)
    except Exception:
        sock.close()
        raise

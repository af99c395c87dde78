"""Python bindings for clamd daemon on Unix or TCP socket.

For details about commands, see man clamd(8).

Usage:
.. code-block:: python

    clamd = Clamd("unix:///var/run/clamd.sock")
    with clamd.scan_file("/my/file.txt") as results:
        for result in results:
            print(result.status, result.description)

A new connection is opened for each command and closed as soon as clamd
has sent the whole response, which can be consumed while it is still
being received:
.. code-block:: python

    with clamd.multi_scan_file("/my/dir") as results:
        for result in results:
            if result.found:
                print(result.path, result.description)

NOTE: clamd sessions are yet not implemented.

"""

from .types import ClamdException, AddressError, ConnectError, \
    WriteError, ReadError, ProtocolError, ScanCancelled, \
    InvalidPathError  # noqa
from .types import Address, ScanResult, ScanStatus, Stats  # noqa
from .cancel import CancelToken  # noqa
from .connection import ClamdConnection  # noqa
from .decoder import ResponseStream, parse_result  # noqa
from .stats import aggregate_stats  # noqa
from .transport import open_connection, parse_address  # noqa
from .client import Clamd, CHUNK_SIZE  # noqa

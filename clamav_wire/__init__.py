"""ClamAV wire is a client for the ClamAV daemon (clamd) protocol.

The ClamAV daemon (clamd) can be either reached via Unix domain socket
or TCP socket, depending on the address given to the client:

 - tcp://host:port : clamd running on TCP socket at host and port
 - unix:///path/to/clamd.sock : clamd running on Unix socket at path
 - /path/to/clamd.sock : same as above

No authentication of any type is implemented whatsoever: clamd must be
reachable only by trusted clients.

Logging goes through the standard logging module, the application using
this package is in charge of configuring it.

"""

from .clamd import Clamd, CancelToken, ResponseStream  # noqa
from .clamd import ScanResult, ScanStatus, Stats  # noqa
from .clamd import ClamdException, AddressError, ConnectError, \
    WriteError, ReadError, ProtocolError, ScanCancelled, \
    InvalidPathError  # noqa

__version__ = "1.0.0"

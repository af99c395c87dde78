"""Types for clamd communication.

"""
from dataclasses import dataclass
from enum import Enum


class ClamdException(Exception):
    """Raised when error occurred communicating with the clamd daemon.
    """


class AddressError(ClamdException):
    """Raised when the clamd address cannot be parsed.
    """


class ConnectError(ClamdException):
    """Raised when the connection to clamd cannot be established.
    """


class WriteError(ClamdException):
    """Raised when sending a command or a chunk to clamd fails.
    """


class ReadError(ClamdException):
    """Raised when reading the clamd response fails.
    """


class ProtocolError(ClamdException):
    """Raised when clamd replies something unexpected to a command.
    """


class InvalidPathError(ClamdException, ValueError):
    """Raised when a path to scan cannot be sent in a clamd command.
    """


class ScanCancelled(ClamdException):
    """Raised when a stream upload is aborted by its cancel token.
    """


class ScanStatus(Enum):
    """Status of clamd scanning.
    """
    OK = "OK"
    FOUND = "FOUND"
    ERROR = "ERROR"
    # this is not a status returned by clamd, but reflects our
    # inability to parse the clamd response correctly
    PARSE_ERROR = "PARSE ERROR"


@dataclass(frozen=True)
class ScanResult():
    """A single record of a clamd response.

    raw is the record text as received, without its terminator (newline
    or null byte) and without a trailing carriage return.
    """
    raw: str
    status: ScanStatus
    description: str | None = None
    path: str | None = None
    hash: str | None = None
    size: int | None = None

    @property
    def found(self) -> bool:
        return self.status == ScanStatus.FOUND

    def __str__(self):
        return self.raw


@dataclass
class Stats():
    """Statistics about clamd scan queue, threads and memory usage.

    Each field holds the raw text of one STATS category.
    """
    pools: str | None = None
    state: str | None = None
    threads: str | None = None
    memstats: str | None = None
    queue: str | None = None


@dataclass(frozen=True)
class Address():
    """Where clamd is listening: a TCP host and port or a Unix socket path.
    """
    scheme: str
    host: str | None = None
    port: int | None = None
    path: str | None = None

    def __str__(self):
        if self.scheme == "tcp":
            host = f"[{self.host}]" if ":" in self.host else self.host
            return f"tcp://{host}:{self.port}"
        return f"unix://{self.path}"

"""Client for clamd.

clamd can be reached on a TCP socket or on a Unix domain socket, the
address given to Clamd decides which one.  Once connection is
established, the behaviour is the same.

Every command opens its own connection, which is closed once the
response has been read.

"""
import io
import logging
import typing as t

from .cancel import CancelToken
from .connection import ClamdConnection, command_specifier
from .decoder import ResponseStream
from .stats import aggregate_stats
from .transport import open_connection
from .types import InvalidPathError, ProtocolError, ScanCancelled, \
    ScanResult, Stats, WriteError

# size of INSTREAM chunks, it MUST be < StreamMaxLength in clamd.conf
CHUNK_SIZE = 1024


class Clamd:
    """Client for clamd daemon.

    Usage:
    .. code-block:: python

        clamd = Clamd("tcp://localhost:3310")
        clamd.ping()
        with clamd.scan_file("/my/file.txt") as results:
            infected = any(r.found for r in results)

    """
    def __init__(self,
                 address: str,
                 timeout: float = 300,  # seconds
                 cmd_terminator: bytes = b'\n',
                 buffer_size: int = 2048,
                 chunk_size: int = CHUNK_SIZE):
        """Create clamd client instance.

        :param address: tcp://host:port, unix:///path or a socket path
        :param timeout: Timeout of the socket
        :param cmd_terminator: Terminator of clamd commands
        :param buffer_size: Size of the buffer to read from clamd
        :param chunk_size: Size of the chunks sent by INSTREAM
        """
        # fail early on a bad terminator rather than on first command
        command_specifier(cmd_terminator)
        self.address = address
        self.timeout = timeout
        self.cmd_terminator = cmd_terminator
        self.buffer_size = buffer_size
        self.chunk_size = chunk_size

    def ping(self) -> None:
        """Execute clamd PING command.

        Check the server's state. It should reply with "PONG".

        :raise ProtocolError: If clamd replied something else
        """
        self._expect_single("PING", "PONG")

    def version(self) -> ScanResult:
        """Execute clamd VERSION command.

        Print program and database versions.

        :return: Record holding the version string in raw
        """
        results = self._collect("VERSION")
        if not results:
            raise ProtocolError("Empty response to VERSION")
        return results[0]

    def stats(self) -> Stats:
        """Execute clamd STATS command.

        Replies with statistics about the scan queue, contents of scan
        queue, and memory usage.
        """
        with self._simple_command("STATS", until="END") as results:
            return aggregate_stats(results)

    def reload(self) -> None:
        """Execute clamd RELOAD command.

        Reload the virus databases.

        :raise ProtocolError: If clamd did not reply "RELOADING"
        """
        self._expect_single("RELOAD", "RELOADING")

    def shutdown(self) -> None:
        """Execute clamd SHUTDOWN command.

        Perform a clean exit of clamd.  Whatever clamd replies is
        ignored.
        """
        self._simple_command("SHUTDOWN").close()

    def scan_file(self, filepath: str) -> ResponseStream:
        """Execute clamd SCAN command.

        Scan a file or a directory (recursively) with archive support
        enabled (if not disabled in clamd.conf). A full path is
        required.

        :param filepath: Path of the file to scan
        :return: Results of the scanning, one per file reported
        :raise InvalidPathError: If filepath is empty or contains a
            newline or a null byte
        """
        return self._scan_command("SCAN", filepath)

    def raw_scan_file(self, filepath: str) -> ResponseStream:
        """Execute clamd RAWSCAN command.

        Scan a file or a directory (recursively) with archive and
        special file support disabled. A full path is required.
        """
        return self._scan_command("RAWSCAN", filepath)

    def multi_scan_file(self, filepath: str) -> ResponseStream:
        """Execute clamd MULTISCAN command.

        Scan a file in a standard way or scan a directory (recursively)
        using multiple threads. A full path is required.
        """
        return self._scan_command("MULTISCAN", filepath)

    def cont_scan_file(self, filepath: str) -> ResponseStream:
        """Execute clamd CONTSCAN command.

        Scan a file or a directory (recursively) with archive support
        enabled and don't stop the scanning when a virus is found.
        """
        return self._scan_command("CONTSCAN", filepath)

    def all_match_scan_file(self, filepath: str) -> ResponseStream:
        """Execute clamd ALLMATCHSCAN command.

        Like SCAN, but continues scanning a file after a virus is found
        and reports all the signatures matching it.
        """
        return self._scan_command("ALLMATCHSCAN", filepath)

    def scan_stream(self,
                    input_stream: t.IO[bytes],
                    cancel: CancelToken | None = None) -> ResponseStream:
        """Execute clamd INSTREAM command.

        Scan a stream of data. The stream is sent to clamd in chunks,
        after INSTREAM, on the same socket on which the command was
        sent.  This avoids the overhead of establishing new TCP
        connections and problems with NAT.

        :param input_stream: Input stream to analyze
        :param cancel: Token aborting the upload when cancelled
        :return: Result of the scanning, for "stream" path
        :raise ScanCancelled: If cancel was cancelled during the upload
        """
        conn = self._connect()
        unregister = cancel.on_cancel(conn.close) if cancel else None

        try:
            self._upload(conn, input_stream, cancel)
        except WriteError:
            conn.close()
            if cancel is not None and cancel.cancelled:
                # the socket was closed under our feet by cancel()
                raise ScanCancelled("Stream upload cancelled") from None
            raise
        except BaseException:
            conn.close()
            raise
        finally:
            if unregister is not None:
                unregister()

        if cancel is not None and cancel.cancelled:
            conn.close()
            raise ScanCancelled("Stream upload cancelled")

        return conn.read_response()

    def instream(self, data: bytes) -> ResponseStream:
        """Scan data in memory with INSTREAM command.

        :param data: Content to analyze
        """
        return self.scan_stream(io.BytesIO(data))

    def _connect(self) -> ClamdConnection:
        return open_connection(self.address,
                               timeout=self.timeout,
                               cmd_terminator=self.cmd_terminator,
                               buffer_size=self.buffer_size)

    def _simple_command(self,
                        command: str,
                        until: str | None = None) -> ResponseStream:
        """Send command to clamd and start reading its response.

        :param command: Command to execute, possible values in man clamd(8)
        :param until: Record ending the response, if any
        :return: clamd response records
        """
        conn = self._connect()
        try:
            conn.send_command(command)
        except BaseException:
            conn.close()
            raise
        return conn.read_response(until=until)

    def _scan_command(self, command: str, filepath: str) -> ResponseStream:
        if not filepath:
            raise InvalidPathError("A path to scan is required")
        if "\n" in filepath or "\x00" in filepath:
            raise InvalidPathError(f"Invalid characters in path {filepath!r}")
        return self._simple_command(f"{command} {filepath}")

    def _collect(self, command: str) -> list[ScanResult]:
        with self._simple_command(command) as results:
            return list(results)

    def _expect_single(self, command: str, expected: str) -> None:
        results = self._collect(command)
        if len(results) != 1 or results[0].raw != expected:
            got = "\n".join(r.raw for r in results)
            logging.warning("Unexpected reply to %s: %r", command, got)
            raise ProtocolError(f"Invalid response to {command}, got {got!r}")

    def _upload(self,
                conn: ClamdConnection,
                input_stream: t.IO[bytes],
                cancel: CancelToken | None) -> None:
        conn.send_command("INSTREAM")

        total = 0
        while True:
            if cancel is not None and cancel.cancelled:
                raise ScanCancelled("Stream upload cancelled")
            buf = input_stream.read(self.chunk_size)
            if not buf:
                break
            conn.send_chunk(buf)
            total += len(buf)

        # send an empty chunk to signal that we are finished
        conn.send_eof()
        logging.debug("Sent %d bytes to INSTREAM", total)

"""A single connection to clamd.

A connection carries exactly one command and its response, then it is
closed: clamd sessions (IDSESSION) are not implemented.

"""
import logging
import socket
import struct
import threading

from .decoder import ResponseStream
from .types import ClamdException, ReadError, WriteError


def command_specifier(cmd_terminator: bytes) -> bytes:
    """Get the prefix to put before commands ending with cmd_terminator.

    Its value is 'z' for null terminated commands or 'n' for newline
    terminated commands.  Read more in man clamd(8)
    """
    if cmd_terminator == b'\x00':
        return b'z'
    if cmd_terminator == b'\n':
        return b'n'
    raise ClamdException("Unknown command terminator, "
                         "\\x00 or \\n accepted."
                         "Read man clamd(8) for details")


class ClamdConnection:
    """Connection to clamd over an already connected stream socket.

    Writes happen on the caller's thread, while the response is read by
    the ResponseStream returned by read_response().
    """
    def __init__(self,
                 sock: socket.socket,
                 cmd_terminator: bytes = b'\n',
                 buffer_size: int = 2048):
        self.cmd_specifier = command_specifier(cmd_terminator)
        self.cmd_terminator = cmd_terminator
        self.buffer_size = buffer_size
        self._sock = sock
        self._close_lock = threading.Lock()
        self._closed = False
        self._eof_sent = False
        self._reading = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send_command(self, command: str) -> None:
        """Send command to clamd.

        :param command: Command to execute, possible values in man clamd(8)
        """
        full_cmd = b''.join([
            self.cmd_specifier,
            command.encode(),
            self.cmd_terminator,
        ])
        logging.debug("Sending command: %s", full_cmd)
        self._write(full_cmd)

    def send_chunk(self, data: bytes) -> None:
        """Send a chunk of an INSTREAM upload.

        The chunk is the length of data as 4-byte unsigned integer in
        network byte order, followed by data.

        :param data: Chunk payload, must not be empty
        """
        if not data:
            raise ClamdException("Empty chunk is reserved to end the stream, "
                                 "use send_eof()")
        if self._eof_sent:
            raise ClamdException("Stream already terminated")
        self._write(struct.pack('!L', len(data)) + data)

    def send_eof(self) -> None:
        """Send the zero-length chunk ending an INSTREAM upload.
        """
        if self._eof_sent:
            raise ClamdException("Stream already terminated")
        self._eof_sent = True
        self._write(struct.pack('!L', 0))

    def recv(self) -> bytes:
        """Read the next piece of response, b'' when clamd is done.
        """
        try:
            return self._sock.recv(self.buffer_size)
        except OSError as e:
            raise ReadError(f"Unable to read clamd response: {e}") from e

    def read_response(self, until: str | None = None) -> ResponseStream:
        """Start draining the clamd response in background.

        The connection is closed as soon as the response is over, so
        nothing else can be sent afterwards.

        :param until: Record marking the end of the response, if clamd
            sends one
        :return: ResponseStream yielding ScanResult
        """
        if self._reading:
            raise ClamdException("Response already being read")
        self._reading = True
        return ResponseStream(self, until=until)

    def close(self) -> None:
        """Close connection to clamd daemon.

        Can be called any number of times and from any thread.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            # wake up a reader blocked on recv()
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # not connected anymore
            pass
        self._sock.close()

    def _write(self, data: bytes) -> None:
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise WriteError(f"Unable to send to clamd: {e}") from e

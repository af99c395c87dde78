"""Decoding of clamd responses.

clamd replies with one or more records, each one terminated by a newline
or by a null byte depending on the command terminator chosen by the
client.  A scanning record looks like:

    <path>: <description>(<hash>:<size>) <status>

where description and hash/size are only present for some statuses.

"""
import logging
import queue
import re
import threading
import weakref

from .types import ClamdException, ReadError, ScanResult, ScanStatus

scan_status_line_pattern = re.compile(
    r"^(?P<path>[^:]+): "
    r"(?:(?P<description>.+?)(?:\((?P<hash>[^():]+):(?P<size>\d+)\))? )?"
    r"(?P<status>OK|FOUND|ERROR)$")

# errors not related to a path, e.g. "INSTREAM size limit exceeded. ERROR"
error_line_pattern = re.compile(r"^(?P<description>.+) ERROR$")

record_boundary = re.compile(rb"[\n\x00]")

# marks the end of the response in the queue shared with consumers
_END = object()


def parse_result(record: str) -> ScanResult:
    """Parse a clamd response record.

    :param record: One record of clamd response, without terminator
    :return: Structured result, with PARSE_ERROR status if the record
        does not follow clamd grammar
    """
    m = scan_status_line_pattern.match(record)
    if not m:
        m = error_line_pattern.match(record)
        if m:
            return ScanResult(raw=record,
                              status=ScanStatus.ERROR,
                              description=m.group("description"))
        return _parse_error(record, "Unable to parse clamd response")

    status = ScanStatus(m.group("status"))
    description = m.group("description")
    size = m.group("size")

    match status:
        case ScanStatus.FOUND if not description:
            return _parse_error(record, "Virus found without a name")
        case ScanStatus.OK if description:
            return _parse_error(record, "Unexpected text before OK")

    return ScanResult(
        raw=record,
        status=status,
        description=description,
        path=m.group("path"),
        hash=m.group("hash"),
        size=int(size) if size is not None else None,
    )


def _parse_error(record: str, reason: str) -> ScanResult:
    logging.debug("%s: %r", reason, record)
    return ScanResult(raw=record,
                      status=ScanStatus.PARSE_ERROR,
                      description=reason)


class _Drain:
    """Reads a response and feeds its records to a queue.

    Runs in its own thread and knows nothing of the ResponseStream, so
    that a stream left behind by its consumer can be garbage collected.
    """
    def __init__(self, connection, until: str | None):
        self.connection = connection
        self.until = until
        self.queue = queue.Queue(maxsize=1)
        self.completed = threading.Event()
        self.discarded = threading.Event()

    def discard(self) -> None:
        self.discarded.set()

    def run(self) -> None:
        buf = bytearray()
        count = 0
        try:
            while True:
                data = self.connection.recv()
                if not data:
                    break
                buf.extend(data)
                *records, rest = record_boundary.split(buf)
                buf = bytearray(rest)
                for record in records:
                    if self._emit(record):
                        count += 1
                    if self._is_last(record):
                        return
            # clamd closed the connection without a final terminator
            if self._emit(buf):
                count += 1
        except ReadError as e:
            # what we got of the current record is lost
            self._put(e)
        finally:
            self.connection.close()
            self.completed.set()
            logging.debug("clamd response over after %d records", count)
            self._put(_END)

    def _emit(self, record: bytes) -> bool:
        text = record.decode(errors="replace").rstrip("\r")
        if not text.strip():
            return False
        self._put(parse_result(text))
        return True

    def _is_last(self, record: bytes) -> bool:
        if self.until is None:
            return False
        return record.decode(errors="replace").rstrip("\r") == self.until

    def _put(self, item) -> None:
        # wait for the consumer to take the previous item, unless it
        # is not interested anymore
        while not self.discarded.is_set():
            try:
                self.queue.put(item, timeout=0.1)
                return
            except queue.Full:
                continue


class ResponseStream:
    """Iterator over the records of a clamd response.

    Records are read and decoded in a background thread as soon as clamd
    sends them, and handed over one at a time in the order they were
    received.  When the response is over the background thread closes
    the connection, then signals completion.

    A stream which is closed, or simply dropped before its end, keeps
    reading the response in background and throws it away.

    Usage:
    .. code-block:: python

        with clamd.multi_scan_file("/my/dir") as results:
            for result in results:
                if result.found:
                    print(result.path, result.description)

    """
    def __init__(self, connection, until: str | None = None):
        """Start draining the response of connection.

        :param connection: ClamdConnection on which the command was sent
        :param until: Record after which the response is over, if clamd
            does not close the connection by itself
        """
        self._drain = _Drain(connection, until)
        self._exhausted = False
        self._finalizer = weakref.finalize(self, self._drain.discard)
        self._thread = threading.Thread(target=self._drain.run,
                                        name="clamd-response",
                                        daemon=True)
        self._thread.start()

    def __iter__(self):
        return self

    def __next__(self) -> ScanResult:
        while not self._exhausted:
            try:
                item = self._drain.queue.get(timeout=0.1)
            except queue.Empty:
                # closed from another thread meanwhile?
                if self._drain.discarded.is_set():
                    self._exhausted = True
                continue
            if item is _END:
                self._exhausted = True
                break
            if isinstance(item, ClamdException):
                raise item
            return item
        raise StopIteration

    def __enter__(self):
        return self

    def __exit__(self, *args, **kwargs):
        self.close()
        return False

    @property
    def completed(self) -> bool:
        """Whether the whole response was read and the connection closed.
        """
        return self._drain.completed.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait until the whole response is read and the connection closed.

        :param timeout: Seconds to wait, forever if None
        :return: True if completed, False on timeout
        """
        return self._drain.completed.wait(timeout)

    def close(self) -> None:
        """Stop delivering records.

        The response is still read until its end before closing the
        connection, remaining records are thrown away.  A consumer
        waiting for the next record in another thread gets none.
        """
        self._exhausted = True
        self._finalizer()

"""Cancellation of a stream upload.

"""
import threading
import typing as t


class CancelToken:
    """Signal asking a running upload to stop.

    The uploading code checks `cancelled` between chunks, and may
    register callbacks to run as soon as cancel() is called, e.g. to
    close a socket blocked on a write.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: list[t.Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation, running registered callbacks once.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def on_cancel(self,
                  callback: t.Callable[[], None]) -> t.Callable[[], None]:
        """Register callback to run on cancellation.

        If already cancelled, callback runs immediately.

        :param callback: Function without arguments
        :return: Function unregistering callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)
        callback()
        return lambda: None

    def _unregister(self, callback: t.Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

"""Cooperative cancellation handle for long-running operations."""
import threading

from ..errors import DownloadCancelledError


class CancellationToken:
    """Explicit cancellation handle passed to a suspendable operation.

    cancel() may be called from any thread (e.g. a UI thread); the operation
    polls it between I/O steps. A token belongs to the call it was passed to.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, message: str = "Download cancelled") -> None:
        if self._event.is_set():
            raise DownloadCancelledError(message)

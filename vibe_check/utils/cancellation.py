import threading

from vibe_check.errors import ScanCancelledError


class CancellationToken:
    """Cooperative cancellation flag checked at every suspension point of a scan."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str = "Scan was cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        """Raise ScanCancelledError when cancellation was requested.

        Args:
            stage: Optional name of the step about to run, added to the message.
        """
        if not self._event.is_set():
            return
        message = f"{self._reason} ({stage})" if stage else self._reason
        raise ScanCancelledError(message)

"""Per-request state shared by the components answering one batch."""
import logging
import threading
import time
from typing import Any, Callable, List, MutableMapping, Optional, Tuple

from .errors import CancelledError


class CancelToken:
    """Cancellation flag plus optional deadline for one batch request.

    Checked before every upstream call; the remaining time also caps the
    HTTP timeout of the call in flight.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancel, e.g. to close a session with a call in flight."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def clamp_timeout(self, timeout: float) -> float:
        left = self.remaining()
        if left is None:
            return timeout
        return max(0.001, min(timeout, left))

    def raise_if_cancelled(self, what: str = "request") -> None:
        if self._event.is_set():
            raise CancelledError(f"Query cancelled before {what}")
        if self.expired():
            raise CancelledError(f"Query deadline exceeded before {what}")


class QueryLogger(logging.LoggerAdapter):
    """Logger adapter that tags every record with the query's refId."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        kwargs.setdefault("extra", {}).update(extra)
        return f"[refId={extra.get('ref_id', '-')}] {msg}", kwargs


def query_logger(logger: logging.Logger, ref_id: str, datasource: Optional[str] = None) -> QueryLogger:
    return QueryLogger(logger, {"ref_id": ref_id, "datasource": datasource or "-"})

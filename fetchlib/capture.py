import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from .errors import UnsupportedCapture
from .types import BrowserSessionProtocol, Headers, ResponseEvent


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureSnapshot:
    status_code: int = -1
    reason_phrase: Optional[str] = None
    headers: Headers = field(default_factory=Headers)
    matched: bool = False


class ResponseCapture:
    """Collects HTTP metadata for one URL from the session's response events.

    Events are matched by exact URL string. Every match overwrites the
    previous one. Writes happen on the session's event-delivery path, so the
    state is published under a lock and signalled through an event that the
    fetching thread waits on with a deadline.
    """

    def __init__(self, requested_url: str) -> None:
        self.requested_url = requested_url
        self._lock = threading.Lock()
        self._matched = threading.Event()
        self._status_code = -1
        self._reason_phrase: Optional[str] = None
        self._headers = Headers()
        self._error: Optional[UnsupportedCapture] = None

    def attach(self, session: BrowserSessionProtocol) -> None:
        session.inspection.on_response_received(self.on_response)

    @staticmethod
    def detach(session: BrowserSessionProtocol) -> None:
        session.inspection.remove_all_listeners()

    def on_response(self, event: ResponseEvent) -> None:
        if event.url != self.requested_url:
            return
        logger.debug("Matched response %d for %s", event.status, event.url)
        headers = Headers()
        for name, value in event.headers.items():
            if not isinstance(value, str):
                # Raised in the fetching thread by result()
                with self._lock:
                    self._error = UnsupportedCapture(name, value)
                self._matched.set()
                return
            # Chrome folds repeated header lines into one newline-joined value
            for part in value.split("\n"):
                headers.add(name, part)
        with self._lock:
            self._status_code = event.status
            self._reason_phrase = event.status_text
            self._headers = headers
            self._error = None
        self._matched.set()

    def result(self, timeout: Optional[float] = None) -> CaptureSnapshot:
        """Wait up to ``timeout`` seconds for a match and return what was captured.

        Raises UnsupportedCapture if a matching event carried a header value
        that is not a string.
        """
        matched = self._matched.wait(timeout)
        with self._lock:
            if self._error is not None:
                raise self._error
            return CaptureSnapshot(
                status_code=self._status_code,
                reason_phrase=self._reason_phrase,
                headers=Headers(self._headers.items()),
                matched=matched,
            )

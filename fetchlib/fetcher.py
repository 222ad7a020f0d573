import logging
import time
from typing import Any, Hashable, Optional
from urllib.parse import ParseResult, urlparse

from .browser import create_chrome_session
from .capture import ResponseCapture
from .config import FetcherConfig
from .errors import InvalidArgument
from .pool import SessionFactory, SessionPool
from .types import FetchedResult


logger = logging.getLogger(__name__)


def parse_absolute_url(url: Optional[str]) -> ParseResult:
    if not url or not isinstance(url, str):
        raise InvalidArgument("Invalid URL provided", url)
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise InvalidArgument("Invalid URL provided", url) from exc
    if not parsed.scheme or not parsed.netloc or not parsed.hostname:
        raise InvalidArgument("Invalid URL provided", url)
    return parsed


class BrowserFetcher:
    """Fetches rendered pages, one browser session per worker thread.

    Browser launch is deferred until a worker's first fetch. Pass ``factory``
    to supply sessions other than headless Chrome.
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        factory: SessionFactory | None = None,
    ) -> None:
        self.config = config or FetcherConfig()
        if factory is None:
            def factory():
                return create_chrome_session(self.config)

        self.sessions = SessionPool(factory)

    def fetch(self, url: str, payload: Any = None, worker_id: Optional[Hashable] = None) -> FetchedResult:
        parse_absolute_url(url)
        logger.info("Fetching %s", url)

        session = self.sessions.acquire(worker_id)
        capture = ResponseCapture(url)
        capture.attach(session)
        try:
            start = time.perf_counter()
            session.navigate(url)
            content = session.page_source()
            final_url = session.current_url()
            response_time_millis = int((time.perf_counter() - start) * 1000)
            fetch_timestamp = int(time.time() * 1000)

            remote_host = parse_absolute_url(final_url).hostname
            redirect_count = 0
            redirect_target_url = None
            if final_url != url:
                redirect_count = 1
                redirect_target_url = final_url
                logger.info("Redirected %s -> %s", url, final_url)

            wait = 0 if getattr(session, "delivers_synchronously", False) else self.config.capture_timeout_seconds
            captured = capture.result(wait)
        finally:
            ResponseCapture.detach(session)

        if not captured.matched:
            logger.debug("No response event matched %s", url)
        result = FetchedResult(
            requested_url=url,
            final_url=final_url,
            fetch_timestamp=fetch_timestamp,
            headers=captured.headers,
            content=content,
            content_type=captured.headers.get("Content-Type") or "",
            response_time_millis=response_time_millis,
            payload=payload,
            redirect_target_url=redirect_target_url,
            redirect_count=redirect_count,
            remote_host=remote_host,
            status_code=captured.status_code,
            reason_phrase=captured.reason_phrase,
        )
        logger.info("Fetched %s status=%d in %d ms", url, result.status_code, response_time_millis)
        return result

    def abort(self, worker_id: Optional[Hashable] = None) -> None:
        self.sessions.abort(worker_id)

    def close(self) -> None:
        self.sessions.abort_all()

import json
import logging
import threading
from typing import Any, Dict, List, Optional

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from urllib3 import exceptions as urllib3_exc

from .config import CHROME_ARGUMENTS, DEFAULT_USER_AGENT, FetcherConfig
from .errors import FetchFailure
from .types import ListenerRegistry, ResponseEvent, ResponseListener


logger = logging.getLogger(__name__)

# A dead chromedriver surfaces as a urllib3 error rather than a WebDriverException
DRIVER_ERRORS = (WebDriverException, urllib3_exc.HTTPError)


class ChromeInspectionChannel:
    """Network inspection over Chrome's performance log.

    ``Network.responseReceived`` messages are drained from the log and handed
    to the registered listeners on the draining thread.
    """

    RESPONSE_RECEIVED = "Network.responseReceived"

    def __init__(self, driver: Any) -> None:
        self.driver = driver
        self._registry = ListenerRegistry()
        self._lock = threading.Lock()

    def enable(self, max_total_buffer_size: int, max_resource_buffer_size: int, max_post_data_size: int) -> None:
        self.driver.execute_cdp_cmd(
            "Network.enable",
            {
                "maxTotalBufferSize": max_total_buffer_size,
                "maxResourceBufferSize": max_resource_buffer_size,
                "maxPostDataSize": max_post_data_size,
            },
        )

    def on_response_received(self, callback: ResponseListener) -> None:
        with self._lock:
            self._registry.add(callback)

    def remove_all_listeners(self) -> None:
        with self._lock:
            self._registry.clear()

    def discard_pending(self) -> None:
        self.driver.get_log("performance")

    def drain(self) -> int:
        events = self._parse(self.driver.get_log("performance"))
        with self._lock:
            registry = ListenerRegistry(list(self._registry.listeners))
        for event in events:
            registry.dispatch(event)
        return len(events)

    @classmethod
    def _parse(cls, entries: List[Dict[str, Any]]) -> List[ResponseEvent]:
        events: List[ResponseEvent] = []
        for entry in entries:
            try:
                message = json.loads(entry["message"])["message"]
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping unreadable performance log entry")
                continue
            if message.get("method") != cls.RESPONSE_RECEIVED:
                continue
            response = message.get("params", {}).get("response", {})
            events.append(
                ResponseEvent(
                    url=response.get("url", ""),
                    status=int(response.get("status", -1)),
                    status_text=response.get("statusText", ""),
                    headers=response.get("headers", {}),
                )
            )
        return events


class ChromeSession:
    """One headless Chrome process driven through Selenium."""

    # navigate() dispatches every response event before it returns
    delivers_synchronously = True

    def __init__(self, driver: Any) -> None:
        self.driver = driver
        self.inspection = ChromeInspectionChannel(driver)
        self._url: Optional[str] = None

    def navigate(self, url: str) -> None:
        self._url = url
        try:
            self.inspection.discard_pending()
            self.driver.get(url)
            count = self.inspection.drain()
        except DRIVER_ERRORS as exc:
            raise FetchFailure(url, str(exc)) from exc
        logger.debug("Dispatched %d response events for %s", count, url)

    def current_url(self) -> str:
        try:
            return self.driver.current_url
        except DRIVER_ERRORS as exc:
            raise FetchFailure(self._url or "", str(exc)) from exc

    def page_source(self) -> bytes:
        try:
            return self.driver.page_source.encode("utf-8")
        except DRIVER_ERRORS as exc:
            raise FetchFailure(self._url or "", str(exc)) from exc

    def quit(self) -> None:
        self.driver.quit()


def chrome_options(user_agent: str = DEFAULT_USER_AGENT) -> Options:
    options = Options()
    for argument in CHROME_ARGUMENTS:
        options.add_argument(argument)
    options.add_argument(f"--user-agent={user_agent}")
    options.set_capability("goog:loggingPrefs", {"performance": "ALL"})
    return options


def create_chrome_session(config: FetcherConfig) -> ChromeSession:
    """Launch Chrome and enable network inspection with the configured limits."""
    try:
        driver = webdriver.Chrome(options=chrome_options())
    except DRIVER_ERRORS as exc:
        raise FetchFailure("", f"could not start Chrome: {exc}") from exc
    session = ChromeSession(driver)
    try:
        driver.implicitly_wait(config.wait_timeout_seconds)
        session.inspection.enable(
            config.max_total_buffer_size,
            config.max_resource_buffer_size,
            config.max_post_data_size,
        )
    except DRIVER_ERRORS as exc:
        driver.quit()
        raise FetchFailure("", f"could not configure Chrome: {exc}") from exc
    logger.info("Started Chrome session %s", getattr(driver, "session_id", "?"))
    return session

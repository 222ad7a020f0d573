import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from .config import RunConfig
from .errors import FetchFailure, FetcherError
from .fetcher import BrowserFetcher
from .metrics import Metrics, StatsLogger
from .storage import JsonlWriter


class FetchRunner:
    """Fetches a fixed list of URLs with one browser session per worker thread."""

    def __init__(self, config: RunConfig, fetcher: BrowserFetcher) -> None:
        self.config = config
        self.fetcher = fetcher
        self.queue: "queue.Queue[str]" = queue.Queue()
        self.metrics = Metrics()
        self.stats_thread: Optional[StatsLogger] = None
        self.fetched = 0
        self._fetched_lock = threading.Lock()
        for url in config.urls:
            self.queue.put(url)

    def _fetch_one(self, url: str, writer: JsonlWriter) -> None:
        try:
            result = self.fetcher.fetch(url, payload=url)
        except FetchFailure as exc:
            logging.warning("Browser failure, discarding session: %s", exc)
            self.fetcher.abort()
            self.metrics.record_fetch(False, 0, 0.0)
            return
        except FetcherError as exc:
            logging.warning("Skipping %s: %s", url, exc)
            self.metrics.record_fetch(False, 0, 0.0)
            return
        writer.write_result(result)
        self.metrics.record_fetch(
            True,
            len(result.content),
            result.response_time_millis,
            redirected=bool(result.redirect_count),
            matched=result.status_code != -1,
        )
        with self._fetched_lock:
            self.fetched += 1

    def worker(self, writer: JsonlWriter) -> None:
        try:
            while True:
                try:
                    url = self.queue.get_nowait()
                except queue.Empty:
                    return
                try:
                    self._fetch_one(url, writer)
                finally:
                    self.queue.task_done()
        finally:
            self.fetcher.abort()

    def run(self) -> None:
        logging.info("Starting fetch of %d URLs with %d workers", len(self.config.urls), self.config.concurrency)
        if self.config.metrics_interval and self.config.metrics_interval > 0:
            self.stats_thread = StatsLogger(self.metrics, self.config.metrics_interval, logging.info)
            self.stats_thread.start()
        try:
            with JsonlWriter(self.config.output_path, append=self.config.append) as writer:
                with ThreadPoolExecutor(max_workers=self.config.concurrency) as executor:
                    futures = [executor.submit(self.worker, writer) for _ in range(self.config.concurrency)]
                    for future in as_completed(futures):
                        future.result()
        finally:
            if self.stats_thread:
                self.stats_thread.stop()
            self.fetcher.close()
        logging.info("Finished. Pages fetched: %d. Output: %s", self.fetched, self.config.output_path)

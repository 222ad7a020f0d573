import logging
import threading
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from .metrics import Metrics


logger = logging.getLogger(__name__)


class PrometheusExporter:
    def __init__(self, metrics: Metrics, port: int = 8000, registry: CollectorRegistry | None = None) -> None:
        self.metrics = metrics
        self.port = port
        self.registry = registry or CollectorRegistry()
        self._server_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self.fetches_total = Counter('fetcher_fetches_total', 'Total number of page fetches', registry=self.registry)
        self.bytes_total = Counter('fetcher_bytes_total', 'Total number of rendered bytes read', registry=self.registry)
        self.errors_total = Counter('fetcher_errors_total', 'Total number of failed fetches', registry=self.registry)
        self.redirects_total = Counter('fetcher_redirects_total', 'Total number of redirected fetches', registry=self.registry)
        self.unmatched_total = Counter('fetcher_unmatched_total', 'Fetches with no response event for the requested URL', registry=self.registry)
        self.fetch_duration_seconds = Histogram(
            'fetcher_fetch_duration_seconds',
            'Rendered page fetch duration in seconds',
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry,
        )
        self.fetches_per_second = Gauge('fetcher_fetches_per_second', 'Current fetch rate in fetches per second', registry=self.registry)
        self.avg_fetch_duration_seconds = Gauge('fetcher_avg_fetch_duration_seconds', 'Average fetch duration in seconds', registry=self.registry)

        self._last_fetches = 0
        self._last_bytes = 0
        self._last_errors = 0
        self._last_redirects = 0
        self._last_unmatched = 0

    def start(self) -> None:
        start_http_server(self.port, registry=self.registry)
        logger.info("Prometheus metrics server started on port %d", self.port)

        self._server_thread = threading.Thread(
            target=self._update_metrics_loop,
            name="prometheus-updater",
            daemon=True
        )
        self._server_thread.start()

    def _update_metrics_loop(self) -> None:
        while not self._stop_event.is_set():
            self.update()
            self._stop_event.wait(5.0)

    def update(self) -> None:
        totals, elapsed = self.metrics.snapshot()

        deltas = (
            (self.fetches_total, totals.fetches - self._last_fetches),
            (self.bytes_total, totals.bytes - self._last_bytes),
            (self.errors_total, totals.errors - self._last_errors),
            (self.redirects_total, totals.redirects - self._last_redirects),
            (self.unmatched_total, totals.unmatched - self._last_unmatched),
        )
        for counter, delta in deltas:
            if delta > 0:
                counter.inc(delta)

        if elapsed > 0:
            self.fetches_per_second.set(totals.fetches / elapsed)

        for fetch_ms in self.metrics.drain_durations():
            self.fetch_duration_seconds.observe(fetch_ms / 1000.0)

        if totals.succeeded > 0:
            self.avg_fetch_duration_seconds.set(totals.avg_fetch_ms() / 1000.0)

        self._last_fetches = totals.fetches
        self._last_bytes = totals.bytes
        self._last_errors = totals.errors
        self._last_redirects = totals.redirects
        self._last_unmatched = totals.unmatched

    def stop(self) -> None:
        self._stop_event.set()
        if self._server_thread:
            self._server_thread.join(timeout=2.0)

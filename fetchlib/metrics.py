import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import List


# Durations wait here until an exporter drains them; oldest are dropped first
MAX_PENDING_DURATIONS = 10_000


@dataclass
class Totals:
    fetches: int = 0
    bytes: int = 0
    errors: int = 0
    redirects: int = 0
    unmatched: int = 0
    fetch_ms_sum: float = 0.0

    @property
    def succeeded(self) -> int:
        return self.fetches - self.errors

    def avg_fetch_ms(self) -> float:
        # failed fetches carry no duration
        return self.fetch_ms_sum / max(1, self.succeeded)


class Metrics:
    def __init__(self):
        self._totals = Totals()
        self._lock = threading.Lock()
        self._start = time.time()
        self._durations_ms: "deque[float]" = deque(maxlen=MAX_PENDING_DURATIONS)

    def record_fetch(
        self, ok: bool, bytes_read: int, fetch_ms: float, redirected: bool = False, matched: bool = True
    ) -> None:
        with self._lock:
            self._totals.fetches += 1
            if not ok:
                self._totals.errors += 1
                return
            self._totals.bytes += max(0, bytes_read)
            if redirected:
                self._totals.redirects += 1
            if not matched:
                self._totals.unmatched += 1
            self._totals.fetch_ms_sum += fetch_ms
            self._durations_ms.append(fetch_ms)

    def drain_durations(self) -> List[float]:
        """Return and forget the durations of successful fetches recorded so far."""
        with self._lock:
            durations = list(self._durations_ms)
            self._durations_ms.clear()
        return durations

    def snapshot(self) -> tuple[Totals, float]:
        with self._lock:
            t = Totals(
                fetches=self._totals.fetches,
                bytes=self._totals.bytes,
                errors=self._totals.errors,
                redirects=self._totals.redirects,
                unmatched=self._totals.unmatched,
                fetch_ms_sum=self._totals.fetch_ms_sum,
            )
        elapsed = max(1e-6, time.time() - self._start)
        return t, elapsed


class StatsLogger(threading.Thread):
    daemon = True

    def __init__(self, metrics: Metrics, interval_s: float, log_fn):
        super().__init__(name="stats-logger")
        self._metrics = metrics
        self._interval = max(0.5, interval_s)
        self._log = log_fn
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._interval)
            if self._stop_event.is_set():
                break
            totals, elapsed = self._metrics.snapshot()
            self._log(
                "Perf: fetches=%d, errors=%d, redirects=%d, unmatched=%d, MB=%.2f, avg_fetch_ms=%.1f, fetches/sec=%.2f",
                totals.fetches,
                totals.errors,
                totals.redirects,
                totals.unmatched,
                totals.bytes / (1024 * 1024),
                totals.avg_fetch_ms(),
                totals.fetches / elapsed,
            )

    def stop(self) -> None:
        self._stop_event.set()

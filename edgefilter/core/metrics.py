import json
import logging
import threading
import time
from typing import Dict


class FilterMetrics:
    """Thread-safe accumulator for per-batch filter counters."""

    def __init__(self, log_interval_s: float = 30.0, logger: logging.Logger | None = None) -> None:
        self.log_interval_s = max(0.0, float(log_interval_s))
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._start_time = time.time()
        self._last_log_time = self._start_time
        self._counters = self.empty_counters()
        self._last_snapshot = self._counters.copy()

    @staticmethod
    def empty_counters() -> Dict[str, int]:
        return {
            "batches_processed": 0,
            "batches_passthrough": 0,
            "readings_in": 0,
            "readings_out": 0,
            "readings_replaced": 0,
            "readings_dropped": 0,
            "execution_errors": 0,
        }

    def record_passthrough(self, count: int) -> None:
        with self._lock:
            self._counters["batches_passthrough"] += 1
            self._counters["readings_in"] += max(0, count)
            self._counters["readings_out"] += max(0, count)
        self.maybe_log()

    def record_batch(self, readings_in: int, replaced: int, dropped: int, failed: int) -> None:
        with self._lock:
            self._counters["batches_processed"] += 1
            self._counters["readings_in"] += readings_in
            self._counters["readings_out"] += readings_in - dropped
            self._counters["readings_replaced"] += replaced
            self._counters["readings_dropped"] += dropped
            self._counters["execution_errors"] += failed
        self.maybe_log()

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return self._counters.copy()

    def maybe_log(self, force: bool = False) -> None:
        now = time.time()
        with self._lock:
            interval = now - self._last_log_time
            if not force and self.log_interval_s > 0.0 and interval < self.log_interval_s:
                return

            payload = self._build_payload(now, interval)
            self._last_log_time = now
            self._last_snapshot = self._counters.copy()

        self._logger.info("filter_metrics %s", json.dumps(payload, sort_keys=True))

    def _build_payload(self, now: float, interval: float) -> Dict[str, object]:
        delta = {
            key: self._counters[key] - self._last_snapshot.get(key, 0)
            for key in self._counters
        }
        return {
            "type": "filter_metrics",
            "uptime_s": round(now - self._start_time, 3),
            "interval_s": round(interval, 3),
            "counters": self._counters.copy(),
            "delta": delta,
        }

"""Embedded metrics for the transcription service.

Counters plus sliding windows of durations (p50/p95/p99) for HTTP requests
and for each external tool invocation. Served as JSON by `/metrics`.
"""

import threading
from time import time
from typing import Dict


class Metrics:
    """Thread-safe metrics container.

    Main methods:
      - inc: increment counters.
      - observe_duration: accumulate durations for percentiles.
      - snapshot: export all metrics into a dict.
      - reset: drop everything (used by tests).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._durations_ms: Dict[str, list[float]] = {}
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._counters = {"requests_total": 0, "errors_total": 0}
            self._durations_ms = {}

    def inc(self, key: str, by: int = 1) -> None:
        """Increment the counter `key` by `by` (default 1)."""
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + by

    def get(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def snapshot(self) -> Dict[str, float]:
        """Return a snapshot of counters and duration percentiles.

        Returns:
            Dict[str, float]: Flattened metrics ready for serialization.
        """
        with self._lock:
            data: Dict[str, float] = {}
            data.update(self._counters)
            for name, arr in self._durations_ms.items():
                if not arr:
                    continue
                xs = sorted(arr)

                def pct(p: float) -> float:
                    i = max(0, min(len(xs) - 1, int(round(p * (len(xs) - 1)))))
                    return xs[i]

                data[f"{name}_count"] = len(xs)
                data[f"{name}_p50_ms"] = pct(0.50)
                data[f"{name}_p95_ms"] = pct(0.95)
                data[f"{name}_p99_ms"] = pct(0.99)
            data["ts"] = time()
            return data

    def observe_duration(self, key: str, value_ms: float, max_keep: int = 512) -> None:
        """Accumulate a duration in ms under `key` keeping a window of `max_keep`.

        Args:
            key (str): Logical name of the duration metric.
            value_ms (float): Duration in milliseconds.
            max_keep (int): Max samples retained (window). Defaults to 512.
        """
        with self._lock:
            arr = self._durations_ms.setdefault(key, [])
            arr.append(float(value_ms))
            if len(arr) > max_keep:
                self._durations_ms[key] = arr[-max_keep:]


metrics = Metrics()

"""Metrics collector: counters and percentiles for batch deliveries."""

import threading
import time
from collections import deque

TRIGGERS = ("size", "timer", "shutdown", "manual")

# Send-time samples kept for the average and p95; older ones are discarded.
SEND_TIME_WINDOW = 1000


class MetricsCollector:
    """Collects delivery metrics for one dispatcher.

    Reads may come from other threads (e.g. a status reporter), so every
    access goes through a lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batches_sent: int = 0
        self._batches_failed: int = 0
        self._entries_delivered: int = 0
        self._entries_dropped: int = 0
        self._total_bytes: int = 0
        self._send_times: deque[float] = deque(maxlen=SEND_TIME_WINDOW)
        self._flush_triggers: dict = {trigger: 0 for trigger in TRIGGERS}
        self._start_time = time.monotonic()

    def record_batch(
        self,
        entries: int,
        bytes_sent: int,
        send_time_ms: float,
        trigger: str = "size",
        ok: bool = True,
    ) -> None:
        """Record the outcome of a single delivery attempt.

        Args:
            entries: Number of log entries in the batch.
            bytes_sent: Request body size in bytes.
            send_time_ms: Time spent awaiting the endpoint, in milliseconds.
            trigger: What caused the flush: "size", "timer", "shutdown" or "manual".
            ok: Whether the endpoint accepted the batch. Failed batches are
                counted as dropped since they are never retried.
        """
        with self._lock:
            if ok:
                self._batches_sent += 1
                self._entries_delivered += entries
                self._total_bytes += bytes_sent
            else:
                self._batches_failed += 1
                self._entries_dropped += entries
            self._send_times.append(send_time_ms)
            self._flush_triggers[trigger] = self._flush_triggers.get(trigger, 0) + 1

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all collected metrics."""
        with self._lock:
            send_times = list(self._send_times)
            attempts = self._batches_sent + self._batches_failed

            return {
                "batches_sent": self._batches_sent,
                "batches_failed": self._batches_failed,
                "entries_delivered": self._entries_delivered,
                "entries_dropped": self._entries_dropped,
                "total_bytes": self._total_bytes,
                "avg_batch_size": (
                    (self._entries_delivered + self._entries_dropped) / attempts
                    if attempts else 0.0
                ),
                "avg_send_time_ms": (
                    sum(send_times) / len(send_times) if send_times else 0.0
                ),
                "p95_send_time_ms": self._percentile(send_times, 95),
                "flush_triggers": dict(self._flush_triggers),
                "uptime_seconds": time.monotonic() - self._start_time,
            }

    @staticmethod
    def _percentile(data, pct: float) -> float:
        """Compute an interpolated percentile from a list of numeric values.

        Args:
            data: Sequence of numeric values (will be sorted internally).
            pct: Desired percentile (0-100).

        Returns:
            Interpolated value at the given percentile, or 0.0 if data is empty.
        """
        if not data:
            return 0.0

        sorted_data = sorted(data)
        n = len(sorted_data)

        if n == 1:
            return float(sorted_data[0])

        idx = (pct / 100) * (n - 1)
        lower = int(idx)
        upper = lower + 1
        fraction = idx - lower

        if upper >= n:
            return float(sorted_data[-1])

        return float(sorted_data[lower] + fraction * (sorted_data[upper] - sorted_data[lower]))

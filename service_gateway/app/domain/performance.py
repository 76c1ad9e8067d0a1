"""
In-memory request statistics for the Widget Gateway.
"""

from collections import deque
from typing import Any, Deque, Dict


class PerformanceMetrics:
    """Process-lifetime counters plus a rolling response-time window."""

    def __init__(self, window_size: int = 1000):
        self.window_size = window_size
        self.total_requests = 0
        self.cache_hits = 0
        self.average_response_time = 0.0
        self._samples: Deque[float] = deque(maxlen=window_size)

    def record_request(self) -> int:
        """Count an inbound call and return the new total."""
        self.total_requests += 1
        return self.total_requests

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def record_latency(self, millis: float) -> None:
        """Append a sample and recompute the mean over the window."""
        self._samples.append(millis)
        self.average_response_time = sum(self._samples) / len(self._samples)

    @property
    def samples(self) -> int:
        return len(self._samples)

    def snapshot(self, cache_size: int = 0) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "cacheHits": self.cache_hits,
            "averageResponseTime": self.average_response_time,
            "cacheSize": cache_size,
        }

import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from .errors import RateLimitError


class RateLimiter:
    """Sliding-window request counter per key, in process memory."""

    def __init__(self, limit: int, window_seconds: float, now: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._now = now
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def hit(self, key: str):
        """Record a request; raise RateLimitError when over the limit."""
        now = self._now()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()
            if len(hits) >= self.limit:
                raise RateLimitError()
            hits.append(now)
            self._prune(now)

    def _prune(self, now: float):
        """Drop keys whose whole window has expired."""
        cutoff = now - self.window_seconds
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def __len__(self):
        return len(self._hits)

import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional


class SlidingWindowLimiter:
    """Allow at most ``limit`` hits per key within the trailing ``window`` seconds."""

    def __init__(self, limit: int = 5, window: float = 60.0):
        self.limit = limit
        self.window = window
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def configure(self, limit: int, window: float) -> None:
        with self._lock:
            self.limit = limit
            self.window = window
            self._hits.clear()

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        """Record an attempt; return False when ``key`` is over the limit."""
        now = time.time() if now is None else now
        with self._lock:
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window:
                hits.popleft()
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def prune(self, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        with self._lock:
            for key in list(self._hits):
                hits = self._hits[key]
                while hits and now - hits[0] >= self.window:
                    hits.popleft()
                if not hits:
                    del self._hits[key]

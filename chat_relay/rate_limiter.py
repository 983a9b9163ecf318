"""
Sliding-window rate limiting keyed by connection
"""

from typing import Callable, Dict, List
from .constants import RATE_LIMIT_MAX_MESSAGES, RATE_LIMIT_WINDOW_MS
from .models import now_ms

class RateLimiter:
    """
    Per-connection sliding window of recorded message attempts.

    Callers check first and only record when the action goes ahead:

        if not limiter.is_rate_limited(conn):
            ...
            limiter.record_attempt(conn)

    Windows are compacted lazily when checked, never on a timer.
    """

    def __init__(
        self,
        max_events: int = RATE_LIMIT_MAX_MESSAGES,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        clock: Callable[[], int] = now_ms
    ):
        self.max_events = max_events
        self.window_ms = window_ms
        self._clock = clock
        # connection_id -> timestamps (ms) of recorded attempts
        self._windows: Dict[str, List[int]] = {}

    def is_rate_limited(self, connection_id: str) -> bool:
        """
        Drop expired timestamps and report whether the window is full

        Args:
            connection_id: Connection identifier

        Returns:
            True if the connection already used its quota
        """
        now = self._clock()
        recent = [t for t in self._windows.get(connection_id, []) if now - t < self.window_ms]
        self._windows[connection_id] = recent
        return len(recent) >= self.max_events

    def record_attempt(self, connection_id: str):
        """Record an admitted attempt at the current time"""
        self._windows.setdefault(connection_id, []).append(self._clock())

    def remove(self, connection_id: str) -> bool:
        """Forget a connection's window; safe to call more than once"""
        return self._windows.pop(connection_id, None) is not None

    def has_window(self, connection_id: str) -> bool:
        return connection_id in self._windows

    def window_count(self) -> int:
        return len(self._windows)

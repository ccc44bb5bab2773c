"""
Rate Limit Window - Per-category dispatch counter.

Counts dispatches inside a rolling window (60 s by default). The window
keeps the dispatch timestamps themselves, so the ceiling holds for
every 60 s span, not only for aligned buckets.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field

DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class RateLimitWindow:
    """
    Dispatch budget for one category.

    Usage:
        window = RateLimitWindow(max_per_window=6)
        if not window.is_limited(now):
            window.record(now)
            dispatch()
    """
    max_per_window: int
    window_length: float = DEFAULT_WINDOW_SECONDS
    _dispatches: deque[float] = field(default_factory=deque)

    def refresh(self, now: float):
        """Forget dispatches older than the window."""
        while self._dispatches and now - self._dispatches[0] > self.window_length:
            self._dispatches.popleft()

    @property
    def count(self) -> int:
        return len(self._dispatches)

    @property
    def window_start(self) -> float | None:
        """Timestamp of the oldest dispatch still counted."""
        return self._dispatches[0] if self._dispatches else None

    def is_limited(self, now: float) -> bool:
        self.refresh(now)
        return self.count >= self.max_per_window

    def record(self, now: float):
        self._dispatches.append(now)

    def retry_after(self, now: float) -> float:
        """Seconds until the next slot frees up (0 if not limited)."""
        if not self.is_limited(now) or self.window_start is None:
            return 0.0
        return max(0.0, self.window_start + self.window_length - now)

    def reset(self):
        self._dispatches.clear()

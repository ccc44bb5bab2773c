"""
Envelope - Data describing one queued unit of work.

The envelope holds only data. Completion is signalled through the
Future handed back by RequestScheduler.submit(), never through
callbacks stored on the entry.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import logging

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    """Ordering hint within one category's queue."""
    HIGH = "high"      # User-initiated actions
    MEDIUM = "medium"  # Interactive features (the game)
    LOW = "low"        # Background tasks

    @property
    def rank(self) -> int:
        """Higher rank is served first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.HIGH: 2,
    Priority.MEDIUM: 1,
    Priority.LOW: 0,
}


class CancellationToken:
    """
    A cancellation flag plus optional notify callbacks.

    Cancellation is cooperative: whoever holds the token checks
    `cancelled` at its suspension points. Callbacks registered after
    cancellation run immediately.
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Trigger the token. Idempotent; callbacks run once."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._run(callback)

    def add_callback(self, callback: Callable[[], None]):
        if self._cancelled:
            self._run(callback)
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]):
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    @staticmethod
    def _run(callback: Callable[[], None]):
        # Cancellation never throws to the caller
        try:
            callback()
        except Exception:
            logger.exception("Cancellation callback failed")


@dataclass(frozen=True)
class RequestEnvelope:
    """
    One queued request.

    Owned by the scheduler from enqueue until exactly one terminal
    event: resolve, reject, expire or cancel.
    """
    id: str
    seq: int  # Monotonic per scheduler, used for staleness and tie-breaks
    category: str
    priority: Priority
    payload: dict[str, Any]
    created_at: float
    timeout: float
    cancel_token: CancellationToken = field(default_factory=CancellationToken, compare=False)

    @property
    def sort_key(self) -> tuple[int, float, int]:
        """(priority desc, created_at asc, seq asc)."""
        return (-self.priority.rank, self.created_at, self.seq)

    def age(self, now: float) -> float:
        return now - self.created_at

"""
Scheduler Module - Multiplexes outbound calls to the inference endpoint.

Each product feature gets a category with its own queue and its own
rate-limit window. One dispatcher visits the categories round-robin and
keeps a single call in flight at any time.
"""

from .envelope import CancellationToken, Priority, RequestEnvelope
from .rate_limit import RateLimitWindow
from .config import CategoryConfig, SchedulerConfig, default_categories
from .scheduler import RequestScheduler, SchedulerStats, SubmittedRequest, CallFunction

__all__ = [
    "CancellationToken",
    "Priority",
    "RequestEnvelope",
    "RateLimitWindow",
    "CategoryConfig",
    "SchedulerConfig",
    "default_categories",
    "RequestScheduler",
    "SchedulerStats",
    "SubmittedRequest",
    "CallFunction",
]

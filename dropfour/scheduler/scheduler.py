"""
Request Scheduler - Fair, rate-limited, single-flight dispatcher.

The scheduler:
1. Keeps one priority-then-FIFO queue per category
2. Visits categories round-robin, skipping any that are rate-limited
3. Runs exactly one external call at a time
4. Rejects entries whose queueing timeout fires before dispatch
5. Sweeps out entries older than the age ceiling in the background

It is generic: jobs are opaque payload dicts handed to a single call
function, and the scheduler never looks inside responses.

Usage:
    scheduler = RequestScheduler(call=client)
    await scheduler.start()

    request = scheduler.submit({"question": "..."}, category="connect4")
    response = await request

    await scheduler.stop()
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Awaitable, Callable
import asyncio
import functools
import itertools
import logging
import secrets
import time

from ..errors import AbortError, QueueExpiredError, QueueTimeoutError, ValidationError
from .config import SchedulerConfig
from .envelope import CancellationToken, Priority, RequestEnvelope
from .rate_limit import RateLimitWindow

logger = logging.getLogger(__name__)

CallFunction = Callable[[RequestEnvelope], Awaitable[Any]]


@dataclass(eq=False)
class SubmittedRequest:
    """
    Handle returned by submit().

    Awaiting the handle awaits the response. The future is cancelled
    (never resolved or rejected) when the request is cancelled.
    """
    id: str
    seq: int
    category: str
    future: asyncio.Future

    def __await__(self):
        return self.future.__await__()

    def done(self) -> bool:
        return self.future.done()


@dataclass
class SchedulerStats:
    """Lifetime counters, one terminal counter per envelope."""
    submitted: int = 0
    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    timed_out: int = 0
    expired: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class _Pending:
    """Scheduler-side bookkeeping for one envelope (never seen by callers)."""
    future: asyncio.Future
    cancel_hook: Callable[[], None]
    timeout_handle: asyncio.TimerHandle | None = None


class RequestScheduler:
    """
    Category-aware dispatcher with global concurrency of one.

    The caller owns the lifetime: start() launches the dispatch and
    sweep tasks, stop() cancels them and everything still pending.
    """

    def __init__(
        self,
        call: CallFunction,
        config: SchedulerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SchedulerConfig()
        self._call = call
        self._clock = clock

        self._categories = self.config.category_names
        self._queues: dict[str, list[RequestEnvelope]] = {
            name: [] for name in self._categories
        }
        self._windows: dict[str, RateLimitWindow] = {
            c.name: RateLimitWindow(
                max_per_window=c.max_per_window,
                window_length=c.window_seconds,
            )
            for c in self.config.categories
        }
        self._pending: dict[str, _Pending] = {}
        self._seq = itertools.count(1)
        self._cursor = 0

        self._in_flight: RequestEnvelope | None = None
        self._in_flight_task: asyncio.Task | None = None

        self._wakeup = asyncio.Event()
        self._dispatch_task: asyncio.Task | None = None
        self._sweep_task: asyncio.Task | None = None

        self.stats = SchedulerStats()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._dispatch_task is not None and not self._dispatch_task.done()

    async def start(self):
        """Launch the dispatch loop and the expiry sweep. Idempotent."""
        if self.running:
            return
        self._wakeup = asyncio.Event()
        self._dispatch_task = asyncio.create_task(
            self._dispatch_loop(), name="dropfour-scheduler-dispatch"
        )
        self._sweep_task = asyncio.create_task(
            self._sweep_loop(), name="dropfour-scheduler-sweep"
        )
        logger.info(
            "Scheduler started (categories: %s)",
            ", ".join(f"{c.name}={c.max_per_window}/{c.window_seconds:g}s" for c in self.config.categories),
        )

    async def stop(self):
        """Stop both loops and cancel every queued or in-flight request."""
        tasks = [t for t in (self._dispatch_task, self._sweep_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._dispatch_task = None
        self._sweep_task = None

        for queue in self._queues.values():
            for envelope in queue:
                self._drop(envelope)
            queue.clear()
        # In-flight future, if the dispatcher was interrupted mid-call
        for request_id in list(self._pending):
            pending = self._pending.pop(request_id)
            if not pending.future.done():
                pending.future.cancel()
        logger.info("Scheduler stopped")

    async def __aenter__(self) -> RequestScheduler:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    # =========================================================================
    # Public contract
    # =========================================================================

    def submit(
        self,
        payload: dict[str, Any] | None,
        category: str | None = None,
        priority: Priority | str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> SubmittedRequest:
        """
        Queue a request and return a handle to its eventual response.

        Raises ValidationError immediately when the payload is missing
        or the timeout is not positive.
        """
        if not payload:
            raise ValidationError("Request body is required")
        if not isinstance(payload, dict):
            raise ValidationError(
                "Request body must be a mapping",
                context={"type": type(payload).__name__},
            )
        timeout = self.config.default_timeout if timeout is None else timeout
        if timeout <= 0:
            raise ValidationError("Timeout must be positive", context={"timeout": timeout})

        loop = asyncio.get_running_loop()
        category = self._resolve_category(category)
        priority = self._resolve_priority(priority)
        token = cancel_token or CancellationToken()

        seq = next(self._seq)
        envelope = RequestEnvelope(
            id=f"req_{seq}_{secrets.token_hex(4)}",
            seq=seq,
            category=category,
            priority=priority,
            payload=payload,
            created_at=self._clock(),
            timeout=timeout,
            cancel_token=token,
        )

        future = loop.create_future()
        hook = functools.partial(self.cancel, category, envelope.id)
        pending = _Pending(future=future, cancel_hook=hook)
        self._pending[envelope.id] = pending

        queue = self._queues[category]
        queue.append(envelope)
        queue.sort(key=lambda e: e.sort_key)
        self.stats.submitted += 1

        pending.timeout_handle = loop.call_later(
            timeout, self._on_queue_timeout, category, envelope.id
        )
        future.add_done_callback(
            lambda f: self.cancel(category, envelope.id) if f.cancelled() else None
        )
        token.add_callback(hook)

        logger.debug(
            "Request queued: %s (category: %s, priority: %s)",
            envelope.id, category, priority.value,
        )
        self._wakeup.set()

        return SubmittedRequest(id=envelope.id, seq=seq, category=category, future=future)

    def cancel(self, category: str, request_id: str):
        """
        Best-effort cancellation. Never raises.

        A queued entry is removed and its future cancelled. An in-flight
        entry has its token triggered and its call task cancelled.
        """
        queue = self._queues.get(category, [])
        for index, envelope in enumerate(queue):
            if envelope.id == request_id:
                del queue[index]
                self._drop(envelope)
                logger.debug("Request %s cancelled while queued", request_id)
                return

        if self._in_flight is not None and self._in_flight.id == request_id:
            task = self._in_flight_task
            if task is not None and not task.done():
                task.cancel()
            self._in_flight.cancel_token.cancel()
            logger.debug("Request %s cancelled while in flight", request_id)

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    @property
    def in_flight(self) -> RequestEnvelope | None:
        return self._in_flight

    def queue_sizes(self) -> dict[str, int]:
        return {name: len(queue) for name, queue in self._queues.items()}

    def queued_ids(self, category: str) -> list[str]:
        """Queue contents in service order."""
        return [e.id for e in self._queues.get(category, [])]

    def rate_limit(self, category: str) -> RateLimitWindow:
        return self._windows[category]

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _dispatch_loop(self):
        idle_ticks = 0
        while True:
            try:
                worked = await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unexpected error in dispatch loop")
                worked = False

            if worked:
                idle_ticks = 0
                continue

            idle_ticks += 1
            if idle_ticks >= len(self._categories):
                # A full sweep found nothing to do
                idle_ticks = 0
                await self._wait_for_work()

    async def _wait_for_work(self):
        self._wakeup.clear()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.config.idle_interval)
        except asyncio.TimeoutError:
            pass

    async def _tick(self) -> bool:
        """
        Visit the next category. Returns True if an entry was consumed.
        """
        category = self._categories[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._categories)
        if self._cursor == 0:
            self._log_queue_sizes()

        queue = self._queues[category]
        if not queue:
            return False

        now = self._clock()
        window = self._windows[category]
        if window.is_limited(now):
            logger.debug(
                "Rate limit for %s reached (%d/%d), skipping",
                category, window.count, window.max_per_window,
            )
            return False

        envelope = queue.pop(0)
        if envelope.cancel_token.cancelled:
            # Cancelled before start: no call, no result
            self._drop(envelope)
            logger.debug("Request %s was cancelled, removed from queue", envelope.id)
            return True

        window.record(now)
        await self._dispatch(envelope)
        return True

    async def _dispatch(self, envelope: RequestEnvelope):
        pending = self._pending.get(envelope.id)
        if pending is not None and pending.timeout_handle is not None:
            pending.timeout_handle.cancel()

        logger.debug("Processing request %s from %s queue", envelope.id, envelope.category)
        self.stats.dispatched += 1
        self._in_flight = envelope
        call_task = asyncio.ensure_future(self._invoke(envelope))
        self._in_flight_task = call_task
        try:
            await asyncio.wait({call_task})
        finally:
            if not call_task.done():
                call_task.cancel()
            self._in_flight = None
            self._in_flight_task = None

        future = self._release(envelope)

        if call_task.cancelled() or (
            envelope.cancel_token.cancelled
            and isinstance(call_task.exception(), AbortError)
        ):
            self.stats.cancelled += 1
            logger.debug("Request %s was aborted during processing", envelope.id)
            if future is not None and not future.done():
                future.cancel()
            return

        error = call_task.exception()
        if isinstance(error, AbortError):
            self.stats.cancelled += 1
            logger.debug("Request %s aborted by the call function", envelope.id)
            if future is not None and not future.done():
                future.cancel()
        elif error is not None:
            self.stats.failed += 1
            logger.debug("Request %s failed: %s", envelope.id, error)
            if future is not None and not future.done():
                future.set_exception(error)
        else:
            self.stats.completed += 1
            logger.debug("Request %s completed successfully", envelope.id)
            if future is not None and not future.done():
                future.set_result(call_task.result())

    async def _invoke(self, envelope: RequestEnvelope) -> Any:
        return await self._call(envelope)

    # =========================================================================
    # Timeouts and expiry
    # =========================================================================

    def _on_queue_timeout(self, category: str, request_id: str):
        queue = self._queues.get(category, [])
        for index, envelope in enumerate(queue):
            if envelope.id == request_id:
                del queue[index]
                logger.warning(
                    "Request %s timed out in queue after %gs", request_id, envelope.timeout
                )
                self.stats.timed_out += 1
                self._reject(envelope, QueueTimeoutError(
                    f"Request timed out after {envelope.timeout:g}s waiting in queue",
                    request_id=request_id,
                    category=category,
                ))
                return

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Unexpected error in expiry sweep")

    def sweep_expired(self) -> int:
        """Reject queued entries older than max_queue_age. Returns the count."""
        now = self._clock()
        removed = 0
        for category, queue in self._queues.items():
            expired = [e for e in queue if e.age(now) > self.config.max_queue_age]
            for envelope in expired:
                queue.remove(envelope)
                logger.warning(
                    "Request %s expired after %.1fs in %s queue",
                    envelope.id, envelope.age(now), category,
                )
                self.stats.expired += 1
                self._reject(envelope, QueueExpiredError(
                    f"Request expired after {self.config.max_queue_age:g}s in queue",
                    request_id=envelope.id,
                    category=category,
                ))
                removed += 1
        return removed

    # =========================================================================
    # Helpers
    # =========================================================================

    def _release(self, envelope: RequestEnvelope) -> asyncio.Future | None:
        pending = self._pending.pop(envelope.id, None)
        if pending is None:
            return None
        if pending.timeout_handle is not None:
            pending.timeout_handle.cancel()
        envelope.cancel_token.remove_callback(pending.cancel_hook)
        return pending.future

    def _drop(self, envelope: RequestEnvelope):
        future = self._release(envelope)
        if future is not None:
            self.stats.cancelled += 1
            if not future.done():
                future.cancel()

    def _reject(self, envelope: RequestEnvelope, error: Exception):
        future = self._release(envelope)
        if future is not None and not future.done():
            future.set_exception(error)

    def _resolve_category(self, category: str | None) -> str:
        if category is None:
            return self.config.fallback_category
        if category not in self._queues:
            logger.warning(
                "Unknown category: %s, falling back to %s",
                category, self.config.fallback_category,
            )
            return self.config.fallback_category
        return category

    def _resolve_priority(self, priority: Priority | str | None) -> Priority:
        if priority is None:
            return self.config.default_priority
        try:
            return Priority(priority)
        except ValueError:
            logger.warning("Unknown priority: %s, falling back to medium", priority)
            return Priority.MEDIUM

    def _log_queue_sizes(self):
        sizes = self.queue_sizes()
        if any(sizes.values()):
            logger.debug(
                "Queue sizes: %s",
                ", ".join(f"{name}: {size}" for name, size in sizes.items()),
            )

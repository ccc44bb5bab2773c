"""
Pytest fixtures for dropfour tests.

Remote calls are replaced by FakeCall, an in-process call function with
scripted outcomes. Delays are observed through RecordingSleep rather
than waited out.
"""

import asyncio
import json
from typing import Any, Callable

import pytest

from ..engine_core.state import Board, Cell
from ..engine_core.rules import apply_move, create_board
from ..scheduler import CategoryConfig, RequestEnvelope, SchedulerConfig


def answer(column: int, commentary: str = "Taking the center.") -> dict[str, str]:
    """A well-formed inference response for one column."""
    return {"answer": json.dumps({"column": column, "commentary": commentary})}


class FakeCall:
    """
    Scripted call function.

    Each call consumes the next outcome: exceptions are raised, callables
    are called with the envelope, anything else is returned. When the
    script runs out the last outcome repeats.
    """

    def __init__(self, *outcomes: Any, gate: asyncio.Event | None = None):
        self.outcomes = list(outcomes) or [answer(3)]
        self.calls: list[RequestEnvelope] = []
        self.gate = gate

    @property
    def ids(self) -> list[str]:
        return [e.id for e in self.calls]

    @property
    def categories(self) -> list[str]:
        return [e.category for e in self.calls]

    async def __call__(self, envelope: RequestEnvelope) -> Any:
        self.calls.append(envelope)
        if self.gate is not None:
            await self.gate.wait()
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(envelope)
        return outcome


class RecordingSleep:
    """Sleep replacement that records requested delays and yields once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)
        await asyncio.sleep(0)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def empty_board() -> Board:
    return create_board()


@pytest.fixture
def make_board() -> Callable[..., Board]:
    """
    Build a board from a column list, alternating sides.

    make_board([3, 3, 4]) plays human 3, AI 3, human 4.
    """
    def build(columns: list[int], first: Cell = Cell.PLAYER) -> Board:
        board = create_board()
        player = first
        for column in columns:
            board, row = apply_move(board, column, player)
            assert row != -1, f"column {column} not playable"
            player = player.opponent
        return board
    return build


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    """Default categories with a tiny idle interval."""
    return SchedulerConfig(idle_interval=0.001)


@pytest.fixture
def two_category_config() -> SchedulerConfig:
    """Two generous buckets, a and b, for fairness tests."""
    return SchedulerConfig(
        categories=[
            CategoryConfig(name="a", max_per_window=100),
            CategoryConfig(name="b", max_per_window=100),
        ],
        idle_interval=0.001,
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0):
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)

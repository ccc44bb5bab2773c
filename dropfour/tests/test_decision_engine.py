"""
Tests for the move decision engine.

Tests:
- Remote success, retry-then-success, exhausted retries
- Immediate fallback on network, parse and queue failures
- Re-entrancy guard, teardown and stale responses
- Local shortcuts
"""

import asyncio
import random

import pytest

from ..decision import DecisionConfig, DecisionSource, DecisionState, MoveDecisionEngine, backoff_delay
from ..decision.engine import FALLBACK_MESSAGE, RATE_LIMIT_EXHAUSTED_MESSAGE
from ..engine_core import Board, Cell, COLS, ROWS, Difficulty, GameStatus, Move, apply_move, create_board
from ..errors import NetworkError, RateLimitError
from ..scheduler import RequestScheduler
from .conftest import FakeCall, answer, wait_until


class FakeGame:
    """Minimal turn collaborator with the AI to move."""

    def __init__(self, board: Board | None = None, difficulty=Difficulty.MEDIUM, history=None):
        self.board = board or create_board()
        self.move_history = list(history or [])
        self.difficulty = difficulty
        self.status = GameStatus.PLAYING
        self.current_player = Cell.AI
        self.committed: list[int] = []

    @property
    def turn_number(self) -> int:
        return len(self.move_history)

    def make_ai_move(self, column: int) -> bool:
        board, row = apply_move(self.board, column, Cell.AI)
        if row == -1:
            return False
        self.board = board
        self.move_history.append(Move(Cell.AI, column, row))
        self.committed.append(column)
        self.current_player = Cell.PLAYER
        return True


def ai_wins_at_five() -> Board:
    """AI has three in a row on the bottom; column 5 completes it."""
    rows = [[None] * COLS for _ in range(ROWS)]
    rows[0][0] = "player"
    rows[0][1] = "player"
    rows[1][2] = "player"
    for col in (2, 3, 4):
        rows[0][col] = "ai"
    return Board.from_rows(rows)


class TestBackoffDelay:

    def test_doubles_then_caps(self):
        assert [backoff_delay(n) for n in range(6)] == [1000, 2000, 4000, 8000, 10000, 10000]


class TestRemoteDecision:
    """End-to-end through a real scheduler and a fake call function."""

    @pytest.mark.asyncio
    async def test_success_commits_remote_column(self, scheduler_config, recording_sleep):
        call = FakeCall(answer(3, "center"))
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game, sleep=recording_sleep)
            decision = await engine.take_turn()

        assert decision.column == 3
        assert decision.commentary == "center"
        assert decision.source == DecisionSource.REMOTE
        assert decision.accepted
        assert game.committed == [3]
        assert engine.status.commentary == "center"
        assert engine.status.error is None
        assert not engine.status.is_thinking
        assert engine.state == DecisionState.IDLE
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_request_is_tagged_with_game_category(self, scheduler_config):
        call = FakeCall(answer(0))
        game = FakeGame(difficulty=Difficulty.HARD)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            await MoveDecisionEngine(scheduler, game).take_turn()

        envelope = call.calls[0]
        assert envelope.category == "connect4"
        assert envelope.payload["maxTokens"] == 150
        assert envelope.payload["temperature"] == 0.7
        assert "HARD" in envelope.payload["question"]
        assert "model" not in envelope.payload

    @pytest.mark.asyncio
    async def test_retry_then_success(self, scheduler_config, recording_sleep):
        call = FakeCall(RateLimitError(), answer(3))
        game = FakeGame()
        statuses = []
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(
                scheduler, game, sleep=recording_sleep, on_status=statuses.append,
            )
            decision = await engine.take_turn()

        assert len(call.calls) == 2
        assert recording_sleep.delays == [1.0]
        assert decision.column == 3
        assert game.committed == [3]
        assert "Rate limited. Retrying in 1 seconds..." in [s.error for s in statuses]
        assert engine.status.error is None

    @pytest.mark.asyncio
    async def test_exhausted_retries_fall_back(self, scheduler_config, recording_sleep):
        call = FakeCall(RateLimitError())
        game = FakeGame(board=ai_wins_at_five())
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game, sleep=recording_sleep)
            decision = await engine.take_turn()

        assert len(call.calls) == 4
        assert recording_sleep.delays == [1.0, 2.0, 4.0]
        assert decision.column == 5
        assert decision.commentary == "I see a winning move!"
        assert decision.source == DecisionSource.FALLBACK
        assert game.committed == [5]
        assert engine.status.error == RATE_LIMIT_EXHAUSTED_MESSAGE

    @pytest.mark.asyncio
    async def test_retry_ceiling_is_configurable(self, scheduler_config, recording_sleep):
        call = FakeCall(RateLimitError())
        config = DecisionConfig(max_retries=1)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, FakeGame(), config, sleep=recording_sleep)
            await engine.take_turn()

        assert len(call.calls) == 2
        assert recording_sleep.delays == [1.0]


class TestFallback:
    """Every non-rate-limit failure falls back without retrying."""

    @pytest.mark.asyncio
    async def test_network_error(self, scheduler_config, recording_sleep):
        call = FakeCall(NetworkError("Service unavailable", status=503))
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game, sleep=recording_sleep)
            decision = await engine.take_turn()

        assert len(call.calls) == 1
        assert recording_sleep.delays == []
        assert decision.column == 3
        assert decision.commentary == "I'll take the center column."
        assert decision.reason == "NETWORK_ERROR"
        assert engine.status.error == FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_unplayable_column_is_parse_failure(self, scheduler_config, make_board):
        board = make_board([3] * ROWS)
        call = FakeCall(answer(3))
        game = FakeGame(board=board)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, rng=random.Random(1)).take_turn()

        assert len(call.calls) == 1
        assert decision.source == DecisionSource.FALLBACK
        assert decision.reason == "PARSE_ERROR"
        assert decision.column != 3
        assert decision.commentary == "I'll try this move."

    @pytest.mark.asyncio
    async def test_garbage_answer(self, scheduler_config):
        call = FakeCall({"answer": "I think the middle is nice."})
        rows = [[None] * COLS for _ in range(ROWS)]
        for row in range(3):
            rows[row][6] = "player"
        game = FakeGame(board=Board.from_rows(rows))
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            decision = await engine.take_turn()

        assert decision.column == 6
        assert decision.commentary == "I'll block your winning move."

    @pytest.mark.asyncio
    async def test_queue_timeout(self, scheduler_config):
        # Scheduler never started: the submission times out in the queue
        scheduler = RequestScheduler(FakeCall(), scheduler_config)
        game = FakeGame()
        engine = MoveDecisionEngine(scheduler, game, DecisionConfig(request_timeout=0.01))

        decision = await engine.take_turn()

        assert decision.reason == "QUEUE_TIMEOUT"
        assert game.committed == [3]
        assert engine.status.error == FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_scheduler_stopped_mid_request(self, scheduler_config):
        scheduler = RequestScheduler(FakeCall(), scheduler_config)
        game = FakeGame()
        engine = MoveDecisionEngine(scheduler, game)

        task = engine.activate()
        await wait_until(lambda: sum(scheduler.queue_sizes().values()) == 1)
        await scheduler.stop()
        decision = await task

        assert decision.source == DecisionSource.FALLBACK
        assert game.committed == [3]


class TestTurnLifetime:
    """Re-entrancy, teardown and staleness."""

    @pytest.mark.asyncio
    async def test_second_activation_is_noop(self, scheduler_config):
        gate = asyncio.Event()
        call = FakeCall(answer(2), gate=gate)
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            task = engine.activate()

            assert task is not None
            assert engine.activate() is None
            assert engine.status.is_thinking

            gate.set()
            await task

        assert len(call.calls) == 1
        assert game.committed == [2]

    @pytest.mark.asyncio
    async def test_not_my_turn(self, scheduler_config):
        game = FakeGame()
        game.current_player = Cell.PLAYER
        engine = MoveDecisionEngine(RequestScheduler(FakeCall(), scheduler_config), game)

        assert engine.activate() is None
        assert await engine.take_turn() is None

    @pytest.mark.asyncio
    async def test_teardown_while_awaiting(self, scheduler_config):
        gate = asyncio.Event()
        call = FakeCall(answer(2), gate=gate)
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            task = engine.activate()
            await wait_until(lambda: len(call.calls) == 1)

            engine.teardown()
            await asyncio.gather(task, return_exceptions=True)
            await wait_until(lambda: scheduler.in_flight is None)
            gate.set()
            await asyncio.sleep(0.01)

            assert scheduler.stats.cancelled == 1

        assert game.committed == []
        assert not engine.status.is_thinking
        assert engine.state == DecisionState.IDLE

    @pytest.mark.asyncio
    async def test_take_turn_returns_none_after_teardown(self, scheduler_config):
        """A caller waiting on the turn sees no commit, not a cancellation."""
        gate = asyncio.Event()
        call = FakeCall(answer(2), gate=gate)
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            waiter = asyncio.create_task(engine.take_turn())
            await wait_until(lambda: len(call.calls) == 1)

            engine.teardown()
            decision = await waiter
            gate.set()

        assert decision is None
        assert game.committed == []
        assert not engine.status.is_thinking

    @pytest.mark.asyncio
    async def test_cancelling_the_caller_propagates(self, scheduler_config):
        gate = asyncio.Event()
        call = FakeCall(answer(2), gate=gate)
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            waiter = asyncio.create_task(engine.take_turn())
            await wait_until(lambda: len(call.calls) == 1)

            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

            # The cycle itself carries on and commits
            gate.set()
            await wait_until(lambda: game.committed == [2])

    @pytest.mark.asyncio
    async def test_teardown_during_backoff(self, scheduler_config):
        delays = []

        async def stalled_sleep(seconds):
            delays.append(seconds)
            await asyncio.Event().wait()

        call = FakeCall(RateLimitError(), answer(1))
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game, sleep=stalled_sleep)
            task = engine.activate()
            await wait_until(lambda: engine.state == DecisionState.BACKOFF)

            engine.teardown()
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0.01)

        assert delays == [1.0]
        assert len(call.calls) == 1
        assert game.committed == []

    @pytest.mark.asyncio
    async def test_stale_response_discarded(self, scheduler_config):
        gate = asyncio.Event()
        call = FakeCall(answer(2), gate=gate)
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            task = engine.activate()
            await wait_until(lambda: len(call.calls) == 1)

            # The turn moves on without a teardown
            game.move_history.append(Move(Cell.PLAYER, 0, 0))
            gate.set()
            decision = await task

        assert decision is None
        assert game.committed == []

    @pytest.mark.asyncio
    async def test_new_turn_after_commit(self, scheduler_config):
        call = FakeCall(answer(3), answer(4))
        game = FakeGame()
        async with RequestScheduler(call, scheduler_config) as scheduler:
            engine = MoveDecisionEngine(scheduler, game)
            await engine.take_turn()

            game.current_player = Cell.AI
            await engine.take_turn()

        assert game.committed == [3, 4]


class TestLocalShortcuts:
    """Local decisions skip the remote service when enabled."""

    @pytest.mark.asyncio
    async def test_precheck_takes_win(self, scheduler_config):
        call = FakeCall()
        game = FakeGame(board=ai_wins_at_five())
        config = DecisionConfig(precheck_tactics=True)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, config).take_turn()

        assert call.calls == []
        assert decision.column == 5
        assert decision.commentary == "I see a winning move!"
        assert decision.source == DecisionSource.LOCAL

    @pytest.mark.asyncio
    async def test_precheck_blocks(self, scheduler_config):
        rows = [[None] * COLS for _ in range(ROWS)]
        for row in range(3):
            rows[row][0] = "player"
        game = FakeGame(board=Board.from_rows(rows))
        config = DecisionConfig(precheck_tactics=True)
        async with RequestScheduler(FakeCall(), scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, config).take_turn()

        assert decision.column == 0
        assert decision.commentary == "I need to block your winning move!"

    @pytest.mark.asyncio
    async def test_opening_book_first_move(self, scheduler_config):
        call = FakeCall()
        game = FakeGame()
        config = DecisionConfig(opening_book_moves=2)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, config).take_turn()

        assert call.calls == []
        assert decision.column == 3
        assert decision.commentary == "I'll start in the center column for better control."

    @pytest.mark.asyncio
    async def test_local_easy(self, scheduler_config):
        call = FakeCall()
        game = FakeGame(difficulty=Difficulty.EASY)
        config = DecisionConfig(local_easy=True, easy_random_rate=0.0)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, config).take_turn()

        assert call.calls == []
        assert decision.column == 3
        assert decision.commentary == "This looks like a good move."

    @pytest.mark.asyncio
    async def test_local_easy_ignored_on_other_levels(self, scheduler_config):
        call = FakeCall(answer(1))
        game = FakeGame(difficulty=Difficulty.MEDIUM)
        config = DecisionConfig(local_easy=True)
        async with RequestScheduler(call, scheduler_config) as scheduler:
            decision = await MoveDecisionEngine(scheduler, game, config).take_turn()

        assert len(call.calls) == 1
        assert decision.column == 1

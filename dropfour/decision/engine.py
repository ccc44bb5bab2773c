"""
Move Decision Engine - Runs one side's turn against the remote service.

State machine:
    IDLE -> AWAITING_RESPONSE                 (turn starts)
    AWAITING_RESPONSE -> COMMITTING           (valid remote reply)
    AWAITING_RESPONSE -> BACKOFF              (rate limited, retries left)
    AWAITING_RESPONSE -> COMMITTING           (any other failure: local fallback)
    BACKOFF -> AWAITING_RESPONSE              (delay elapsed, turn still active)
    COMMITTING -> IDLE

Only this layer tells retry-worthy failures (RateLimitError) from
fallback-worthy ones, and only this layer may substitute a local
heuristic move for a remote one.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol
import asyncio
import logging
import random

from ..engine_core.state import Board, Cell, Difficulty, GameStatus, Move, CENTER_COLUMN
from ..engine_core.rules import is_valid_move
from ..engine_core.heuristic import (
    HeuristicReason, NO_MOVE, choose_heuristic_move, random_move, winning_columns,
)
from ..errors import AbortError, DropFourError, RateLimitError
from ..remote.client import InferenceRequest
from ..scheduler.envelope import CancellationToken
from ..scheduler.scheduler import RequestScheduler
from .config import DecisionConfig
from .parser import parse_move_reply
from .prompts import MovePrompts

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Rate limited. Retrying in {seconds:g} seconds..."
RATE_LIMIT_EXHAUSTED_MESSAGE = "API rate limit reached. Using local strategy."
FALLBACK_MESSAGE = "Using local strategy."

_UNSET = object()

FALLBACK_COMMENTARY = {
    HeuristicReason.WIN: "I see a winning move!",
    HeuristicReason.BLOCK: "I'll block your winning move.",
    HeuristicReason.CENTER: "I'll take the center column.",
    HeuristicReason.RANDOM: "I'll try this move.",
}


class DecisionState(Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    BACKOFF = "backoff"
    COMMITTING = "committing"


class DecisionSource(Enum):
    """Where a committed column came from."""
    REMOTE = "remote"
    FALLBACK = "fallback"
    LOCAL = "local"


@dataclass
class DecisionStatus:
    """Observable status for presentation."""
    is_thinking: bool = False
    commentary: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_thinking": self.is_thinking,
            "commentary": self.commentary,
            "error": self.error,
        }


@dataclass
class Decision:
    """A committed column and how it was reached."""
    column: int
    commentary: str
    source: DecisionSource
    reason: Optional[str] = None
    accepted: bool = False


class TurnCollaborator(Protocol):
    """The game the engine plays in. Owns turns and applies moves."""

    @property
    def board(self) -> Board: ...

    @property
    def move_history(self) -> list[Move]: ...

    @property
    def difficulty(self) -> Difficulty: ...

    @property
    def status(self) -> GameStatus: ...

    @property
    def current_player(self) -> Cell: ...

    @property
    def turn_number(self) -> int: ...

    def make_ai_move(self, column: int) -> bool: ...


def backoff_delay(retry_count: int, base_ms: int = 1000, cap_ms: int = 10000) -> int:
    """Delay before retry number retry_count + 1, in milliseconds."""
    return min(base_ms * (2 ** retry_count), cap_ms)


class MoveDecisionEngine:
    """
    Decides and commits one move per activation.

    Usage:
        engine = MoveDecisionEngine(scheduler, game)
        decision = await engine.take_turn()
        print(engine.status.commentary)

    A second activation while a cycle is running is a no-op.
    teardown() cancels the outstanding request and any backoff wait.
    """

    def __init__(
        self,
        scheduler: RequestScheduler,
        game: TurnCollaborator,
        config: DecisionConfig | None = None,
        side: Cell = Cell.AI,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
        on_status: Callable[[DecisionStatus], None] | None = None,
    ):
        self.scheduler = scheduler
        self.game = game
        self.config = config or DecisionConfig()
        self.side = side
        self.opponent = side.opponent
        self._sleep = sleep
        self.rng = rng or random.Random()
        self._on_status = on_status

        self.state = DecisionState.IDLE
        self.status = DecisionStatus()
        self.retry_count = 0

        self._latest_request = 0
        self._task: asyncio.Task | None = None
        self._token: CancellationToken | None = None

    # =========================================================================
    # Activation and teardown
    # =========================================================================

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_my_turn(self) -> bool:
        return (
            self.game.status == GameStatus.PLAYING
            and self.game.current_player == self.side
        )

    def activate(self) -> asyncio.Task | None:
        """
        Start a decision cycle for the current turn.

        Returns the cycle task, or None when a cycle is already running
        or it is not this side's turn.
        """
        if self.active:
            logger.debug("AI already making a move, skipping duplicate activation")
            return None
        if not self.is_my_turn():
            logger.debug(
                "AI turn skipped (status: %s, current: %s)",
                self.game.status.value, self.game.current_player.value,
            )
            return None

        self.state = DecisionState.IDLE
        self.retry_count = 0
        self._token = CancellationToken()
        self._update_status(is_thinking=True, error=None)
        logger.info("AI turn %d started", self.game.turn_number)
        self._task = asyncio.create_task(
            self._run_turn(self._token, self.game.turn_number)
        )
        return self._task

    async def take_turn(self) -> Decision | None:
        """
        Activate and wait for the cycle to finish.

        Returns None when the cycle is abandoned by teardown; only the
        caller's own cancellation propagates.
        """
        task = self.activate()
        if task is None:
            return None
        await asyncio.wait({task})
        if task.cancelled():
            logger.debug("AI turn abandoned before commit")
            return None
        return task.result()

    def teardown(self):
        """
        Abandon the current cycle.

        Cancels the scheduler submission and any pending backoff wait;
        nothing from the abandoned cycle is committed afterwards.
        """
        self._latest_request += 1
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._token = None
        self.state = DecisionState.IDLE
        self._update_status(is_thinking=False)

    def on_turn_change(self):
        """Collaborator hook: abandon the cycle if the turn moved on."""
        if self.state == DecisionState.COMMITTING:
            return
        if self.active and not self.is_my_turn():
            self.teardown()

    # =========================================================================
    # Cycle
    # =========================================================================

    async def _run_turn(self, token: CancellationToken, turn: int) -> Decision | None:
        try:
            local = self._local_decision()
            if local is not None:
                return self._commit(local)

            while True:
                if not self._turn_active(token, turn):
                    logger.debug("Turn %d no longer active, abandoning cycle", turn)
                    return None

                self.state = DecisionState.AWAITING_RESPONSE
                self._latest_request += 1
                request_number = self._latest_request
                board = self.game.board

                try:
                    response = await self._request_move(board, token)
                except RateLimitError as e:
                    if self._is_stale(request_number, token, turn):
                        return None
                    if self.retry_count >= self.config.max_retries:
                        logger.warning(
                            "Rate limited %d times, giving up on remote move",
                            self.retry_count + 1,
                        )
                        return self._fallback(e, RATE_LIMIT_EXHAUSTED_MESSAGE)
                    await self._backoff()
                    continue
                except AbortError:
                    if token.cancelled:
                        return None
                    return self._fallback(AbortError("Request dropped by scheduler"))
                except Exception as e:
                    if self._is_stale(request_number, token, turn):
                        return None
                    return self._fallback(e)

                if self._is_stale(request_number, token, turn):
                    logger.debug("Discarding stale response for request %d", request_number)
                    return None

                try:
                    reply = parse_move_reply(response, self.game.board)
                except DropFourError as e:
                    return self._fallback(e)

                logger.info("Remote move: column %d", reply.column)
                self.retry_count = 0
                self._update_status(error=None)
                return self._commit(Decision(
                    column=reply.column,
                    commentary=reply.commentary,
                    source=DecisionSource.REMOTE,
                ))
        finally:
            if self._token is token:
                if self.state != DecisionState.IDLE:
                    self.state = DecisionState.IDLE
                self._update_status(is_thinking=False)

    async def _request_move(self, board: Board, token: CancellationToken) -> Any:
        payload = InferenceRequest(
            question=MovePrompts.move_request(board, self.game.move_history, self.game.difficulty),
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            model=self.config.model,
        ).to_payload()

        request = self.scheduler.submit(
            payload,
            category=self.config.category,
            priority=self.config.priority,
            timeout=self.config.request_timeout,
            cancel_token=token,
        )
        await asyncio.wait({request.future})
        if request.future.cancelled():
            raise AbortError("Request cancelled", context={"request_id": request.id})
        return request.future.result()

    async def _backoff(self):
        delay_ms = backoff_delay(
            self.retry_count, self.config.backoff_base_ms, self.config.backoff_cap_ms
        )
        self.retry_count += 1
        self.state = DecisionState.BACKOFF
        self._update_status(error=RATE_LIMITED_MESSAGE.format(seconds=delay_ms / 1000))
        logger.info("Rate limited, retry %d in %dms", self.retry_count, delay_ms)
        await self._sleep(delay_ms / 1000)

    def _turn_active(self, token: CancellationToken, turn: int) -> bool:
        return (
            not token.cancelled
            and self.is_my_turn()
            and self.game.turn_number == turn
        )

    def _is_stale(self, request_number: int, token: CancellationToken, turn: int) -> bool:
        return request_number != self._latest_request or not self._turn_active(token, turn)

    # =========================================================================
    # Committing
    # =========================================================================

    def _commit(self, decision: Decision) -> Decision:
        self.state = DecisionState.COMMITTING
        self._update_status(commentary=decision.commentary)
        decision.accepted = self.game.make_ai_move(decision.column)
        if not decision.accepted:
            logger.warning("Game rejected AI move in column %d", decision.column)
        self.state = DecisionState.IDLE
        return decision

    def _fallback(self, error: Exception, message: str = FALLBACK_MESSAGE) -> Decision | None:
        choice = choose_heuristic_move(self.game.board, self.side, self.opponent, self.rng)
        code = getattr(error, "code", type(error).__name__)
        self._update_status(error=message)
        if choice.column == NO_MOVE:
            logger.warning("No playable column for fallback (%s)", code)
            return None
        logger.warning(
            "Falling back to local strategy (%s): column %d (%s)",
            code, choice.column, choice.reason.value,
        )
        return self._commit(Decision(
            column=choice.column,
            commentary=FALLBACK_COMMENTARY[choice.reason],
            source=DecisionSource.FALLBACK,
            reason=code,
        ))

    def _local_decision(self) -> Decision | None:
        """Moves decided without the remote service, when enabled."""
        board = self.game.board
        history = self.game.move_history

        if len(history) < self.config.opening_book_moves:
            if not history and is_valid_move(board, CENTER_COLUMN):
                column = CENTER_COLUMN
                commentary = "I'll start in the center column for better control."
            else:
                column = choose_heuristic_move(board, self.side, self.opponent, self.rng).column
                commentary = (
                    "Let me respond to your first move."
                    if len(history) == 1 else "I'm developing my strategy..."
                )
            return self._local(column, commentary, "opening")

        if self.config.local_easy and Difficulty(self.game.difficulty) == Difficulty.EASY:
            if self.rng.random() < self.config.easy_random_rate:
                return self._local(random_move(board, self.rng), "I'll try this move!", "easy")
            column = choose_heuristic_move(board, self.side, self.opponent, self.rng).column
            return self._local(column, "This looks like a good move.", "easy")

        if self.config.precheck_tactics:
            wins = winning_columns(board, self.side)
            if wins:
                return self._local(wins[0], "I see a winning move!", "precheck")
            blocks = winning_columns(board, self.opponent)
            if blocks:
                return self._local(blocks[0], "I need to block your winning move!", "precheck")

        return None

    @staticmethod
    def _local(column: int, commentary: str, reason: str) -> Decision | None:
        if column == NO_MOVE:
            return None
        return Decision(column=column, commentary=commentary, source=DecisionSource.LOCAL, reason=reason)

    def _update_status(self, is_thinking=_UNSET, commentary=_UNSET, error=_UNSET):
        changes = {}
        if is_thinking is not _UNSET:
            changes["is_thinking"] = is_thinking
        if commentary is not _UNSET:
            changes["commentary"] = commentary
        if error is not _UNSET:
            changes["error"] = error
        self.status = replace(self.status, **changes)
        if self._on_status is not None:
            self._on_status(self.status)

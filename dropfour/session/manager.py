"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. Client creates a session (difficulty chosen)
2. Human moves through the session's GameSession
3. The AI turn runs either through a MoveDecisionEngine (remote, with
   local fallback) or through a local BotPolicy when no scheduler is set
4. Session ends on request or when stale; its engine is torn down

PERSISTENCE RULES:
- Sessions live in memory only
- The only persisted data is the win/loss/draw record (Storage)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import logging
import time
import uuid

from ..engine_core.state import Cell, Difficulty, GameStatus
from ..bots import BotPolicy, HeuristicPolicy
from ..decision import DecisionConfig, MoveDecisionEngine
from ..scheduler import RequestScheduler
from .game import GameSession
from .storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a game session."""
    HUMAN_TURN = "human_turn"
    AI_TURN = "ai_turn"
    GAME_OVER = "game_over"
    ENDED = "ended"


@dataclass
class Session:
    """
    One player's game and the AI opponent attached to it.

    Exactly one of engine (remote) or policy (local) drives the AI.
    """
    session_id: str
    game: GameSession
    created_at: float
    last_active: float
    engine: MoveDecisionEngine | None = None
    policy: BotPolicy | None = None
    ended: bool = False

    # Last AI turn, for sessions driven by a local policy
    commentary: str = ""
    error: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def state(self) -> SessionState:
        if self.ended:
            return SessionState.ENDED
        if self.game.status != GameStatus.PLAYING:
            return SessionState.GAME_OVER
        if self.game.current_player == Cell.AI:
            return SessionState.AI_TURN
        return SessionState.HUMAN_TURN

    def is_active(self) -> bool:
        """Check if session is still accepting moves."""
        return self.state in {SessionState.HUMAN_TURN, SessionState.AI_TURN}

    def touch(self, now: float | None = None):
        self.last_active = time.time() if now is None else now

    async def play_ai_turn(self) -> str | None:
        """
        Run the AI turn to completion.

        Returns the commentary for the committed move, or None when it
        was not the AI's turn.
        """
        if not self.game.is_ai_turn():
            return None

        if self.engine is not None:
            decision = await self.engine.take_turn()
            self.commentary = self.engine.status.commentary
            self.error = self.engine.status.error
            return decision.commentary if decision else None

        policy = self.policy or HeuristicPolicy()
        decision = policy.select_column(self.game.board, Cell.AI, Cell.PLAYER)
        self.game.make_ai_move(decision.column)
        self.commentary = decision.explanation
        self.error = None
        return decision.explanation

    def status(self) -> dict[str, Any]:
        """Thinking/commentary/error for presentation."""
        if self.engine is not None:
            return self.engine.status.to_dict()
        return {"is_thinking": False, "commentary": self.commentary, "error": self.error}


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions wired to the shared scheduler (or a local policy)
    - Track active sessions
    - Clean up ended and stale sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(
        self,
        scheduler: RequestScheduler | None = None,
        decision_config: DecisionConfig | None = None,
        storage: Storage | None = None,
        policy_factory: Callable[[], BotPolicy] = HeuristicPolicy,
    ):
        self.scheduler = scheduler
        self.decision_config = decision_config or DecisionConfig()
        self.storage = storage if storage is not None else MemoryStorage()
        self.policy_factory = policy_factory
        self._sessions: dict[str, Session] = {}

    def create_session(self, difficulty: Difficulty | str = Difficulty.MEDIUM) -> Session:
        """
        Create a new game session.

        With a scheduler the AI plays through a MoveDecisionEngine;
        without one it plays through a local policy.
        """
        session_id = str(uuid.uuid4())
        game = GameSession(difficulty=difficulty, storage=self.storage)
        now = time.time()

        engine = None
        policy = None
        if self.scheduler is not None:
            engine = MoveDecisionEngine(self.scheduler, game, self.decision_config)
            game.add_listener(lambda _game: engine.on_turn_change())
        else:
            policy = self.policy_factory()

        session = Session(
            session_id=session_id,
            game=game,
            created_at=now,
            last_active=now,
            engine=engine,
            policy=policy,
        )
        self._sessions[session_id] = session
        logger.info("Created session %s (difficulty: %s)", session_id, game.difficulty.value)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """
        End a session and clean up.

        Any AI turn in progress is torn down. Returns False for an
        unknown session.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if session.engine is not None:
            session.engine.teardown()
        session.ended = True
        logger.info("Ended session %s", session_id)
        return True

    def end_all(self):
        for session_id in list(self._sessions):
            self.end_session(session_id)

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def list_active_sessions(self) -> list[str]:
        """List IDs of sessions still accepting moves."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: float = 3600, now: float | None = None) -> int:
        """
        End sessions idle for longer than max_age_seconds.

        Returns the number of sessions removed.
        """
        current_time = time.time() if now is None else now
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.last_active > max_age_seconds
        ]
        for session_id in to_remove:
            self.end_session(session_id)
        if to_remove:
            logger.info("Removed %d stale sessions", len(to_remove))
        return len(to_remove)

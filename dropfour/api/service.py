"""
API Service - Business logic layer between the API and the game.

The service:
1. Creates and looks up sessions
2. Applies human moves and runs the AI reply to completion
3. Resets and ends games
4. Formats responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
and reports failures as DropFourError subclasses.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..engine_core.rules import board_to_string
from ..engine_core.state import Cell, GameStatus
from ..errors import InvalidMoveError, SessionNotFoundError
from ..session import Session, SessionManager, SessionState
from .schemas import (
    AIStatusInfo,
    CreateGameRequest,
    EndGameResponse,
    GameListResponse,
    GameResponse,
    GameSummary,
    HealthResponse,
    MoveInfo,
    MoveRequest,
    SessionStatus,
    StatsInfo,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "dropfour"

_STATUS_MAP = {
    SessionState.HUMAN_TURN: SessionStatus.YOUR_TURN,
    SessionState.AI_TURN: SessionStatus.AI_THINKING,
    SessionState.GAME_OVER: SessionStatus.GAME_OVER,
    SessionState.ENDED: SessionStatus.ENDED,
}


@dataclass
class GameService:
    """
    Main game service.

    Usage:
        service = GameService(SessionManager(scheduler=scheduler))

        game = service.create_game(CreateGameRequest(difficulty="hard"))
        game = await service.make_move(game.session_id, MoveRequest(column=3))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    version: str = "0.1.0"

    def create_game(self, request: CreateGameRequest) -> GameResponse:
        session = self.session_manager.create_session(difficulty=request.difficulty)
        return self.game_response(session)

    def get_game(self, session_id: str) -> GameResponse:
        return self.game_response(self._require(session_id))

    def list_games(self) -> GameListResponse:
        games = [
            GameSummary(
                session_id=session.session_id,
                status=_STATUS_MAP[session.state],
                difficulty=session.game.difficulty,
                turn_number=session.game.turn_number,
                created_at=session.created_at,
            )
            for session in self.session_manager.list_sessions()
        ]
        return GameListResponse(games=games, total=len(games))

    async def make_move(self, session_id: str, request: MoveRequest) -> GameResponse:
        """
        Apply the human move, then run the AI turn to completion.

        Raises InvalidMoveError when the game is over, it is not the
        human's turn, or the column is not playable.
        """
        session = self._require(session_id)
        game = session.game

        if game.status != GameStatus.PLAYING:
            raise InvalidMoveError("Game is over", context={"status": game.status.value})
        if game.current_player != Cell.PLAYER:
            raise InvalidMoveError("Not your turn", context={"current_player": game.current_player.value})
        if not game.make_move(request.column):
            raise InvalidMoveError(
                f"Column {request.column} is not playable",
                context={"column": request.column},
            )

        session.touch()
        await session.play_ai_turn()
        return self.game_response(session)

    def reset_game(self, session_id: str) -> GameResponse:
        """Start over in the same session. Any AI turn in progress is abandoned."""
        session = self._require(session_id)
        session.game.reset()
        session.touch()
        return self.game_response(session)

    def end_game(self, session_id: str) -> EndGameResponse:
        if not self.session_manager.end_session(session_id):
            raise SessionNotFoundError(session_id)
        return EndGameResponse(success=True, session_id=session_id)

    def health(self) -> HealthResponse:
        scheduler = self.session_manager.scheduler
        return HealthResponse(
            status="healthy",
            service=SERVICE_NAME,
            version=self.version,
            scheduler_running=scheduler.running if scheduler else False,
            queue_sizes=scheduler.queue_sizes() if scheduler else {},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(self, session_id: str) -> Session:
        session = self.session_manager.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @staticmethod
    def game_response(session: Session) -> GameResponse:
        game = session.game
        data = game.to_dict()
        return GameResponse(
            session_id=session.session_id,
            status=_STATUS_MAP[session.state],
            board=data["board"],
            current_player=data["current_player"],
            game_status=data["status"],
            winner=data["winner"],
            winning_sequences=data["winning_sequences"],
            last_move=MoveInfo(**data["last_move"]) if data["last_move"] else None,
            move_history=[MoveInfo(**move) for move in data["move_history"]],
            difficulty=game.difficulty,
            turn_number=game.turn_number,
            stats=StatsInfo.model_validate(game.stats),
            ai=AIStatusInfo(**session.status()),
            board_text=board_to_string(game.board),
        )

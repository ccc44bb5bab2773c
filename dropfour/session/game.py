"""
Game Session - Owns one Connect Four game and its turn order.

The game session is the collaborator the decision engine plays in:
- Holds the board, current player and status
- Applies human moves (make_move) and AI commits (make_ai_move)
- Records move history, last move and winning sequences
- Persists win/loss/draw statistics through a Storage

The human always moves first. Statistics are kept from the human's
point of view and survive resets.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Callable
import logging

from ..engine_core.state import Board, Cell, Difficulty, GameStatus, Move, Position
from ..engine_core.rules import apply_move, create_board, game_status, is_valid_move
from .storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)

STATS_KEY = "connect4_stats"


@dataclass
class GameStats:
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def played(self) -> int:
        return self.wins + self.losses + self.draws

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GameStats:
        if not data:
            return cls()
        return cls(
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            draws=int(data.get("draws", 0)),
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class GameSession:
    """
    A single game plus persistent statistics.

    Usage:
        game = GameSession(difficulty="hard")
        game.make_move(3)          # human
        game.make_ai_move(4)       # AI commit
        game.reset()
    """

    def __init__(
        self,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        storage: Storage | None = None,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.difficulty = Difficulty(difficulty)
        self.stats = GameStats.from_dict(self.storage.get(STATS_KEY))
        self._listeners: list[Callable[[GameSession], None]] = []
        self._reset_state()

    def _reset_state(self):
        self.board: Board = create_board()
        self.current_player = Cell.PLAYER
        self.status = GameStatus.PLAYING
        self.winner: Cell | None = None
        self.winning_sequences: list[tuple[Position, ...]] = []
        self.last_move: Move | None = None
        self.move_history: list[Move] = []

    @property
    def turn_number(self) -> int:
        """Number of moves played; changes exactly when the turn does."""
        return len(self.move_history)

    def is_ai_turn(self) -> bool:
        return self.status == GameStatus.PLAYING and self.current_player == Cell.AI

    def add_listener(self, listener: Callable[[GameSession], None]):
        """Called after every move and reset."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[GameSession], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # =========================================================================
    # Moves
    # =========================================================================

    def make_move(self, column: int) -> bool:
        """Human move. Returns False if it is not the human's turn or the column is not playable."""
        return self._place(column, Cell.PLAYER)

    def make_ai_move(self, column: int) -> bool:
        """AI commit callback."""
        return self._place(column, Cell.AI)

    def _place(self, column: int, player: Cell) -> bool:
        if self.status != GameStatus.PLAYING or self.current_player != player:
            return False
        if not is_valid_move(self.board, column):
            return False

        board, row = apply_move(self.board, column, player)
        move = Move(player=player, column=column, row=row)
        self.board = board
        self.last_move = move
        self.move_history.append(move)

        status, winner, sequences = game_status(board)
        self.status = status
        if status == GameStatus.WIN:
            self.winner = winner
            self.winning_sequences = sequences
            self._record_result(winner)
        elif status == GameStatus.DRAW:
            self._record_result(None)
        else:
            self.current_player = player.opponent

        logger.debug("%s played column %d (row %d)", player.value, column, row)
        self._notify()
        return True

    def reset(self):
        """Start a new game. Statistics are kept."""
        self._reset_state()
        self._notify()

    def set_difficulty(self, difficulty: Difficulty | str):
        self.difficulty = Difficulty(difficulty)

    # =========================================================================
    # Statistics
    # =========================================================================

    def _record_result(self, winner: Cell | None):
        if winner == Cell.PLAYER:
            self.stats.wins += 1
        elif winner == Cell.AI:
            self.stats.losses += 1
        else:
            self.stats.draws += 1
        self.storage.set(STATS_KEY, self.stats.to_dict())
        logger.info(
            "Game over (%s), record %d-%d-%d",
            winner.value if winner else "draw",
            self.stats.wins, self.stats.losses, self.stats.draws,
        )

    def reset_stats(self):
        self.stats = GameStats()
        self.storage.set(STATS_KEY, self.stats.to_dict())

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": self.board.to_rows(),
            "current_player": self.current_player.value,
            "status": self.status.value,
            "winner": self.winner.value if self.winner else None,
            "winning_sequences": [
                [list(position) for position in sequence]
                for sequence in self.winning_sequences
            ],
            "last_move": self.last_move.to_dict() if self.last_move else None,
            "move_history": [move.to_dict() for move in self.move_history],
            "difficulty": self.difficulty.value,
            "turn_number": self.turn_number,
            "stats": self.stats.to_dict(),
        }

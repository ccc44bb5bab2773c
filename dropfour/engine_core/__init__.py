"""
Engine Core - Pure Connect Four board engine.

The engine:
1. Holds the board as an immutable snapshot
2. Validates and applies gravity moves
3. Detects every winning line and full boards
4. Chooses a local heuristic move (win, block, center, random)

No I/O and no exceptions: bad input is reported through sentinels.
"""

from .state import (
    Board, Cell, Difficulty, GameStatus, Move, WinResult, Position,
    ROWS, COLS, CENTER_COLUMN, CONNECT,
)
from .rules import (
    create_board,
    is_valid_move,
    available_columns,
    apply_move,
    check_win,
    is_full,
    game_status,
    is_winning_position,
    board_to_string,
)
from .heuristic import (
    HeuristicChoice,
    HeuristicReason,
    NO_MOVE,
    choose_heuristic_move,
    find_heuristic_move,
    random_move,
    winning_columns,
)

__all__ = [
    "Board",
    "Cell",
    "Difficulty",
    "GameStatus",
    "Move",
    "WinResult",
    "Position",
    "ROWS",
    "COLS",
    "CENTER_COLUMN",
    "CONNECT",
    "create_board",
    "is_valid_move",
    "available_columns",
    "apply_move",
    "check_win",
    "is_full",
    "game_status",
    "is_winning_position",
    "board_to_string",
    "HeuristicChoice",
    "HeuristicReason",
    "NO_MOVE",
    "choose_heuristic_move",
    "find_heuristic_move",
    "random_move",
    "winning_columns",
]

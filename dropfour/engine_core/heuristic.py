"""
Heuristic - Local move choice used when the remote decision is unavailable.

Decision order, each candidate simulated with apply_move + check_win:
1. Win: lowest column that completes a line for self
2. Block: lowest column that would complete a line for the opponent
3. Center: the center column if playable
4. Random: uniform choice among playable columns
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import random

from .state import Board, Cell, CENTER_COLUMN
from .rules import apply_move, available_columns, check_win

NO_MOVE = -1


class HeuristicReason(Enum):
    """Which branch of the decision order produced the column."""
    WIN = "win"
    BLOCK = "block"
    CENTER = "center"
    RANDOM = "random"
    NO_MOVE = "no_move"


@dataclass(frozen=True)
class HeuristicChoice:
    column: int
    reason: HeuristicReason


def winning_columns(board: Board, player: Cell) -> list[int]:
    """Columns where player wins immediately, ascending."""
    columns = []
    for col in available_columns(board):
        new_board, row = apply_move(board, col, player)
        if row == NO_MOVE:
            continue
        if check_win(new_board).winner == player:
            columns.append(col)
    return columns


def random_move(board: Board, rng: random.Random | None = None) -> int:
    """Uniformly random playable column, or NO_MOVE on a full board."""
    columns = available_columns(board)
    if not columns:
        return NO_MOVE
    return (rng or random).choice(columns)


def choose_heuristic_move(
    board: Board,
    me: Cell,
    opponent: Cell,
    rng: random.Random | None = None,
) -> HeuristicChoice:
    """Run the decision order and report the branch taken."""
    columns = available_columns(board)
    if not columns:
        return HeuristicChoice(NO_MOVE, HeuristicReason.NO_MOVE)

    wins = winning_columns(board, me)
    if wins:
        return HeuristicChoice(wins[0], HeuristicReason.WIN)

    blocks = winning_columns(board, opponent)
    if blocks:
        return HeuristicChoice(blocks[0], HeuristicReason.BLOCK)

    if CENTER_COLUMN in columns:
        return HeuristicChoice(CENTER_COLUMN, HeuristicReason.CENTER)

    return HeuristicChoice(random_move(board, rng), HeuristicReason.RANDOM)


def find_heuristic_move(
    board: Board,
    me: Cell,
    opponent: Cell,
    rng: random.Random | None = None,
) -> int:
    """
    Column chosen by the heuristic.

    Returns NO_MOVE (-1) when no column is playable; callers treat
    that as the draw condition already having been reached.
    """
    return choose_heuristic_move(board, me, opponent, rng).column

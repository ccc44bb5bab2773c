"""
Rules - Pure functions over Board snapshots.

Used by:
1. The game session to validate and apply moves
2. The heuristic fallback to simulate candidate moves
3. The decision engine to validate remote answers

Nothing here raises. Precondition failures are signalled through
sentinel return values (row -1 from apply_move) so the hot per-move
path never builds an exception.
"""

from __future__ import annotations

from .state import (
    Board, Cell, GameStatus, Position, WinResult,
    ROWS, COLS, CONNECT,
)

# (d_row, d_col) for horizontal, vertical, rising and falling diagonals
DIRECTIONS: tuple[tuple[int, int], ...] = ((0, 1), (1, 0), (1, 1), (-1, 1))

_CELL_SYMBOLS = {
    Cell.EMPTY: ".",
    Cell.PLAYER: "X",
    Cell.AI: "O",
}


def create_board(rows: int = ROWS, cols: int = COLS) -> Board:
    """All cells empty."""
    return Board.empty(rows, cols)


def is_valid_move(board: Board, column: int) -> bool:
    """True iff the column is on the board and its top cell is empty."""
    if not isinstance(column, int) or isinstance(column, bool):
        return False
    if column < 0 or column >= board.cols:
        return False
    return board.get(board.rows - 1, column) == Cell.EMPTY


def available_columns(board: Board) -> list[int]:
    """Playable columns in ascending order."""
    return [col for col in range(board.cols) if is_valid_move(board, col)]


def apply_move(board: Board, column: int, player: Cell) -> tuple[Board, int]:
    """
    Drop a disc for player into column.

    Returns (new_board, row). If the move is not valid the original
    board is returned with row == -1; callers must check the row.
    """
    if not is_valid_move(board, column):
        return board, -1

    for row in range(board.rows):
        if board.get(row, column) == Cell.EMPTY:
            return board.with_cell(row, column, player), row

    return board, -1


def check_win(board: Board) -> WinResult:
    """
    Scan all four directions for CONNECT equal, non-empty cells.

    Every winning line is collected, not just the first one found.
    """
    sequences: list[tuple[Position, ...]] = []
    winner: Cell | None = None

    for row in range(board.rows):
        for col in range(board.cols):
            cell = board.get(row, col)
            if cell == Cell.EMPTY:
                continue
            for d_row, d_col in DIRECTIONS:
                end_row = row + d_row * (CONNECT - 1)
                end_col = col + d_col * (CONNECT - 1)
                if not (0 <= end_row < board.rows and 0 <= end_col < board.cols):
                    continue
                line = tuple(
                    (row + d_row * step, col + d_col * step)
                    for step in range(CONNECT)
                )
                if all(board.get(r, c) == cell for r, c in line):
                    sequences.append(line)
                    if winner is None:
                        winner = cell

    return WinResult(winner=winner, sequences=sequences)


def is_full(board: Board) -> bool:
    """No empty cells remain."""
    return all(cell != Cell.EMPTY for row in board.cells for cell in row)


def game_status(board: Board) -> tuple[GameStatus, Cell | None, list[tuple[Position, ...]]]:
    """Classify a board as won, drawn or still in play."""
    result = check_win(board)
    if result.winner is not None:
        return GameStatus.WIN, result.winner, result.sequences
    if is_full(board):
        return GameStatus.DRAW, None, []
    return GameStatus.PLAYING, None, []


def is_winning_position(
    sequences: list[tuple[Position, ...]] | None,
    row: int,
    col: int,
) -> bool:
    """Whether (row, col) belongs to any of the given winning sequences."""
    if not sequences:
        return False
    return any((row, col) in sequence for sequence in sequences)


def board_to_string(board: Board, symbols: dict[Cell, str] | None = None) -> str:
    """Render the board top row first, one line per row."""
    symbols = symbols or _CELL_SYMBOLS
    return "\n".join(
        " ".join(symbols[cell] for cell in row)
        for row in reversed(board.cells)
    )

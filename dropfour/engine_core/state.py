"""
Board State - Immutable value types for the Connect Four grid.

Design principles:
- Immutable: every mutation returns a new Board
- Row 0 is the bottom row (where discs land first)
- Serializable: boards round-trip through plain nested lists for the API
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

ROWS = 6
COLS = 7
CENTER_COLUMN = 3
CONNECT = 4

# A cell coordinate as (row, col)
Position = tuple[int, int]


class Cell(Enum):
    """Content of a single grid cell."""
    EMPTY = "empty"
    PLAYER = "player"
    AI = "ai"

    @property
    def opponent(self) -> Cell:
        """The other side. EMPTY has no opponent and returns itself."""
        if self == Cell.PLAYER:
            return Cell.AI
        if self == Cell.AI:
            return Cell.PLAYER
        return Cell.EMPTY


class GameStatus(Enum):
    """High-level status derived from a board."""
    PLAYING = "playing"
    WIN = "win"
    DRAW = "draw"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class Board:
    """
    An R x C grid snapshot.

    cells[row][col], with row 0 at the bottom. Never mutated in place:
    callers must treat every Board as a snapshot.
    """
    cells: tuple[tuple[Cell, ...], ...]

    @classmethod
    def empty(cls, rows: int = ROWS, cols: int = COLS) -> Board:
        return cls(cells=tuple(tuple(Cell.EMPTY for _ in range(cols)) for _ in range(rows)))

    @classmethod
    def from_rows(cls, rows: list[list[str | None]]) -> Board:
        """
        Build a board from nested lists of cell values (bottom row first).

        None and "empty" both mean an empty cell.
        """
        return cls(cells=tuple(
            tuple(Cell.EMPTY if value is None else Cell(value) for value in row)
            for row in rows
        ))

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def get(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def with_cell(self, row: int, col: int, value: Cell) -> Board:
        """Return new board with one cell replaced."""
        new_row = self.cells[row][:col] + (value,) + self.cells[row][col + 1:]
        return Board(cells=self.cells[:row] + (new_row,) + self.cells[row + 1:])

    def to_rows(self) -> list[list[str | None]]:
        """Nested lists, bottom row first, empty cells as None."""
        return [
            [None if cell == Cell.EMPTY else cell.value for cell in row]
            for row in self.cells
        ]

    def count(self, value: Cell) -> int:
        return sum(1 for row in self.cells for cell in row if cell == value)


@dataclass(frozen=True)
class Move:
    """
    A disc placement.

    The row is resolved by gravity when the move is applied,
    never supplied by the caller.
    """
    player: Cell
    column: int
    row: int

    def to_dict(self) -> dict:
        return {"player": self.player.value, "column": self.column, "row": self.row}


@dataclass
class WinResult:
    """
    Outcome of a win scan.

    A single move can complete several lines at once, so every
    winning sequence on the board is reported.
    """
    winner: Cell | None = None
    sequences: list[tuple[Position, ...]] = field(default_factory=list)

    @property
    def has_winner(self) -> bool:
        return self.winner is not None

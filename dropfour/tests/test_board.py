"""
Tests for the board engine.

Tests:
- Move validation and gravity
- Win detection in every direction, including double wins
- Draw / full-board detection
- Board rendering
"""

import pytest

from ..engine_core import (
    Board, Cell, GameStatus, COLS, ROWS,
    apply_move, available_columns, board_to_string, check_win, create_board,
    game_status, is_full, is_valid_move, is_winning_position,
)


def full_draw_board() -> Board:
    """A full board with no four in a row (column pairs alternate)."""
    rows = []
    for row in range(ROWS):
        cells = []
        for col in range(COLS):
            flip = (col // 2 + row) % 2
            cells.append("player" if flip == 0 else "ai")
        rows.append(cells)
    return Board.from_rows(rows)


class TestMoveValidation:
    """Tests for is_valid_move and available_columns."""

    def test_empty_board_all_columns_valid(self, empty_board):
        assert available_columns(empty_board) == list(range(COLS))

    @pytest.mark.parametrize("column", [-1, COLS, 100])
    def test_out_of_range_column_invalid(self, empty_board, column):
        assert not is_valid_move(empty_board, column)

    @pytest.mark.parametrize("column", [None, "3", 3.0, True])
    def test_non_integer_column_invalid(self, empty_board, column):
        assert not is_valid_move(empty_board, column)

    def test_full_column_invalid(self, make_board):
        board = make_board([0] * ROWS)

        assert not is_valid_move(board, 0)
        assert available_columns(board) == list(range(1, COLS))


class TestApplyMove:
    """Tests for gravity."""

    def test_disc_lands_on_bottom_row(self, empty_board):
        board, row = apply_move(empty_board, 3, Cell.PLAYER)

        assert row == 0
        assert board.get(0, 3) == Cell.PLAYER

    def test_original_board_unchanged(self, empty_board):
        apply_move(empty_board, 3, Cell.PLAYER)

        assert empty_board.count(Cell.PLAYER) == 0

    def test_column_fills_bottom_up(self, empty_board):
        """Repeated moves in one column stack with no gaps."""
        board = empty_board
        for expected_row in range(ROWS):
            player = Cell.PLAYER if expected_row % 2 == 0 else Cell.AI
            board, row = apply_move(board, 2, player)
            assert row == expected_row
            for below in range(row):
                assert board.get(below, 2) != Cell.EMPTY

    def test_invalid_move_returns_sentinel(self, make_board):
        board = make_board([5] * ROWS)

        new_board, row = apply_move(board, 5, Cell.AI)

        assert row == -1
        assert new_board is board

    def test_never_lands_above_lowest_empty(self, make_board):
        board = make_board([0, 1, 1, 2, 2, 2])
        for column in available_columns(board):
            lowest = next(r for r in range(ROWS) if board.get(r, column) == Cell.EMPTY)
            _, row = apply_move(board, column, Cell.AI)
            assert row == lowest


class TestCheckWin:
    """Tests for win detection."""

    def test_empty_board_no_winner(self, empty_board):
        result = check_win(empty_board)

        assert result.winner is None
        assert result.sequences == []

    def test_horizontal_win(self, empty_board):
        board = empty_board
        for col in (2, 3, 4):
            board, _ = apply_move(board, col, Cell.AI)
        assert check_win(board).winner is None

        board, _ = apply_move(board, 5, Cell.AI)
        result = check_win(board)

        assert result.winner == Cell.AI
        assert ((0, 2), (0, 3), (0, 4), (0, 5)) in result.sequences

    def test_vertical_win(self, make_board):
        # Human stacks column 0 while the AI plays column 1
        board = make_board([0, 1, 0, 1, 0, 1, 0])

        result = check_win(board)

        assert result.winner == Cell.PLAYER
        assert result.sequences == [((0, 0), (1, 0), (2, 0), (3, 0))]

    def test_diagonal_up_right_win(self, make_board):
        board = make_board([0, 1, 1, 2, 2, 3, 2, 3, 3, 6, 3])

        result = check_win(board)

        assert result.winner == Cell.PLAYER
        assert ((0, 0), (1, 1), (2, 2), (3, 3)) in result.sequences

    def test_diagonal_down_right_win(self, make_board):
        board = make_board([6, 5, 5, 4, 4, 3, 4, 3, 3, 0, 3])

        result = check_win(board)

        assert result.winner == Cell.PLAYER
        assert ((3, 3), (2, 4), (1, 5), (0, 6)) in result.sequences

    def test_all_sequences_reported(self):
        """One disc completing two lines yields both sequences."""
        rows = [[None] * COLS for _ in range(ROWS)]
        for col in (0, 1, 2, 3):
            rows[0][col] = "ai"
        for row in (1, 2, 3):
            rows[row][3] = "ai"
        board = Board.from_rows(rows)

        result = check_win(board)

        assert result.winner == Cell.AI
        assert ((0, 0), (0, 1), (0, 2), (0, 3)) in result.sequences
        assert ((0, 3), (1, 3), (2, 3), (3, 3)) in result.sequences

    def test_five_in_a_row_reports_overlapping_lines(self):
        rows = [[None] * COLS for _ in range(ROWS)]
        for col in range(5):
            rows[0][col] = "player"

        result = check_win(Board.from_rows(rows))

        assert len(result.sequences) == 2


class TestGameStatus:
    """Tests for full/draw/win classification."""

    def test_playing(self, make_board):
        status, winner, sequences = game_status(make_board([3, 3]))

        assert status == GameStatus.PLAYING
        assert winner is None
        assert sequences == []

    def test_draw(self):
        board = full_draw_board()

        assert is_full(board)
        assert check_win(board).winner is None
        assert game_status(board) == (GameStatus.DRAW, None, [])
        assert available_columns(board) == []

    def test_win(self, make_board):
        status, winner, sequences = game_status(make_board([0, 1, 0, 1, 0, 1, 0]))

        assert status == GameStatus.WIN
        assert winner == Cell.PLAYER
        assert is_winning_position(sequences, 3, 0)
        assert not is_winning_position(sequences, 0, 1)

    def test_is_winning_position_without_sequences(self):
        assert not is_winning_position(None, 0, 0)
        assert not is_winning_position([], 0, 0)


class TestBoardSerialization:
    """Tests for rendering and plain-list conversion."""

    def test_board_to_string_top_row_first(self, make_board):
        board = make_board([3])

        lines = board_to_string(board).splitlines()

        assert len(lines) == ROWS
        assert lines[-1] == ". . . X . . ."
        assert lines[0] == ". . . . . . ."

    def test_to_rows_and_back(self, make_board):
        board = make_board([3, 4, 3])

        rows = board.to_rows()

        assert rows[0][3] == "player"
        assert rows[0][4] == "ai"
        assert rows[1][3] == "player"
        assert Board.from_rows(rows) == board

    def test_create_board_dimensions(self):
        board = create_board()

        assert (board.rows, board.cols) == (ROWS, COLS)
        assert board.count(Cell.EMPTY) == ROWS * COLS

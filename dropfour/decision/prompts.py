"""
Move Prompts - Prompt text sent to the inference endpoint.

The prompt encodes:
- The current board (top row first)
- The move history
- Difficulty guidance
- The exact JSON reply format the parser expects
"""

from __future__ import annotations
from dataclasses import dataclass

from ..engine_core.state import Board, Cell, Difficulty, Move
from ..engine_core.rules import board_to_string

BOARD_SYMBOLS = {
    Cell.EMPTY: "⚪",
    Cell.PLAYER: "🔴",
    Cell.AI: "🟡",
}


@dataclass
class MovePrompts:
    """
    Collection of prompts for the remote move decision.

    Each method renders one part of the final prompt.
    """

    @staticmethod
    def format_board(board: Board) -> str:
        return board_to_string(board, symbols=BOARD_SYMBOLS).replace(" ", "")

    @staticmethod
    def format_history(history: list[Move]) -> str:
        if not history:
            return "No moves played yet."
        return "\n".join(
            f"Move {index}: {'Human' if move.player == Cell.PLAYER else 'AI'} "
            f"placed in column {move.column + 1}"
            for index, move in enumerate(history, start=1)
        )

    @staticmethod
    def difficulty_guidance(difficulty: Difficulty | str) -> str:
        """Play-strength instructions for the model."""
        difficulty = Difficulty(difficulty)
        if difficulty == Difficulty.EASY:
            return """You are playing at an EASY difficulty level. Make suboptimal moves occasionally
and don't always block the player's winning moves. Keep commentary simple and encouraging."""
        if difficulty == Difficulty.HARD:
            return """You are playing at a HARD difficulty level. Make the optimal move to win whenever possible
and always block the player's winning moves. Use more advanced strategy such as setting up
multiple threats. Commentary should reflect strategic thinking."""
        return """You are playing at a MEDIUM difficulty level. Make reasonably good moves
but occasionally miss complex strategies. Commentary should be helpful but not too advanced."""

    @classmethod
    def move_request(
        cls,
        board: Board,
        history: list[Move],
        difficulty: Difficulty | str = Difficulty.MEDIUM,
    ) -> str:
        """The full prompt for one AI turn."""
        return f"""
You are playing Connect 4 against a human player. You are playing with yellow discs (🟡).
Current board state (bottom row is row 1, top row is row {board.rows}):
{cls.format_board(board)}

Game move history:
{cls.format_history(history)}

{cls.difficulty_guidance(difficulty)}

Respond with ONLY a JSON object in this exact format:
{{
  "column": [chosen column number 0-{board.cols - 1}],
  "commentary": "[brief strategic thinking]"
}}
"""

"""
Bot Policy - Interface for local move selection.

A BotPolicy takes a board and returns a decision without any network
call. Policies back the CLI's --local mode and sessions created without
a scheduler.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
import random

from ..engine_core.state import Board, Cell
from ..engine_core.rules import available_columns
from ..engine_core.heuristic import HeuristicReason, choose_heuristic_move


@dataclass
class BotDecision:
    """
    A column chosen by a bot.

    Contains:
    - The column to play
    - Explanation (shown as commentary)
    - Confidence in the decision
    """
    column: int
    explanation: str = ""
    confidence: float = 1.0

    # Evaluation details (for debugging)
    evaluated_columns: int = 0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    Implementations range from uniform random play to the
    win/block/center heuristic.
    """

    @abstractmethod
    def select_column(self, board: Board, me: Cell, opponent: Cell) -> BotDecision:
        """
        Select a playable column.

        Raises ValueError when the board has no playable column.
        """
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class HeuristicPolicy(BotPolicy):
    """
    Win, then block, then center, then random.

    The same order the decision engine falls back to.
    """

    EXPLANATIONS = {
        HeuristicReason.WIN: "I see a winning move!",
        HeuristicReason.BLOCK: "I'll block your winning move.",
        HeuristicReason.CENTER: "I'll take the center column.",
        HeuristicReason.RANDOM: "I'll try this move.",
    }

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_column(self, board: Board, me: Cell, opponent: Cell) -> BotDecision:
        columns = available_columns(board)
        if not columns:
            raise ValueError("No legal columns available")

        choice = choose_heuristic_move(board, me, opponent, self.rng)
        return BotDecision(
            column=choice.column,
            explanation=self.EXPLANATIONS[choice.reason],
            evaluated_columns=len(columns),
            evaluation_details={"reason": choice.reason.value},
        )


class RandomPolicy(BotPolicy):
    """
    Random policy - selects columns uniformly at random.

    Used for:
    - Testing
    - Baseline comparison
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_column(self, board: Board, me: Cell, opponent: Cell) -> BotDecision:
        columns = available_columns(board)
        if not columns:
            raise ValueError("No legal columns available")

        return BotDecision(
            column=self.rng.choice(columns),
            explanation="Selected randomly",
            confidence=1.0 / len(columns),
            evaluated_columns=len(columns),
        )


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always selects the lowest playable column.

    Used for deterministic testing.
    """

    def select_column(self, board: Board, me: Cell, opponent: Cell) -> BotDecision:
        columns = available_columns(board)
        if not columns:
            raise ValueError("No legal columns available")

        return BotDecision(
            column=columns[0],
            explanation="Selected first legal column",
            evaluated_columns=1,
        )

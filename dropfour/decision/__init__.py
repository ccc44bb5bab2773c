"""
Decision - Decides the AI's move for one turn.

The engine:
1. Builds the move prompt from the current game
2. Submits it to the request scheduler under the game's category
3. Retries rate-limited calls with exponential backoff
4. Falls back to the local heuristic on any other failure
5. Commits exactly one column per active turn
"""

from .config import DecisionConfig
from .engine import (
    Decision,
    DecisionSource,
    DecisionState,
    DecisionStatus,
    MoveDecisionEngine,
    TurnCollaborator,
    backoff_delay,
    FALLBACK_COMMENTARY,
)
from .parser import MoveReply, parse_move_reply, extract_json_object
from .prompts import MovePrompts

__all__ = [
    "DecisionConfig",
    "Decision",
    "DecisionSource",
    "DecisionState",
    "DecisionStatus",
    "MoveDecisionEngine",
    "TurnCollaborator",
    "backoff_delay",
    "FALLBACK_COMMENTARY",
    "MoveReply",
    "parse_move_reply",
    "extract_json_object",
    "MovePrompts",
]

"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the game service.
Boards are sent as rows of "player" / "ai" / null, row 0 at the bottom.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has been ended
- INVALID_MOVE: Column not playable, or not the human's turn
- VALIDATION_ERROR: Malformed request
- INTERNAL_ERROR: Unexpected failure
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.state import Difficulty


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    YOUR_TURN = "your_turn"
    AI_THINKING = "ai_thinking"
    GAME_OVER = "game_over"
    ENDED = "ended"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_MOVE = "INVALID_MOVE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Nested Models
# =============================================================================

class MoveInfo(BaseModel):
    """A disc placement."""
    player: str = Field(..., description="'player' or 'ai'")
    column: int
    row: int


class StatsInfo(BaseModel):
    """Win/loss/draw record from the human's point of view."""
    wins: int = 0
    losses: int = 0
    draws: int = 0

    model_config = {"from_attributes": True}


class AIStatusInfo(BaseModel):
    """What the AI opponent is doing."""
    is_thinking: bool = False
    commentary: str = ""
    error: Optional[str] = None


# =============================================================================
# Request Models
# =============================================================================

class CreateGameRequest(BaseModel):
    """Request to start a new game."""
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="easy, medium or hard")


class MoveRequest(BaseModel):
    """Human move."""
    column: int = Field(..., ge=0, description="Zero-based column index")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameResponse(BaseModel):
    """Full game state."""
    session_id: str
    status: SessionStatus
    board: list[list[Optional[str]]]
    current_player: str
    game_status: str = Field(..., description="playing, win or draw")
    winner: Optional[str] = None
    winning_sequences: list[list[list[int]]] = Field(default_factory=list)
    last_move: Optional[MoveInfo] = None
    move_history: list[MoveInfo] = Field(default_factory=list)
    difficulty: Difficulty
    turn_number: int
    stats: StatsInfo
    ai: AIStatusInfo
    board_text: str = Field("", description="Board rendered top row first")


class GameSummary(BaseModel):
    """Brief info about a game."""
    session_id: str
    status: SessionStatus
    difficulty: Difficulty
    turn_number: int
    created_at: float


class GameListResponse(BaseModel):
    """List of games."""
    games: list[GameSummary]
    total: int


class EndGameResponse(BaseModel):
    """Response after ending a game."""
    success: bool
    session_id: str
    message: str = "Game ended"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    scheduler_running: bool = False
    queue_sizes: dict[str, int] = Field(default_factory=dict)

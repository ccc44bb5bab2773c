"""
API Module - HTTP interface for playing against the AI.

Clients:
1. Create a game (difficulty)
2. Post human moves; the AI reply comes back in the same response
3. Reset or end the game

Sessions live in memory. Only the win/loss/draw record is persisted.
"""

from .schemas import (
    # Requests
    CreateGameRequest,
    MoveRequest,
    # Responses
    GameResponse,
    GameListResponse,
    GameSummary,
    EndGameResponse,
    ErrorResponse,
    HealthResponse,
    # Enums
    ErrorCode,
    SessionStatus,
)
from .service import GameService
from .app import create_app, build_service

__all__ = [
    # Requests
    "CreateGameRequest",
    "MoveRequest",
    # Responses
    "GameResponse",
    "GameListResponse",
    "GameSummary",
    "EndGameResponse",
    "ErrorResponse",
    "HealthResponse",
    # Enums
    "ErrorCode",
    "SessionStatus",
    # Service
    "GameService",
    "create_app",
    "build_service",
]

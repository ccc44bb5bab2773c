"""
Session Module - Games, their AI opponents and statistics storage.

A session represents one play-through:
- Created when the client starts a game
- Holds the GameSession (board, turns, history)
- Runs AI turns through the decision engine or a local policy
- Removed when ended or stale

Only the win/loss/draw record is persisted.
"""

from .storage import Storage, MemoryStorage, JsonFileStorage
from .game import GameSession, GameStats, STATS_KEY
from .manager import SessionManager, Session, SessionState

__all__ = [
    "Storage",
    "MemoryStorage",
    "JsonFileStorage",
    "GameSession",
    "GameStats",
    "STATS_KEY",
    "SessionManager",
    "Session",
    "SessionState",
]

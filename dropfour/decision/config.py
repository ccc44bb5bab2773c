"""
Decision Config - Knobs for MoveDecisionEngine.
"""

from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, Field

from ..scheduler.envelope import Priority


class DecisionConfig(BaseModel):
    """
    Options for one side's turn logic.

    The local shortcuts (opening book, easy mode, tactical precheck)
    are off by default so every turn goes through the remote service.
    """
    category: str = "connect4"
    priority: Priority = Priority.MEDIUM
    request_timeout: Optional[float] = Field(default=None, gt=0, description="Queueing timeout (s)")

    # Backoff: min(base * 2^n, cap) ms for n = 0 .. max_retries - 1
    max_retries: int = Field(default=3, ge=0)
    backoff_base_ms: int = Field(default=1000, gt=0)
    backoff_cap_ms: int = Field(default=10000, gt=0)

    # Request body
    max_tokens: int = Field(default=150, gt=0, le=4000)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    model: Optional[str] = None

    # Local shortcuts
    opening_book_moves: int = Field(default=0, ge=0)
    local_easy: bool = False
    easy_random_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    precheck_tactics: bool = False

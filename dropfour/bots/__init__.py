"""
Bots module - Local opponents that need no remote service.

Provides:
- BotPolicy: Interface for local move selection
- HeuristicPolicy: Win / block / center / random
- RandomPolicy, FirstLegalPolicy: Baselines for tests
"""

from .policy import BotPolicy, BotDecision, HeuristicPolicy, RandomPolicy, FirstLegalPolicy

__all__ = [
    "BotPolicy",
    "BotDecision",
    "HeuristicPolicy",
    "RandomPolicy",
    "FirstLegalPolicy",
]

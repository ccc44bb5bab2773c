"""
Drop Four - Connect Four against a rate-limited remote AI.

The package provides:
- A pure board engine (gravity moves, win/draw detection, heuristic)
- A fair, rate-limited request scheduler for remote calls
- A move decision engine with backoff and local fallback
- Game sessions, an HTTP API and a terminal client
"""

__version__ = "0.1.0"

"""Admission decision engines.

The HTTP layer depends on ``AbstractAdmissionEngine`` only, so the in-memory
sliding-window store can be replaced without touching the adapters.
"""

from ratekeeper.engine.base import AbstractAdmissionEngine, Decision
from ratekeeper.engine.in_memory import InMemorySlidingWindowEngine
from ratekeeper.engine.sweeper import StoreSweeper

__all__ = [
    "AbstractAdmissionEngine",
    "Decision",
    "InMemorySlidingWindowEngine",
    "StoreSweeper",
]

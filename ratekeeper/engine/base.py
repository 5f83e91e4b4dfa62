"""Admission engine interfaces.

Adapters should depend on this abstraction (not the concrete implementation)
so the key-indexed store can be swapped or faked in tests.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Decision:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining_ms: Milliseconds left on the key's cooldown (0 when allowed).
    """

    allowed: bool
    remaining_ms: int = 0

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True, remaining_ms=0)

    @classmethod
    def deny(cls, remaining_ms: int) -> "Decision":
        return cls(allowed=False, remaining_ms=remaining_ms)

    @property
    def remaining_time(self) -> int:
        """Remaining cooldown in whole seconds, rounded up.

        A denial always reports at least 1, even when the cooldown ends at
        the instant it was created (``cooldown_ms=0``). Allowed decisions
        report 0.
        """
        if self.allowed:
            return 0
        return max(1, math.ceil(self.remaining_ms / 1000))


class AbstractAdmissionEngine(ABC):
    """Interface for per-key admission engines."""

    @abstractmethod
    def decide(self, key: str, now: int | None = None) -> Decision:
        """Decide whether a request attributed to ``key`` is admitted.

        Args:
            key: Opaque caller identity.
            now: Current time in epoch milliseconds. Defaults to the engine clock.

        Returns:
            Decision for this request.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: int | None = None) -> int:
        """Evict idle keys and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return lightweight store metrics without exposing keys."""
        raise NotImplementedError

    def close(self) -> None:
        """Release the store. Subsequent calls start from an empty state."""
        self.reset()

"""In-memory sliding-window admission engine with cooldown.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole store, so each decision is an atomic
  check-then-act per key.
- Access-driven: idle keys are only reclaimed by their next request or by an
  explicit ``sweep()`` (see ``StoreSweeper``).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from ratekeeper.engine.base import AbstractAdmissionEngine, Decision

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _KeyState:
    timestamps: list[int] = field(default_factory=list)
    blocked_until: int | None = None


class InMemorySlidingWindowEngine(AbstractAdmissionEngine):
    """Admission engine counting requests per key over a rolling window.

    A key may make ``max_requests`` requests within any ``window_ms`` span.
    The first request observed over that count starts a cooldown of
    ``cooldown_ms`` during which every request for the key is denied. A
    request arriving after the cooldown finds the key with a clean slate.

    Important:
        The request that brings the window to ``max_requests`` is itself
        allowed; only the following one is denied and opens the cooldown.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_ms: int,
        cooldown_ms: int,
        clock: Callable[[], int] = _epoch_ms,
    ) -> None:
        """Initialize the engine.

        Args:
            max_requests: Requests allowed per key within one window.
            window_ms: Rolling window length in milliseconds.
            cooldown_ms: Block duration once the threshold is reached.
            clock: Time source returning epoch milliseconds.

        Raises:
            ValueError: If any limit is out of range.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must be >= 0")

        self._max = max_requests
        self._window_ms = window_ms
        self._cooldown_ms = cooldown_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _KeyState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemorySlidingWindowEngine(max_requests={self._max}, "
            f"window_ms={self._window_ms}, cooldown_ms={self._cooldown_ms}, "
            f"keys={len(self._state_by_key)})"
        )

    @property
    def max_requests(self) -> int:
        return self._max

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def cooldown_ms(self) -> int:
        return self._cooldown_ms

    def _prune_locked(self, state: _KeyState, now: int) -> None:
        state.timestamps[:] = [ts for ts in state.timestamps if now - ts < self._window_ms]

    def decide(self, key: str, now: int | None = None) -> Decision:
        """Decide admission for ``key`` and update its state.

        Args:
            key: Opaque caller identity (non-empty).
            now: Current time in epoch milliseconds; defaults to the clock.

        Returns:
            ``Decision.allow()`` or ``Decision.deny(remaining_ms)``.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if now is None:
            now = self._clock()

        with self._lock:
            state = self._state_by_key.get(key)

            if state is not None and state.blocked_until is not None:
                remaining = state.blocked_until - now
                if remaining > 0:
                    return Decision.deny(remaining)
                # Cooldown elapsed: forget the key entirely.
                del self._state_by_key[key]
                state = None

            if state is None:
                state = _KeyState()
                self._state_by_key[key] = state

            self._prune_locked(state, now)

            if len(state.timestamps) >= self._max:
                if state.blocked_until is None:
                    state.blocked_until = now + self._cooldown_ms
                    logger.info(
                        "rate_limit.cooldown_started",
                        extra={
                            "window_count": len(state.timestamps),
                            "cooldown_ms": self._cooldown_ms,
                            "blocked_until": state.blocked_until,
                        },
                    )
                return Decision.deny(state.blocked_until - now)

            state.timestamps.append(now)
            return Decision.allow()

    def sweep(self, now: int | None = None) -> int:
        """Evict keys with an empty window and no active cooldown.

        Args:
            now: Current time in epoch milliseconds; defaults to the clock.

        Returns:
            Number of keys removed.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            idle_keys = []
            for key, state in self._state_by_key.items():
                if state.blocked_until is not None and state.blocked_until - now > 0:
                    continue
                if state.blocked_until is None:
                    self._prune_locked(state, now)
                    if state.timestamps:
                        continue
                idle_keys.append(key)

            for key in idle_keys:
                del self._state_by_key[key]

            if idle_keys:
                logger.debug(
                    "rate_limit.sweep",
                    extra={"evicted": len(idle_keys), "size": len(self._state_by_key)},
                )
            return len(idle_keys)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._state_by_key.clear()
            else:
                self._state_by_key.pop(key, None)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            blocked = sum(1 for s in self._state_by_key.values() if s.blocked_until is not None)
            return {
                "keys": len(self._state_by_key),
                "blocked": blocked,
                "max_requests": self._max,
                "window_ms": self._window_ms,
                "cooldown_ms": self._cooldown_ms,
            }

    def snapshot(self, key: str) -> tuple[list[int], int | None] | None:
        """Return a copy of ``(timestamps, blocked_until)`` for ``key``, if tracked."""
        with self._lock:
            state = self._state_by_key.get(key)
            if state is None:
                return None
            return list(state.timestamps), state.blocked_until

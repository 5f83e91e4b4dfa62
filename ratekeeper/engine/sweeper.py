"""Background eviction of idle keys.

The engine only reclaims a key when that key is seen again. Under churn of
many distinct, mostly inactive callers the store would grow without bound, so
``StoreSweeper`` calls ``engine.sweep()`` on a fixed interval from a daemon
thread.
"""

from __future__ import annotations

import logging
import threading

from ratekeeper.engine.base import AbstractAdmissionEngine

logger = logging.getLogger(__name__)


class StoreSweeper:
    """Periodically evict idle keys from an admission engine.

    Attributes:
        interval_seconds: Delay between sweeps. ``0`` disables the sweeper.
    """

    def __init__(self, engine: AbstractAdmissionEngine, interval_seconds: float) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self._engine = engine
        self.interval_seconds = interval_seconds
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def __enter__(self) -> "StoreSweeper":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in a background thread (no-op if disabled or running)."""
        if self.interval_seconds == 0 or self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="ratekeeper-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.debug("rate_limit.sweeper_started", extra={"interval_s": self.interval_seconds})

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self._engine.sweep()
            except Exception:
                # Keep the thread alive; the next tick retries.
                logger.exception("rate_limit.sweep_failed")

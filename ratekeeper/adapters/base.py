from abc import ABC, abstractmethod

from fastapi import FastAPI

from ratekeeper.core.rate_limit import RateLimiter


class AbstractRateLimitAdapter(ABC):
    """Interface for adapters turning limiter decisions into HTTP behaviour."""

    def __init__(self, limiter: RateLimiter) -> None:
        self.limiter = limiter

    @abstractmethod
    def install(self, app: FastAPI) -> None:
        """Attach the limiter to every route of ``app``.

        Must be called before routers are included and before the app starts.

        Args:
            app: Application to protect.
        """
        ...

    def close(self) -> None:
        self.limiter.close()

"""Rate limiting hook for the login route.

Only the contract is defined here: a limiter answers ``allow(key)``. The
default limiter admits every request; deployments that need throttling
plug in their own implementation via ``app.state.rate_limiter``.
"""

from typing import Protocol


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool:
        """Return True if a request identified by ``key`` may proceed."""
        ...


class AllowAllRateLimiter:
    """Limiter that never throttles."""

    def allow(self, key: str) -> bool:
        return True

"""
Per-user request rate limiting
"""

from fastapi import HTTPException, status
from limits import RateLimitItemPerMinute
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from ..core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding one-minute window per user

    Call check() directly, or use the instance as a FastAPI dependency
    after the authenticated user id is known.
    """

    NAMESPACE = "stt"

    def __init__(self, requests_per_minute: int = 100):
        self.requests_per_minute = requests_per_minute
        self._item = RateLimitItemPerMinute(requests_per_minute)
        self._limiter = MovingWindowRateLimiter(MemoryStorage())

    def check(self, user_id: str) -> bool:
        """Count one request for the user; False when the quota is exhausted"""
        return self._limiter.hit(self._item, self.NAMESPACE, user_id)

    def remaining(self, user_id: str) -> int:
        stats = self._limiter.get_window_stats(self._item, self.NAMESPACE, user_id)
        return stats.remaining

    def reset(self, user_id: str) -> None:
        self._limiter.clear(self._item, self.NAMESPACE, user_id)

    def __call__(self, user_id: str) -> str:
        if not self.check(user_id):
            logger.warning(f"Rate limit exceeded for user {user_id}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit of {self.requests_per_minute} requests per minute exceeded",
            )
        return user_id

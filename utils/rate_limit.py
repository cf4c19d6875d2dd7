"""
Rate limiting utilities for the Draft Assistant

Fixed-window counters keyed by identifier. Counting happens under an
asyncio.Lock in-process, or with Redis SET NX EX plus INCR in one MULTI when a
Redis URL is configured so that several processes share one budget.
"""
import asyncio
import logging
import math
import time
from typing import Callable, Dict, NamedTuple, Optional

import redis.asyncio as redis

from config import get_config
from exceptions import RateLimitExceededError

logger = logging.getLogger(f'{__name__}.RateLimit')

# Global Redis client instance
_redis_client: Optional[redis.Redis] = None


async def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client if configured.

    Returns:
        Redis client instance or None if Redis is not configured/reachable
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    config = get_config()
    if not config.redis_url:
        logger.debug("No Redis URL configured - using in-process rate limiting")
        return None

    try:
        logger.info(f"Connecting to Redis at {config.redis_url}")
        client = redis.from_url(config.redis_url)
        await client.ping()
        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client
    except Exception as e:
        logger.warning(f"Redis connection failed: {e} - using in-process rate limiting")
        return None


async def close_redis_client() -> None:
    """Close the Redis client connection."""
    global _redis_client

    if _redis_client:
        try:
            await _redis_client.aclose()
            logger.info("Redis connection closed")
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis connection: {e}")
        finally:
            _redis_client = None


class RateLimitResult(NamedTuple):
    success: bool
    remaining: int
    retry_after: Optional[int] = None


class _Window:
    __slots__ = ("count", "reset_at")

    def __init__(self, reset_at: float):
        self.count = 0
        self.reset_at = reset_at


class RateLimiter:
    """
    Fixed-window rate limiter.

    Each identifier gets ``max_requests`` hits per ``window_seconds``. Safe
    under concurrent use from many tasks: every read-modify-write of a window
    happens while holding the limiter's lock (or atomically in Redis).
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        key_prefix: Optional[str] = None,
        redis_client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.redis_client = redis_client
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    def _key(self, identifier: str) -> str:
        return f"{self.key_prefix}:{identifier}" if self.key_prefix else identifier

    async def check(self, identifier: str) -> RateLimitResult:
        """
        Count one hit for an identifier without raising.

        Args:
            identifier: Budget owner (user id, or a fixed key for a global budget)

        Returns:
            RateLimitResult with success flag, remaining hits and retry delay
        """
        key = self._key(identifier)

        if self.redis_client is not None:
            try:
                return await self._check_redis(key)
            except redis.RedisError as e:
                logger.warning(f"Redis rate limit check failed for {key}: {e} - counting in-process")

        return await self._check_local(key)

    async def _check_local(self, key: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            self._evict_expired(now)

            window = self._windows.get(key)
            if window is None:
                window = _Window(now + self.window_seconds)
                self._windows[key] = window

            if window.count >= self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return RateLimitResult(False, 0, retry_after)

            window.count += 1
            return RateLimitResult(True, self.max_requests - window.count)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]

    async def _check_redis(self, key: str) -> RateLimitResult:
        # Window key and its expiry are created in the same MULTI as the INCR
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=self.window_seconds, nx=True)
            pipe.incr(key)
            pipe.ttl(key)
            _, count, ttl = await pipe.execute()

        if ttl is None or ttl < 0:
            # Counter left without expiry by an older writer
            await self.redis_client.expire(key, self.window_seconds)
            ttl = self.window_seconds

        if count > self.max_requests:
            return RateLimitResult(False, 0, max(1, int(ttl)))
        return RateLimitResult(True, self.max_requests - count)

    async def hit(self, identifier: str) -> RateLimitResult:
        """
        Count one hit and raise when the identifier is out of budget.

        Raises:
            RateLimitExceededError: With retry_after seconds
        """
        result = await self.check(identifier)
        if not result.success:
            logger.warning(
                f"Rate limit exceeded for {self._key(identifier)} "
                f"(max {self.max_requests}/{self.window_seconds}s, retry in {result.retry_after}s)"
            )
            raise RateLimitExceededError(
                f"Rate limit exceeded. Try again in {result.retry_after} seconds.",
                retry_after=result.retry_after or 0,
            )
        return result

    async def reset(self) -> None:
        """Forget every in-process window."""
        async with self._lock:
            self._windows.clear()


# Global provider rate limiter instance
_ai_rate_limiter: Optional[RateLimiter] = None


async def get_ai_rate_limiter() -> RateLimiter:
    """
    Get the process-wide rate limiter guarding generation provider calls.

    Returns:
        Shared RateLimiter (Redis-backed when a Redis URL is configured)
    """
    global _ai_rate_limiter
    if _ai_rate_limiter is None:
        config = get_config()
        redis_client = await get_redis_client()
        # Re-check after the await so concurrent first callers share one instance
        if _ai_rate_limiter is None:
            _ai_rate_limiter = RateLimiter(
                max_requests=config.ai_rate_limit_requests,
                window_seconds=config.ai_rate_limit_window_seconds,
                key_prefix="ai",
                redis_client=redis_client,
            )
    return _ai_rate_limiter

"""Redis cache layer for URL shortener."""

import logging
from typing import Iterable, Optional

import redis.asyncio as redis


class RedisCache:
    """Redis cache for code -> original URL lookups."""

    KEY_PREFIX = "url:shortener:"
    DELETED_MARKER = "\x00deleted"

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Default TTL for cached items
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = True
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Connect to Redis. Caching is disabled if the server is unreachable."""
        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info(f"Connected to Redis, TTL={self.ttl_seconds}s")
        except (redis.RedisError, OSError) as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def get(self, code: str) -> Optional[str]:
        """Get cached URL for a code."""
        if not self.enabled or not self.client:
            return None

        try:
            return await self.client.get(self.get_cache_key(code))
        except redis.RedisError as e:
            self.logger.error(f"Cache get error: {e}")
            return None

    async def set(
        self,
        code: str,
        original_url: str,
        ttl: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Cache the URL for a code.

        With only_if_absent the key is written only when it does not exist,
        so a lookup that raced a deletion cannot replace its tombstone.

        Returns:
            True if the key was written
        """
        if not self.enabled or not self.client:
            return False

        try:
            written = await self.client.set(
                self.get_cache_key(code),
                original_url,
                ex=ttl or self.ttl_seconds,
                nx=only_if_absent,
            )
            return bool(written)
        except redis.RedisError as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def mark_deleted(self, codes: Iterable[str]) -> int:
        """Replace cached entries for codes with a deletion tombstone.

        Returns:
            Number of keys written
        """
        keys = [self.get_cache_key(c) for c in codes]
        if not keys or not self.enabled or not self.client:
            return 0

        try:
            async with self.client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.set(key, self.DELETED_MARKER, ex=self.ttl_seconds)
                await pipe.execute()
            return len(keys)
        except redis.RedisError as e:
            self.logger.error(f"Cache delete error: {e}")
            return 0

    def is_deleted_marker(self, value: Optional[str]) -> bool:
        return value == self.DELETED_MARKER

    async def ping(self) -> bool:
        if not self.enabled or not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, code: str) -> str:
        return f"{self.KEY_PREFIX}{code}"

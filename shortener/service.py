"""Business logic service for URL shortener."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .common.validators import is_valid_url
from .errors import URLAlreadyExistsError, URLDeletedError
from .shortcode import ShortCodeGenerator
from .storage.base import URLStorageBase
from .storage.cache import RedisCache
from .storage.models import StatsInfo, URLRecord, UserURL


@dataclass
class BatchItem:
    """One URL of a batch shorten request."""

    correlation_id: str
    original_url: str
    code: Optional[str] = None


class URLShortenerService:
    """Service layer for URL shortening business logic."""

    def __init__(
        self,
        storage: URLStorageBase,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        max_collision_retries: int = 10,
    ):
        """Initialize URL shortener service.

        Args:
            storage: Storage backend
            cache: Optional redirect cache
            short_code_generator: Optional short code generator
            logger: Optional logger
            max_collision_retries: Attempts to find a free code before giving up
        """
        self.storage = storage
        self.cache = cache
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.max_collision_retries = max_collision_retries

    async def make_short_url(self, user_id: str, original_url: str) -> str:
        """Create a new short URL owned by user_id.

        Returns:
            The generated short code

        Raises:
            ValueError: If the URL is invalid
            URLAlreadyExistsError: If the URL was already shortened; ``code``
                holds the existing code, now also owned by user_id
        """
        self._validate(original_url)

        code = await self._generate_unique_code()
        try:
            await self.storage.save(code, original_url)
        except URLAlreadyExistsError as e:
            existing = e.code or await self.storage.code_by_url(original_url)
            await self.storage.save_user_code(user_id, existing)
            self.logger.info(f"URL already shortened: {existing} -> {original_url}")
            raise URLAlreadyExistsError(original_url, existing) from e

        await self.storage.save_user_code(user_id, code)
        self.logger.info(f"Created short URL: {code} -> {original_url}")
        return code

    async def make_batch_short_urls(self, user_id: str, items: List[BatchItem]) -> List[BatchItem]:
        """Create short URLs for a batch, preserving correlation ids.

        Raises:
            ValueError: If any URL is invalid
        """
        for item in items:
            self._validate(item.original_url)

        taken = set()
        for item in items:
            code = await self._generate_unique_code()
            while code in taken:
                code = await self._generate_unique_code()
            taken.add(code)
            item.code = code

        await self.storage.save_batch(
            [URLRecord(code=i.code, original_url=i.original_url, correlation_id=i.correlation_id) for i in items]
        )
        for item in items:
            await self.storage.save_user_code(user_id, item.code)

        self.logger.info(f"Created batch of {len(items)} short URLs")
        return items

    async def get_original_url(self, code: str) -> str:
        """Get the original URL for a short code.

        Raises:
            NotFoundError: If the code is unknown
            URLDeletedError: If the code was deleted
        """
        if self.cache:
            cached_url = await self.cache.get(code)
            if self.cache.is_deleted_marker(cached_url):
                raise URLDeletedError(code)
            if cached_url:
                self.logger.debug(f"Cache hit for {code}")
                return cached_url

        original_url = await self.storage.get_url(code)
        if self.cache:
            await self.cache.set(code, original_url, only_if_absent=True)
        return original_url

    async def user_urls(self, user_id: str) -> List[UserURL]:
        return await self.storage.user_urls(user_id)

    async def stats(self) -> StatsInfo:
        return StatsInfo(
            url_count=await self.storage.url_count(),
            user_count=await self.storage.user_count(),
        )

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        storage_healthy = await self.storage.health_check()

        cache_healthy = True
        if self.cache and self.cache.enabled:
            cache_healthy = await self.cache.ping()

        return {
            "storage": storage_healthy,
            "cache": cache_healthy,
            "overall": storage_healthy and cache_healthy,
        }

    def _validate(self, original_url: str) -> None:
        valid, error = is_valid_url(original_url)
        if not valid:
            raise ValueError(f"Invalid URL: {error}")

    async def _generate_unique_code(self) -> str:
        """Generate a short code not yet present in storage.

        Raises:
            ValueError: If unable to find a free code after retries
        """
        for attempt in range(self.max_collision_retries):
            code = self.generator.generate_random()
            if not await self.storage.exists(code):
                if attempt:
                    self.logger.debug(f"Generated code after {attempt + 1} attempts: {code}")
                return code

        raise ValueError("Unable to generate unique short code after multiple attempts")

    async def close(self) -> None:
        """Close service connections."""
        await self.storage.close()
        if self.cache:
            await self.cache.close()

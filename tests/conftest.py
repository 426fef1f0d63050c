"""Pytest configuration and fixtures."""

import asyncio
from typing import AsyncGenerator, Dict, List, Optional

import pytest

from config import Config
from shortener.common.logging_config import setup_logging
from shortener.deleter import DeleterConfig, URLDeleter
from shortener.service import URLShortenerService
from shortener.shortcode import ShortCodeGenerator
from shortener.storage import MemoryURLStorage, RedisCache


class RecordingStorage(MemoryURLStorage):
    """Memory storage that records every delete_urls call.

    ``fail_next`` makes the next N delete_urls calls raise before touching
    state.
    """

    def __init__(self, logger=None):
        super().__init__(logger=logger)
        self.delete_calls: List[List[str]] = []
        self.fail_next = 0

    async def delete_urls(self, codes: List[str]) -> None:
        self.delete_calls.append(list(codes))
        if self.fail_next:
            self.fail_next -= 1
            raise ConnectionError("storage unavailable")
        await super().delete_urls(codes)


class DictCache(RedisCache):
    """RedisCache keeping entries in a dict instead of a Redis server."""

    def __init__(self):
        super().__init__(redis_url="redis://unused")
        self.entries: Dict[str, str] = {}

    async def get(self, code: str) -> Optional[str]:
        return self.entries.get(code)

    async def set(self, code, original_url, ttl=None, only_if_absent=False) -> bool:
        if only_if_absent and code in self.entries:
            return False
        self.entries[code] = original_url
        return True

    async def mark_deleted(self, codes) -> int:
        codes = list(codes)
        for code in codes:
            self.entries[code] = self.DELETED_MARKER
        return len(codes)

    async def ping(self) -> bool:
        return True


async def wait_until(predicate, timeout: float = 1.0, interval: float = 0.005) -> bool:
    """Poll predicate until it holds or timeout elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def storage(logger) -> RecordingStorage:
    return RecordingStorage(logger=logger)


async def own(storage, user_id: str, *codes: str) -> None:
    """Store codes as URLs owned by user_id."""
    for code in codes:
        await storage.save(code, f"https://example.com/{code}")
        await storage.save_user_code(user_id, code)


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=6)


@pytest.fixture
def service(storage, short_code_generator, logger) -> URLShortenerService:
    """Create service instance."""
    return URLShortenerService(
        storage=storage,
        cache=None,
        short_code_generator=short_code_generator,
        logger=logger,
    )


@pytest.fixture
def deleter_config() -> DeleterConfig:
    """Short timings so flushes happen within a test."""
    return DeleterConfig(stopping_timeout=0.2, max_batch_size=3, batch_waiting_time=0.05)


@pytest.fixture
async def deleter(storage, deleter_config, logger) -> AsyncGenerator[URLDeleter, None]:
    """Started URL deleter, stopped after the test."""
    url_deleter = URLDeleter(storage=storage, config=deleter_config, logger=logger)
    url_deleter.start()

    yield url_deleter

    await url_deleter.stop()


@pytest.fixture
def config() -> Config:
    return Config(
        base_url="http://testserver",
        file_storage_path="",
        database_dsn=None,
        redis_url=None,
        trusted_subnet=None,
        auth_secret="test-secret",
    )


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]

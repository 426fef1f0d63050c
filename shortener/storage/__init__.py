"""Storage layer for URL shortener."""

import logging
from typing import Optional

from .base import URLStorageBase
from .cache import RedisCache
from .file import FileURLStorage
from .memory import MemoryURLStorage
from .models import StatsInfo, URLRecord, UserURL
from .postgres import PostgresURLStorage


def create_storage(config, logger: Optional[logging.Logger] = None) -> URLStorageBase:
    """Pick a storage backend from configuration.

    PostgreSQL when a DSN is configured, else the append-only file when a
    path is configured, else memory.
    """
    logger = logger or logging.getLogger(__name__)

    if config.database_dsn:
        logger.info("Using PostgreSQL storage")
        return PostgresURLStorage(dsn=config.database_dsn, logger=logger)

    if config.file_storage_path:
        logger.info(f"Using file storage at {config.file_storage_path}")
        return FileURLStorage(filename=config.file_storage_path, logger=logger)

    logger.info("Using in-memory storage")
    return MemoryURLStorage(logger=logger)


__all__ = [
    "URLStorageBase",
    "MemoryURLStorage",
    "FileURLStorage",
    "PostgresURLStorage",
    "RedisCache",
    "URLRecord",
    "UserURL",
    "StatsInfo",
    "create_storage",
]

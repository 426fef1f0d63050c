#!/usr/bin/env python3
"""
Main entry point for URL shortener service.

Concurrency: requests are served by one asyncio event loop (FastAPI +
uvicorn). URL deletion runs in a background task owned by the URL deleter,
which batches codes from all delete requests and applies them to storage.

Usage:
    python app.py [-c config.json]

Environment variables:
    BASE_URL - Base URL for short links
    FILE_STORAGE_PATH - Append-only storage file ('' for in-memory)
    DATABASE_DSN - PostgreSQL connection string (overrides file storage)
    REDIS_URL - Redis connection URL (optional)
    TRUSTED_SUBNET - CIDR allowed to read internal stats
    DELETER_MAX_BATCH_SIZE, DELETER_BATCH_WAITING_TIME, DELETER_STOPPING_TIMEOUT
    HOST, PORT, LOG_LEVEL
"""

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import Config, load_config
from shortener.common.logging_config import setup_logging
from shortener.deleter import URLDeleter
from shortener.service import URLShortenerService
from shortener.shortcode import ShortCodeGenerator
from shortener.storage import RedisCache, create_storage
from web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting URL shortener service...")

    storage = create_storage(config, logger=logger)
    await storage.connect()

    cache = None
    if config.redis_url:
        logger.info(f"Connecting to Redis at {config.redis_url}")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")

    service = URLShortenerService(
        storage=storage,
        cache=cache,
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        logger=logger,
    )
    deleter = URLDeleter(
        storage=storage,
        config=config.deleter_config(),
        cache=cache,
        logger=logger,
    )
    deleter.start()

    app.state.service = service
    app.state.deleter = deleter

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down URL shortener service...")

    # Let detached delete requests reach the deleter before it stops admitting codes
    pending = set(app.state.background_tasks)
    if pending:
        await asyncio.wait(pending, timeout=config.deleter_stopping_timeout)

    await deleter.stop()
    await service.close()

    logger.info("Service stopped")


def build_app(config: Config) -> FastAPI:
    """Create the FastAPI app wired to the production lifespan."""
    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    app = create_app(config=config, lifespan=lifespan)
    app.state.logger = logger
    return app


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="URL shortener service")
    parser.add_argument("-c", "--config", help="JSON config file (environment values take precedence)")
    args = parser.parse_args()

    config = load_config(args.config)
    app = build_app(config)
    logger = app.state.logger

    logger.info("URL Shortener Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'auth_secret', 'database_dsn'})}")

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
            access_log=False,
        )
    )

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

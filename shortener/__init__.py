"""Core business logic for URL shortener."""

from .shortcode import ShortCodeGenerator
from .service import URLShortenerService, BatchItem
from .deleter import URLDeleter, DeleterConfig, BatchAccumulator

__all__ = [
    "ShortCodeGenerator",
    "URLShortenerService",
    "BatchItem",
    "URLDeleter",
    "DeleterConfig",
    "BatchAccumulator",
]

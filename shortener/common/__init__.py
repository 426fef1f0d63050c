"""Common utilities for URL shortener."""

from .validators import is_valid_url
from .headers import extract_real_ip, parse_trusted_subnet, is_trusted_ip
from .url_builder import build_short_url
from .logging_config import setup_logging

__all__ = [
    "is_valid_url",
    "extract_real_ip",
    "parse_trusted_subnet",
    "is_trusted_ip",
    "build_short_url",
    "setup_logging",
]

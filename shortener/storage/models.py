"""Data models for URL shortener."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class URLRecord:
    """Represents a shortened URL in storage."""

    code: str
    original_url: str
    correlation_id: Optional[str] = None
    deleted: bool = False


@dataclass
class UserURL:
    """A URL created by a particular user."""

    code: str
    original_url: str


@dataclass
class StatsInfo:
    """Service-wide counters."""

    url_count: int
    user_count: int

"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ShortenRequest(BaseModel):
    """Request to shorten a URL."""

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=2048)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://example.com/very/long/path/to/resource"},
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL."""

    result: str = Field(..., description="The complete short URL")


class BatchShortenItem(BaseModel):
    """One URL of a batch shorten request."""

    correlation_id: str = Field(..., description="Client-side id echoed in the response")
    original_url: str = Field(..., min_length=1, max_length=2048)


class BatchShortenResult(BaseModel):
    """Short URL created for one batch item."""

    correlation_id: str
    short_url: str


class UserURLResponse(BaseModel):
    """A URL owned by the caller."""

    short_url: str
    original_url: str


class StatisticsResponse(BaseModel):
    """Statistics response."""

    urls: int = Field(..., description="Number of live short URLs")
    users: int = Field(..., description="Number of users owning URLs")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    storage: str = Field(..., description="Storage status")
    cache: str = Field(..., description="Cache status")
    deleter: str = Field(..., description="URL deleter state")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: Optional[str] = Field(None, description="Detailed error information")

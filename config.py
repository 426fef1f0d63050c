"""Configuration management for URL shortener."""

import json
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shortener.common.headers import parse_trusted_subnet
from shortener.deleter import DeleterConfig


class Config(BaseSettings):
    """Application configuration."""

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind to"
    )

    port: int = Field(
        default=8080,
        description="Port to listen on"
    )

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL for generating short URLs"
    )

    # Storage settings
    file_storage_path: str = Field(
        default="/tmp/short-url-db.json",
        description="Append-only file storage path (empty string keeps URLs in memory)"
    )

    database_dsn: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string; takes precedence over file storage"
    )

    # Redis settings (optional)
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for caching redirects"
    )

    cache_ttl_seconds: int = Field(
        default=3600,
        description="Cache TTL in seconds"
    )

    # URL shortener settings
    short_code_length: int = Field(
        default=8,
        ge=1,
        description="Length of generated short codes"
    )

    trusted_subnet: Optional[str] = Field(
        default=None,
        description="CIDR allowed to read /api/internal/stats"
    )

    # Auth settings
    auth_secret: str = Field(
        default="secret",
        description="HMAC secret for auth_token cookies"
    )

    auth_token_ttl_seconds: int = Field(
        default=60 * 60 * 60,
        description="Lifetime of issued auth tokens"
    )

    # URL deleter settings
    deleter_stopping_timeout: float = Field(
        default=1.0,
        description="Seconds to wait for in-flight delete requests on shutdown"
    )

    deleter_max_batch_size: int = Field(
        default=10,
        description="Codes per storage delete call"
    )

    deleter_batch_waiting_time: float = Field(
        default=0.1,
        description="Seconds between flushes of a partial batch"
    )

    deleter_queue_size: int = Field(
        default=100,
        description="Capacity of the deletion queue; full queue blocks delete requests"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (logs to stdout if not specified)"
    )

    log_json: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("trusted_subnet")
    @classmethod
    def validate_trusted_subnet(cls, v: Optional[str]) -> Optional[str]:
        """Reject malformed CIDR at load time."""
        parse_trusted_subnet(v)
        return v or None

    def deleter_config(self) -> DeleterConfig:
        return DeleterConfig(
            stopping_timeout=self.deleter_stopping_timeout,
            max_batch_size=self.deleter_max_batch_size,
            batch_waiting_time=self.deleter_batch_waiting_time,
            queue_size=self.deleter_queue_size,
        )


def load_config(config_file: Optional[str] = None) -> Config:
    """Load configuration from environment, then fill gaps from a JSON file.

    Values from the environment (or .env) win over the JSON file.
    """
    config = Config()
    if not config_file:
        return config

    with open(config_file, "r", encoding="utf-8") as f:
        file_values = json.load(f)

    overrides = {
        k: v
        for k, v in file_values.items()
        if k in Config.model_fields and k not in config.model_fields_set
    }
    return Config(**overrides)

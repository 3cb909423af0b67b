# config.py

"""Application configuration utilities.

Values are primarily loaded from ``config.json`` and may be overridden by
environment variables. The :func:`get_settings` helper merges the two sources
and caches the result.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment.

    ``DEVELOPMENT`` echoes freshly issued OTP codes in the API response so
    the login flow can be exercised without a mail server.
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    """Application settings merged from JSON and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./waterledger.db"
    redis_url: str = "redis://localhost:6379/0"
    secret_key: str = "change-me"
    jwt_expire_days: int = 7
    otp_expire_minutes: int = 10
    default_business_id: str = "default-business"
    default_tz: str = "Asia/Kolkata"
    environment: Environment = Environment.DEVELOPMENT
    create_schema_on_boot: bool = True
    slow_query_ms: int = 200
    log_level: str = "INFO"
    # Comma separated list of origins allowed by CORS.
    allowed_origins: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        return [part.strip() for part in self.allowed_origins.split(",") if part.strip()]


# Cached singleton to avoid repeated file reads
@lru_cache
def get_settings() -> Settings:
    """Return merged settings with environment variable precedence.

    The configuration is read from ``config.json`` located alongside this file
    and fed into :class:`Settings`. Environment variables override any values
    from the JSON file. The result is cached to prevent repeated disk reads.
    """

    config_path = Path(__file__).with_name("config.json")
    data = json.loads(config_path.read_text()) if config_path.exists() else {}
    env_override = {
        k.lower(): v
        for k, v in os.environ.items()
        if k.lower() in Settings.model_fields
    }
    merged = {**data, **env_override}
    # Environment variables override values from the JSON file.
    return Settings(**merged)

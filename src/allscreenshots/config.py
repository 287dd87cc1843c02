# -*- coding: utf-8 -*-
"""
Client configuration using Pydantic BaseSettings.
"""
from dataclasses import dataclass
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.allscreenshots.com"
API_KEY_HEADER = "X-API-Key"


class Settings(BaseSettings):
    """
    Client configuration loaded from environment variables.

    Every variable is read with the ALLSCREENSHOTS_ prefix, e.g.
    ALLSCREENSHOTS_API_KEY or ALLSCREENSHOTS_MAX_RETRIES.
    """

    # Authentication
    API_KEY: str = ""

    # Endpoint
    BASE_URL: str = DEFAULT_BASE_URL
    USER_AGENT: str = ""

    # Per-call timeout (in seconds)
    TIMEOUT: float = 60.0

    # Retry
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY: float = 0.5
    RETRY_MAX_DELAY: float = 30.0
    RETRY_JITTER: float = 0.2

    # Async job polling (in seconds)
    POLL_INTERVAL: float = 2.0
    POLL_DEADLINE: float = 300.0

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="ALLSCREENSHOTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration captured once at client construction."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    max_retries: int = 3
    retry_base_delay: float = 0.5
    retry_max_delay: float = 30.0
    retry_jitter: float = 0.2
    poll_interval: float = 2.0
    poll_deadline: float = 300.0
    user_agent: str = ""


# Global configuration instance
settings = Settings()

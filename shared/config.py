"""
Shared configuration management for the Sankofa caching layer.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"


class CacheSettings(BaseConfig):
    """Settings for the caching and coordination layer."""

    service_name: str = "cache"
    host: str = "0.0.0.0"
    port: int = 8020

    # Store endpoint
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("CACHE_REDIS_URL", "REDIS_URL", "redis_url"),
    )
    redis_password: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CACHE_REDIS_PASSWORD", "REDIS_PASSWORD", "redis_password"),
    )
    socket_timeout_seconds: float = 5.0
    socket_connect_timeout_seconds: float = 5.0

    # Reconnect policy
    connect_max_attempts: int = 10
    connect_base_delay_seconds: float = 0.1
    connect_max_delay_seconds: float = 3.0
    connect_max_total_seconds: float = 3600.0
    startup_connect_timeout_seconds: float = 3.0

    # TTLs and bounds
    default_ttl_seconds: int = 3600
    session_ttl_seconds: int = 86400
    activity_max_entries: int = 100
    activity_ttl_seconds: int = 2592000  # 30 days

    # Queues and pub/sub
    notification_queue_name: str = "notification_queue"
    subscriber_queue_size: int = 1000


def get_settings(**overrides) -> CacheSettings:
    """Build settings from the environment, with keyword overrides."""
    return CacheSettings(**overrides)

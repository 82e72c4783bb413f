"""
Shared configuration management for the auth service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_format: str = Field(default="json", pattern="^(json|console)$")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # Token signing; unset secrets fall back to well-known development defaults
    access_secret: Optional[str] = Field(default=None)
    refresh_secret: Optional[str] = Field(default=None)
    access_token_ttl_seconds: int = Field(default=15 * 60, gt=0)
    refresh_token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    token_issuer: str = Field(default="auth-service")

    # Password hashing (argon2), tuned for roughly 100ms per hash
    password_hash_time_cost: int = Field(default=2, ge=1)
    password_hash_memory_cost: int = Field(default=65536, ge=8)
    password_hash_parallelism: int = Field(default=4, ge=1)

    @property
    def is_production(self) -> bool:
        return self.env.lower() in ("prod", "production")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

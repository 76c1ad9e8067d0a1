"""
Shared configuration management for the HQ Trucking Widget Gateway.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Response cache
    cache_max_entries: int = Field(default=200, gt=0)

    # Metrics aggregator
    metrics_window_size: int = Field(default=1000, gt=0)

    # Event channel
    event_queue_size: int = Field(default=100, gt=0)

    # Default performance budget applied to the built-in widgets
    default_budget_max_bytes: int = Field(default=150000, gt=0)
    default_budget_max_millis: int = Field(default=2000, gt=0)

    gateway_label: str = Field(default="HQ-Trucking-v1.0")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)

"""Application configuration using pydantic-settings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class RuntimeEnvironment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class RetrySettings(BaseSettings):
    """Default retry policy for backend calls."""

    max_attempts: int = Field(default=3, ge=1, alias="RETRY_MAX_ATTEMPTS")
    base_delay: float = Field(default=2.0, ge=0, alias="RETRY_BASE_DELAY")

    model_config = {"env_prefix": "RETRY_", "extra": "ignore", "populate_by_name": True}


class EventStoreSettings(BaseSettings):
    """Monitoring event store configuration."""

    max_events: int = Field(default=1000, ge=1, alias="EVENT_STORE_MAX_EVENTS")
    log_path: str | None = Field(default=None, alias="EVENT_STORE_LOG_PATH")
    publish_enabled: bool = Field(default=False, alias="EVENT_STORE_PUBLISH_ENABLED")

    model_config = {"env_prefix": "EVENT_STORE_", "extra": "ignore", "populate_by_name": True}


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    service_name: str = Field(default="cloud-provisioning-kernel", alias="SERVICE_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    metrics_port: int | None = Field(default=None, alias="METRICS_PORT")
    tracing_enabled: bool = Field(default=False, alias="TRACING_ENABLED")
    console_spans: bool = Field(default=False, alias="TRACING_CONSOLE_SPANS")

    model_config = {"env_prefix": "OBS_", "extra": "ignore", "populate_by_name": True}


class Settings(BaseSettings):
    """Main application settings."""

    environment: RuntimeEnvironment = Field(
        default=RuntimeEnvironment.DEVELOPMENT, alias="ENVIRONMENT"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    strict_naming: bool = Field(default=True, alias="PROVISIONER_STRICT_NAMING")
    strict_idempotency: bool = Field(default=False, alias="PROVISIONER_STRICT_IDEMPOTENCY")
    config_file: str | None = Field(default=None, alias="PROVISIONER_CONFIG_FILE")

    retry: RetrySettings = Field(default_factory=RetrySettings)
    event_store: EventStoreSettings = Field(default_factory=EventStoreSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

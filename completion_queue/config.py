"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from completion_queue.constants import (
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_JOB_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_REAPER_INTERVAL_SECONDS,
    DEFAULT_RETENTION_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_key: str | None = None

    # Admission / execution
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    job_timeout_seconds: float = DEFAULT_JOB_TIMEOUT_SECONDS

    # Reaper Configuration
    retention_seconds: float = DEFAULT_RETENTION_SECONDS
    reaper_interval_seconds: float = DEFAULT_REAPER_INTERVAL_SECONDS

    # Downstream completion API
    downstream_base_url: str = "https://api.openai.com/v1"
    downstream_api_key: str | None = None
    downstream_timeout_seconds: float = 120.0

    # Webhook delivery
    webhook_timeout_seconds: float = 10.0

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "completion-queue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

from functools import lru_cache
from typing import List, Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    api_v1_prefix: str = "/v1"
    project_name: str = "Takedown Requests API"
    cors_origins: List[AnyHttpUrl] = []

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async connection string for the catalog database",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis connection string used by the shared rate limit backend",
    )

    rate_limit_backend: Literal["memory", "database", "redis"] = Field(
        default="memory",
        description="Counter store for submission rate limiting; memory is per-process only",
    )
    takedown_rate_limit: int = Field(
        default=5, ge=1, description="Maximum submissions per actor within one window"
    )
    takedown_rate_limit_window_seconds: int = Field(default=3600, ge=1)
    rate_limit_sweep_interval: int = Field(
        default=500,
        ge=1,
        description="Number of in-memory admissions between sweeps of expired windows",
    )
    trust_forwarded_headers: bool = Field(
        default=True,
        description="Resolve the actor address from X-Forwarded-For / X-Real-IP when present",
    )

    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=True, description="Render structured logs as JSON instead of console output"
    )

    enable_prometheus_metrics: bool = Field(
        default=True, description="Expose Prometheus metrics endpoint when true"
    )
    prometheus_metrics_path: str = Field(
        default="/metrics/prometheus",
        description="Path where scraped Prometheus metrics are served",
    )
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP HTTP endpoint for exporting traces",
    )
    otel_exporter_otlp_headers: str | None = Field(
        default=None,
        description="Comma separated key=value pairs added to OTLP requests",
    )
    otel_service_name: str | None = Field(
        default=None, description="Optional override for OpenTelemetry service.name"
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "careers-content-api"
    app_version: str = "1.0.0"
    environment: str = "dev"
    storage_backend: Literal["postgres", "memory"] = "postgres"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    timezone: str = "Asia/Jakarta"
    identity_base_url: str | None = None
    auth_timeout_seconds: float = 10.0
    expiration_run_at: str = "00:00"
    related_vacancies_default_limit: int = 2
    otel_enabled: bool = True
    otel_service_name: str = "careers-content-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="CONTENT_API_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Configuration management using pydantic-settings.

This module provides configuration management for the ModelRelay SDK using
Pydantic settings, with support for environment variables and .env files.

Configuration Sources (in order of precedence):
    1. Direct instantiation parameters
    2. Environment variables (prefixed with MODELRELAY_)
    3. .env file in project root

Available Settings:
    - API: base_url, api_key, access_token, client_header, default_model, request_timeout
    - Retry Behavior: retry_max_attempts, retry_min_wait, retry_max_wait, retry_multiplier
    - Streaming: stream_ttft_timeout, stream_idle_timeout, stream_total_timeout
    - SQL Tool Loop: sql_max_attempts, sql_result_limit, sql_sample_rows_limit
    - Logging: log_level, log_file_level, log_dir, log_file_name, log_json_format, log_max_bytes, log_backup_count, log_to_file
    - Tracing: enable_tracing, otel_exporter_endpoint, otel_service_name

Example:
    >>> from modelrelay.config import settings, reload_settings
    >>>
    >>> print(settings.base_url)
    'https://api.modelrelay.ai/api/v1/'
    >>>
    >>> # Reload after changing .env
    >>> settings = reload_settings()
"""

from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find the project root (where .env file is located)
_project_root = Path(__file__).parent.parent
_env_file = _project_root / ".env"

DEFAULT_BASE_URL = "https://api.modelrelay.ai/api/v1/"
DEFAULT_CLIENT_HEADER = "modelrelay-python"


class ModelRelaySettings(BaseSettings):
    """Global settings for the ModelRelay SDK.

    Configuration values can be set via:
    1. Environment variables (e.g., MODELRELAY_API_KEY)
    2. .env file in the project root
    3. Direct instantiation with parameters
    """

    model_config = SettingsConfigDict(
        env_prefix="MODELRELAY_",
        env_file=_env_file,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API settings
    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None
    access_token: str | None = None
    client_header: str = DEFAULT_CLIENT_HEADER
    default_model: str | None = None
    request_timeout: Annotated[float, Field(gt=0)] = 60.0

    # Retry settings
    retry_max_attempts: Annotated[int, Field(gt=0)] = 3
    retry_min_wait: Annotated[float, Field(ge=0)] = 1
    retry_max_wait: Annotated[float, Field(ge=0)] = 30
    retry_multiplier: Annotated[float, Field(ge=0)] = 1

    # Stream timeouts in seconds (None disables the check)
    stream_ttft_timeout: Annotated[float | None, Field(gt=0)] = None
    stream_idle_timeout: Annotated[float | None, Field(gt=0)] = None
    stream_total_timeout: Annotated[float | None, Field(gt=0)] = None

    # SQL tool loop defaults
    sql_max_attempts: Annotated[int, Field(gt=0)] = 3
    sql_result_limit: Annotated[int, Field(gt=0, le=1000)] = 100
    sql_sample_rows_limit: Annotated[int, Field(gt=0, le=10)] = 3

    # Logging settings
    log_level: str = "INFO"
    log_file_level: str = "DEBUG"
    log_dir: Path | None = None  # None means use default 'logs' directory
    log_file_name: str = "modelrelay.log"
    log_json_format: bool = False
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5
    log_to_file: bool = False

    # OpenTelemetry tracing settings
    enable_tracing: bool = False
    otel_exporter_endpoint: str | None = None
    otel_service_name: str = "modelrelay"


# Global settings instance
settings = ModelRelaySettings()


def get_settings() -> ModelRelaySettings:
    """Get the global settings instance.

    Returns:
        ModelRelaySettings: The global settings instance
    """
    return settings


def reload_settings() -> ModelRelaySettings:
    """Reload settings from environment and .env file.

    Returns:
        ModelRelaySettings: A new settings instance
    """
    global settings
    settings = ModelRelaySettings()
    return settings

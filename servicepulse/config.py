"""Configuration management for ServicePulse."""

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class ServicePulseConfig(BaseModel):
    """Main configuration for the ServicePulse service."""

    # Health monitoring
    health_target_url: Optional[str] = Field(default=None, description="Endpoint watched by the ticker")
    health_check_interval_seconds: int = Field(default=60, ge=1, description="Ticker interval in seconds")
    health_cache_ttl_ms: int = Field(default=300_000, ge=0, description="Health status cache TTL in milliseconds")

    # API testing
    test_cache_ttl_ms: int = Field(default=300_000, ge=0, description="Default test result cache TTL in milliseconds")
    request_timeout_ms: int = Field(default=10_000, ge=1, description="Outbound request timeout in milliseconds")

    # Callback push
    callback_timeout_seconds: float = Field(default=15.0, gt=0, description="Timeout for callback pushes")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=4111, description="Bind port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="console or json")


_INT_KEYS = {
    "health_check_interval_seconds",
    "health_cache_ttl_ms",
    "test_cache_ttl_ms",
    "request_timeout_ms",
    "port",
}


def load_config(config_path: Optional[str] = None) -> ServicePulseConfig:
    """Load configuration from file or environment variables."""
    if config_path is None:
        config_path = os.getenv("SERVICEPULSE_CONFIG", "config/servicepulse.yaml")

    config_data = {}

    # Load from file if exists
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    # Override with environment variables
    env_overrides = {
        "health_target_url": os.getenv("SERVICEPULSE_HEALTH_TARGET_URL"),
        "health_check_interval_seconds": os.getenv("SERVICEPULSE_HEALTH_INTERVAL_SECONDS"),
        "health_cache_ttl_ms": os.getenv("SERVICEPULSE_HEALTH_CACHE_TTL_MS"),
        "test_cache_ttl_ms": os.getenv("SERVICEPULSE_TEST_CACHE_TTL_MS"),
        "request_timeout_ms": os.getenv("SERVICEPULSE_REQUEST_TIMEOUT_MS"),
        "host": os.getenv("SERVICEPULSE_HOST"),
        "port": os.getenv("SERVICEPULSE_PORT"),
        "log_level": os.getenv("LOG_LEVEL"),
    }

    # Filter out None values and convert types
    for key, value in env_overrides.items():
        if value is not None:
            if key in _INT_KEYS:
                value = int(value)
            config_data[key] = value

    return ServicePulseConfig(**config_data)


def get_config() -> ServicePulseConfig:
    """Get the configuration for the current process."""
    return load_config()

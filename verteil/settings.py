import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from verteil.services.cache import DEFAULT_CACHE_TTL
from verteil.services.rate_limiter import DEFAULT_RATE_LIMITS

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Credentials
    username: str = Field(default="", alias="VERTEIL_USERNAME")
    password: str = Field(default="", alias="VERTEIL_PASSWORD")

    # HTTP Configuration
    base_url: str = Field(default="https://api.stage.verteil.com", alias="VERTEIL_BASE_URL")
    timeout: float = Field(default=30.0, alias="VERTEIL_TIMEOUT")
    verify_ssl: bool = Field(default=True, alias="VERTEIL_VERIFY_SSL")
    office_id: str | None = Field(default=None, alias="VERTEIL_OFFICE_ID")
    third_party_id: str | None = Field(default=None, alias="VERTEIL_THIRD_PARTY_ID")

    # Retry Configuration
    retry_max_attempts: int = Field(default=3, alias="VERTEIL_RETRY_MAX_ATTEMPTS")
    retry_delay_ms: int = Field(default=100, alias="VERTEIL_RETRY_DELAY_MS")
    retry_multiplier: float = Field(default=2.0, alias="VERTEIL_RETRY_MULTIPLIER")

    # Cache and Token Configuration
    cache_enabled: bool = Field(default=True, alias="VERTEIL_CACHE_ENABLED")
    cache_ttl: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CACHE_TTL), alias="VERTEIL_CACHE_TTL"
    )
    token_ttl: float = Field(default=55, alias="VERTEIL_TOKEN_TTL")
    encryption_key: str | None = Field(default=None, alias="VERTEIL_ENCRYPTION_KEY")

    # Rate limits: {"endpoint": {"requests": 30, "duration": 60}}
    rate_limits: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {
            name: {"requests": limit.requests, "duration": limit.duration}
            for name, limit in DEFAULT_RATE_LIMITS.items()
        },
        alias="VERTEIL_RATE_LIMITS",
    )

    # Store Configuration
    store_backend: str = Field(default="memory", alias="VERTEIL_STORE")
    store_path: str = Field(default=".verteil_cache", alias="VERTEIL_STORE_PATH")

    # Monitoring Configuration
    metrics_retention: float = Field(default=24, alias="VERTEIL_METRICS_RETENTION")
    monitoring_enabled: bool = Field(default=True, alias="VERTEIL_MONITORING_ENABLED")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="VERTEIL_LOG_LEVEL")
    log_file: str | None = Field(default=None, alias="VERTEIL_LOG_FILE")

    @field_validator("cache_ttl", "rate_limits", mode="before")
    @classmethod
    def _parse_json_table(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value

    @field_validator("office_id", "third_party_id", "encryption_key", "log_file", mode="before")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        return value or None


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment (and .env), with keyword overrides."""
    overridden = {Settings.model_fields[name].alias for name in overrides if name in Settings.model_fields}
    env = {
        k: v for k, v in os.environ.items() if k.startswith("VERTEIL_") and k not in overridden
    }
    return Settings.model_validate({**env, **overrides})


global_settings = load_settings()

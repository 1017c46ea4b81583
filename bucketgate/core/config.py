from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Limiter settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Redis settings (in-process store when disabled)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"

    # Limiter settings
    limiter_key_prefix: str = "bucketgate:"
    limiter_backoff: Literal["constant", "linear", "power", "exponential"] = "linear"
    limiter_backoff_factor: float = 2.0

    # Default capacity applied by create_limiter: min..max calls per window
    rate_limit_window_seconds: float = 60.0
    rate_limit_min: float = 10.0
    rate_limit_max: float = 20.0
    rate_limit_cost: float = 1.0

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is one of the supported formatters."""
        v = v.lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be text, structured or json")
        return v

    @field_validator("rate_limit_window_seconds", "rate_limit_cost")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate window and cost are positive."""
        if v <= 0:
            raise ValueError("Rate limit window and cost must be positive")
        return v

    @field_validator("limiter_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, v: float) -> float:
        if v < 0:
            raise ValueError("limiter_backoff_factor must not be negative")
        return v

    @model_validator(mode="after")
    def validate_capacity_bounds(self) -> "Settings":
        """Validate the capacity leaves room for at least one call."""
        if self.rate_limit_max - self.rate_limit_min < self.rate_limit_cost:
            raise ValueError(
                "rate_limit_max must exceed rate_limit_min by at least rate_limit_cost"
            )
        return self

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()

"""Tests for settings and building limiters from them."""

from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from bucketgate.core.config import Settings
from bucketgate.limiter import (
    Exponential,
    InMemoryScriptBackend,
    Linear,
    Rate,
    RedisScriptBackend,
    create_limiter,
    get_limiter,
    reset_limiter,
)


class TestSettings:
    """Test settings defaults and validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.redis_enabled is False
        assert settings.limiter_key_prefix == "bucketgate:"
        assert settings.limiter_backoff == "linear"
        assert settings.limiter_backoff_factor == 2.0
        assert settings.rate_limit_min == 10.0
        assert settings.rate_limit_max == 20.0

    def test_loaded_from_environment(self, monkeypatch):
        monkeypatch.setenv("LIMITER_BACKOFF", "exponential")
        monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "30")
        monkeypatch.setenv("REDIS_ENABLED", "true")

        settings = Settings(_env_file=None)

        assert settings.limiter_backoff == "exponential"
        assert settings.rate_limit_window_seconds == 30.0
        assert settings.redis_enabled is True

    def test_log_format_normalized(self):
        assert Settings(_env_file=None, log_format="JSON").log_format == "json"

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_rejects_unknown_backoff(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, limiter_backoff="fibonacci")

    @pytest.mark.parametrize("field", ["rate_limit_window_seconds", "rate_limit_cost"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_rejects_negative_backoff_factor(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, limiter_backoff_factor=-1)

    def test_rejects_capacity_without_room(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, rate_limit_min=10, rate_limit_max=10)


class TestCreateLimiter:
    """Test building limiters from settings."""

    def test_in_memory_by_default(self):
        limiter = create_limiter(Settings(_env_file=None))

        assert isinstance(limiter.backend, InMemoryScriptBackend)
        assert limiter.prefix == "bucketgate:"
        assert isinstance(limiter.backoff, Linear)
        assert limiter.rates == (Rate(flow=10 / 60, burst=10.0),)

    def test_uses_redis_when_enabled(self):
        settings = Settings(_env_file=None, redis_enabled=True, redis_url="redis://cache:6379/1")

        with patch("redis.asyncio.from_url") as mock_from_url:
            mock_from_url.return_value = MagicMock()
            limiter = create_limiter(settings)

        mock_from_url.assert_called_once_with("redis://cache:6379/1")
        assert isinstance(limiter.backend, RedisScriptBackend)
        assert limiter.backend.client is mock_from_url.return_value

    def test_explicit_client_wins(self):
        backend = InMemoryScriptBackend()
        settings = Settings(_env_file=None, redis_enabled=True)

        limiter = create_limiter(settings, client=backend)

        assert limiter.backend is backend

    def test_backoff_from_settings(self):
        settings = Settings(_env_file=None, limiter_backoff="exponential", limiter_backoff_factor=3)
        limiter = create_limiter(settings)
        assert isinstance(limiter.backoff, Exponential)
        assert limiter.backoff.factor == 3.0


class TestGlobalLimiter:
    """Test the global limiter instance."""

    def test_created_once(self):
        settings = Settings(_env_file=None)
        first = get_limiter(settings)
        assert get_limiter() is first

    def test_reset(self):
        settings = Settings(_env_file=None)
        first = get_limiter(settings)
        reset_limiter()
        assert get_limiter(settings) is not first

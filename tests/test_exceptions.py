"""Tests for the exception hierarchy."""

import pytest

from bucketgate.exceptions import (
    BucketGateError,
    ConfigurationError,
    ProtocolError,
    RateLimitExceededError,
)


class TestExceptions:
    """Test exception messages and status codes."""

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (BucketGateError(), 500),
            (ConfigurationError(), 500),
            (ProtocolError(), 502),
            (RateLimitExceededError(wait=1.0), 429),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert isinstance(error, BucketGateError)
        assert error.status_code == status_code

    def test_configuration_error_message(self):
        error = ConfigurationError("must have a redis client")
        assert error.detail == "must have a redis client"
        assert str(error) == "limiter: must have a redis client"

    def test_protocol_error_keeps_reply(self):
        error = ProtocolError([1, "x"])
        assert error.raw == [1, "x"]
        assert "invalid type returned from eval" in str(error)

    def test_protocol_error_detail(self):
        assert str(ProtocolError([0, "1", 9], "tier index 9 out of range")) == (
            "limiter: tier index 9 out of range"
        )

    @pytest.mark.parametrize("wait, retry_after", [(0.2, 1), (1.0, 1), (2.5, 3)])
    def test_rate_limit_exceeded_retry_after(self, wait, retry_after):
        error = RateLimitExceededError(wait=wait)
        assert error.wait == wait
        assert error.retry_after == retry_after
        assert f"{retry_after} seconds" in error.message

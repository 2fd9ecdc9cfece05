"""Tests for error classification and retry decisions."""

import httpx
import pytest

from modelrelay.errors import (
    APIConnectionError,
    APIError,
    ConfigurationError,
    DecodingError,
    ModelRelayError,
    RateLimitError,
    TransportError,
    classify_http_error,
    error_for_status,
    should_retry_error,
)


class TestErrorForStatus:
    """Test building API errors from non-2xx responses."""

    def test_error_object_message(self):
        error = error_for_status(400, b'{"error": {"message": "bad model", "code": "invalid"}}', "req_1")

        assert type(error) is APIError
        assert error.status == 400
        assert error.message == "bad model"
        assert error.request_id == "req_1"

    def test_error_code_when_no_message(self):
        assert error_for_status(403, b'{"error": {"code": "forbidden"}}').message == "forbidden"

    def test_string_error(self):
        assert error_for_status(404, b'{"error": "not found"}').message == "not found"

    def test_top_level_message(self):
        assert error_for_status(422, b'{"message": "unprocessable"}').message == "unprocessable"

    def test_raw_body_fallback(self):
        assert error_for_status(502, b"Bad Gateway\n").message == "Bad Gateway"

    def test_empty_body(self):
        error = error_for_status(500, b"")

        assert error.message is None
        assert str(error) == "API error 500"

    def test_rate_limit(self):
        error = error_for_status(429, b'{"error": {"message": "slow down"}}')

        assert isinstance(error, RateLimitError)
        assert isinstance(error, APIError)


class TestClassifyHTTPError:
    """Test mapping httpx failures into SDK errors."""

    def test_timeout(self):
        error = classify_http_error(httpx.ReadTimeout("read timed out"))

        assert isinstance(error, APIConnectionError)
        assert "timed out" in str(error)

    def test_connect_error(self):
        error = classify_http_error(httpx.ConnectError("connection refused"))

        assert isinstance(error, APIConnectionError)
        assert isinstance(error, TransportError)

    def test_sdk_errors_pass_through(self):
        original = ConfigurationError("bad")

        assert classify_http_error(original) is original

    def test_unexpected_error(self):
        error = classify_http_error(RuntimeError("boom"))

        assert type(error) is ModelRelayError
        assert "RuntimeError" in str(error)


class TestShouldRetryError:
    """Test which errors trigger a retry."""

    @pytest.mark.parametrize(
        "error",
        [
            RateLimitError(429),
            APIConnectionError("connection refused"),
            APIError(500),
            APIError(503, "overloaded"),
        ],
    )
    def test_retryable(self, error):
        assert should_retry_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            APIError(400),
            APIError(401),
            ConfigurationError("bad"),
            DecodingError("bad body"),
            TransportError("stream idle timeout"),
            ValueError("nope"),
        ],
    )
    def test_not_retryable(self, error):
        assert should_retry_error(error) is False

"""Exception hierarchy for the ModelRelay SDK.

Exception Hierarchy:
    - ModelRelayError (base)
        - ConfigurationError: Invalid client, loop, or handler configuration
        - InvalidRequestError: Malformed request (e.g. empty input)
        - TransportError: Stream and transport failures
            - APIConnectionError: Network-level failures
        - APIError: Non-2xx response from the API
            - RateLimitError: HTTP 429
        - DecodingError: Response body could not be decoded

Loop-fatal failures surface as one of these. Tool-level rejections never do;
they are reported back to the model as tool output instead.
"""

import json

import httpx


class ModelRelayError(Exception):
    """Base exception for SDK errors."""

    pass


class ConfigurationError(ModelRelayError):
    """Raised when the client or a tool loop is misconfigured."""

    pass


class InvalidRequestError(ModelRelayError):
    """Raised when a request is invalid before it is sent."""

    pass


class TransportError(ModelRelayError):
    """Raised for stream decoding failures, stream timeouts, and truncated streams."""

    pass


class APIConnectionError(TransportError):
    """Raised when the API cannot be reached."""

    pass


class APIError(ModelRelayError):
    """Raised when the API answers with a non-2xx status.

    Attributes:
        status: HTTP status code
        message: Error message reported by the API, if any
        request_id: Request ID echoed by the API, if any
    """

    def __init__(self, status: int, message: str | None = None, request_id: str | None = None):
        self.status = status
        self.message = message
        self.request_id = request_id
        text = f"API error {status}"
        if message:
            text += f": {message}"
        if request_id:
            text += f" (request_id: {request_id})"
        super().__init__(text)


class RateLimitError(APIError):
    """Raised when the API rate limit is hit."""

    pass


class DecodingError(ModelRelayError):
    """Raised when a response body cannot be decoded."""

    pass


def classify_http_error(error: Exception) -> ModelRelayError:
    """Classify an httpx failure into our exception types."""
    if isinstance(error, ModelRelayError):
        return error
    if isinstance(error, httpx.TimeoutException):
        return APIConnectionError(f"API connection error: request timed out: {error}")
    if isinstance(error, httpx.TransportError):
        return APIConnectionError(f"API connection error: {error}")
    return ModelRelayError(f"Unexpected error ({type(error).__name__}): {error}")


def error_for_status(status: int, body: bytes, request_id: str | None = None) -> APIError:
    """Build an APIError from a non-2xx response body.

    The body is expected to look like ``{"error": {"message": ...}}`` but any
    payload is tolerated; undecodable bodies fall back to the raw text.
    """
    message: str | None = None
    try:
        payload = json.loads(body) if body else None
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        detail = payload.get("error")
        if isinstance(detail, dict):
            message = detail.get("message") or detail.get("code")
        elif isinstance(detail, str):
            message = detail
        message = message or payload.get("message")
    if message is None and body:
        message = body.decode("utf-8", errors="replace").strip() or None

    if status == 429:
        return RateLimitError(status, message, request_id)
    return APIError(status, message, request_id)


def should_retry_error(error: Exception) -> bool:
    """Determine if an error should trigger a retry.

    Retryable errors:
    - RateLimitError (wait and retry)
    - APIConnectionError (transient network issues)
    - APIError with a 5xx status

    Everything else (configuration, 4xx, decoding) is not retried.
    """
    if isinstance(error, (RateLimitError, APIConnectionError)):
        return True
    return isinstance(error, APIError) and error.status >= 500

"""HTTP client for the ModelRelay API.

ModelRelayClient owns one httpx.AsyncClient and exposes:

- responses: ResponsesClient for buffered and NDJSON-streamed /responses calls
- sql: SQLClient for /sql/validate
- sql_tool_loop() / sql_tool_loop_stream(): the SQL tool loop wired to both

Buffered calls retry with exponential backoff on rate limits, connection
failures, and 5xx responses. Streams are never retried.

Example:
    >>> async with ModelRelayClient(api_key="mr_sk_...") as client:
    ...     response = await client.responses.create(request)
    ...     print(response.text())
"""

import logging
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from modelrelay.config import get_settings
from modelrelay.errors import (
    ConfigurationError,
    DecodingError,
    InvalidRequestError,
    classify_http_error,
    error_for_status,
    should_retry_error,
)
from modelrelay.guardrails import SQLToolLoopOptions
from modelrelay.logging_config import get_logger
from modelrelay.models.conversation import InputItem, Role
from modelrelay.models.request import ResponsesRequest, ResponsesRequestOptions
from modelrelay.models.response import Response
from modelrelay.models.sql import SQLValidateRequest, SQLValidateResponse
from modelrelay.sql.events import SQLToolLoopResult
from modelrelay.sql.handlers import SQLToolLoopHandlers
from modelrelay.sql.loop import SQLToolLoop, SQLToolLoopStream
from modelrelay.streaming import ResponseStream, StreamTimeouts

logger = get_logger(__name__)

API_KEY_HEADER = "X-ModelRelay-Api-Key"
CLIENT_HEADER = "X-ModelRelay-Client"
CUSTOMER_ID_HEADER = "X-ModelRelay-Customer-Id"
REQUEST_ID_HEADER = "X-ModelRelay-Request-Id"
STREAM_ACCEPT = 'application/x-ndjson; profile="responses-stream/v2"'


def _retrying() -> AsyncRetrying:
    """Retry policy for buffered calls, read from settings at call time."""
    settings = get_settings()
    return AsyncRetrying(
        retry=retry_if_exception(should_retry_error),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_multiplier, min=settings.retry_min_wait, max=settings.retry_max_wait
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def _normalize_base_url(base_url: str) -> str:
    base_url = base_url.strip()
    if not base_url.startswith(("http://", "https://")):
        raise ConfigurationError("base_url must start with http:// or https://")
    return base_url if base_url.endswith("/") else base_url + "/"


def _option_headers(options: ResponsesRequestOptions | None) -> dict[str, str]:
    if options is None:
        return {}
    headers = dict(options.headers)
    if options.customer_id:
        headers[CUSTOMER_ID_HEADER] = options.customer_id
    if options.request_id:
        headers[REQUEST_ID_HEADER] = options.request_id
    return headers


class _ResponseBytes:
    """Byte source over a streamed httpx response.

    aclose() releases the response even when iteration never started; an
    unstarted async generator would skip its own cleanup.
    """

    def __init__(self, response: httpx.Response):
        self.response = response
        self._chunks: AsyncIterator[bytes] | None = None

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._chunks is None:
            self._chunks = self._iterate()
        return self._chunks

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise classify_http_error(e) from e

    async def aclose(self) -> None:
        try:
            if self._chunks is not None:
                await self._chunks.aclose()
        finally:
            await self.response.aclose()


class ModelRelayClient:
    """Async client for the ModelRelay API."""

    def __init__(
        self,
        api_key: str | None = None,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        client_header: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Secret or publishable API key (defaults to settings.api_key)
            access_token: Bearer token, used instead of or alongside an API key
            base_url: API base URL (defaults to settings.base_url)
            timeout: Request timeout in seconds (defaults to settings.request_timeout)
            headers: Headers sent with every request
            client_header: Value of X-ModelRelay-Client (defaults to settings.client_header)
            http_client: Bring your own httpx.AsyncClient; it is not closed by aclose()

        Raises:
            ConfigurationError: If no credentials are given or base_url is not http(s)
        """
        settings = get_settings()
        self.api_key = (api_key or settings.api_key or "").strip() or None
        self.access_token = (access_token or settings.access_token or "").strip() or None
        if self.api_key is None and self.access_token is None:
            raise ConfigurationError("api key or access token is required")

        self.base_url = _normalize_base_url(base_url or settings.base_url)
        self.timeout = timeout or settings.request_timeout
        self.default_headers = dict(headers or {})
        self.client_header = client_header or settings.client_header

        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)
        self._owns_http = http_client is None

        self.responses = ResponsesClient(self)
        self.sql = SQLClient(self)

    async def __aenter__(self) -> "ModelRelayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json", **self.default_headers, **(extra or {})}
        headers.setdefault(CLIENT_HEADER, self.client_header)
        if self.access_token:
            token = self.access_token
            headers["Authorization"] = token if token.lower().startswith("bearer ") else f"Bearer {token}"
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers

    async def _send(
        self,
        path: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        request = self._http.build_request(
            "POST",
            self._url(path),
            json=body,
            headers=self._headers(headers),
            timeout=timeout or self.timeout,
        )
        start_time = time.time()
        try:
            response = await self._http.send(request, stream=stream)
        except httpx.HTTPError as e:
            classified = classify_http_error(e)
            logger.error(f"POST {path} failed after {time.time() - start_time:.3f}s: {classified}")
            raise classified from e

        logger.debug(f"POST {path} -> {response.status_code} in {time.time() - start_time:.3f}s")
        if response.is_success:
            return response

        body_bytes = await response.aread()
        if stream:
            await response.aclose()
        error = error_for_status(response.status_code, body_bytes, response.headers.get(REQUEST_ID_HEADER))
        logger.warning(f"POST {path} returned error: {error}")
        raise error

    async def post_json(
        self,
        path: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> tuple[Any, str | None]:
        """POST a JSON body with retries and return the decoded payload and request ID.

        Raises:
            APIError: If the API answers with a non-2xx status after retries
            APIConnectionError: If the API cannot be reached after retries
            DecodingError: If the body is not JSON
        """
        response = await _retrying()(self._send, path, body, headers, timeout)
        try:
            payload = response.json()
        except ValueError as e:
            raise DecodingError(f"failed to decode {path} response: {e}") from e
        return payload, response.headers.get(REQUEST_ID_HEADER)

    async def open_stream(
        self,
        path: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """POST a JSON body and return the response with its body still unread."""
        return await self._send(path, body, headers, timeout, stream=True)

    def sql_tool_loop_runner(self) -> SQLToolLoop:
        return SQLToolLoop(self.responses, self.sql)

    async def sql_tool_loop(self, options: SQLToolLoopOptions, handlers: SQLToolLoopHandlers) -> SQLToolLoopResult:
        """Run the SQL tool loop with buffered model turns."""
        return await self.sql_tool_loop_runner().run(options, handlers)

    def sql_tool_loop_stream(
        self,
        options: SQLToolLoopOptions,
        handlers: SQLToolLoopHandlers,
        timeouts: StreamTimeouts | None = None,
    ) -> SQLToolLoopStream:
        """Run the SQL tool loop with streamed model turns."""
        return self.sql_tool_loop_runner().stream(options, handlers, timeouts)


class ResponsesClient:
    """Client for /responses."""

    def __init__(self, client: ModelRelayClient):
        self._client = client

    async def create(self, request: ResponsesRequest, options: ResponsesRequestOptions | None = None) -> Response:
        """Run one buffered model turn.

        Raises:
            InvalidRequestError: If the request has no input
            DecodingError: If the response body is not a valid response
        """
        if not request.input:
            raise InvalidRequestError("responses request input must not be empty")

        timeout = options.timeout if options else None
        payload, request_id = await self._client.post_json(
            "/responses", request.to_wire(), _option_headers(options), timeout
        )
        if not isinstance(payload, dict):
            raise DecodingError("responses payload is not an object")
        payload.setdefault("request_id", request_id)
        try:
            return Response.model_validate(payload)
        except ValidationError as e:
            raise DecodingError(f"failed to decode response: {e}") from e

    async def text(self, model: str, user: str, system: str | None = None) -> str:
        """Single-turn convenience returning only the assistant text."""
        items = [InputItem.text(Role.SYSTEM, system)] if system else []
        items.append(InputItem.text(Role.USER, user))
        response = await self.create(ResponsesRequest(model=model, input=items))
        return response.text()

    async def stream(
        self,
        request: ResponsesRequest,
        options: ResponsesRequestOptions | None = None,
        timeouts: StreamTimeouts | None = None,
    ) -> ResponseStream:
        """Open an NDJSON stream for one model turn.

        Timeouts default to the stream_*_timeout settings.
        """
        if not request.input:
            raise InvalidRequestError("responses request input must not be empty")

        if timeouts is None:
            settings = get_settings()
            timeouts = StreamTimeouts(
                ttft=settings.stream_ttft_timeout,
                idle=settings.stream_idle_timeout,
                total=settings.stream_total_timeout,
            )
        headers = _option_headers(options)
        headers["Accept"] = STREAM_ACCEPT
        timeout = options.timeout if options else None
        response = await self._client.open_stream("/responses", request.to_wire(), headers, timeout)
        request_id = response.headers.get(REQUEST_ID_HEADER)
        logger.debug(f"Opened response stream: request_id={request_id}")
        return ResponseStream(_ResponseBytes(response), request_id=request_id, timeouts=timeouts)

    async def stream_text_deltas(
        self,
        request: ResponsesRequest,
        options: ResponsesRequestOptions | None = None,
        timeouts: StreamTimeouts | None = None,
    ) -> AsyncIterator[str]:
        stream = await self.stream(request, options, timeouts)
        async with stream:
            async for delta in stream.text_deltas():
                yield delta


class SQLClient:
    """Client for /sql/validate."""

    def __init__(self, client: ModelRelayClient):
        self._client = client

    async def validate(self, request: SQLValidateRequest) -> SQLValidateResponse:
        """Validate SQL against a stored profile or an inline policy.

        Raises:
            ConfigurationError: If the SQL is blank
            DecodingError: If the response body is not a valid verdict
        """
        if not request.sql.strip():
            raise ConfigurationError("sql is required")
        payload, _ = await self._client.post_json("/sql/validate", request.model_dump(mode="json", exclude_none=True))
        try:
            return SQLValidateResponse.model_validate(payload)
        except ValidationError as e:
            raise DecodingError(f"failed to decode sql.validate response: {e}") from e

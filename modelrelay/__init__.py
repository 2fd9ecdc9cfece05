"""ModelRelay - Python SDK for the ModelRelay LLM-routing API.

ModelRelay provides:
- Buffered and NDJSON-streamed /responses calls with stream timeouts
- A SQL tool loop that lets a model inspect a schema and run guarded, read-only SQL
- Automatic retry with exponential backoff for transient API failures
- Optional OpenTelemetry tracing of model calls and tool dispatches

Quick Start:
    >>> import asyncio
    >>> from modelrelay import ModelRelayClient, SQLToolLoopOptions
    >>> from modelrelay.sql.sqlite import SQLiteHandlers, connect_read_only
    >>>
    >>> async def main():
    ...     handlers = SQLiteHandlers(connect_read_only("shop.db")).handlers()
    ...     options = SQLToolLoopOptions.quickstart(
    ...         model="claude-sonnet-4-5",
    ...         prompt="Top 5 customers by revenue",
    ...         profile_id="default",
    ...     )
    ...     async with ModelRelayClient(api_key="mr_sk_...") as client:
    ...         result = await client.sql_tool_loop(options, handlers)
    ...         print(result.summary)
    ...         print(result.sql)
    >>>
    >>> asyncio.run(main())

Main Components:
    - ModelRelayClient: HTTP client exposing responses, sql, and the SQL tool loop
    - ResponseStream: NDJSON stream decoder with ttft/idle/total timeouts
    - SQLToolLoop: Buffered and streaming SQL tool loop drivers
    - SQLToolLoopOptions / SQLToolLoopHandlers: Loop configuration and database access
    - ModelRelaySettings: Global settings manager

Exceptions:
    - ModelRelayError: Base exception
    - ConfigurationError: Invalid client or loop configuration
    - InvalidRequestError: Invalid request parameters
    - TransportError: Stream decoding failures and stream timeouts
    - APIConnectionError: Connection/network error
    - APIError / RateLimitError: Non-2xx responses
    - DecodingError: Undecodable response body
"""

from modelrelay._version import get_version
from modelrelay.client import ModelRelayClient, ResponsesClient, SQLClient
from modelrelay.config import ModelRelaySettings, get_settings, reload_settings, settings
from modelrelay.errors import (
    APIConnectionError,
    APIError,
    ConfigurationError,
    DecodingError,
    InvalidRequestError,
    ModelRelayError,
    RateLimitError,
    TransportError,
)
from modelrelay.events import ResponseEvent, ResponseEventType
from modelrelay.guardrails import GuardrailRejectedError, SQLLoopConfig, SQLToolLoopOptions
from modelrelay.logging_config import setup_logging
from modelrelay.models import (
    ColumnInfo,
    Conversation,
    ExecuteResult,
    InputItem,
    Response,
    ResponsesRequest,
    ResponsesRequestOptions,
    Role,
    RowView,
    SQLValidateRequest,
    SQLValidateResponse,
    TableDescription,
    TableInfo,
    Tool,
    ToolCall,
    Usage,
)
from modelrelay.sql import (
    DescribeTableArgs,
    ExecuteArgs,
    SampleRowsArgs,
    SQLToolLoop,
    SQLToolLoopHandlers,
    SQLToolLoopResult,
    SQLToolLoopStream,
    SQLToolLoopStreamEvent,
    SQLToolLoopUsage,
    ToolName,
)
from modelrelay.streaming import ResponseStream, StreamTimeouts, consume_ndjson_buffer, parse_ndjson_event

# Initialize logging on package import
_setup_logging_called = False


def _initialize_logging() -> None:
    """Initialize logging configuration from settings."""
    global _setup_logging_called
    if not _setup_logging_called:
        setup_logging(
            log_level=settings.log_level,
            log_file_level=settings.log_file_level,
            log_dir=settings.log_dir,
            log_file_name=settings.log_file_name,
            log_json_format=settings.log_json_format,
            log_max_bytes=settings.log_max_bytes,
            log_backup_count=settings.log_backup_count,
            log_to_file=settings.log_to_file,
        )
        _setup_logging_called = True


# Initialize logging when package is imported
_initialize_logging()

__all__ = [
    # Client
    "ModelRelayClient",
    "ResponsesClient",
    "SQLClient",
    # Streaming
    "ResponseStream",
    "ResponseEvent",
    "ResponseEventType",
    "StreamTimeouts",
    "consume_ndjson_buffer",
    "parse_ndjson_event",
    # SQL tool loop
    "SQLToolLoop",
    "SQLToolLoopStream",
    "SQLToolLoopOptions",
    "SQLToolLoopHandlers",
    "SQLToolLoopResult",
    "SQLToolLoopStreamEvent",
    "SQLToolLoopUsage",
    "SQLLoopConfig",
    "DescribeTableArgs",
    "SampleRowsArgs",
    "ExecuteArgs",
    "ToolName",
    "GuardrailRejectedError",
    # Models
    "ColumnInfo",
    "Conversation",
    "ExecuteResult",
    "InputItem",
    "Response",
    "ResponsesRequest",
    "ResponsesRequestOptions",
    "Role",
    "RowView",
    "SQLValidateRequest",
    "SQLValidateResponse",
    "TableDescription",
    "TableInfo",
    "Tool",
    "ToolCall",
    "Usage",
    # Exceptions
    "ModelRelayError",
    "ConfigurationError",
    "InvalidRequestError",
    "TransportError",
    "APIConnectionError",
    "APIError",
    "RateLimitError",
    "DecodingError",
    # Configuration
    "ModelRelaySettings",
    "settings",
    "get_settings",
    "reload_settings",
]

__version__ = get_version()

"""Decoded stream events for the /responses NDJSON stream.

Each NDJSON record decodes into one immutable ResponseEvent. Use the ``type``
field to discriminate; payload fields are populated depending on the record.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modelrelay.models.response import Usage
from modelrelay.models.tool import ToolCall, ToolCallDelta, ToolResult


class ResponseEventType(str, Enum):
    MESSAGE_START = "message_start"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"
    TOOL_USE_START = "tool_use_start"
    TOOL_USE_DELTA = "tool_use_delta"
    TOOL_USE_STOP = "tool_use_stop"
    PING = "ping"
    CUSTOM = "custom"

    @property
    def counts_for_ttft(self) -> bool:
        return self in _TTFT_EVENT_TYPES


_TTFT_EVENT_TYPES = frozenset(
    {
        ResponseEventType.MESSAGE_DELTA,
        ResponseEventType.MESSAGE_STOP,
        ResponseEventType.TOOL_USE_START,
        ResponseEventType.TOOL_USE_DELTA,
        ResponseEventType.TOOL_USE_STOP,
    }
)

# NDJSON record type -> event type; anything not listed decodes as CUSTOM
RECORD_TYPES: dict[str, ResponseEventType] = {
    "start": ResponseEventType.MESSAGE_START,
    "update": ResponseEventType.MESSAGE_DELTA,
    "completion": ResponseEventType.MESSAGE_STOP,
    "tool_use_start": ResponseEventType.TOOL_USE_START,
    "tool_use_delta": ResponseEventType.TOOL_USE_DELTA,
    "tool_use_stop": ResponseEventType.TOOL_USE_STOP,
    "ping": ResponseEventType.PING,
}


class ResponseEvent(BaseModel):
    """One decoded stream record."""

    model_config = ConfigDict(frozen=True)

    type: ResponseEventType = Field(description="Event type discriminator")
    event: str = Field(description="Record type as it appeared on the wire (lowercased)")
    data: dict[str, Any] = Field(default_factory=dict, description="Decoded record")

    # message_delta / message_stop
    text_delta: str | None = Field(default=None, description="Delta text, or final text on message_stop")

    # tool_use_start / tool_use_delta
    tool_call_delta: ToolCallDelta | None = Field(default=None, description="Partial tool call")

    # tool_use_stop / message_stop
    tool_calls: list[ToolCall] | None = Field(default=None, description="Complete tool calls")
    tool_result: ToolResult | None = Field(default=None, description="Server-side tool result")

    # any record
    response_id: str | None = Field(default=None, description="Response ID")
    model: str | None = Field(default=None, description="Model ID")
    stop_reason: str | None = Field(default=None, description="Why the model stopped")
    usage: Usage | None = Field(default=None, description="Token usage")
    request_id: str | None = Field(default=None, description="Transport request ID")
    raw: str = Field(default="", description="Original NDJSON line")

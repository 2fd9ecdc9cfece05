"""NDJSON stream decoding for /responses.

ResponseStream turns an async source of raw byte chunks into ResponseEvent
objects, one per NDJSON record. Three optional timeout clocks are checked
after every decoded event:

- total: elapsed since the stream was opened
- idle: elapsed since bytes were last received
- ttft: elapsed since open, until the first delta, stop, or tool event

Timeouts are cooperative. A source that never yields again blocks until the
transport itself times out or the consumer cancels.
"""

import json
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from modelrelay.errors import TransportError
from modelrelay.events import RECORD_TYPES, ResponseEvent, ResponseEventType
from modelrelay.logging_config import get_logger
from modelrelay.models.conversation import ContentPart, Role
from modelrelay.models.response import OutputItem, Response, Usage
from modelrelay.models.tool import FunctionCall, ToolCall, ToolCallDelta, ToolResult, ToolType

logger = get_logger(__name__)

_LINE_TERMINATORS = (0x0A, 0x0D)


@dataclass(frozen=True)
class StreamTimeouts:
    """Stream timeout clocks in seconds; None disables a clock."""

    ttft: float | None = None
    idle: float | None = None
    total: float | None = None


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _tool_type(value: Any) -> ToolType | None:
    try:
        return ToolType(value)
    except ValueError:
        return None


def _function_call(value: Any) -> FunctionCall | None:
    if not isinstance(value, dict):
        return None
    return FunctionCall(name=_string(value.get("name")) or "", arguments=_string(value.get("arguments")) or "")


def _extract_tool_call_delta(record: dict[str, Any], event_type: ResponseEventType) -> ToolCallDelta | None:
    if event_type not in (ResponseEventType.TOOL_USE_START, ResponseEventType.TOOL_USE_DELTA):
        return None

    nested = record.get("tool_call_delta")
    if isinstance(nested, dict):
        index = nested.get("index")
        return ToolCallDelta(
            index=int(index) if isinstance(index, (int, float)) else 0,
            id=_string(nested.get("id")),
            type=_tool_type(nested.get("type")),
            function=_function_call(nested.get("function")),
        )

    # Flat layout: name may arrive as "name" or "function"
    name = _string(record.get("name")) or _string(record.get("function"))
    if name is None:
        return None
    index = record.get("index")
    return ToolCallDelta(
        index=int(index) if isinstance(index, (int, float)) else 0,
        id=_string(record.get("id")),
        type=_tool_type(record.get("tool_type")),
        function=FunctionCall(name=name, arguments=_string(record.get("arguments")) or ""),
    )


def _extract_tool_calls(record: dict[str, Any], event_type: ResponseEventType) -> list[ToolCall] | None:
    if event_type not in (ResponseEventType.TOOL_USE_STOP, ResponseEventType.MESSAGE_STOP):
        return None
    items = record.get("tool_calls")
    if not isinstance(items, list):
        return None

    calls = [
        ToolCall(
            id=_string(item.get("id")) or "",
            type=_tool_type(item.get("type")) or ToolType.FUNCTION,
            function=_function_call(item.get("function")),
        )
        for item in items
        if isinstance(item, dict)
    ]
    return calls or None


def _extract_tool_result(record: dict[str, Any], event_type: ResponseEventType) -> ToolResult | None:
    if event_type != ResponseEventType.TOOL_USE_STOP:
        return None
    tool_call_id = _string(record.get("tool_call_id"))
    if tool_call_id is None or "output" not in record:
        return None
    return ToolResult(tool_call_id=tool_call_id, output=record["output"])


def _extract_usage(value: Any) -> Usage | None:
    if not isinstance(value, dict):
        return None
    try:
        return Usage.model_validate(value)
    except ValidationError:
        logger.debug(f"Ignoring malformed usage on stream record: {value!r}")
        return None


def parse_ndjson_event(line: str, request_id: str | None = None) -> ResponseEvent | None:
    """Decode one trimmed NDJSON line.

    Args:
        line: A single non-empty NDJSON line
        request_id: Transport request ID to stamp on the event

    Returns:
        The decoded event, or None for keepalive records

    Raises:
        TransportError: If the line is not a JSON object or has no type
    """
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise TransportError("failed to parse NDJSON line") from e
    if not isinstance(record, dict):
        raise TransportError("NDJSON record is not an object")

    record_type = (_string(record.get("type")) or "").strip().lower()
    if record_type == "keepalive":
        return None
    if not record_type:
        raise TransportError("NDJSON record missing type")

    event_type = RECORD_TYPES.get(record_type, ResponseEventType.CUSTOM)

    text_delta = None
    if record_type == "update":
        text_delta = _string(record.get("delta"))
    elif record_type == "completion":
        text_delta = _string(record.get("content"))

    return ResponseEvent(
        type=event_type,
        event=record_type,
        data=record,
        text_delta=text_delta,
        tool_call_delta=_extract_tool_call_delta(record, event_type),
        tool_calls=_extract_tool_calls(record, event_type),
        tool_result=_extract_tool_result(record, event_type),
        response_id=_string(record.get("request_id")),
        model=_string(record.get("model")),
        stop_reason=_string(record.get("stop_reason")),
        usage=_extract_usage(record.get("usage")),
        request_id=request_id,
        raw=line,
    )


def consume_ndjson_buffer(buffer: str, flush: bool = False) -> tuple[list[str], str]:
    """Split a text buffer into complete NDJSON lines.

    Returns the non-empty trimmed lines and the unterminated remainder. With
    ``flush`` the remainder is treated as a final line and "" is returned.
    """
    lines = buffer.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    complete = lines if flush else lines[:-1]
    records = [line.strip() for line in complete if line.strip()]
    remainder = "" if flush else lines[-1]
    return records, remainder


class ResponseStream:
    """Single-pass async iterator of ResponseEvent over a raw byte source.

    Example:
        >>> async with await client.responses.stream(request) as stream:
        ...     async for delta in stream.text_deltas():
        ...         print(delta, end="")
    """

    def __init__(
        self,
        source: AsyncIterable[bytes],
        request_id: str | None = None,
        timeouts: StreamTimeouts | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._source = source
        self._chunks: AsyncIterator[bytes] = source.__aiter__()
        self.request_id = request_id
        self.timeouts = timeouts or StreamTimeouts()
        self._clock = clock
        self._started_at = clock()
        self._last_activity = self._started_at
        self._saw_first_token = False
        self._buffer = bytearray()
        self._finished = False
        self._closed = False

    def __aiter__(self) -> "ResponseStream":
        return self

    async def __anext__(self) -> ResponseEvent:
        if self._finished:
            raise StopAsyncIteration
        try:
            event = await self._next_event()
        except BaseException:
            self._finished = True
            await self.aclose()
            raise
        if event is None:
            self._finished = True
            await self.aclose()
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "ResponseStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying byte source. Safe to call more than once."""
        self._finished = True
        if self._closed:
            return
        self._closed = True
        close = getattr(self._source, "aclose", None) or getattr(self._chunks, "aclose", None)
        if close is not None:
            await close()

    async def _next_event(self) -> ResponseEvent | None:
        while True:
            line = self._pop_line()
            if line is not None:
                line = line.strip()
                if not line:
                    continue
                event = parse_ndjson_event(line, self.request_id)
                if event is None:
                    continue
                if not self._saw_first_token and event.type.counts_for_ttft:
                    self._saw_first_token = True
                self._check_timeouts()
                return event

            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                return self._flush()
            if chunk:
                self._last_activity = self._clock()
                self._buffer.extend(chunk)

    def _flush(self) -> ResponseEvent | None:
        if not self._buffer:
            return None
        line = self._buffer.decode("utf-8", errors="replace").strip()
        self._buffer.clear()
        if not line:
            return None
        return parse_ndjson_event(line, self.request_id)

    def _pop_line(self) -> str | None:
        for index, byte in enumerate(self._buffer):
            if byte not in _LINE_TERMINATORS:
                continue
            line = bytes(self._buffer[:index])
            consumed = index + 1
            if byte == 0x0D and consumed < len(self._buffer) and self._buffer[consumed] == 0x0A:
                consumed += 1
            del self._buffer[:consumed]
            return line.decode("utf-8", errors="replace")
        return None

    def _check_timeouts(self) -> None:
        now = self._clock()
        timeouts = self.timeouts
        if timeouts.total is not None and now - self._started_at > timeouts.total:
            logger.error(f"Stream exceeded total timeout of {timeouts.total}s: request_id={self.request_id}")
            raise TransportError("stream total timeout")
        if timeouts.idle is not None and now - self._last_activity > timeouts.idle:
            logger.error(f"Stream exceeded idle timeout of {timeouts.idle}s: request_id={self.request_id}")
            raise TransportError("stream idle timeout")
        if timeouts.ttft is not None and not self._saw_first_token and now - self._started_at > timeouts.ttft:
            logger.error(f"Stream exceeded ttft timeout of {timeouts.ttft}s: request_id={self.request_id}")
            raise TransportError("stream ttft timeout")

    async def text_deltas(self) -> AsyncIterator[str]:
        """Yield only message_delta text."""
        async for event in self:
            if event.type == ResponseEventType.MESSAGE_DELTA and event.text_delta is not None:
                yield event.text_delta

    async def collect(self) -> Response:
        """Drain the stream into a buffered Response.

        Delta text is concatenated, then replaced by the stop record's final
        text when it carries one.

        Raises:
            TransportError: If the stream ended without a response id, model, or usage
        """
        response_id: str | None = None
        model: str | None = None
        stop_reason: str | None = None
        usage: Usage | None = None
        provider: str | None = None
        text = ""

        async for event in self:
            response_id = event.response_id or response_id
            model = event.model or model
            if event.type == ResponseEventType.MESSAGE_DELTA and event.text_delta is not None:
                text += event.text_delta
            if event.type == ResponseEventType.MESSAGE_STOP:
                stop_reason = event.stop_reason
                usage = event.usage or usage
                if event.text_delta is not None:
                    text = event.text_delta
                provider = _string(event.data.get("provider")) or provider

        if response_id is None or model is None or usage is None:
            raise TransportError("stream ended without required response fields")

        return Response(
            id=response_id,
            output=[OutputItem(type="message", role=Role.ASSISTANT, content=[ContentPart(text=text)])],
            stop_reason=stop_reason,
            model=model,
            usage=usage,
            request_id=self.request_id,
            provider=provider,
        )

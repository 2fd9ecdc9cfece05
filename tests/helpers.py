"""Fakes and builders shared by the tool loop and streaming tests."""

import json
from typing import Any

from modelrelay.models.conversation import ContentPart, Role
from modelrelay.models.response import OutputItem, Response, Usage
from modelrelay.models.sql import (
    ColumnInfo,
    ExecuteResult,
    SQLValidateRequest,
    SQLValidateResponse,
    TableDescription,
    TableInfo,
)
from modelrelay.models.tool import FunctionCall, ToolCall
from modelrelay.sql.handlers import DescribeTableArgs, ExecuteArgs, SampleRowsArgs, SQLToolLoopHandlers
from modelrelay.streaming import ResponseStream


def tool_call(call_id: str, name: str, arguments: dict[str, Any] | str | None = None) -> ToolCall:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments or {})
    return ToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))


def model_turn(
    text: str = "", calls: list[ToolCall] | None = None, input_tokens: int = 10, output_tokens: int = 5
) -> Response:
    return Response(
        id="resp_1",
        model="test-model",
        output=[
            OutputItem(type="message", role=Role.ASSISTANT, content=[ContentPart(text=text)], tool_calls=calls or None)
        ],
        usage=Usage(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def ndjson(*records: dict[str, Any]) -> bytes:
    return b"".join(json.dumps(record).encode() + b"\n" for record in records)


def stream_turn(
    text_deltas: list[str] | None = None,
    calls: list[ToolCall] | None = None,
    final_text: str | None = None,
    usage: dict[str, int] | None = None,
) -> bytes:
    """NDJSON for one streamed turn; pass usage=None to leave usage out entirely."""
    records: list[dict[str, Any]] = [{"type": "start", "request_id": "resp_1", "model": "test-model"}]
    records += [{"type": "update", "delta": delta} for delta in text_deltas or []]
    if calls:
        records.append(
            {"type": "tool_use_stop", "tool_calls": [call.model_dump(mode="json", exclude_none=True) for call in calls]}
        )
    completion: dict[str, Any] = {"type": "completion", "stop_reason": "end_turn" if not calls else "tool_use"}
    if final_text is not None:
        completion["content"] = final_text
    if usage is not None:
        completion["usage"] = usage
    records.append(completion)
    return ndjson(*records)


class ByteSource:
    """Async byte source that records whether it was closed."""

    def __init__(self, chunks: list[bytes], clock=None, times: list[float] | None = None):
        self.chunks = list(chunks)
        self.clock = clock
        self.times = list(times or [])
        self.closed = False
        self.yielded = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for index, chunk in enumerate(self.chunks):
            if self.clock is not None and index < len(self.times):
                self.clock.now = self.times[index]
            self.yielded += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeModel:
    """Scripted ModelInvoker: buffered turns are Responses, streamed turns are NDJSON bytes."""

    def __init__(self, turns: list[Response] | None = None, stream_turns: list[bytes] | None = None):
        self.turns = list(turns or [])
        self.stream_turns = list(stream_turns or [])
        self.requests = []
        self.sources: list[ByteSource] = []

    async def create(self, request, options=None) -> Response:
        self.requests.append(request)
        return self.turns.pop(0)

    async def stream(self, request, options=None, timeouts=None) -> ResponseStream:
        self.requests.append(request)
        source = ByteSource([self.stream_turns.pop(0)])
        self.sources.append(source)
        return ResponseStream(source, timeouts=timeouts)


def verdict(
    sql: str, tables: list[str] | None = None, read_only: bool = True, valid: bool = True
) -> SQLValidateResponse:
    return SQLValidateResponse(valid=valid, normalized_sql=sql, tables=tables, read_only=read_only)


class FakeValidator:
    """Scripted SQLValidator keyed by raw SQL."""

    def __init__(self, verdicts: dict[str, SQLValidateResponse] | None = None, error: Exception | None = None):
        self.verdicts = verdicts or {}
        self.error = error
        self.requests: list[SQLValidateRequest] = []

    async def validate(self, request: SQLValidateRequest) -> SQLValidateResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.verdicts[request.sql]


class RecordingDatabase:
    """Handler set over an in-memory users table that records every call."""

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self.rows = rows if rows is not None else [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}]
        self.calls: list[tuple[str, Any]] = []

    def list_tables(self) -> list[TableInfo]:
        self.calls.append(("list_tables", None))
        return [TableInfo(name="users")]

    def describe_table(self, args: DescribeTableArgs) -> TableDescription:
        self.calls.append(("describe_table", args))
        return TableDescription(
            table=args.table,
            columns=[ColumnInfo(name="id", type="integer"), ColumnInfo(name="name", type="text", nullable=True)],
        )

    def sample_rows(self, args: SampleRowsArgs) -> ExecuteResult:
        self.calls.append(("sample_rows", args))
        return ExecuteResult(columns=["id", "name"], rows=self.rows[: args.limit])

    def execute_sql(self, args: ExecuteArgs) -> ExecuteResult:
        self.calls.append(("execute_sql", args))
        return ExecuteResult(columns=["id", "name"], rows=self.rows[: args.limit])

    def calls_to(self, name: str) -> list[Any]:
        return [args for called, args in self.calls if called == name]

    def handlers(self, sample_rows: bool = False) -> SQLToolLoopHandlers:
        return SQLToolLoopHandlers(
            list_tables=self.list_tables,
            describe_table=self.describe_table,
            execute_sql=self.execute_sql,
            sample_rows=self.sample_rows if sample_rows else None,
        )

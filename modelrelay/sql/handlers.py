"""Caller-supplied handlers and collaborator protocols for the SQL tool loop.

Handlers may be plain functions or coroutine functions. They may return the
pydantic models below or plain dicts/lists of the same shape.
"""

import inspect
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from modelrelay.events import ResponseEvent
from modelrelay.models.request import ResponsesRequest, ResponsesRequestOptions
from modelrelay.models.response import Response
from modelrelay.models.sql import ExecuteResult, SQLValidateRequest, SQLValidateResponse, TableDescription, TableInfo
from modelrelay.streaming import StreamTimeouts


class DescribeTableArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str


class SampleRowsArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str
    limit: int


class ExecuteArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = Field(description="Normalized SQL returned by validation")
    limit: int = Field(description="Row cap after clamping")


ListTablesHandler = Callable[[], list[TableInfo] | Awaitable[list[TableInfo]]]
DescribeTableHandler = Callable[[DescribeTableArgs], TableDescription | Awaitable[TableDescription]]
SampleRowsHandler = Callable[[SampleRowsArgs], ExecuteResult | Awaitable[ExecuteResult]]
ExecuteSQLHandler = Callable[[ExecuteArgs], ExecuteResult | Awaitable[ExecuteResult]]


class SQLToolLoopHandlers(BaseModel):
    """The caller's database access: schema listing, description, sampling, and execution."""

    model_config = {"arbitrary_types_allowed": True}

    list_tables: ListTablesHandler = Field(description="() -> list[TableInfo]")
    describe_table: DescribeTableHandler = Field(description="(DescribeTableArgs) -> TableDescription")
    execute_sql: ExecuteSQLHandler = Field(description="(ExecuteArgs) -> ExecuteResult")
    sample_rows: SampleRowsHandler | None = Field(default=None, description="(SampleRowsArgs) -> ExecuteResult")


async def call_handler(handler: Callable[..., Any], *args: Any) -> Any:
    """Invoke a sync or async handler."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ModelInvoker(Protocol):
    """Anything that can run a model turn, buffered or streamed."""

    async def create(self, request: ResponsesRequest, options: ResponsesRequestOptions | None = None) -> Response: ...

    async def stream(
        self,
        request: ResponsesRequest,
        options: ResponsesRequestOptions | None = None,
        timeouts: StreamTimeouts | None = None,
    ) -> AsyncIterable[ResponseEvent]: ...


class SQLValidator(Protocol):
    """Anything that can validate SQL against a profile or inline policy."""

    async def validate(self, request: SQLValidateRequest) -> SQLValidateResponse: ...

"""Tool dispatch for the SQL tool loop.

Every tool call resolves to a ToolOutcome: the tool result content fed back to
the model, plus the stream events produced along the way. Handler failures,
malformed arguments, guardrail rejections, and unknown tools all become
``Error: ...`` content. Nothing raised by a handler or the validator escapes
the dispatcher.
"""

import json
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, TypeAdapter

from modelrelay.guardrails import (
    GuardrailRejectedError,
    SQLLoopConfig,
    cap_limit,
    check_attempts,
    check_schema_inspection,
    check_validation,
)
from modelrelay.logging_config import get_logger
from modelrelay.models.sql import ExecuteResult, SQLValidateRequest, TableDescription, TableInfo
from modelrelay.models.tool import ToolCall
from modelrelay.sql.events import (
    DescribeTableEvent,
    ExecuteSQLEvent,
    ListTablesEvent,
    SampleRowsEvent,
    ValidationEvent,
)
from modelrelay.sql.handlers import (
    DescribeTableArgs,
    ExecuteArgs,
    SampleRowsArgs,
    SQLToolLoopHandlers,
    SQLValidator,
    call_handler,
)
from modelrelay.sql.state import SQLLoopState
from modelrelay.sql.tools import ToolName
from modelrelay.telemetry import set_span_attributes, trace_tool_dispatch

logger = get_logger(__name__)

_TABLE_LIST = TypeAdapter(list[TableInfo])


@dataclass(frozen=True)
class ToolExecutionResult:
    tool_call_id: str
    content: str

    @property
    def is_error(self) -> bool:
        return self.content.startswith("Error:")


@dataclass
class ToolOutcome:
    result: ToolExecutionResult
    events: list[BaseModel] = field(default_factory=list)


@dataclass
class DispatchContext:
    """Everything a dispatch arm may read or mutate for one run."""

    config: SQLLoopConfig
    state: SQLLoopState
    handlers: SQLToolLoopHandlers
    validator: SQLValidator


def _error(tool_call_id: str, message: str, events: list[BaseModel] | None = None) -> ToolOutcome:
    return ToolOutcome(ToolExecutionResult(tool_call_id, f"Error: {message}"), events or [])


def _ok(tool_call_id: str, content: str, events: list[BaseModel] | None = None) -> ToolOutcome:
    return ToolOutcome(ToolExecutionResult(tool_call_id, content), events or [])


def _rejected(tool_call_id: str, error: GuardrailRejectedError, events: list[BaseModel] | None = None) -> ToolOutcome:
    logger.warning(f"execute_sql rejected: {error.reason} (guardrail={error.guardrail_name}, call_id={tool_call_id})")
    return _error(tool_call_id, error.reason, events)


def _string_arg(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    return value if isinstance(value, str) else None


def _int_arg(args: dict[str, Any], key: str) -> int | None:
    value = args.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # json.loads yields inf for 1e400 and nan for NaN
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _as_model(model_cls: type[BaseModel], value: Any) -> Any:
    return value if isinstance(value, model_cls) else model_cls.model_validate(value)


def _dump(model: BaseModel) -> str:
    return model.model_dump_json(exclude_none=True, by_alias=True)


async def _list_tables(call_id: str, args: dict[str, Any], ctx: DispatchContext) -> ToolOutcome:
    ctx.state.list_tables_called = True
    try:
        tables = _TABLE_LIST.validate_python(await call_handler(ctx.handlers.list_tables))
    except Exception as e:
        logger.warning(f"list_tables handler failed: {e}")
        return _error(call_id, str(e))
    content = _TABLE_LIST.dump_json(tables, exclude_none=True, by_alias=True).decode()
    return _ok(call_id, content, [ListTablesEvent(tables=tables)])


async def _describe_table(call_id: str, args: dict[str, Any], ctx: DispatchContext) -> ToolOutcome:
    table = _string_arg(args, "table")
    if not table:
        return _error(call_id, "describe_table requires table")
    ctx.state.mark_described(table)
    try:
        description = _as_model(
            TableDescription, await call_handler(ctx.handlers.describe_table, DescribeTableArgs(table=table))
        )
    except Exception as e:
        logger.warning(f"describe_table handler failed for {table!r}: {e}")
        return _error(call_id, str(e))
    return _ok(call_id, _dump(description), [DescribeTableEvent(description=description)])


async def _sample_rows(call_id: str, args: dict[str, Any], ctx: DispatchContext) -> ToolOutcome:
    handler = ctx.handlers.sample_rows
    if not ctx.config.sample_rows_enabled or handler is None:
        return _error(call_id, "sample_rows is disabled")
    table = _string_arg(args, "table")
    if not table:
        return _error(call_id, "sample_rows requires table")
    limit = cap_limit(_int_arg(args, "limit"), ctx.config.sample_rows_limit, ctx.config.sample_rows_limit)
    try:
        result = _as_model(ExecuteResult, await call_handler(handler, SampleRowsArgs(table=table, limit=limit)))
    except Exception as e:
        logger.warning(f"sample_rows handler failed for {table!r}: {e}")
        return _error(call_id, str(e))
    return _ok(call_id, result.model_dump_json(), [SampleRowsEvent(table=table, limit=limit, result=result)])


async def _execute_sql(call_id: str, args: dict[str, Any], ctx: DispatchContext) -> ToolOutcome:
    config, state = ctx.config, ctx.state
    query = _string_arg(args, "query")
    if not query:
        return _error(call_id, "execute_sql requires query")
    try:
        check_attempts(config, state)
    except GuardrailRejectedError as e:
        return _rejected(call_id, e)

    limit = cap_limit(_int_arg(args, "limit"), config.result_limit, config.result_limit)
    request = SQLValidateRequest(sql=query, profile_id=config.profile_id, policy=config.policy)
    try:
        validation = await ctx.validator.validate(request)
    except Exception as e:
        logger.warning(f"sql.validate failed: {e}")
        return _error(call_id, f"sql.validate failed: {e}", [ValidationEvent(query=query, error=str(e))])

    events: list[BaseModel] = [ValidationEvent(query=query, response=validation)]
    try:
        check_validation(validation)
        check_schema_inspection(config, state, validation)
    except GuardrailRejectedError as e:
        return _rejected(call_id, e, events)

    state.attempts += 1
    state.last_sql = validation.normalized_sql
    logger.debug(f"Executing SQL (attempt {state.attempts}/{config.max_attempts}, limit={limit})")
    try:
        result = _as_model(
            ExecuteResult,
            await call_handler(ctx.handlers.execute_sql, ExecuteArgs(query=validation.normalized_sql, limit=limit)),
        )
    except Exception as e:
        logger.warning(f"execute_sql handler failed: {e}")
        return _error(call_id, str(e), events)

    state.record_execution(result.columns, result.rows)
    events.append(ExecuteSQLEvent(query=validation.normalized_sql, limit=limit, result=result))
    return _ok(call_id, result.model_dump_json(), events)


DispatchArm = Callable[[str, dict[str, Any], DispatchContext], Awaitable[ToolOutcome]]

DISPATCH_TABLE: dict[ToolName, DispatchArm] = {
    ToolName.LIST_TABLES: _list_tables,
    ToolName.DESCRIBE_TABLE: _describe_table,
    ToolName.SAMPLE_ROWS: _sample_rows,
    ToolName.EXECUTE_SQL: _execute_sql,
}


async def dispatch_tool_call(call: ToolCall, ctx: DispatchContext) -> ToolOutcome:
    """Resolve one tool call against the registry, mutating ctx.state in place."""
    name = call.name
    with trace_tool_dispatch(name, call.id) as span:
        start_time = time.time()
        try:
            args = json.loads(call.arguments)
        except json.JSONDecodeError:
            args = None
        if not isinstance(args, dict):
            logger.warning(f"Tool {name} - invalid arguments: {call.arguments!r}")
            outcome = _error(call.id, "invalid tool arguments")
        else:
            tool = ToolName.parse(name)
            if tool is None:
                logger.warning(f"Model requested unknown tool {name!r}")
                outcome = _error(call.id, f"unknown tool {name}")
            else:
                outcome = await DISPATCH_TABLE[tool](call.id, args, ctx)

        elapsed = time.time() - start_time
        logger.debug(f"Tool {name} dispatched in {elapsed:.3f}s (error={outcome.result.is_error})")
        set_span_attributes(
            span,
            **{
                "tool.success": not outcome.result.is_error,
                "tool.arg_count": len(args) if isinstance(args, dict) else 0,
            },
        )
        return outcome

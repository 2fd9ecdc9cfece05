"""SQL tool loop: tool registry, dispatch, and the buffered and streaming loop drivers."""

from modelrelay.sql.dispatch import (
    DISPATCH_TABLE,
    DispatchContext,
    ToolExecutionResult,
    ToolOutcome,
    dispatch_tool_call,
)
from modelrelay.sql.events import (
    DescribeTableEvent,
    ExecuteSQLEvent,
    ListTablesEvent,
    ResultEvent,
    SampleRowsEvent,
    SQLToolLoopResult,
    SQLToolLoopStreamEvent,
    SQLToolLoopUsage,
    SummaryDeltaEvent,
    ValidationEvent,
)
from modelrelay.sql.handlers import (
    DescribeTableArgs,
    ExecuteArgs,
    ModelInvoker,
    SampleRowsArgs,
    SQLToolLoopHandlers,
    SQLValidator,
)
from modelrelay.sql.loop import MAX_TURNS, SQLToolLoop, SQLToolLoopStream
from modelrelay.sql.state import SQLLoopState
from modelrelay.sql.tools import ToolName, build_system_prompt, build_tool_definitions

__all__ = [
    "DISPATCH_TABLE",
    "MAX_TURNS",
    "DescribeTableArgs",
    "DescribeTableEvent",
    "DispatchContext",
    "ExecuteArgs",
    "ExecuteSQLEvent",
    "ListTablesEvent",
    "ModelInvoker",
    "ResultEvent",
    "SQLLoopState",
    "SQLToolLoop",
    "SQLToolLoopHandlers",
    "SQLToolLoopResult",
    "SQLToolLoopStream",
    "SQLToolLoopStreamEvent",
    "SQLToolLoopUsage",
    "SQLValidator",
    "SampleRowsArgs",
    "SampleRowsEvent",
    "SummaryDeltaEvent",
    "ToolExecutionResult",
    "ToolName",
    "ToolOutcome",
    "ValidationEvent",
    "build_system_prompt",
    "build_tool_definitions",
    "dispatch_tool_call",
]

from modelrelay.models.conversation import ContentPart, Conversation, InputItem, Role
from modelrelay.models.request import ResponsesRequest, ResponsesRequestOptions
from modelrelay.models.response import OutputItem, Response, Usage
from modelrelay.models.sql import (
    ColumnInfo,
    ExecuteResult,
    RowView,
    SQLValidateOverrides,
    SQLValidateRequest,
    SQLValidateResponse,
    TableDescription,
    TableInfo,
)
from modelrelay.models.tool import FunctionCall, FunctionTool, Tool, ToolCall, ToolCallDelta, ToolResult, ToolType

__all__ = [
    "ColumnInfo",
    "ContentPart",
    "Conversation",
    "ExecuteResult",
    "FunctionCall",
    "FunctionTool",
    "InputItem",
    "OutputItem",
    "Response",
    "ResponsesRequest",
    "ResponsesRequestOptions",
    "Role",
    "RowView",
    "SQLValidateOverrides",
    "SQLValidateRequest",
    "SQLValidateResponse",
    "TableDescription",
    "TableInfo",
    "Tool",
    "ToolCall",
    "ToolCallDelta",
    "ToolResult",
    "ToolType",
    "Usage",
]

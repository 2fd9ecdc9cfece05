"""Tool definition and tool call models.

Field names match the wire format, so these models serialize directly into
request bodies and decode directly from responses and stream records.
"""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class ToolType(str, Enum):
    FUNCTION = "function"
    X_SEARCH = "x_search"
    CODE_EXECUTION = "code_execution"


class FunctionTool(BaseModel):
    name: Annotated[str, Field(description="Function name exposed to the model")]
    description: Annotated[str | None, Field(default=None, description="What the function does")]
    parameters: Annotated[dict[str, Any] | None, Field(default=None, description="JSON schema of the arguments")]


class Tool(BaseModel):
    """A tool definition sent with a request."""

    type: Annotated[ToolType, Field(default=ToolType.FUNCTION, description="Tool type")]
    function: Annotated[FunctionTool | None, Field(default=None, description="Function definition")]

    @classmethod
    def from_function(
        cls, name: str, description: str | None = None, parameters: dict[str, Any] | None = None
    ) -> "Tool":
        return cls(function=FunctionTool(name=name, description=description, parameters=parameters))


class FunctionCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(description="Name of the function to call")]
    arguments: Annotated[str, Field(default="", description="Raw JSON-encoded arguments")]


class ToolCall(BaseModel):
    """A complete tool call requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(description="Tool call ID, echoed back in the tool result")]
    type: Annotated[ToolType, Field(default=ToolType.FUNCTION, description="Tool type")]
    function: Annotated[FunctionCall | None, Field(default=None, description="Function call payload")]

    @property
    def name(self) -> str:
        return self.function.name if self.function else ""

    @property
    def arguments(self) -> str:
        return self.function.arguments if self.function else "{}"


class ToolCallDelta(BaseModel):
    """A partial tool call streamed while the model is still constructing it."""

    model_config = ConfigDict(frozen=True)

    index: int = 0
    id: str | None = None
    type: ToolType | None = None
    function: FunctionCall | None = None


class ToolResult(BaseModel):
    """A server-side tool result reported on a tool_use_stop record."""

    model_config = ConfigDict(frozen=True)

    tool_call_id: str
    output: Any

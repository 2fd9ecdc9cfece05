import uuid
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from modelrelay.models.tool import ToolCall


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ContentPart(BaseModel):
    type: Annotated[Literal["text"], Field(default="text", description="Content part type")]
    text: Annotated[str, Field(description="Text content")]


class InputItem(BaseModel):
    type: Annotated[Literal["message"], Field(default="message", description="Input item type")]
    role: Annotated[Role, Field(description="The role of the message")]
    content: Annotated[list[ContentPart], Field(default_factory=list, description="The content parts of the message")]
    tool_calls: Annotated[list[ToolCall] | None, Field(default=None, description="Tool calls made by the assistant")]
    tool_call_id: Annotated[str | None, Field(default=None, description="Tool call this message answers")]

    @classmethod
    def text(cls, role: Role, text: str, **kwargs: Any) -> "InputItem":
        return cls(role=role, content=[ContentPart(text=text)], **kwargs)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Conversation(BaseModel):
    """Append-only sequence of input items sent to the model each turn."""

    id: Annotated[
        str, Field(default_factory=lambda: str(uuid.uuid4()), description="The unique identifier for the conversation")
    ]
    items: Annotated[list[InputItem], Field(default_factory=list, description="The items in the conversation")]

    def __len__(self) -> int:
        return len(self.items)

    def add_message(
        self,
        role: Role,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        tool_call_id: str | None = None,
    ) -> None:
        self.items.append(InputItem.text(role, content, tool_calls=tool_calls, tool_call_id=tool_call_id))

    def add_tool_result(self, tool_call_id: str, content: str) -> None:
        self.add_message(Role.TOOL, content, tool_call_id=tool_call_id)

    def snapshot(self) -> list[InputItem]:
        return list(self.items)

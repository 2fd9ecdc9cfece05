"""Response models for the /responses endpoint.

A buffered model turn decodes into a Response. Output items are decoded one at
a time: an item that fails to decode is replaced with an ``other`` placeholder
and a warning is recorded on ``Response.decoding_warnings`` instead of failing
the whole response.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from modelrelay.logging_config import get_logger
from modelrelay.models.conversation import ContentPart, Role
from modelrelay.models.tool import ToolCall

logger = get_logger(__name__)


class Usage(BaseModel):
    """Token usage for one model turn."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @model_validator(mode="before")
    @classmethod
    def _default_total(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("total_tokens") is None:
            data = dict(data)
            data["total_tokens"] = int(data.get("input_tokens") or 0) + int(data.get("output_tokens") or 0)
        return data


class OutputItem(BaseModel):
    """One output item: an assistant/tool message, or ``other`` for anything else."""

    type: Annotated[str, Field(default="other", description="Output item type")]
    role: Annotated[Role | None, Field(default=None, description="Message role (message items only)")]
    content: Annotated[list[ContentPart], Field(default_factory=list, description="Message content parts")]
    tool_calls: Annotated[list[ToolCall] | None, Field(default=None, description="Tool calls requested by the model")]

    @classmethod
    def other(cls) -> "OutputItem":
        return cls(type="other")

    @property
    def is_message(self) -> bool:
        return self.type == "message"

    @classmethod
    def decode(cls, raw: Any) -> "OutputItem":
        """Decode one raw output item.

        Items whose type is not ``message`` decode to ``other``. Message items
        must carry a role; missing content decodes as an empty list.

        Raises:
            ValidationError: If a message item is malformed
        """
        if not isinstance(raw, dict) or raw.get("type") != "message":
            return cls.other()
        if raw.get("role") is None:
            raise ValueError("message output item is missing role")
        return cls.model_validate(
            {
                "type": "message",
                "role": raw["role"],
                "content": raw.get("content") or [],
                "tool_calls": raw.get("tool_calls"),
            }
        )


class Response(BaseModel):
    """A buffered response from the /responses endpoint."""

    id: Annotated[str, Field(description="Response ID")]
    output: Annotated[list[OutputItem], Field(default_factory=list, description="Output items")]
    stop_reason: Annotated[str | None, Field(default=None, description="Why the model stopped")]
    model: Annotated[str, Field(description="Model that produced the response")]
    usage: Annotated[Usage, Field(description="Token usage")]
    request_id: Annotated[str | None, Field(default=None, description="Transport request ID")]
    provider: Annotated[str | None, Field(default=None, description="Upstream provider")]
    decoding_warnings: Annotated[
        list[str] | None, Field(default=None, description="Output items that could not be decoded")
    ]

    @model_validator(mode="before")
    @classmethod
    def _decode_output_items(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("output"), list):
            return data
        if all(isinstance(item, OutputItem) for item in data["output"]):
            return data

        items: list[OutputItem] = []
        warnings: list[str] = list(data.get("decoding_warnings") or [])
        for index, raw in enumerate(data["output"]):
            if isinstance(raw, OutputItem):
                items.append(raw)
                continue
            try:
                items.append(OutputItem.decode(raw))
            except (ValidationError, ValueError) as e:
                warning = f"output[{index}]: {e}"
                logger.warning(f"Failed to decode response output item, substituting placeholder: {warning}")
                warnings.append(warning)
                items.append(OutputItem.other())

        data = dict(data)
        data["output"] = items
        data["decoding_warnings"] = warnings or None
        return data

    def text_chunks(self) -> list[str]:
        chunks: list[str] = []
        for item in self.output:
            if not item.is_message or item.role != Role.ASSISTANT:
                continue
            chunks.extend(part.text for part in item.content)
        return chunks

    def text(self) -> str:
        """Concatenated assistant text across output items."""
        return "".join(self.text_chunks())

    def tool_calls(self) -> list[ToolCall]:
        """All tool calls carried by message output items, in order."""
        calls: list[ToolCall] = []
        for item in self.output:
            if item.is_message and item.tool_calls:
                calls.extend(item.tool_calls)
        return calls

"""Request models for the /responses endpoint."""

from typing import Annotated, Any

from pydantic import BaseModel, Field

from modelrelay.models.conversation import InputItem
from modelrelay.models.tool import Tool


class ResponsesRequest(BaseModel):
    """Body of a /responses call."""

    model: Annotated[str | None, Field(default=None, description="Model ID; the customer tier picks it when omitted")]
    input: Annotated[list[InputItem], Field(default_factory=list, description="Conversation items sent this turn")]
    tools: Annotated[list[Tool] | None, Field(default=None, description="Tools the model may call")]
    tool_choice: Annotated[dict[str, Any] | None, Field(default=None, description="Tool choice policy")]
    max_output_tokens: Annotated[int | None, Field(default=None, description="Output token cap")]
    temperature: Annotated[float | None, Field(default=None, description="Sampling temperature")]
    stop: Annotated[list[str] | None, Field(default=None, description="Stop sequences")]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ResponsesRequestOptions(BaseModel):
    """Per-call transport options."""

    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    timeout: float | None = Field(default=None, description="Request timeout in seconds")
    customer_id: str | None = Field(default=None, description="Sent as X-ModelRelay-Customer-Id")
    request_id: str | None = Field(default=None, description="Sent as X-ModelRelay-Request-Id")

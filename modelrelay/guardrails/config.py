"""Options and derived configuration for the SQL tool loop."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modelrelay.config import get_settings
from modelrelay.errors import ConfigurationError
from modelrelay.models.request import ResponsesRequestOptions

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_SAMPLE_ROWS_LIMIT = 3
MAX_SAMPLE_ROWS_LIMIT = 10
DEFAULT_RESULT_LIMIT = 100
MAX_RESULT_LIMIT = 1000


def cap_limit(value: int | None, fallback: int, maximum: int) -> int:
    """Clamp a row limit into [1, maximum]; missing or non-positive values use fallback."""
    if value is None or value <= 0:
        return fallback
    return min(value, maximum)


class SQLToolLoopOptions(BaseModel):
    """Caller-facing options for one SQL tool loop run.

    Attributes:
        model: Model ID used for every turn
        prompt: The user's question
        system: Extra instructions appended to the guardrail system prompt
        profile_id: Stored SQL policy profile used for validation
        policy: Inline SQL policy used for validation
        max_attempts: Maximum executed queries (defaults to settings.sql_max_attempts)
        require_schema_inspection: Require list_tables/describe_table before execute_sql
        sample_rows: Expose sample_rows (defaults to whether a handler was supplied)
        sample_rows_limit: Row cap for sample_rows
        result_limit: Row cap for execute_sql
        request_options: Transport options applied to every model call
    """

    model: str = Field(description="Model ID used for every turn")
    prompt: str = Field(description="The user's question")
    system: str | None = Field(default=None, description="Extra system instructions")
    profile_id: str | None = Field(default=None, description="Stored SQL policy profile")
    policy: dict[str, Any] | None = Field(default=None, description="Inline SQL policy")
    max_attempts: int | None = Field(default=None, description="Maximum executed queries")
    require_schema_inspection: bool | None = Field(default=None, description="Require schema inspection first")
    sample_rows: bool | None = Field(default=None, description="Expose the sample_rows tool")
    sample_rows_limit: int | None = Field(default=None, description="Row cap for sample_rows")
    result_limit: int | None = Field(default=None, description="Row cap for execute_sql")
    request_options: ResponsesRequestOptions | None = Field(default=None, description="Per-call transport options")

    @classmethod
    def quickstart(
        cls,
        model: str,
        prompt: str,
        profile_id: str | None = None,
        policy: dict[str, Any] | None = None,
        system: str | None = None,
        request_options: ResponsesRequestOptions | None = None,
    ) -> "SQLToolLoopOptions":
        """Options with every guardrail left at its default."""
        return cls(
            model=model,
            prompt=prompt,
            profile_id=profile_id,
            policy=policy,
            system=system,
            request_options=request_options,
        )


class SQLLoopConfig(BaseModel):
    """Immutable guardrail configuration derived from SQLToolLoopOptions."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    result_limit: int = Field(default=DEFAULT_RESULT_LIMIT, ge=1, le=MAX_RESULT_LIMIT)
    sample_rows_limit: int = Field(default=DEFAULT_SAMPLE_ROWS_LIMIT, ge=1, le=MAX_SAMPLE_ROWS_LIMIT)
    require_schema_inspection: bool = True
    sample_rows_enabled: bool = False
    profile_id: str | None = None
    policy: dict[str, Any] | None = None


def validate_options(options: SQLToolLoopOptions, has_sample_rows_handler: bool) -> None:
    """Reject unusable options before any model call is made.

    Raises:
        ConfigurationError: If a required option is missing or inconsistent
    """
    if not options.model.strip():
        raise ConfigurationError("model is required")
    if not options.prompt.strip():
        raise ConfigurationError("prompt is required")
    if options.profile_id is None and options.policy is None:
        raise ConfigurationError("profile_id or policy is required")
    if options.sample_rows is True and not has_sample_rows_handler:
        raise ConfigurationError("sample_rows handler is required when sample_rows is enabled")


def normalize_config(options: SQLToolLoopOptions, has_sample_rows_handler: bool) -> SQLLoopConfig:
    """Derive the loop configuration, applying defaults and caps."""
    settings = get_settings()
    max_attempts = options.max_attempts if options.max_attempts is not None else settings.sql_max_attempts
    return SQLLoopConfig(
        max_attempts=max(max_attempts, 1),
        result_limit=cap_limit(options.result_limit, settings.sql_result_limit, MAX_RESULT_LIMIT),
        sample_rows_limit=cap_limit(options.sample_rows_limit, settings.sql_sample_rows_limit, MAX_SAMPLE_ROWS_LIMIT),
        require_schema_inspection=(
            options.require_schema_inspection if options.require_schema_inspection is not None else True
        ),
        sample_rows_enabled=options.sample_rows if options.sample_rows is not None else has_sample_rows_handler,
        profile_id=options.profile_id,
        policy=options.policy,
    )

"""SQL guardrails for the tool loop.

This package derives the loop's guardrail configuration from caller options
and enforces the execute_sql checks: an attempt budget, a read-only
validation verdict, and schema inspection before execution.

Rejections are never fatal to the loop. The dispatcher reports them back to
the model as tool output so it can revise and retry.
"""

from modelrelay.guardrails.checks import (
    check_attempts,
    check_schema_inspection,
    check_validation,
    normalize_table_name,
)
from modelrelay.guardrails.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RESULT_LIMIT,
    DEFAULT_SAMPLE_ROWS_LIMIT,
    MAX_RESULT_LIMIT,
    MAX_SAMPLE_ROWS_LIMIT,
    SQLLoopConfig,
    SQLToolLoopOptions,
    cap_limit,
    normalize_config,
    validate_options,
)
from modelrelay.guardrails.exceptions import GuardrailRejectedError

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RESULT_LIMIT",
    "DEFAULT_SAMPLE_ROWS_LIMIT",
    "MAX_RESULT_LIMIT",
    "MAX_SAMPLE_ROWS_LIMIT",
    "GuardrailRejectedError",
    "SQLLoopConfig",
    "SQLToolLoopOptions",
    "cap_limit",
    "check_attempts",
    "check_schema_inspection",
    "check_validation",
    "normalize_config",
    "normalize_table_name",
    "validate_options",
]

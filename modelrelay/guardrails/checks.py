"""Guardrail checks for the execute_sql tool.

Checks run in a fixed order: attempt budget, validation verdict, then schema
inspection. Each raises GuardrailRejectedError with a model-facing reason;
none of them mutates loop state.
"""

from typing import TYPE_CHECKING

from modelrelay.guardrails.config import SQLLoopConfig
from modelrelay.guardrails.exceptions import GuardrailRejectedError
from modelrelay.models.sql import SQLValidateResponse

if TYPE_CHECKING:
    from modelrelay.sql.state import SQLLoopState


def normalize_table_name(name: str) -> str:
    return name.strip().lower()


def check_attempts(config: SQLLoopConfig, state: "SQLLoopState") -> None:
    if state.attempts >= config.max_attempts:
        raise GuardrailRejectedError("max_attempts exceeded for execute_sql", guardrail_name="max_attempts")


def check_validation(validation: SQLValidateResponse) -> None:
    """Require a valid, read-only verdict carrying normalized SQL."""
    if not validation.valid:
        raise GuardrailRejectedError("sql.validate rejected query", guardrail_name="valid")
    if not validation.read_only:
        raise GuardrailRejectedError("sql.validate rejected query: read_only=false", guardrail_name="read_only")
    if not validation.normalized_sql.strip():
        raise GuardrailRejectedError(
            "sql.validate rejected query: missing normalized_sql", guardrail_name="normalized_sql"
        )


def check_schema_inspection(config: SQLLoopConfig, state: "SQLLoopState", validation: SQLValidateResponse) -> None:
    """Require list_tables, and describe_table for every referenced table."""
    if not config.require_schema_inspection:
        return
    if not state.list_tables_called:
        raise GuardrailRejectedError(
            "list_tables must be called before execute_sql", guardrail_name="schema_inspection"
        )
    missing = [table for table in validation.tables or [] if normalize_table_name(table) not in state.described_tables]
    if missing:
        raise GuardrailRejectedError(
            f"describe_table required for: {', '.join(missing)}", guardrail_name="schema_inspection"
        )

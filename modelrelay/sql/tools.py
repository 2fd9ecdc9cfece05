"""Tool registry for the SQL tool loop: tool names, definitions, and the guardrail prompt."""

from enum import Enum
from typing import Any

from jinja2 import Template

from modelrelay.guardrails.config import SQLLoopConfig
from modelrelay.models.tool import Tool


class ToolName(str, Enum):
    LIST_TABLES = "list_tables"
    DESCRIBE_TABLE = "describe_table"
    SAMPLE_ROWS = "sample_rows"
    EXECUTE_SQL = "execute_sql"

    @classmethod
    def parse(cls, name: str) -> "ToolName | None":
        try:
            return cls(name)
        except ValueError:
            return None


def _object_schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    schema["additionalProperties"] = False
    return schema


_TABLE_PROPERTY = {"type": "string", "description": "Table name."}
_LIMIT_PROPERTY = {"type": "integer", "description": "Max rows to return."}


def list_tables_tool() -> Tool:
    return Tool.from_function(
        ToolName.LIST_TABLES.value,
        "List available tables in the database.",
        _object_schema({}),
    )


def describe_table_tool() -> Tool:
    return Tool.from_function(
        ToolName.DESCRIBE_TABLE.value,
        "Describe a table's columns and types.",
        _object_schema({"table": _TABLE_PROPERTY}, required=["table"]),
    )


def sample_rows_tool() -> Tool:
    return Tool.from_function(
        ToolName.SAMPLE_ROWS.value,
        "Return a small sample of rows from a table.",
        _object_schema({"table": _TABLE_PROPERTY, "limit": _LIMIT_PROPERTY}, required=["table"]),
    )


def execute_sql_tool() -> Tool:
    return Tool.from_function(
        ToolName.EXECUTE_SQL.value,
        "Execute a read-only SQL query against the database.",
        _object_schema(
            {"query": {"type": "string", "description": "SQL query to run."}, "limit": _LIMIT_PROPERTY},
            required=["query"],
        ),
    )


def build_tool_definitions(config: SQLLoopConfig) -> list[Tool]:
    """Tools sent with every turn; sample_rows only when enabled."""
    tools = [list_tables_tool(), describe_table_tool()]
    if config.sample_rows_enabled:
        tools.append(sample_rows_tool())
    tools.append(execute_sql_tool())
    return tools


SYSTEM_PROMPT_TEMPLATE = """\
You are a SQL assistant that must follow this workflow:
{% for step in steps %}
- {{ step }}
{% endfor %}
- Maximum SQL attempts: {{ max_attempts }}.
- Always keep result size <= {{ result_limit }} rows.
{% if require_schema_inspection %}
- Do not execute SQL until schema inspection is complete.
{% else %}
- Schema inspection is optional but recommended.
{% endif %}
Return a concise summary of the results when done.
{% if extra %}

{{ extra }}
{% endif %}
"""

SYSTEM_PROMPT = Template(SYSTEM_PROMPT_TEMPLATE, trim_blocks=True, lstrip_blocks=True)


def build_system_prompt(config: SQLLoopConfig, extra: str | None = None) -> str:
    """Render the guardrail system prompt, followed by the caller's extra instructions."""
    steps = [
        "Use list_tables to see available tables.",
        "Use describe_table on any table you query.",
    ]
    if config.sample_rows_enabled:
        steps.append("Use sample_rows for quick context if needed.")
    steps.append("Generate a read-only SELECT query.")
    steps.append("Call execute_sql to run it.")

    rendered = SYSTEM_PROMPT.render(
        steps=steps,
        max_attempts=config.max_attempts,
        result_limit=config.result_limit,
        require_schema_inspection=config.require_schema_inspection,
        extra=(extra or "").strip(),
    )
    return rendered.rstrip()

"""Result and stream event types for the SQL tool loop.

The streaming loop emits one event per artifact as it becomes available. Use
the ``kind`` field to discriminate. Exactly one ``result`` event ends a
successful run.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from modelrelay.models.response import Usage
from modelrelay.models.sql import ExecuteResult, SQLRow, SQLValidateResponse, TableDescription, TableInfo


class SQLToolLoopUsage(BaseModel):
    """Token and call totals across every turn of a run."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    llm_calls: int = Field(default=0, description="Model turns made")
    tool_calls: int = Field(default=0, description="Tool calls requested by the model")

    def add_turn(self, usage: Usage) -> None:
        self.llm_calls += 1
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.total_tokens += usage.total_tokens


class SQLToolLoopResult(BaseModel):
    """Terminal output of a tool loop run."""

    summary: Annotated[str, Field(description="The model's final text")]
    sql: Annotated[str, Field(description="Normalized SQL of the last executed query, or empty")]
    columns: Annotated[list[str], Field(default_factory=list, description="Columns of the last result")]
    rows: Annotated[list[SQLRow], Field(default_factory=list, description="Rows of the last result")]
    usage: Annotated[SQLToolLoopUsage, Field(description="Totals across all turns")]
    attempts: Annotated[int, Field(description="Queries actually executed")]
    notes: Annotated[str | None, Field(default=None, description="Notes about the last execution")]


class SummaryDeltaEvent(BaseModel):
    kind: Literal["summary_delta"] = "summary_delta"
    delta: str


class ListTablesEvent(BaseModel):
    kind: Literal["list_tables"] = "list_tables"
    tables: list[TableInfo]


class DescribeTableEvent(BaseModel):
    kind: Literal["describe_table"] = "describe_table"
    description: TableDescription


class SampleRowsEvent(BaseModel):
    kind: Literal["sample_rows"] = "sample_rows"
    table: str
    limit: int
    result: ExecuteResult


class ValidationEvent(BaseModel):
    """Emitted for every validator call, with the verdict or the failure."""

    kind: Literal["validation"] = "validation"
    query: str
    response: SQLValidateResponse | None = None
    error: str | None = None


class ExecuteSQLEvent(BaseModel):
    kind: Literal["execute_sql"] = "execute_sql"
    query: str
    limit: int
    result: ExecuteResult


class ResultEvent(BaseModel):
    kind: Literal["result"] = "result"
    result: SQLToolLoopResult


SQLToolLoopStreamEvent = Annotated[
    SummaryDeltaEvent
    | ListTablesEvent
    | DescribeTableEvent
    | SampleRowsEvent
    | ValidationEvent
    | ExecuteSQLEvent
    | ResultEvent,
    Field(discriminator="kind"),
]

"""SQL data models shared by the tool loop, its handlers, and the validator."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

SQLRow = dict[str, Any]


class TableInfo(BaseModel):
    name: Annotated[str, Field(description="Table name")]
    schema_name: Annotated[str | None, Field(default=None, alias="schema", description="Schema the table lives in")]

    model_config = ConfigDict(populate_by_name=True)


class ColumnInfo(BaseModel):
    name: Annotated[str, Field(description="Column name")]
    type: Annotated[str, Field(description="Column type")]
    nullable: Annotated[bool | None, Field(default=None, description="Whether the column accepts NULL")]


class TableDescription(BaseModel):
    table: Annotated[str, Field(description="Table name")]
    columns: Annotated[list[ColumnInfo], Field(default_factory=list, description="Columns of the table")]


class RowView:
    """Read-only view over one result row, ordered by the result's columns."""

    def __init__(self, columns: list[str], row: SQLRow):
        self.columns = columns
        self.raw = row
        self.values = [row.get(column) for column in columns]

    def __getitem__(self, column: str) -> Any:
        return self.raw.get(column)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowView):
            return NotImplemented
        return self.columns == other.columns and self.raw == other.raw

    def __repr__(self) -> str:
        return f"RowView({dict(zip(self.columns, self.values))!r})"

    def get_string(self, column: str) -> str | None:
        value = self.raw.get(column)
        return value if isinstance(value, str) else None

    def get_int(self, column: str) -> int | None:
        value = self.raw.get(column)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)

    def get_float(self, column: str) -> float | None:
        value = self.raw.get(column)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    def get_bool(self, column: str) -> bool | None:
        value = self.raw.get(column)
        return value if isinstance(value, bool) else None


class ExecuteResult(BaseModel):
    """Columns and rows returned by a sample or execute handler."""

    columns: Annotated[list[str], Field(default_factory=list, description="Result columns, in order")]
    rows: Annotated[list[SQLRow], Field(default_factory=list, description="Result rows keyed by column")]

    def row_views(self) -> list[RowView]:
        return [RowView(self.columns, row) for row in self.rows]

    def row_view(self, index: int) -> RowView | None:
        if index < 0 or index >= len(self.rows):
            return None
        return RowView(self.columns, self.rows[index])


class SQLValidateOverrides(BaseModel):
    limit: int | None = None
    timeout_ms: int | None = None


class SQLValidateRequest(BaseModel):
    sql: Annotated[str, Field(description="SQL to validate")]
    profile_id: Annotated[str | None, Field(default=None, description="Stored SQL policy profile")]
    policy: Annotated[dict[str, Any] | None, Field(default=None, description="Inline SQL policy")]
    overrides: Annotated[SQLValidateOverrides | None, Field(default=None, description="Per-request overrides")]


class SQLValidateResponse(BaseModel):
    """Result of /sql/validate."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    normalized_sql: str = ""
    tables: list[str] | None = None
    limit: int | None = None
    timeout_ms: int | None = None
    order_by: list[str] | None = None
    read_only: bool = False

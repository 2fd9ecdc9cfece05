from dataclasses import dataclass, field

from modelrelay.guardrails.checks import normalize_table_name
from modelrelay.models.sql import SQLRow

NO_SQL_EXECUTED = "no SQL executed"
NO_ROWS_RETURNED = "query returned no rows"


@dataclass
class SQLLoopState:
    """Bookkeeping for one tool loop run.

    Owned by a single run and mutated only by the tool dispatcher.
    """

    attempts: int = 0
    list_tables_called: bool = False
    described_tables: set[str] = field(default_factory=set)
    last_sql: str = ""
    last_columns: list[str] = field(default_factory=list)
    last_rows: list[SQLRow] = field(default_factory=list)
    last_notes: str = ""

    def mark_described(self, table: str) -> None:
        self.described_tables.add(normalize_table_name(table))

    def record_execution(self, columns: list[str], rows: list[SQLRow]) -> None:
        self.last_columns = list(columns)
        self.last_rows = list(rows)
        self.last_notes = "" if rows else NO_ROWS_RETURNED

    def result_notes(self) -> str | None:
        if self.last_notes:
            return self.last_notes
        if not self.last_sql:
            return NO_SQL_EXECUTED
        return None

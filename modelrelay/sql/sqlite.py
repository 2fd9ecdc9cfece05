"""SQL tool loop handlers backed by a local SQLite database."""

import sqlite3
from pathlib import Path

from modelrelay.models.sql import ColumnInfo, ExecuteResult, TableDescription, TableInfo
from modelrelay.sql.handlers import DescribeTableArgs, ExecuteArgs, SampleRowsArgs, SQLToolLoopHandlers


def connect_read_only(path: str | Path) -> sqlite3.Connection:
    """Open a SQLite file read-only; writes fail at the engine."""
    return sqlite3.connect(f"file:{Path(path)}?mode=ro", uri=True)


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _fetch(conn: sqlite3.Connection, query: str, params: tuple = (), limit: int | None = None) -> ExecuteResult:
    cursor = conn.execute(query, params)
    try:
        columns = [column[0] for column in cursor.description or []]
        records = cursor.fetchmany(limit) if limit is not None else cursor.fetchall()
    finally:
        cursor.close()
    return ExecuteResult(columns=columns, rows=[dict(zip(columns, record)) for record in records])


class SQLiteHandlers:
    """list/describe/sample/execute over one sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_tables(self) -> list[TableInfo]:
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [TableInfo(name=row[0]) for row in cursor.fetchall()]

    def describe_table(self, args: DescribeTableArgs) -> TableDescription:
        cursor = self.conn.execute(f"PRAGMA table_info({_quote_identifier(args.table)})")
        columns = [
            ColumnInfo(name=name, type=type_ or "", nullable=not notnull)
            for _, name, type_, notnull, _, _ in cursor.fetchall()
        ]
        if not columns:
            raise ValueError(f"unknown table {args.table}")
        return TableDescription(table=args.table, columns=columns)

    def sample_rows(self, args: SampleRowsArgs) -> ExecuteResult:
        return _fetch(self.conn, f"SELECT * FROM {_quote_identifier(args.table)} LIMIT ?", (args.limit,))

    def execute_sql(self, args: ExecuteArgs) -> ExecuteResult:
        return _fetch(self.conn, args.query, limit=args.limit)

    def handlers(self, sample_rows: bool = True) -> SQLToolLoopHandlers:
        return SQLToolLoopHandlers(
            list_tables=self.list_tables,
            describe_table=self.describe_table,
            execute_sql=self.execute_sql,
            sample_rows=self.sample_rows if sample_rows else None,
        )

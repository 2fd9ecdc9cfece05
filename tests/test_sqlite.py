"""Tests for the SQLite-backed tool loop handlers."""

import sqlite3

import pytest

from modelrelay.sql.handlers import DescribeTableArgs, ExecuteArgs, SampleRowsArgs
from modelrelay.sql.sqlite import SQLiteHandlers, connect_read_only


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL);
        INSERT INTO users (name, email) VALUES ('Ada', 'ada@example.com'), ('Grace', NULL), ('Linus', NULL);
        """
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def handlers(db_path):
    conn = connect_read_only(db_path)
    yield SQLiteHandlers(conn)
    conn.close()


class TestSQLiteHandlers:
    def test_list_tables(self, handlers):
        assert [table.name for table in handlers.list_tables()] == ["orders", "users"]

    def test_describe_table(self, handlers):
        description = handlers.describe_table(DescribeTableArgs(table="users"))

        assert description.table == "users"
        assert [(column.name, column.type, column.nullable) for column in description.columns] == [
            ("id", "INTEGER", True),
            ("name", "TEXT", False),
            ("email", "TEXT", True),
        ]

    def test_describe_unknown_table(self, handlers):
        with pytest.raises(ValueError, match="unknown table missing"):
            handlers.describe_table(DescribeTableArgs(table="missing"))

    def test_sample_rows(self, handlers):
        result = handlers.sample_rows(SampleRowsArgs(table="users", limit=2))

        assert result.columns == ["id", "name", "email"]
        assert len(result.rows) == 2

    def test_execute_respects_limit(self, handlers):
        result = handlers.execute_sql(ExecuteArgs(query="SELECT name, email FROM users ORDER BY id", limit=2))

        assert result.rows == [{"name": "Ada", "email": "ada@example.com"}, {"name": "Grace", "email": None}]

    def test_connection_is_read_only(self, handlers):
        with pytest.raises(sqlite3.OperationalError):
            handlers.execute_sql(ExecuteArgs(query="DELETE FROM users", limit=10))

    def test_handler_set(self, handlers):
        assert handlers.handlers().sample_rows is not None
        assert handlers.handlers(sample_rows=False).sample_rows is None

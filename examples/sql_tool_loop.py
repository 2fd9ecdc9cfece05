"""Examples of running the SQL tool loop against a local SQLite database."""

import asyncio
import sqlite3
import tempfile
from pathlib import Path

from modelrelay import ModelRelayClient, SQLToolLoopOptions, StreamTimeouts
from modelrelay.sql.events import ExecuteSQLEvent, ResultEvent, SummaryDeltaEvent, ValidationEvent
from modelrelay.sql.sqlite import SQLiteHandlers, connect_read_only


def create_demo_database(path: Path) -> None:
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER, total REAL);
        INSERT INTO customers (name) VALUES ('Ada'), ('Grace'), ('Linus');
        INSERT INTO orders (customer_id, total) VALUES (1, 120.0), (1, 80.5), (2, 42.0), (3, 300.0);
        """
    )
    conn.commit()
    conn.close()


# Example 1: Buffered run
async def example_buffered(client: ModelRelayClient, db_path: Path):
    """Run the loop to completion and print the final result."""
    print("=" * 60)
    print("Example 1: Buffered SQL Tool Loop")
    print("=" * 60)

    conn = connect_read_only(db_path)
    try:
        result = await client.sql_tool_loop(
            SQLToolLoopOptions.quickstart(
                model="claude-sonnet-4-5",
                prompt="Which customer has spent the most?",
                profile_id="default",
            ),
            SQLiteHandlers(conn).handlers(),
        )
    finally:
        conn.close()

    print(f"Summary: {result.summary}")
    print(f"SQL: {result.sql or '-'}")
    for row in result.rows:
        print(f"  {row}")
    print(f"Attempts: {result.attempts}, model turns: {result.usage.llm_calls}")
    print()


# Example 2: Streaming run with stream timeouts
async def example_streaming(client: ModelRelayClient, db_path: Path):
    """Print summary text and SQL activity as it happens."""
    print("=" * 60)
    print("Example 2: Streaming SQL Tool Loop")
    print("=" * 60)

    options = SQLToolLoopOptions(
        model="claude-sonnet-4-5",
        prompt="How many orders are over 100?",
        policy={"read_only": True},
        max_attempts=2,
        sample_rows=False,
    )
    timeouts = StreamTimeouts(ttft=20, idle=30, total=120)

    conn = connect_read_only(db_path)
    try:
        handlers = SQLiteHandlers(conn).handlers(sample_rows=False)
        async with client.sql_tool_loop_stream(options, handlers, timeouts) as stream:
            async for event in stream:
                if isinstance(event, SummaryDeltaEvent):
                    print(event.delta, end="", flush=True)
                elif isinstance(event, ValidationEvent):
                    print(f"\n[validate] {event.query} -> {event.error or event.response.normalized_sql}")
                elif isinstance(event, ExecuteSQLEvent):
                    print(f"[execute] {len(event.result.rows)} row(s)")
                elif isinstance(event, ResultEvent):
                    print(f"\nNotes: {event.result.notes or '-'}")
    finally:
        conn.close()
    print()


if __name__ == "__main__":

    async def main():
        with tempfile.TemporaryDirectory() as tmp:
            db_path = Path(tmp) / "shop.db"
            create_demo_database(db_path)
            # Reads MODELRELAY_API_KEY from the environment
            async with ModelRelayClient() as client:
                await example_buffered(client, db_path)
                await example_streaming(client, db_path)

    asyncio.run(main())

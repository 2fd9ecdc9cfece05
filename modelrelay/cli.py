"""ModelRelay command-line interface.

Available Commands:
    - decode: Replay an NDJSON capture through the stream decoder
    - sql-loop: Run the SQL tool loop against a local SQLite database
"""

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from modelrelay.config import get_settings
from modelrelay.errors import ModelRelayError
from modelrelay.events import ResponseEvent
from modelrelay.streaming import ResponseStream

console = Console()

_CHUNK_SIZE = 4096


async def _file_chunks(path: Path) -> AsyncIterator[bytes]:
    with path.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            yield chunk


def _describe_event(event: ResponseEvent) -> str:
    parts = [f"[bold]{event.type.value}[/bold]"]
    if event.event != event.type.value:
        parts.append(f"({event.event})")
    if event.text_delta is not None:
        parts.append(repr(event.text_delta))
    if event.tool_call_delta is not None and event.tool_call_delta.function is not None:
        parts.append(f"tool_call_delta={event.tool_call_delta.function.name}")
    if event.tool_calls:
        parts.append("tool_calls=" + ",".join(call.name for call in event.tool_calls))
    if event.usage is not None:
        parts.append(f"usage={event.usage.input_tokens}/{event.usage.output_tokens}/{event.usage.total_tokens}")
    if event.stop_reason:
        parts.append(f"stop_reason={event.stop_reason}")
    return " ".join(parts)


def _rows_table(columns: list[str], rows: list[dict]) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(str(row.get(column)) for column in columns))
    return table


@click.group()
def cli() -> None:
    """ModelRelay CLI - decode response streams and run the SQL tool loop."""
    pass


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--collect", is_flag=True, help="Print the collected response instead of each event")
def decode(path: Path, collect: bool) -> None:
    """Replay an NDJSON capture through the stream decoder.

    Examples:
        modelrelay decode capture.ndjson
        modelrelay decode capture.ndjson --collect
    """

    async def run_decode() -> None:
        async with ResponseStream(_file_chunks(path)) as stream:
            if collect:
                response = await stream.collect()
                console.print(f"[bold]id:[/bold] {response.id}")
                console.print(f"[bold]model:[/bold] {response.model}")
                console.print(f"[bold]stop_reason:[/bold] {response.stop_reason}")
                console.print(
                    f"[bold]usage:[/bold] input={response.usage.input_tokens} "
                    f"output={response.usage.output_tokens} total={response.usage.total_tokens}"
                )
                console.print("[bold]text:[/bold] ", end="")
                console.print(response.text(), markup=False)
                return

            count = 0
            async for event in stream:
                count += 1
                console.print(_describe_event(event))
            console.print(f"\n[bold green]✓ Decoded {count} event(s)[/bold green]")

    try:
        asyncio.run(run_decode())
    except ModelRelayError as e:
        raise click.ClickException(str(e)) from e


@cli.command("sql-loop")
@click.option("--db", "db_path", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--prompt", "-p", required=True, help="Question to answer from the database")
@click.option("--profile-id", default=None, help="Stored SQL policy profile")
@click.option("--policy", default=None, help="Inline SQL policy as JSON")
@click.option("--model", "-m", default=None, help="Model ID (defaults to MODELRELAY_DEFAULT_MODEL)")
@click.option("--system", default=None, help="Extra system instructions")
@click.option("--max-attempts", default=None, type=int, help="Maximum executed queries")
@click.option("--sample-rows/--no-sample-rows", default=True, help="Expose the sample_rows tool")
@click.option("--stream", "use_stream", is_flag=True, help="Stream model turns and print events as they arrive")
def sql_loop(
    db_path: Path,
    prompt: str,
    profile_id: str | None,
    policy: str | None,
    model: str | None,
    system: str | None,
    max_attempts: int | None,
    sample_rows: bool,
    use_stream: bool,
) -> None:
    """Run the SQL tool loop against a local SQLite database.

    The database is opened read-only. SQL is validated by the API before it runs.

    Examples:
        modelrelay sql-loop --db shop.db -p "Top 5 customers by revenue" --profile-id default
        modelrelay sql-loop --db shop.db -p "How many orders?" --policy '{"read_only": true}' --stream
    """
    from modelrelay.client import ModelRelayClient
    from modelrelay.guardrails import SQLToolLoopOptions
    from modelrelay.sql.events import ResultEvent, SummaryDeltaEvent
    from modelrelay.sql.sqlite import SQLiteHandlers, connect_read_only

    model = model or get_settings().default_model
    if not model:
        raise click.UsageError("--model is required when MODELRELAY_DEFAULT_MODEL is not set")
    try:
        policy_value = json.loads(policy) if policy else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--policy") from e

    options = SQLToolLoopOptions(
        model=model,
        prompt=prompt,
        system=system,
        profile_id=profile_id,
        policy=policy_value,
        max_attempts=max_attempts,
        sample_rows=sample_rows,
    )

    async def run_sql_loop() -> None:
        conn = connect_read_only(db_path)
        try:
            handlers = SQLiteHandlers(conn).handlers(sample_rows=sample_rows)
            async with ModelRelayClient() as client:
                if not use_stream:
                    console.print("[yellow]Running SQL tool loop...[/yellow]\n")
                    result = await client.sql_tool_loop(options, handlers)
                else:
                    result = None
                    async with client.sql_tool_loop_stream(options, handlers) as stream:
                        async for event in stream:
                            if isinstance(event, SummaryDeltaEvent):
                                console.print(event.delta, end="", markup=False)
                            elif isinstance(event, ResultEvent):
                                result = event.result
                            else:
                                console.print(f"\n[dim]{event.kind}[/dim]")
                    console.print()
                    if result is None:
                        raise click.ClickException("stream ended without a result")
        finally:
            conn.close()

        console.print(f"\n[bold]Summary:[/bold] {result.summary}")
        console.print(f"[bold]SQL:[/bold] {result.sql or '-'}")
        if result.columns:
            console.print(_rows_table(result.columns, result.rows))
        if result.notes:
            console.print(f"[bold]Notes:[/bold] {result.notes}")
        console.print(
            f"[bold]Usage:[/bold] llm_calls={result.usage.llm_calls} tool_calls={result.usage.tool_calls} "
            f"attempts={result.attempts} tokens={result.usage.total_tokens}"
        )

    try:
        asyncio.run(run_sql_loop())
    except ModelRelayError as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

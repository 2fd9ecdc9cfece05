"""Tests for the streaming SQL tool loop."""

import pytest
from helpers import FakeModel, FakeValidator, RecordingDatabase, ndjson, stream_turn, tool_call, verdict

from modelrelay.errors import ConfigurationError, TransportError
from modelrelay.guardrails import SQLToolLoopOptions
from modelrelay.sql import SQLToolLoop
from modelrelay.sql.events import (
    DescribeTableEvent,
    ExecuteSQLEvent,
    ListTablesEvent,
    ResultEvent,
    SampleRowsEvent,
    SummaryDeltaEvent,
    ValidationEvent,
)

USERS_SQL = "SELECT * FROM users"
USAGE = {"input_tokens": 10, "output_tokens": 5}


def _options(**overrides) -> SQLToolLoopOptions:
    values = {"model": "test-model", "prompt": "How many users are there?", "profile_id": "default"}
    values.update(overrides)
    return SQLToolLoopOptions(**values)


def _happy_path() -> list[bytes]:
    return [
        stream_turn(text_deltas=["Looking"], calls=[tool_call("call_1", "list_tables")], usage=USAGE),
        stream_turn(calls=[tool_call("call_2", "describe_table", {"table": "users"})], usage=USAGE),
        stream_turn(calls=[tool_call("call_3", "execute_sql", {"query": USERS_SQL})], usage=USAGE),
        stream_turn(text_deltas=["There are ", "2 users."], final_text="There are 2 users.", usage=USAGE),
    ]


def _loop(stream_turns: list[bytes], validator=None) -> tuple[SQLToolLoop, FakeModel]:
    model = FakeModel(stream_turns=stream_turns)
    validator = validator or FakeValidator({USERS_SQL: verdict(USERS_SQL, tables=["users"])})
    return SQLToolLoop(model, validator), model


class TestSQLToolLoopStream:
    """Test event order, termination, and failure of streamed runs."""

    @pytest.mark.asyncio
    async def test_events_in_order_with_single_result(self):
        loop, model = _loop(_happy_path())

        events = [event async for event in loop.stream(_options(), RecordingDatabase().handlers())]

        assert [event.kind for event in events] == [
            "summary_delta",
            "list_tables",
            "describe_table",
            "validation",
            "execute_sql",
            "summary_delta",
            "summary_delta",
            "result",
        ]
        assert isinstance(events[1], ListTablesEvent)
        assert isinstance(events[2], DescribeTableEvent)
        assert events[3].response.normalized_sql == USERS_SQL
        assert isinstance(events[4], ExecuteSQLEvent)
        assert events[4].limit == 100

        result = events[-1].result
        assert result.summary == "There are 2 users."
        assert result.sql == USERS_SQL
        assert result.attempts == 1
        assert result.usage.llm_calls == 4
        assert result.usage.tool_calls == 3
        assert result.usage.total_tokens == 60
        assert all(source.closed for source in model.sources)

    @pytest.mark.asyncio
    async def test_collect_returns_result(self):
        loop, _ = _loop(_happy_path())

        result = await loop.stream(_options(), RecordingDatabase().handlers()).collect()

        assert result.rows == [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}]

    @pytest.mark.asyncio
    async def test_summary_from_deltas_without_final_text(self):
        loop, _ = _loop([stream_turn(text_deltas=["No ", "tables."], usage=USAGE)])

        result = await loop.stream(_options(), RecordingDatabase().handlers()).collect()

        assert result.summary == "No tables."
        assert result.notes == "no SQL executed"

    @pytest.mark.asyncio
    async def test_sample_rows_event(self):
        turns = [
            stream_turn(calls=[tool_call("call_1", "sample_rows", {"table": "users", "limit": 1})], usage=USAGE),
            stream_turn(final_text="Done", usage=USAGE),
        ]
        loop, _ = _loop(turns)

        events = [event async for event in loop.stream(_options(), RecordingDatabase().handlers(sample_rows=True))]

        sample = next(event for event in events if isinstance(event, SampleRowsEvent))
        assert sample.table == "users"
        assert sample.limit == 1
        assert sample.result.rows == [{"id": 1, "name": "Ada"}]

    @pytest.mark.asyncio
    async def test_validation_failure_event(self):
        turns = [
            stream_turn(calls=[tool_call("call_1", "execute_sql", {"query": USERS_SQL})], usage=USAGE),
            stream_turn(final_text="Done", usage=USAGE),
        ]
        loop, model = _loop(turns, validator=FakeValidator(error=RuntimeError("boom")))

        events = [event async for event in loop.stream(_options(), RecordingDatabase().handlers())]

        validation = next(event for event in events if isinstance(event, ValidationEvent))
        assert validation.query == USERS_SQL
        assert validation.response is None
        assert validation.error == "boom"
        assert not any(isinstance(event, ExecuteSQLEvent) for event in events)
        assert model.requests[-1].input[-1].content[0].text == "Error: sql.validate failed: boom"

    @pytest.mark.asyncio
    async def test_turn_without_usage_fails_without_result(self):
        """Test that a truncated turn ends the stream with an error instead of a result."""
        loop, model = _loop([stream_turn(text_deltas=["partial"])])
        events = []

        with pytest.raises(TransportError, match="stream ended without usage"):
            async for event in loop.stream(_options(), RecordingDatabase().handlers()):
                events.append(event)

        assert [event.kind for event in events] == ["summary_delta"]
        assert model.sources[0].closed

    @pytest.mark.asyncio
    async def test_tool_calls_without_usage_fail_before_dispatch(self):
        """Test that a turn holding only a tool_use_stop record is fatal and runs no tools."""
        call = tool_call("call_1", "list_tables")
        truncated = ndjson({"type": "tool_use_stop", "tool_calls": [call.model_dump(mode="json", exclude_none=True)]})
        loop, model = _loop([truncated])
        db = RecordingDatabase()
        events = []

        with pytest.raises(TransportError, match="stream ended without usage"):
            async for event in loop.stream(_options(), db.handlers()):
                events.append(event)

        assert events == []
        assert db.calls == []
        assert len(model.requests) == 1
        assert model.sources[0].closed

    @pytest.mark.asyncio
    async def test_collect_raises_transport_error_without_result(self):
        loop, _ = _loop([stream_turn(text_deltas=["partial"])])

        with pytest.raises(TransportError):
            await loop.stream(_options(), RecordingDatabase().handlers()).collect()

    @pytest.mark.asyncio
    async def test_configuration_error_raised_before_streaming(self):
        loop, model = _loop(_happy_path())

        with pytest.raises(ConfigurationError, match="profile_id or policy is required"):
            loop.stream(_options(profile_id=None), RecordingDatabase().handlers())

        assert model.requests == []

    @pytest.mark.asyncio
    async def test_aclose_ends_iteration_without_result(self):
        loop, _ = _loop(_happy_path())
        stream = loop.stream(_options(), RecordingDatabase().handlers())

        first = await stream.__anext__()
        await stream.aclose()
        rest = [event async for event in stream]

        assert isinstance(first, SummaryDeltaEvent)
        assert rest == []

    @pytest.mark.asyncio
    async def test_context_manager_closes_stream(self):
        loop, _ = _loop(_happy_path())

        async with loop.stream(_options(), RecordingDatabase().handlers()) as stream:
            async for event in stream:
                if isinstance(event, ListTablesEvent):
                    break

        assert [event async for event in stream] == []

    @pytest.mark.asyncio
    async def test_exactly_one_result_event(self):
        loop, _ = _loop(_happy_path())

        events = [event async for event in loop.stream(_options(), RecordingDatabase().handlers())]

        assert sum(isinstance(event, ResultEvent) for event in events) == 1
        assert isinstance(events[-1], ResultEvent)

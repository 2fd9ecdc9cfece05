"""SQL tool loop: drives a model through schema inspection and guarded SQL execution.

The loop seeds a conversation with the guardrail system prompt and the user's
question, then repeats: call the model, dispatch each requested tool call in
order, append the results, and call the model again. It stops when a turn
requests no tools or after MAX_TURNS turns, returning the best result so far.

Example:
    >>> import asyncio
    >>> from modelrelay import ModelRelayClient, SQLToolLoopHandlers, SQLToolLoopOptions
    >>>
    >>> async def main():
    ...     async with ModelRelayClient(api_key="mr_sk_...") as client:
    ...         result = await client.sql_tool_loop(
    ...             SQLToolLoopOptions.quickstart(model="claude-sonnet-4-5", prompt="Top 5 customers", profile_id="prod"),
    ...             handlers,
    ...         )
    ...         print(result.summary, result.sql)
    >>>
    >>> asyncio.run(main())
"""

import asyncio
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from modelrelay.errors import TransportError
from modelrelay.events import ResponseEventType
from modelrelay.guardrails import SQLLoopConfig, SQLToolLoopOptions, normalize_config, validate_options
from modelrelay.logging_config import get_logger
from modelrelay.models.conversation import Conversation, Role
from modelrelay.models.request import ResponsesRequest
from modelrelay.models.response import Usage
from modelrelay.models.tool import Tool, ToolCall
from modelrelay.sql.dispatch import DispatchContext, ToolOutcome, dispatch_tool_call
from modelrelay.sql.events import ResultEvent, SQLToolLoopResult, SQLToolLoopUsage, SummaryDeltaEvent
from modelrelay.sql.handlers import ModelInvoker, SQLToolLoopHandlers, SQLValidator
from modelrelay.sql.state import SQLLoopState
from modelrelay.sql.tools import build_system_prompt, build_tool_definitions
from modelrelay.streaming import StreamTimeouts
from modelrelay.telemetry import record_token_usage, trace_model_call

logger = get_logger(__name__)

MAX_TURNS = 100

Emit = Callable[[BaseModel], None]


def _build_result(summary: str, state: SQLLoopState, usage: SQLToolLoopUsage) -> SQLToolLoopResult:
    return SQLToolLoopResult(
        summary=summary,
        sql=state.last_sql,
        columns=state.last_columns,
        rows=state.last_rows,
        usage=usage.model_copy(),
        attempts=state.attempts,
        notes=state.result_notes(),
    )


class _Run:
    """Per-invocation state: config, conversation, loop state, and usage."""

    def __init__(
        self,
        options: SQLToolLoopOptions,
        handlers: SQLToolLoopHandlers,
        validator: SQLValidator,
    ):
        validate_options(options, has_sample_rows_handler=handlers.sample_rows is not None)
        self.options = options
        self.config: SQLLoopConfig = normalize_config(options, has_sample_rows_handler=handlers.sample_rows is not None)
        self.tools: list[Tool] = build_tool_definitions(self.config)
        self.state = SQLLoopState()
        self.usage = SQLToolLoopUsage()
        self.summary = ""
        self.ctx = DispatchContext(config=self.config, state=self.state, handlers=handlers, validator=validator)

        self.conversation = Conversation()
        system_prompt = build_system_prompt(self.config, options.system)
        if system_prompt.strip():
            self.conversation.add_message(Role.SYSTEM, system_prompt)
        self.conversation.add_message(Role.USER, options.prompt)

    def request(self) -> ResponsesRequest:
        return ResponsesRequest(model=self.options.model, input=self.conversation.snapshot(), tools=self.tools)

    async def dispatch_turn(self, tool_calls: list[ToolCall], emit: Emit | None = None) -> list[ToolOutcome]:
        """Dispatch every tool call of one turn in order, then append the results."""
        self.usage.tool_calls += len(tool_calls)
        self.conversation.add_message(Role.ASSISTANT, self.summary, tool_calls=tool_calls)

        outcomes: list[ToolOutcome] = []
        for call in tool_calls:
            outcome = await dispatch_tool_call(call, self.ctx)
            outcomes.append(outcome)
            if emit is not None:
                for event in outcome.events:
                    emit(event)

        for outcome in outcomes:
            self.conversation.add_tool_result(outcome.result.tool_call_id, outcome.result.content)
        return outcomes

    def result(self) -> SQLToolLoopResult:
        return _build_result(self.summary, self.state, self.usage)


class SQLToolLoop:
    """Runs the SQL tool loop against a model invoker and a SQL validator.

    Each run() or stream() call owns its own conversation and state, so one
    SQLToolLoop may serve concurrent runs.
    """

    def __init__(self, responses: ModelInvoker, validator: SQLValidator, max_turns: int = MAX_TURNS):
        """Initialize the loop.

        Args:
            responses: Runs model turns (ResponsesClient or any ModelInvoker)
            validator: Validates SQL before execution (SQLClient or any SQLValidator)
            max_turns: Turn ceiling; reaching it returns the best result so far
        """
        self.responses = responses
        self.validator = validator
        self.max_turns = max_turns

    async def run(self, options: SQLToolLoopOptions, handlers: SQLToolLoopHandlers) -> SQLToolLoopResult:
        """Run the loop to completion with buffered model turns.

        Raises:
            ConfigurationError: If options or handlers are unusable (before any model call)
            ModelRelayError: If a model call fails
        """
        run = _Run(options, handlers, self.validator)
        logger.info(f"Starting SQL tool loop: model={options.model}, tools={len(run.tools)}")

        for turn in range(self.max_turns):
            logger.debug(f"SQL tool loop turn {turn + 1}/{self.max_turns}")
            with trace_model_call(options.model, len(run.conversation), len(run.tools)) as span:
                response = await self.responses.create(run.request(), options.request_options)
                record_token_usage(
                    span, response.usage.input_tokens, response.usage.output_tokens, response.usage.total_tokens
                )

            run.usage.add_turn(response.usage)
            run.summary = response.text()
            tool_calls = response.tool_calls()
            if not tool_calls:
                logger.info(
                    f"SQL tool loop completed: turns={turn + 1}, attempts={run.state.attempts}, "
                    f"tool_calls={run.usage.tool_calls}"
                )
                return run.result()

            logger.info(f"Turn {turn + 1}: model requested {len(tool_calls)} tool call(s)")
            await run.dispatch_turn(tool_calls)

        logger.warning(f"SQL tool loop reached max turns ({self.max_turns}); returning best-effort result")
        return run.result()

    def stream(
        self,
        options: SQLToolLoopOptions,
        handlers: SQLToolLoopHandlers,
        timeouts: StreamTimeouts | None = None,
    ) -> "SQLToolLoopStream":
        """Run the loop with streamed model turns, surfacing events as they happen.

        Options are validated immediately, so misconfiguration raises here
        before any model call.

        Raises:
            ConfigurationError: If options or handlers are unusable
        """
        run = _Run(options, handlers, self.validator)
        return SQLToolLoopStream(lambda emit: self._stream_run(run, timeouts, emit))

    async def _stream_run(self, run: _Run, timeouts: StreamTimeouts | None, emit: Emit) -> None:
        options = run.options
        logger.info(f"Starting streaming SQL tool loop: model={options.model}, tools={len(run.tools)}")

        for turn in range(self.max_turns):
            logger.debug(f"Streaming SQL tool loop turn {turn + 1}/{self.max_turns}")
            with trace_model_call(options.model, len(run.conversation), len(run.tools), stream=True) as span:
                tool_calls, usage = await self._drain_turn(run, timeouts, emit)
                record_token_usage(span, usage.input_tokens, usage.output_tokens, usage.total_tokens)

            run.usage.add_turn(usage)
            if not tool_calls:
                logger.info(f"Streaming SQL tool loop completed: turns={turn + 1}, attempts={run.state.attempts}")
                emit(ResultEvent(result=run.result()))
                return

            logger.info(f"Turn {turn + 1}: model requested {len(tool_calls)} tool call(s)")
            await run.dispatch_turn(tool_calls, emit)

        logger.warning(f"Streaming SQL tool loop reached max turns ({self.max_turns}); returning best-effort result")
        emit(ResultEvent(result=run.result()))

    async def _drain_turn(
        self, run: _Run, timeouts: StreamTimeouts | None, emit: Emit
    ) -> tuple[list[ToolCall], Usage]:
        """Consume one streamed turn; returns its final tool calls and usage."""
        stream = await self.responses.stream(run.request(), run.options.request_options, timeouts)
        tool_calls: list[ToolCall] = []
        usage: Usage | None = None
        run.summary = ""
        try:
            async for event in stream:
                if event.type == ResponseEventType.MESSAGE_DELTA and event.text_delta is not None:
                    run.summary += event.text_delta
                    emit(SummaryDeltaEvent(delta=event.text_delta))
                if event.type == ResponseEventType.MESSAGE_STOP and event.text_delta is not None:
                    run.summary = event.text_delta
                if event.tool_calls:
                    tool_calls = list(event.tool_calls)
                if event.usage is not None:
                    usage = event.usage
        finally:
            close = getattr(stream, "aclose", None)
            if close is not None:
                await close()

        if usage is None:
            logger.error("Streamed turn ended without usage; aborting SQL tool loop")
            raise TransportError("stream ended without usage")
        return tool_calls, usage


_DONE = object()


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


class SQLToolLoopStream:
    """Single-consumer async iterator of SQL tool loop events.

    Events are produced by one background task into an unbounded queue. A
    successful run ends with exactly one ResultEvent. A fatal failure is
    raised from the iterator instead, and no ResultEvent is produced.
    aclose() cancels the producer, which closes the in-flight model stream.
    """

    def __init__(self, producer: Callable[[Emit], Awaitable[None]]):
        self._producer = producer
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._finished = False

    def _start(self) -> None:
        self._task = asyncio.create_task(self._produce())

    async def _produce(self) -> None:
        try:
            await self._producer(self._queue.put_nowait)
        except Exception as e:
            self._queue.put_nowait(_Failure(e))
        finally:
            self._queue.put_nowait(_DONE)

    def __aiter__(self) -> "SQLToolLoopStream":
        return self

    async def __anext__(self) -> BaseModel:
        if self._finished:
            raise StopAsyncIteration
        if self._task is None:
            self._start()
        item = await self._queue.get()
        if item is _DONE:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.error
        return item

    async def __aenter__(self) -> "SQLToolLoopStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the run early. Iteration ends without a result event."""
        self._finished = True
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def collect(self) -> SQLToolLoopResult:
        """Drain the stream and return the final result.

        Raises:
            TransportError: If the stream ended without a result event
        """
        async for event in self:
            if isinstance(event, ResultEvent):
                return event.result
        raise TransportError("sql tool loop stream ended without result")

"""OpenTelemetry tracing for the ModelRelay SDK.

Model calls and tool dispatches can be traced with OpenTelemetry spans. When
tracing is disabled (the default) every helper yields a no-op span, so call
sites never need to check.

Configuration:
    - MODELRELAY_ENABLE_TRACING: Enable/disable tracing (default: False)
    - MODELRELAY_OTEL_EXPORTER_ENDPOINT: OTLP HTTP endpoint for span export
    - MODELRELAY_OTEL_SERVICE_NAME: service.name resource attribute

Example:
    >>> from modelrelay.telemetry import configure_tracing
    >>>
    >>> configure_tracing()
    >>> result = await client.sql_tool_loop(...)
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from modelrelay._version import get_version
from modelrelay.config import get_settings
from modelrelay.logging_config import get_logger

logger = get_logger(__name__)

_tracer = None
_tracing_enabled = False


class _NoOpSpan:
    def set_attribute(self, *args, **kwargs):
        pass

    def set_status(self, *args, **kwargs):
        pass

    def record_exception(self, *args, **kwargs):
        pass


def configure_tracing() -> None:
    """Configure OpenTelemetry tracing.

    Sets up a TracerProvider with service resource attributes and, when an
    endpoint is configured, an OTLP HTTP exporter. Calling it again replaces
    the module tracer.
    """
    global _tracer, _tracing_enabled

    settings = get_settings()
    if not settings.enable_tracing:
        logger.info("OpenTelemetry tracing is disabled")
        _tracing_enabled = False
        return

    try:
        resource = Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": get_version(),
            }
        )
        provider = TracerProvider(resource=resource)

        if settings.otel_exporter_endpoint:
            otlp_exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint, headers={})
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(f"OTLP exporter configured with endpoint: {settings.otel_exporter_endpoint}")

        trace.set_tracer_provider(provider)
        _tracer = trace.get_tracer("modelrelay")
        _tracing_enabled = True
        logger.info("OpenTelemetry tracing configured successfully")
    except Exception as e:
        logger.error(f"Failed to configure tracing: {e}")
        _tracing_enabled = False


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


@contextmanager
def _span(name: str, attributes: dict[str, Any]):
    if not _tracing_enabled or _tracer is None:
        yield _NoOpSpan()
        return

    with _tracer.start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


@contextmanager
def trace_model_call(model: str | None, input_count: int, tool_count: int = 0, stream: bool = False):
    """Context manager for tracing one model turn.

    Args:
        model: Model identifier
        input_count: Number of conversation items sent
        tool_count: Number of tool definitions sent
        stream: Whether the turn is streamed

    Yields:
        The active span (or a no-op span when tracing is disabled)
    """
    with _span(
        "modelrelay.responses",
        {
            "llm.model": model or "",
            "llm.input_count": input_count,
            "llm.tools_available": tool_count,
            "llm.stream": stream,
        },
    ) as span:
        yield span


@contextmanager
def trace_tool_dispatch(tool_name: str, tool_call_id: str):
    """Context manager for tracing one tool dispatch."""
    attributes = {"tool.name": tool_name, "tool.call_id": tool_call_id}
    with _span(f"modelrelay.tool.{tool_name or 'unknown'}", attributes) as span:
        yield span


def set_span_attributes(span: Any, **attributes: Any) -> None:
    """Set multiple attributes on a span safely."""
    if not _tracing_enabled:
        return

    for key, value in attributes.items():
        try:
            if isinstance(value, (dict, list)):
                value = str(value)
            span.set_attribute(key, value)
        except Exception as e:
            logger.debug(f"Failed to set span attribute {key}: {e}")


def record_token_usage(span: Any, input_tokens: int, output_tokens: int, total_tokens: int) -> None:
    """Record token usage information on a span."""
    set_span_attributes(
        span,
        **{
            "llm.tokens.input": input_tokens,
            "llm.tokens.output": output_tokens,
            "llm.tokens.total": total_tokens,
        },
    )

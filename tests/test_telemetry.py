"""Tests for OpenTelemetry tracing helpers."""

from modelrelay import telemetry
from modelrelay.config import reload_settings


class TestTracing:
    def test_disabled_tracing_yields_noop_span(self, monkeypatch):
        monkeypatch.setattr(telemetry, "_tracing_enabled", False)
        monkeypatch.setattr(telemetry, "_tracer", None)

        with telemetry.trace_model_call("m-1", 2, 4) as span:
            telemetry.record_token_usage(span, 1, 2, 3)

        assert isinstance(span, telemetry._NoOpSpan)
        assert telemetry.is_tracing_enabled() is False

    def test_configure_tracing_respects_setting(self, monkeypatch):
        monkeypatch.setattr(telemetry, "_tracing_enabled", False)
        monkeypatch.setattr(telemetry, "_tracer", None)
        monkeypatch.delenv("MODELRELAY_ENABLE_TRACING", raising=False)
        reload_settings()

        telemetry.configure_tracing()

        assert telemetry.is_tracing_enabled() is False

    def test_enabled_tracing_records_spans(self, monkeypatch):
        monkeypatch.setattr(telemetry, "_tracing_enabled", False)
        monkeypatch.setattr(telemetry, "_tracer", None)
        monkeypatch.setenv("MODELRELAY_ENABLE_TRACING", "true")
        reload_settings()

        telemetry.configure_tracing()

        assert telemetry.is_tracing_enabled() is True
        with telemetry.trace_tool_dispatch("list_tables", "call_1") as span:
            telemetry.set_span_attributes(span, **{"tool.success": True, "tool.meta": {"a": 1}})
        assert not isinstance(span, telemetry._NoOpSpan)

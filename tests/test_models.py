"""Tests for response, conversation, and SQL data models."""

import logging

from modelrelay.models.conversation import Conversation, InputItem, Role
from modelrelay.models.request import ResponsesRequest
from modelrelay.models.response import OutputItem, Response, Usage
from modelrelay.models.sql import ExecuteResult, RowView, SQLValidateResponse, TableInfo
from modelrelay.models.tool import Tool


def _response(output: list) -> Response:
    return Response.model_validate(
        {"id": "resp_1", "model": "m-1", "output": output, "usage": {"input_tokens": 1, "output_tokens": 2}}
    )


class TestUsage:
    def test_total_defaults_to_sum(self):
        assert Usage(input_tokens=3, output_tokens=4).total_tokens == 7

    def test_explicit_total_is_kept(self):
        assert Usage(input_tokens=3, output_tokens=4, total_tokens=10).total_tokens == 10


class TestResponseDecoding:
    """Test per-item decoding of response output."""

    def test_message_items_decode(self):
        response = _response(
            [
                {"type": "message", "role": "assistant", "content": [{"type": "text", "text": "Hello "}]},
                {"type": "message", "role": "assistant", "content": [{"type": "text", "text": "world"}]},
            ]
        )

        assert response.text() == "Hello world"
        assert response.decoding_warnings is None
        assert response.usage.total_tokens == 3

    def test_missing_content_decodes_as_empty(self):
        response = _response([{"type": "message", "role": "assistant"}])

        assert response.output[0].content == []
        assert response.text() == ""

    def test_missing_role_becomes_placeholder_with_warning(self):
        """Test that one bad item does not fail the whole response."""
        response = _response(
            [
                {"type": "message", "content": [{"type": "text", "text": "lost"}]},
                {"type": "message", "role": "assistant", "content": [{"type": "text", "text": "kept"}]},
            ]
        )

        assert response.output[0].type == "other"
        assert len(response.decoding_warnings) == 1
        assert response.decoding_warnings[0].startswith("output[0]")
        assert response.text() == "kept"

    def test_placeholder_warning_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="modelrelay.models.response"):
            _response([{"type": "message", "content": []}])

        assert [record.name for record in caplog.records] == ["modelrelay.models.response"]
        assert "substituting placeholder" in caplog.records[0].getMessage()

    def test_non_message_items_become_other_silently(self):
        response = _response([{"type": "reasoning", "summary": "..."}])

        assert response.output == [OutputItem.other()]
        assert response.decoding_warnings is None

    def test_text_skips_non_assistant_messages(self):
        response = _response(
            [
                {"type": "message", "role": "tool", "content": [{"type": "text", "text": "tool output"}]},
                {"type": "message", "role": "assistant", "content": [{"type": "text", "text": "answer"}]},
            ]
        )

        assert response.text() == "answer"

    def test_tool_calls_gathered_in_order(self):
        response = _response(
            [
                {
                    "type": "message",
                    "role": "assistant",
                    "tool_calls": [
                        {"id": "call_1", "type": "function", "function": {"name": "list_tables", "arguments": "{}"}}
                    ],
                },
                {
                    "type": "message",
                    "role": "assistant",
                    "tool_calls": [
                        {
                            "id": "call_2",
                            "type": "function",
                            "function": {"name": "describe_table", "arguments": '{"table":"users"}'},
                        }
                    ],
                },
            ]
        )

        assert [call.id for call in response.tool_calls()] == ["call_1", "call_2"]
        assert response.tool_calls()[1].arguments == '{"table":"users"}'


class TestConversation:
    def test_wire_format_of_messages(self):
        conversation = Conversation()
        conversation.add_message(Role.SYSTEM, "rules")
        conversation.add_message(Role.USER, "question")
        conversation.add_tool_result("call_1", "[]")

        wire = [item.to_wire() for item in conversation.snapshot()]

        assert len(conversation) == 3
        assert wire[0] == {"type": "message", "role": "system", "content": [{"type": "text", "text": "rules"}]}
        assert wire[2]["role"] == "tool"
        assert wire[2]["tool_call_id"] == "call_1"

    def test_snapshot_is_a_copy(self):
        conversation = Conversation()
        conversation.add_message(Role.USER, "question")

        snapshot = conversation.snapshot()
        conversation.add_message(Role.ASSISTANT, "answer")

        assert len(snapshot) == 1

    def test_request_wire_omits_unset_fields(self):
        request = ResponsesRequest(
            model="m-1",
            input=[InputItem.text(Role.USER, "hi")],
            tools=[Tool.from_function("list_tables", "List tables.", {"type": "object", "properties": {}})],
        )

        wire = request.to_wire()

        assert set(wire) == {"model", "input", "tools"}
        assert wire["tools"][0] == {
            "type": "function",
            "function": {
                "name": "list_tables",
                "description": "List tables.",
                "parameters": {"type": "object", "properties": {}},
            },
        }


class TestSQLModels:
    """Test SQL result and validation models."""

    def test_table_info_schema_alias(self):
        table = TableInfo.model_validate({"name": "users", "schema": "public"})

        assert table.schema_name == "public"
        assert table.model_dump(by_alias=True, exclude_none=True) == {"name": "users", "schema": "public"}
        assert TableInfo(name="orders").model_dump(by_alias=True, exclude_none=True) == {"name": "orders"}

    def test_row_views_follow_column_order(self):
        result = ExecuteResult(columns=["b", "a"], rows=[{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])

        views = result.row_views()

        assert [view.values for view in views] == [["x", 1], ["y", 2]]
        assert views[0]["a"] == 1
        assert result.row_view(1) == RowView(["b", "a"], {"a": 2, "b": "y"})

    def test_row_view_out_of_range(self):
        result = ExecuteResult(columns=["a"], rows=[{"a": 1}])

        assert result.row_view(1) is None
        assert result.row_view(-1) is None

    def test_typed_accessors(self):
        view = RowView(["s", "i", "f", "b"], {"s": "text", "i": 3, "f": 2.5, "b": True})

        assert view.get_string("s") == "text"
        assert view.get_string("i") is None
        assert view.get_int("i") == 3
        assert view.get_int("f") == 2
        assert view.get_int("b") is None
        assert view.get_float("i") == 3.0
        assert view.get_bool("b") is True
        assert view.get_bool("missing") is None

    def test_validate_response_defaults(self):
        verdict = SQLValidateResponse.model_validate({"valid": True})

        assert verdict.normalized_sql == ""
        assert verdict.read_only is False
        assert verdict.tables is None

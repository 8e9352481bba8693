"""Tests for AnthropicTransformer and SSE helpers."""

import pytest

from augment_proxy.gateway.transforms.anthropic import (
    AnthropicTransformer,
    format_sse_event,
    generate_message_id,
    map_finish_reason,
)


class TestFromUpstream:
    """Tests for converting provider responses."""

    def test_basic_response(self):
        """A complete provider response maps field by field."""
        result = AnthropicTransformer().from_upstream(
            {
                "id": "gen-123",
                "model": "openai/gpt-4o",
                "choices": [
                    {"message": {"role": "assistant", "content": "Hi!"}, "finish_reason": "stop"}
                ],
                "usage": {"prompt_tokens": 12, "completion_tokens": 3},
            }
        )

        assert result == {
            "id": "gen-123",
            "type": "message",
            "role": "assistant",
            "content": [{"type": "text", "text": "Hi!"}],
            "model": "openai/gpt-4o",
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 12, "output_tokens": 3},
        }

    def test_defaults_for_missing_fields(self):
        """Missing id, model, content and usage fall back to defaults."""
        result = AnthropicTransformer().from_upstream({"choices": [{"message": {}}]})

        assert result["id"].startswith("msg_")
        assert result["model"] == "unknown"
        assert result["content"] == [{"type": "text", "text": ""}]
        assert result["stop_reason"] == "end_turn"
        assert result["usage"] == {"input_tokens": 0, "output_tokens": 0}

    def test_empty_choices(self):
        """A response without choices still yields a message."""
        result = AnthropicTransformer().from_upstream({"choices": []})

        assert result["content"] == [{"type": "text", "text": ""}]

    def test_length_finish(self):
        """Truncated responses report max_tokens."""
        result = AnthropicTransformer().from_upstream(
            {"choices": [{"message": {"content": "..."}, "finish_reason": "length"}]}
        )

        assert result["stop_reason"] == "max_tokens"

    def test_only_first_choice_used(self):
        """Additional choices are ignored."""
        result = AnthropicTransformer().from_upstream(
            {
                "choices": [
                    {"message": {"content": "first"}},
                    {"message": {"content": "second"}},
                ]
            }
        )

        assert result["content"][0]["text"] == "first"


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize(
        ("reason", "expected"),
        [
            ("stop", "end_turn"),
            ("length", "max_tokens"),
            ("tool_calls", "tool_use"),
            ("function_call", "tool_use"),
            ("content_filter", "stop_sequence"),
            ("other", "end_turn"),
            (None, "end_turn"),
        ],
    )
    def test_map_finish_reason(self, reason, expected):
        """Finish reasons map through the fixed table."""
        assert map_finish_reason(reason) == expected

    def test_message_id_format(self):
        """Generated ids are msg_ followed by digits."""
        message_id = generate_message_id()

        assert message_id.startswith("msg_")
        assert message_id[4:].isdigit()

    def test_sse_event_is_compact(self):
        """SSE data is serialized without spaces."""
        raw = format_sse_event("content_block_stop", {"type": "content_block_stop", "index": 0})

        assert raw == b'event: content_block_stop\ndata: {"type":"content_block_stop","index":0}\n\n'

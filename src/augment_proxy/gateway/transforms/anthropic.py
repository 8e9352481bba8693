"""Anthropic Messages API response transformer.

Converts OpenAI-compatible provider responses back to the Anthropic
Messages API format, and formats Anthropic SSE events.

Anthropic API Reference:
- Response: {id, type, role, content, model, stop_reason, stop_sequence, usage}
- Streaming: SSE events (message_start, content_block_start/delta/stop, message_delta, message_stop)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

# Provider finish_reason -> Anthropic stop_reason
FINISH_REASON_MAP = {
    "stop": "end_turn",
    "length": "max_tokens",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "content_filter": "stop_sequence",
}

DEFAULT_STOP_REASON = "end_turn"


def generate_message_id() -> str:
    """Generate a message ID in Anthropic format."""
    return f"msg_{int(time.time() * 1000)}"


def map_finish_reason(reason: Any) -> str:
    """Map a provider finish reason to an Anthropic stop reason.

    Unknown or missing reasons map to ``end_turn``.
    """
    if not isinstance(reason, str):
        return DEFAULT_STOP_REASON
    return FINISH_REASON_MAP.get(reason, DEFAULT_STOP_REASON)


def format_sse_event(event_type: str, data: dict[str, Any]) -> bytes:
    """Format data as an SSE event.

    Args:
        event_type: The SSE event type
        data: The event data to serialize

    Returns:
        SSE-formatted bytes with event and data lines
    """
    json_data = json.dumps(data, separators=(",", ":"))
    return f"event: {event_type}\ndata: {json_data}\n\n".encode()


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key)
    return value if isinstance(value, int) else 0


@dataclass
class AnthropicTransformer:
    """Transforms provider responses to Anthropic format."""

    def from_upstream(self, data: dict[str, Any]) -> dict[str, Any]:
        """Convert a non-streaming provider response to an Anthropic message.

        Only the first choice is used; its message content becomes the
        single text block of the reply.

        Args:
            data: Provider (OpenAI-format) response body

        Returns:
            Anthropic-format message dict
        """
        choices = data.get("choices") or [{}]
        choice = choices[0] if isinstance(choices[0], dict) else {}
        message = choice.get("message") or {}
        usage = data.get("usage") or {}

        return {
            "id": data.get("id") or generate_message_id(),
            "type": "message",
            "role": "assistant",
            "content": [{"type": "text", "text": message.get("content") or ""}],
            "model": data.get("model") or "unknown",
            "stop_reason": map_finish_reason(choice.get("finish_reason")),
            "stop_sequence": None,
            "usage": {
                "input_tokens": _token_count(usage, "prompt_tokens"),
                "output_tokens": _token_count(usage, "completion_tokens"),
            },
        }

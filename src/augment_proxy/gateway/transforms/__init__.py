"""API format transformers.

Converts Anthropic Messages API requests into the OpenAI-compatible
format used by the provider, and provider responses back into Anthropic
messages and SSE events.
"""

from .anthropic import (
    FINISH_REASON_MAP,
    AnthropicTransformer,
    format_sse_event,
    generate_message_id,
    map_finish_reason,
)
from .openai import OpenAITransformer
from .types import (
    ContentBlock,
    ImageBlock,
    ImageSource,
    InboundMessage,
    OpaqueBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    parse_content_block,
    parse_message,
)
from .validation import MessagesRequest, validate_request

__all__ = [
    # Transformers
    "AnthropicTransformer",
    "OpenAITransformer",
    "FINISH_REASON_MAP",
    "format_sse_event",
    "generate_message_id",
    "map_finish_reason",
    # Types
    "ContentBlock",
    "ImageBlock",
    "ImageSource",
    "InboundMessage",
    "OpaqueBlock",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "parse_content_block",
    "parse_message",
    # Validation
    "MessagesRequest",
    "validate_request",
]

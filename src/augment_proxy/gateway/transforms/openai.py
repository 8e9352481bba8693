"""OpenAI Chat Completions request transformer.

Converts Anthropic-format messages, content blocks and tool declarations
into the OpenAI-compatible shape expected by the provider.

OpenAI API Reference:
- Request: POST /chat/completions with {model, messages, tools, stream, max_tokens, temperature}
- Messages: [{role, content}] where content is a string or a list of
  {type: "text"} / {type: "image_url"} parts
- Tools: [{type: "function", function: {name, description, parameters}}]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .types import (
    ContentBlock,
    ImageBlock,
    InboundMessage,
    OpaqueBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    parse_message,
)


@dataclass
class OpenAITransformer:
    """Transforms Anthropic request pieces to OpenAI format."""

    def convert_block(self, block: ContentBlock) -> dict[str, Any] | None:
        """Convert a single content block to an OpenAI content part.

        Args:
            block: Parsed inbound content block.

        Returns:
            The converted part, or None when the block has nothing to
            forward (an image whose source is neither base64 nor url).
        """
        if isinstance(block, TextBlock):
            return {"type": "text", "text": block.text}

        if isinstance(block, ImageBlock):
            source = block.source
            if source.type == "base64":
                return {
                    "type": "image_url",
                    "image_url": {"url": f"data:{source.media_type};base64,{source.data}"},
                }
            if source.type == "url":
                return {"type": "image_url", "image_url": {"url": source.url}}
            return None

        if isinstance(block, ToolUseBlock):
            return {
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            }

        if isinstance(block, ToolResultBlock):
            return {
                "type": "tool_result",
                "tool_use_id": block.tool_use_id,
                "content": block.content,
            }

        # Unknown block types are forwarded as-is
        assert isinstance(block, OpaqueBlock)
        return dict(block.payload)

    def convert_content(
        self, content: str | tuple[ContentBlock, ...]
    ) -> str | list[dict[str, Any]]:
        """Convert message content, collapsing a lone text part to a string."""
        if isinstance(content, str):
            return content

        parts: list[dict[str, Any]] = []
        for block in content:
            part = self.convert_block(block)
            if part is not None:
                parts.append(part)

        if len(parts) == 1 and parts[0].get("type") == "text":
            return parts[0]["text"]
        return parts

    def convert_messages(self, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Convert user/assistant messages, dropping system-role messages.

        Args:
            messages: Raw Anthropic ``messages`` array.

        Returns:
            OpenAI messages in the original relative order.
        """
        converted: list[dict[str, Any]] = []
        for raw in messages:
            message = raw if isinstance(raw, InboundMessage) else parse_message(raw)
            if message.role == "system":
                continue
            converted.append(
                {
                    "role": message.role,
                    "content": self.convert_content(message.content),
                }
            )
        return converted

    def convert_tools(self, tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Convert Anthropic tool definitions to OpenAI function declarations.

        Tools already in the OpenAI shape (``type == "function"``) pass through.
        """
        result: list[dict[str, Any]] = []
        for tool in tools:
            if tool.get("type") == "function":
                result.append(tool)
                continue
            result.append(
                {
                    "type": "function",
                    "function": {
                        "name": tool.get("name"),
                        "description": tool.get("description"),
                        "parameters": tool.get("input_schema"),
                    },
                }
            )
        return result

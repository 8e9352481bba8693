"""Typed content blocks for the Anthropic Messages API.

Inbound message content is parsed into a closed set of block variants.
Block types this module does not know about are kept as ``OpaqueBlock``
so they can be forwarded untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class ImageSource:
    """Source of an image block (inline base64 or remote URL)."""

    type: str
    media_type: str | None = None
    data: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ImageBlock:
    """Image content."""

    source: ImageSource
    type: Literal["image"] = "image"


@dataclass(frozen=True)
class ToolUseBlock:
    """Assistant invoking a tool."""

    id: str | None
    name: str | None
    input: Any = None
    type: Literal["tool_use"] = "tool_use"


@dataclass(frozen=True)
class ToolResultBlock:
    """User returning the result of a tool invocation."""

    tool_use_id: str | None
    content: Any = None
    type: Literal["tool_result"] = "tool_result"


@dataclass(frozen=True)
class OpaqueBlock:
    """Block of an unrecognized type, preserved verbatim."""

    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return str(self.payload.get("type", ""))


ContentBlock = TextBlock | ImageBlock | ToolUseBlock | ToolResultBlock | OpaqueBlock


@dataclass(frozen=True)
class InboundMessage:
    """A message as sent by the client.

    Content is either a plain string or a tuple of typed blocks.
    """

    role: Role
    content: str | tuple[ContentBlock, ...] = ""


def parse_content_block(block: Any) -> ContentBlock:
    """Parse one raw content block into its typed variant.

    Args:
        block: Raw block dict from the request body.

    Returns:
        The matching block variant, or an OpaqueBlock for unknown types
        (and for anything that is not a dict).
    """
    if not isinstance(block, dict):
        return OpaqueBlock(payload={"type": "unknown", "value": block})

    block_type = block.get("type")

    if block_type == "text":
        return TextBlock(text=block.get("text") or "")

    if block_type == "image":
        source = block.get("source") or {}
        if not isinstance(source, dict):
            source = {}
        return ImageBlock(
            source=ImageSource(
                type=str(source.get("type", "")),
                media_type=source.get("media_type"),
                data=source.get("data"),
                url=source.get("url"),
            )
        )

    if block_type == "tool_use":
        return ToolUseBlock(
            id=block.get("id"),
            name=block.get("name"),
            input=block.get("input"),
        )

    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=block.get("tool_use_id"),
            content=block.get("content"),
        )

    return OpaqueBlock(payload=dict(block))


def parse_message(message: dict[str, Any]) -> InboundMessage:
    """Parse a raw message dict into an InboundMessage."""
    role = message.get("role", "user")
    content = message.get("content")

    if isinstance(content, list):
        return InboundMessage(
            role=role,
            content=tuple(parse_content_block(block) for block in content),
        )
    if content is None:
        return InboundMessage(role=role, content="")
    if not isinstance(content, str):
        return InboundMessage(role=role, content=str(content))
    return InboundMessage(role=role, content=content)

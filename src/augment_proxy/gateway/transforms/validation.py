"""Pydantic models for Anthropic Messages API request validation.

These models validate incoming requests before they are augmented.
They are deliberately loose (extra="allow" everywhere) so that fields the
proxy does not know about survive untouched.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator


class ImageSource(BaseModel):
    """Image source for image content blocks."""

    model_config = ConfigDict(extra="allow")

    type: str
    media_type: str | None = None
    data: str | None = None
    url: str | None = None


class ContentBlock(BaseModel):
    """Content block within a message.

    Known types are text, image, tool_use and tool_result; any other type,
    or none at all, is accepted and forwarded unchanged.
    """

    model_config = ConfigDict(extra="allow")

    type: str | None = None

    text: str | None = None

    id: str | None = None
    name: str | None = None
    input: Any = None

    tool_use_id: str | None = None
    content: Any = None

    source: ImageSource | None = None


class Message(BaseModel):
    """A message in the conversation."""

    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant", "system"]
    content: str | list[ContentBlock]


class SystemContentBlock(BaseModel):
    """Segment of the top-level system prompt.

    Only text segments contribute to the prompt; other segments are accepted
    and skipped.
    """

    model_config = ConfigDict(extra="allow")

    type: str = "text"
    text: str | None = None
    cache_control: dict[str, Any] | None = None


class MessagesRequest(BaseModel):
    """Anthropic Messages API request body."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    messages: list[Message]
    system: str | list[SystemContentBlock] | None = None
    tools: list[dict[str, Any]] | None = None
    max_tokens: int | None = None
    stream: bool | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("messages")
    @classmethod
    def validate_messages(cls, v: list[Message]) -> list[Message]:
        """Validate messages list is not empty."""
        if not v:
            raise ValueError("messages list cannot be empty")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int | None) -> int | None:
        """Validate max_tokens is positive."""
        if v is not None and v <= 0:
            raise ValueError("max_tokens must be positive")
        return v


def validate_request(body: dict[str, Any]) -> list[str]:
    """Validate an Anthropic Messages API request body.

    Args:
        body: The request body dict to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    try:
        MessagesRequest.model_validate(body)
    except ValidationError as e:
        return [
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in e.errors()
        ]
    return []

"""Incremental transcoding of provider SSE streams into Anthropic SSE events.

The provider sends newline-delimited ``data: <json>`` frames terminated by
``data: [DONE]``. The transcoder consumes raw byte chunks as they arrive and
emits the Anthropic event sequence::

    message_start
    content_block_start (index 0, text)
    content_block_delta*  (one per text delta)
    content_block_stop
    message_delta         (stop_reason, output tokens)
    message_stop

Only the partial line at the end of the latest chunk is buffered.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from augment_proxy.gateway.transforms.anthropic import (
    format_sse_event,
    generate_message_id,
    map_finish_reason,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class TranscoderState(Enum):
    """Transcoder states."""

    AWAITING_FRAME = auto()  # Nothing parsed yet, start events pending
    STREAMING = auto()  # Start events sent, forwarding deltas
    FINISHED = auto()  # Closing events sent


@dataclass(frozen=True)
class StreamEvent:
    """A single Anthropic SSE event."""

    event: str
    data: dict[str, Any]

    def encode(self) -> bytes:
        return format_sse_event(self.event, self.data)


@dataclass
class StreamTranscoder:
    """Stateful converter from provider frames to Anthropic events.

    One instance handles exactly one stream.

    Example:
        >>> transcoder = StreamTranscoder()
        >>> events = transcoder.feed(b'data: {"choices":[{"delta":{"content":"Hi"}}]}\\n')
        >>> [e.event for e in events]
        ['message_start', 'content_block_start', 'content_block_delta']
    """

    message_id: str = field(default_factory=generate_message_id)
    state: TranscoderState = TranscoderState.AWAITING_FRAME
    input_tokens: int = 0
    output_tokens: int = 0
    _buffer: str = ""
    _decoder: codecs.IncrementalDecoder = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace")
    )

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume a chunk of provider bytes.

        Args:
            chunk: Raw bytes as read from the provider response.

        Returns:
            Events produced by every line completed by this chunk.
        """
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            events.extend(self._process_line(line))
        return events

    def close(self) -> list[StreamEvent]:
        """Flush the decoder and process a final unterminated line."""
        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        if not remaining:
            return []
        return self._process_line(remaining)

    def _process_line(self, line: str) -> list[StreamEvent]:
        if not line.startswith(DATA_PREFIX):
            return []

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            return []

        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream frame: %s", payload[:200])
            return []
        if not isinstance(frame, dict):
            logger.debug("Skipping non-object stream frame: %s", payload[:200])
            return []

        return self._process_frame(frame)

    def _process_frame(self, frame: dict[str, Any]) -> list[StreamEvent]:
        events: list[StreamEvent] = []

        self._update_usage(frame.get("usage"))
        if self.state is TranscoderState.FINISHED:
            return events

        if self.state is TranscoderState.AWAITING_FRAME:
            events.extend(self._start_events(frame))
            self.state = TranscoderState.STREAMING

        choices = frame.get("choices")
        choice = choices[0] if isinstance(choices, list) and choices else {}
        if not isinstance(choice, dict):
            choice = {}

        delta = choice.get("delta")
        text = delta.get("content") if isinstance(delta, dict) else None
        if text:
            events.append(
                StreamEvent(
                    "content_block_delta",
                    {
                        "type": "content_block_delta",
                        "index": 0,
                        "delta": {"type": "text_delta", "text": text},
                    },
                )
            )

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            events.extend(self._stop_events(finish_reason))
            self.state = TranscoderState.FINISHED

        return events

    def _update_usage(self, usage: Any) -> None:
        if not isinstance(usage, dict):
            return
        prompt_tokens = usage.get("prompt_tokens")
        completion_tokens = usage.get("completion_tokens")
        if isinstance(prompt_tokens, int):
            self.input_tokens = prompt_tokens
        if isinstance(completion_tokens, int):
            self.output_tokens = completion_tokens

    def _start_events(self, frame: dict[str, Any]) -> list[StreamEvent]:
        return [
            StreamEvent(
                "message_start",
                {
                    "type": "message_start",
                    "message": {
                        "id": self.message_id,
                        "type": "message",
                        "role": "assistant",
                        "content": [],
                        "model": frame.get("model") or "unknown",
                        "stop_reason": None,
                        "stop_sequence": None,
                        "usage": {"input_tokens": 0, "output_tokens": 0},
                    },
                },
            ),
            StreamEvent(
                "content_block_start",
                {
                    "type": "content_block_start",
                    "index": 0,
                    "content_block": {"type": "text", "text": ""},
                },
            ),
        ]

    def _stop_events(self, finish_reason: Any) -> list[StreamEvent]:
        return [
            StreamEvent("content_block_stop", {"type": "content_block_stop", "index": 0}),
            StreamEvent(
                "message_delta",
                {
                    "type": "message_delta",
                    "delta": {
                        "stop_reason": map_finish_reason(finish_reason),
                        "stop_sequence": None,
                    },
                    "usage": {"output_tokens": self.output_tokens},
                },
            ),
            StreamEvent("message_stop", {"type": "message_stop"}),
        ]


async def transcode(source: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Transcode a provider byte stream into Anthropic SSE bytes.

    Errors raised while reading ``source`` propagate to the consumer.
    When the source ends, any remaining complete frame is processed; no
    events are invented if nothing was parsed.
    """
    transcoder = StreamTranscoder()
    async for chunk in source:
        for event in transcoder.feed(chunk):
            yield event.encode()
    for event in transcoder.close():
        yield event.encode()

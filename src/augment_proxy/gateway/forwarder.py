"""Forwarding of augmented requests to the provider.

Uses aiohttp.ClientSession for the outbound call. Failures are reported
as ForwardResult values carrying an HTTP status for the caller:

- transport failure (connection refused, DNS, timeout): 502
- provider error status: the provider's own status and message
- anything else: 500

No retries are attempted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import aiohttp

from augment_proxy.config import AugmentPolicy
from augment_proxy.gateway.streaming import transcode
from augment_proxy.gateway.transforms.anthropic import AnthropicTransformer

logger = logging.getLogger(__name__)

# Static identification headers sent with every provider request
IDENTIFICATION_HEADERS = {
    "HTTP-Referer": "https://claude-code-augment.local",
    "X-Title": "Claude Code Augment",
}


@dataclass
class ForwardResult:
    """Outcome of a provider call.

    On success ``response`` is the open provider response; the caller
    consumes it with ``Forwarder.read_json`` or ``Forwarder.stream``.
    """

    success: bool
    response: aiohttp.ClientResponse | None = None
    error: str | None = None
    error_code: int | None = None


def _error_message(body: str, status: int, reason: str | None) -> str:
    """Pull a human-readable message out of a provider error body."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])

    return f"HTTP {status}: {reason or 'Unknown error'}"


@dataclass
class Forwarder:
    """HTTP client for the provider endpoint.

    A session passed in by the caller is reused and left open; otherwise
    one is created on first use and closed by ``close()``.
    """

    policy: AugmentPolicy
    session: aiohttp.ClientSession | None = None
    connect_timeout: float = 10.0
    read_timeout: float = 300.0
    _owns_session: bool = False

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.policy.openrouter_auth}",
            **IDENTIFICATION_HEADERS,
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    connect=self.connect_timeout,
                    total=self.read_timeout,
                )
            )
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the session if this forwarder created it."""
        if self._owns_session and self.session:
            await self.session.close()
        self.session = None
        self._owns_session = False

    async def forward(
        self,
        body: dict[str, Any],
        trace_id: str | None = None,
    ) -> ForwardResult:
        """Send the augmented request to the provider.

        Args:
            body: Provider-format request body from the augmenter.
            trace_id: Optional trace ID for log correlation.

        Returns:
            ForwardResult with the open response on success.
        """
        trace = trace_id or "-"
        logger.debug(
            "[%s] Forwarding augmented request: model=%s, messages=%d, tools=%s, stream=%s",
            trace,
            body.get("model"),
            len(body.get("messages", [])),
            bool(body.get("tools")),
            body.get("stream"),
        )

        try:
            response = await self._get_session().post(
                self.policy.openrouter_endpoint,
                json=body,
                headers=self._headers(),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error("[%s] Provider request failed: %s", trace, e)
            return ForwardResult(
                success=False,
                error=f"Network error: Unable to reach OpenRouter endpoint - {e}",
                error_code=502,
            )
        except Exception as e:
            logger.exception("[%s] Unexpected error forwarding request", trace)
            return ForwardResult(
                success=False,
                error=f"Forward error: {e}",
                error_code=500,
            )

        if response.status >= 400:
            try:
                error_text = await response.text()
            except aiohttp.ClientError:
                error_text = ""
            finally:
                response.release()
            logger.error(
                "[%s] Provider error %d: %s",
                trace,
                response.status,
                error_text[:500],
            )
            return ForwardResult(
                success=False,
                error=_error_message(error_text, response.status, response.reason),
                error_code=response.status,
            )

        return ForwardResult(success=True, response=response)

    async def read_json(self, result: ForwardResult) -> dict[str, Any]:
        """Read a non-streaming provider response as an Anthropic message."""
        if result.response is None:
            raise ValueError("ForwardResult has no response")
        async with result.response as response:
            data = await response.json(content_type=None)
        if not isinstance(data, dict):
            data = {}
        return AnthropicTransformer().from_upstream(data)

    async def stream(self, result: ForwardResult) -> AsyncIterator[bytes]:
        """Yield Anthropic SSE bytes transcoded from the provider stream.

        Read errors from the provider propagate to the consumer.
        """
        if result.response is None:
            raise ValueError("ForwardResult has no response")
        async with result.response as response:
            async for event in transcode(response.content.iter_any()):
                yield event

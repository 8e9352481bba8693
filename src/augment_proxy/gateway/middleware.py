"""Augment middleware for aiohttp.

Wires detection, augmentation and forwarding for one inbound request:

1. Detect requests from the configured client (header or metadata rule)
2. Validate the request and build the augmented provider request
3. Forward to the provider
4. Return the provider reply in Anthropic format (JSON or SSE)

Requests that are not detected are left to the wrapped handler.
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import aiohttp
from aiohttp import web

from augment_proxy.config import AugmentPolicy
from augment_proxy.gateway.augmenter import Augmenter
from augment_proxy.gateway.detection import DetectionRule
from augment_proxy.gateway.errors import error_response, error_type_for_status, format_error_sse
from augment_proxy.gateway.forwarder import Forwarder, ForwardResult
from augment_proxy.gateway.tracing import RequestTracer
from augment_proxy.gateway.transforms.validation import validate_request

if TYPE_CHECKING:
    from aiohttp.typedefs import Handler

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/v1/messages"


def is_augmentable_path(request: web.Request) -> bool:
    """Only message creation is augmented; token counting is left alone."""
    return (
        request.method == "POST"
        and request.path.startswith(MESSAGES_PATH)
        and "count_tokens" not in request.path
    )


@dataclass
class AugmentMiddleware:
    """Per-request orchestration of the augment pipeline.

    Holds no per-request state; one instance serves concurrent requests.

    Example:
        >>> middleware = AugmentMiddleware(policy=policy)
        >>> app = web.Application(middlewares=[augment_middleware(middleware)])
    """

    policy: AugmentPolicy
    forwarder: Forwarder | None = None
    tracer: RequestTracer = field(default_factory=RequestTracer)
    _detector: DetectionRule = field(init=False)
    _augmenter: Augmenter = field(init=False)

    def __post_init__(self) -> None:
        self._detector = DetectionRule(self.policy)
        self._augmenter = Augmenter(self.policy)
        if self.forwarder is None:
            self.forwarder = Forwarder(self.policy)

    async def close(self) -> None:
        """Release the forwarder's HTTP session."""
        if self.forwarder:
            await self.forwarder.close()

    async def _read_body(self, request: web.Request) -> dict[str, Any] | None:
        if "application/json" not in request.headers.get("Content-Type", ""):
            return None
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return body if isinstance(body, dict) else None

    async def handle(self, request: web.Request) -> web.StreamResponse | None:
        """Handle a request if it should be augmented.

        Returns:
            The reply, or None when the request is not augmented and should
            continue to the regular handler.
        """
        if not self.policy.enabled:
            return None

        body = await self._read_body(request)
        if body is None or not self._detector.matches(request.headers, body):
            logger.debug("Request does not match detection criteria: %s", request.path)
            return None

        trace_id = self.tracer.generate_trace_id(body)
        logger.info("[%s] Claude Code request detected, applying augmentation", trace_id)
        self.tracer.save_debug(trace_id, "1_request.json", body)

        validation_errors = validate_request(body)
        if validation_errors:
            return error_response("invalid_request_error", "; ".join(validation_errors), 400)

        outbound, result = self._augmenter.augment(body)
        if not result.success:
            return error_response(
                "invalid_request_error",
                result.error or "Augmentation failed",
                result.error_code or 400,
            )

        is_streaming = body.get("stream", True) is not False
        if is_streaming:
            outbound["stream"] = True
        self.tracer.save_debug(trace_id, "2_augmented_request.json", outbound)

        logger.info(
            "[%s] Request: model=%s, messages=%d, stream=%s, augmented=%s -> %s",
            trace_id,
            outbound.get("model"),
            len(outbound["messages"]),
            is_streaming,
            result.augmented,
            self.policy.openrouter_endpoint,
        )

        assert self.forwarder is not None
        forward_result = await self.forwarder.forward(outbound, trace_id)
        if not forward_result.success:
            status = forward_result.error_code or 500
            error_type = "api_error" if status == 502 else error_type_for_status(status)
            return error_response(error_type, forward_result.error or "Forward failed", status)

        if is_streaming:
            return await self._stream_reply(request, forward_result, trace_id)
        return await self._json_reply(forward_result, trace_id)

    async def _json_reply(self, result: ForwardResult, trace_id: str) -> web.StreamResponse:
        assert self.forwarder is not None
        try:
            message = await self.forwarder.read_json(result)
        except (aiohttp.ClientError, json.JSONDecodeError) as e:
            logger.error("[%s] Failed to read provider response: %s", trace_id, e)
            return error_response("api_error", f"Network error: {e}", 502)

        usage = message["usage"]
        logger.info(
            "[%s] Response complete: input_tokens=%s, output_tokens=%s",
            trace_id,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return web.json_response(message, headers={"X-Trace-Id": trace_id})

    async def _stream_reply(
        self,
        request: web.Request,
        result: ForwardResult,
        trace_id: str,
    ) -> web.StreamResponse:
        assert self.forwarder is not None
        response = web.StreamResponse(
            status=200,
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Trace-Id": trace_id,
            },
        )
        await response.prepare(request)

        event_count = 0
        try:
            async with aclosing(self.forwarder.stream(result)) as events:
                async for data in events:
                    await response.write(data)
                    event_count += 1
        except ConnectionResetError:
            # Client disconnected - stop reading from the provider
            logger.debug("[%s] Client disconnected during streaming", trace_id)
            return response
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("[%s] Provider stream failed: %s", trace_id, e)
            try:
                await response.write(format_error_sse("api_error", f"Network error: {e}"))
            except ConnectionResetError:
                return response

        logger.info("[%s] Stream complete, sent %d events", trace_id, event_count)
        try:
            await response.write_eof()
        except ConnectionResetError:
            logger.debug("[%s] Client disconnected before end of stream", trace_id)
        return response


def augment_middleware(augment: AugmentMiddleware) -> Any:
    """Create an aiohttp middleware applying ``augment`` to message requests."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if is_augmentable_path(request):
            response = await augment.handle(request)
            if response is not None:
                return response
        return await handler(request)

    return middleware

"""Augment gateway - request rewriting between Claude Code and a model provider.

Components:
- Detection: decide whether a request comes from the augmented client
- Augmenter: build the provider request with injected prompts and context
- Forwarder: call the provider and map failures to HTTP statuses
- Streaming: transcode provider SSE frames into Anthropic SSE events
- Middleware: aiohttp middleware wiring the above together
- Server: aiohttp application hosting the middleware

Usage (direct):
    from augment_proxy.config import ProxyConfig, policy_from_mapping
    from augment_proxy.gateway.server import AugmentProxyServer
    import asyncio

    async def main():
        config = ProxyConfig(
            policy=policy_from_mapping(
                {"enabled": True, "openrouter_auth": "sk-or-..."}
            ),
        )
        server = AugmentProxyServer(config=config)
        await server.serve()

    asyncio.run(main())
"""

from augment_proxy.gateway.augmenter import Augmenter, AugmentResult, augment
from augment_proxy.gateway.detection import DetectionRule, matches
from augment_proxy.gateway.errors import ERROR_TYPE_MAP
from augment_proxy.gateway.forwarder import Forwarder, ForwardResult
from augment_proxy.gateway.middleware import AugmentMiddleware, augment_middleware
from augment_proxy.gateway.streaming import StreamEvent, StreamTranscoder, transcode
from augment_proxy.gateway.tracing import RequestTracer

__all__ = [
    "ERROR_TYPE_MAP",
    "AugmentMiddleware",
    "AugmentResult",
    "Augmenter",
    "DetectionRule",
    "ForwardResult",
    "Forwarder",
    "RequestTracer",
    "StreamEvent",
    "StreamTranscoder",
    "augment",
    "augment_middleware",
    "matches",
    "transcode",
]

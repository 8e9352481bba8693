"""Augment proxy server.

Hosts the augment middleware in an aiohttp application. Requests from the
detected client are augmented and sent to the provider; everything else on
/v1/messages is passed through unchanged to an Anthropic-compatible
upstream when one is configured.

Endpoints:
- POST /v1/messages               augmented or passed through
- POST /v1/messages/count_tokens  passed through
- GET  /health                    health and augmentation status
- POST /api/shutdown              stop the server
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from aiohttp import web

from augment_proxy.config import ProxyConfig
from augment_proxy.gateway.errors import error_response
from augment_proxy.gateway.forwarder import Forwarder
from augment_proxy.gateway.middleware import AugmentMiddleware, augment_middleware
from augment_proxy.gateway.tracing import RequestTracer

logger = logging.getLogger(__name__)

# Headers never forwarded to the passthrough upstream (hop-by-hop or recalculated)
SKIP_HEADERS = {
    "host",
    "connection",
    "keep-alive",
    "transfer-encoding",
    "te",
    "trailer",
    "upgrade",
    "proxy-authorization",
    "proxy-authenticate",
    "proxy-connection",
    "content-length",
}

# Upstream response headers not copied back to the client
SKIP_RESPONSE_HEADERS = {
    "connection",
    "keep-alive",
    "transfer-encoding",
    "content-length",
}


@dataclass
class AugmentProxyServer:
    """HTTP server hosting the augment middleware.

    Example:
        >>> config = ProxyConfig(
        ...     passthrough_base_url="https://api.anthropic.com",
        ...     policy=policy_from_mapping({"enabled": True, "openrouter_auth": "sk-or-..."}),
        ... )
        >>> server = AugmentProxyServer(config=config)
        >>> await server.serve()
    """

    config: ProxyConfig
    _app: web.Application | None = None
    _runner: web.AppRunner | None = None
    _session: aiohttp.ClientSession | None = None
    _augment: AugmentMiddleware | None = None
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)

    def build_app(self) -> web.Application:
        """Create the aiohttp application (without starting a listener)."""
        self._augment = AugmentMiddleware(
            policy=self.config.policy,
            forwarder=Forwarder(
                self.config.policy,
                connect_timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout,
            ),
            tracer=RequestTracer(debug_dir=self.config.debug_dir),
        )

        app = web.Application(
            client_max_size=self.config.max_body_size,
            middlewares=[augment_middleware(self._augment)],
        )
        app.router.add_post("/v1/messages", self._handle_passthrough)
        app.router.add_post("/v1/messages/count_tokens", self._handle_passthrough)
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/api/shutdown", self._handle_shutdown)
        app.on_cleanup.append(self._on_cleanup)
        self._app = app
        return app

    async def serve(self) -> None:
        """Start the proxy server and block until shutdown is requested."""
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        policy = self.config.policy
        logger.info(
            "Augment proxy listening on http://%s:%d (augmentation %s)",
            self.config.host,
            self.config.port,
            "enabled" if policy.enabled else "disabled",
        )
        if policy.enabled:
            logger.info("Augmented requests go to: %s", policy.openrouter_endpoint)
        if self.config.passthrough_base_url:
            logger.info("Other requests go to: %s", self.config.passthrough_base_url)
        if self.config.debug_dir:
            logger.info("Debug files will be saved to: %s", self.config.debug_dir)

        await self._shutdown_event.wait()
        logger.info("Augment proxy shutdown requested")
        await self.stop()

    async def stop(self) -> None:
        """Stop the proxy server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _on_cleanup(self, app: web.Application) -> None:
        if self._augment:
            await self._augment.close()
        if self._session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    connect=self.config.connect_timeout,
                    total=self.config.read_timeout,
                ),
                auto_decompress=False,
            )
        return self._session

    def _forward_headers(self, request: web.Request) -> dict[str, str]:
        headers = {k: v for k, v in request.headers.items() if k.lower() not in SKIP_HEADERS}
        if self.config.passthrough_api_key:
            headers = {
                k: v
                for k, v in headers.items()
                if k.lower() not in ("x-api-key", "authorization")
            }
            headers["x-api-key"] = self.config.passthrough_api_key
        return headers

    async def _handle_passthrough(self, request: web.Request) -> web.StreamResponse:
        """Forward a request that was not augmented to the passthrough upstream."""
        base_url = self.config.passthrough_base_url
        if not base_url:
            return error_response(
                "not_found_error",
                "Request was not augmented and no passthrough upstream is configured",
                404,
            )

        url = f"{base_url.rstrip('/')}{request.path_qs}"
        body = await request.read()
        logger.debug("Passing through %s %s (%d bytes)", request.method, url, len(body))

        try:
            upstream = await self._get_session().post(
                url,
                data=body,
                headers=self._forward_headers(request),
            )
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("Passthrough request failed: %s", e)
            return error_response("api_error", f"Network error: {e}", 502)

        async with upstream:
            response = web.StreamResponse(
                status=upstream.status,
                headers={
                    k: v
                    for k, v in upstream.headers.items()
                    if k.lower() not in SKIP_RESPONSE_HEADERS
                },
            )
            await response.prepare(request)
            try:
                async for chunk in upstream.content.iter_any():
                    await response.write(chunk)
            except ConnectionResetError:
                logger.debug("Client disconnected during passthrough")
                return response
            except aiohttp.ClientError as e:
                logger.error("Passthrough stream failed: %s", e)
                return response

        await response.write_eof()
        return response

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health."""
        health: dict[str, Any] = {
            "status": "ok",
            "augment": "enabled" if self.config.policy.enabled else "disabled",
            "passthrough": bool(self.config.passthrough_base_url),
        }
        return web.json_response(health)

    async def _handle_shutdown(self, request: web.Request) -> web.Response:
        """Handle POST /api/shutdown."""
        self._shutdown_event.set()
        return web.json_response({"success": True, "message": "Shutdown initiated"})

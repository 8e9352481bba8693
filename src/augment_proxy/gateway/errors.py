"""Shared error definitions for the gateway.

Error type mapping from HTTP status to Anthropic error type, plus helpers
that build the Anthropic error envelope.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiohttp import web

# Error type mapping from upstream status to Anthropic error type
ERROR_TYPE_MAP = {
    400: "invalid_request_error",
    401: "authentication_error",
    403: "permission_error",
    404: "not_found_error",
    413: "request_too_large",
    429: "rate_limit_error",
    500: "api_error",
    502: "api_error",
    503: "api_error",
    504: "api_error",
    529: "overloaded_error",
}


def error_type_for_status(status: int) -> str:
    """Return the Anthropic error type for an HTTP status."""
    return ERROR_TYPE_MAP.get(status, "api_error")


def error_body(error_type: str, message: str) -> dict[str, Any]:
    """Build an Anthropic-format error envelope."""
    return {
        "type": "error",
        "error": {
            "type": error_type,
            "message": message,
        },
    }


def error_response(error_type: str, message: str, status: int) -> web.Response:
    """Return an Anthropic-format error response."""
    from aiohttp import web

    return web.json_response(error_body(error_type, message), status=status)


def format_error_sse(error_type: str, message: str) -> bytes:
    """Format an error as an SSE event."""
    return f"event: error\ndata: {json.dumps(error_body(error_type, message))}\n\n".encode()

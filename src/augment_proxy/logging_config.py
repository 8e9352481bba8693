"""Centralized logging configuration for the augment proxy.

Usage:
    from augment_proxy.logging_config import configure_logging

    # Configure once at application startup
    configure_logging(level="DEBUG")

Modules get their loggers with ``logging.getLogger(__name__)``.

Environment Variables:
    AUGMENT_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    AUGMENT_LOG_FORMAT: Output format ("text" or "json")
    AUGMENT_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes present on every LogRecord; anything else was passed via extra=
_STANDARD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message"}

_configured = False


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs logs as JSON objects:
    {
        "timestamp": "2026-01-12T14:30:00.123456",
        "level": "INFO",
        "logger": "augment_proxy.gateway.middleware",
        "message": "[00001_143000_1msgs_Hello] Claude Code request detected, ...",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    force: bool = False,
) -> None:
    """Configure root logging.

    Subsequent calls are ignored unless force=True. Arguments take
    precedence over the AUGMENT_LOG_* environment variables.

    Args:
        level: Log level. Defaults to AUGMENT_LOG_LEVEL or "INFO".
        format: Output format. Defaults to AUGMENT_LOG_FORMAT or "text".
        file_path: Optional log file. Defaults to AUGMENT_LOG_FILE.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    level = level or os.environ.get("AUGMENT_LOG_LEVEL", "INFO")
    format = format or os.environ.get("AUGMENT_LOG_FORMAT", "text")  # type: ignore[assignment]
    file_path = file_path or os.environ.get("AUGMENT_LOG_FILE")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # aiohttp access logs are noisy at INFO for a streaming proxy
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    _configured = True

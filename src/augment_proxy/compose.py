"""Composition helpers for running the augment proxy.

Configuration priority:
1. Function arguments (highest)
2. Environment variables
3. Config file (path argument or AUGMENT_CONFIG env var)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import replace

from augment_proxy.config import ConfigError, ProxyConfig, load_config


def build_config(
    config_file: str | None = None,
    host: str | None = None,
    port: int | None = None,
    passthrough_base_url: str | None = None,
    debug_dir: str | None = None,
) -> ProxyConfig:
    """Resolve the proxy configuration from arguments, environment and file.

    Environment variables:
        AUGMENT_CONFIG: Path to the YAML config file.
        AUGMENT_PROXY_HOST / AUGMENT_PROXY_PORT: Listen address.
        AUGMENT_PASSTHROUGH_URL: Upstream for requests that are not augmented.
        OPENROUTER_API_KEY: Provider token (overrides ``augment.openrouter_auth``).

    Raises:
        ConfigError: If the file cannot be loaded or a value is invalid.
    """
    config_path = config_file or os.environ.get("AUGMENT_CONFIG")
    config = load_config(config_path) if config_path else ProxyConfig()

    env_port = os.environ.get("AUGMENT_PROXY_PORT")
    if port is None and env_port:
        try:
            port = int(env_port)
        except ValueError as e:
            raise ConfigError(f"AUGMENT_PROXY_PORT must be an integer, got: {env_port}") from e

    config = replace(
        config,
        host=host or os.environ.get("AUGMENT_PROXY_HOST") or config.host,
        port=port if port is not None else config.port,
        passthrough_base_url=(
            passthrough_base_url
            or os.environ.get("AUGMENT_PASSTHROUGH_URL")
            or config.passthrough_base_url
        ),
        debug_dir=debug_dir or config.debug_dir,
    )

    api_key = os.environ.get("OPENROUTER_API_KEY")
    if api_key:
        config = replace(config, policy=replace(config.policy, openrouter_auth=api_key))

    return config


async def create_augment_proxy(
    config_file: str | None = None,
    host: str | None = None,
    port: int | None = None,
    passthrough_base_url: str | None = None,
    debug_dir: str | None = None,
) -> None:
    """Create and run the augment proxy server.

    This is a convenience function that blocks until stopped.

    Example:
        >>> # export AUGMENT_CONFIG=~/.augment-proxy.yaml
        >>> # export OPENROUTER_API_KEY=sk-or-...
        >>> await create_augment_proxy()
    """
    from augment_proxy.gateway.server import AugmentProxyServer

    config = build_config(
        config_file=config_file,
        host=host,
        port=port,
        passthrough_base_url=passthrough_base_url,
        debug_dir=debug_dir,
    )
    server = AugmentProxyServer(config=config)
    await server.serve()

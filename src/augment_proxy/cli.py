"""CLI entry point."""

from __future__ import annotations

import asyncio
import json
import sys

import rich_click as click

from augment_proxy.config import ConfigError, load_config, validate_policy_config

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
click.rich_click.MAX_WIDTH = 100


@click.group()
@click.version_option(package_name="augment-proxy")
def cli() -> None:
    """Augment proxy - prompt augmentation for Claude Code requests.

    Detects requests from Claude Code, injects the configured system prompt,
    instructions and context, and forwards them to an OpenAI-compatible
    provider such as OpenRouter.

    **Commands:**

        augment-proxy serve          Run the proxy server

        augment-proxy check-config   Validate a configuration file
    """
    pass


@cli.command()
@click.option("--config", "-c", "config_file", default=None, help="Path to YAML config file")
@click.option("--host", default=None, help="Host to bind (default: 127.0.0.1)")
@click.option("--port", "-p", type=int, default=None, help="Port to bind (default: 3456)")
@click.option(
    "--passthrough-url",
    default=None,
    help="Anthropic-compatible upstream for requests that are not augmented",
)
@click.option("--debug-dir", default=None, help="Save request dumps to this directory")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None)
def serve(
    config_file: str | None,
    host: str | None,
    port: int | None,
    passthrough_url: str | None,
    debug_dir: str | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Run the augment proxy server.

    Point Claude Code at the proxy with ANTHROPIC_BASE_URL.

    **Examples:**

        augment-proxy serve --config augment.yaml

        augment-proxy serve -c augment.yaml --passthrough-url https://api.anthropic.com
    """
    from augment_proxy.compose import build_config
    from augment_proxy.gateway.server import AugmentProxyServer
    from augment_proxy.logging_config import configure_logging

    configure_logging(level=log_level, format=log_format)  # type: ignore[arg-type]

    try:
        config = build_config(
            config_file=config_file,
            host=host,
            port=port,
            passthrough_base_url=passthrough_url,
            debug_dir=debug_dir,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    errors = validate_policy_config(config.policy)
    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    server = AugmentProxyServer(config=config)
    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        click.echo("Stopped")


@cli.command("check-config")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "-j", "json_output", is_flag=True, help="Output as JSON")
def check_config(path: str, json_output: bool) -> None:
    """Validate a configuration file.

    Exits with status 1 if the file cannot be loaded or the augment
    settings are invalid.
    """
    try:
        config = load_config(path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    policy = config.policy
    errors = validate_policy_config(policy)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "valid": not errors,
                    "errors": errors,
                    "enabled": policy.enabled,
                    "endpoint": policy.openrouter_endpoint,
                },
                indent=2,
            )
        )
    elif errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
    else:
        detection = policy.detection
        click.echo(f"Config OK: {path}")
        click.echo(f"  augmentation:  {'enabled' if policy.enabled else 'disabled'}")
        click.echo(f"  endpoint:      {policy.openrouter_endpoint}")
        click.echo(f"  instructions:  {len(policy.additional_instructions or [])}")
        click.echo(f"  extra context: {'yes' if policy.extra_context is not None else 'no'}")
        if detection.header_field:
            click.echo(f"  header:        {detection.header_field}={detection.header_value or '*'}")
        if detection.metadata_field:
            click.echo(
                f"  metadata:      {detection.metadata_field}={detection.metadata_value or '*'}"
            )

    if errors:
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()

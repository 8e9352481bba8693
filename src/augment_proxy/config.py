"""Configuration records for the augment proxy.

``AugmentPolicy`` controls detection and augmentation; ``ProxyConfig``
controls the HTTP server hosting the middleware. Both are plain records:
overrides are applied with ``merge_policy`` rather than by mutating a
shared default.

YAML layout::

    server:
      host: 127.0.0.1
      port: 3456
      passthrough_base_url: https://api.anthropic.com
    augment:
      enabled: true
      modified_system_prompt: "You are ..."
      additional_instructions:
        - "Prefer small diffs."
      extra_context:
        project: demo
      openrouter_endpoint: https://openrouter.ai/api/v1/chat/completions
      openrouter_auth: sk-or-...
      detection:
        header_field: x-agent
        header_value: claude-code
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is malformed."""

    pass


@dataclass(frozen=True)
class DetectionSpec:
    """Criteria identifying requests that should be augmented."""

    header_field: str | None = None
    header_value: str | None = None
    metadata_field: str | None = None
    metadata_value: str | None = None


@dataclass(frozen=True)
class AugmentPolicy:
    """Detection and augmentation settings.

    Values are not coerced: a malformed file (for example a string where a
    list of instructions is expected) is kept as-is and reported by
    ``validate_policy_config`` or by the augmenter at request time.
    """

    enabled: bool = False
    modified_system_prompt: str | None = None
    additional_instructions: list[str] = field(default_factory=list)
    extra_context: dict[str, Any] | None = None
    openrouter_endpoint: str = DEFAULT_OPENROUTER_ENDPOINT
    openrouter_auth: str = ""
    detection: DetectionSpec = field(default_factory=DetectionSpec)


DEFAULT_POLICY = AugmentPolicy(
    detection=DetectionSpec(
        header_field="x-agent",
        header_value="claude-code",
        metadata_field="agent",
        metadata_value="claude-code",
    ),
)


def _field_names(cls: type) -> set[str]:
    return {f.name for f in fields(cls)}


def merge_policy(base: AugmentPolicy, override: Mapping[str, Any]) -> AugmentPolicy:
    """Merge a partial override into a policy.

    Top-level keys replace the base values; the nested ``detection``
    mapping is merged key by key so a partial detection override keeps the
    base criteria it does not mention.

    Args:
        base: Policy to start from (left untouched).
        override: Partial settings, e.g. the ``augment`` section of a YAML file.

    Returns:
        A new AugmentPolicy.

    Raises:
        ConfigError: If the override contains unknown keys.
    """
    unknown = set(override) - _field_names(AugmentPolicy)
    if unknown:
        raise ConfigError(f"Unknown augment setting(s): {', '.join(sorted(unknown))}")

    values = {k: v for k, v in override.items() if k != "detection"}

    detection_override = override.get("detection")
    if detection_override is not None:
        if not isinstance(detection_override, Mapping):
            raise ConfigError("augment.detection must be a mapping")
        unknown = set(detection_override) - _field_names(DetectionSpec)
        if unknown:
            raise ConfigError(
                f"Unknown detection setting(s): {', '.join(sorted(unknown))}"
            )
        values["detection"] = replace(base.detection, **detection_override)

    return replace(base, **values)


def policy_from_mapping(data: Mapping[str, Any] | None) -> AugmentPolicy:
    """Build a policy from defaults plus a partial override."""
    return merge_policy(DEFAULT_POLICY, data or {})


def is_json_object(value: Any) -> bool:
    """Whether value is a mapping that renders as JSON.

    YAML scalars such as unquoted dates load as objects json cannot encode.
    """
    if not isinstance(value, Mapping):
        return False
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def validate_policy_config(policy: AugmentPolicy) -> list[str]:
    """Check a policy for problems that would make augmentation fail.

    A disabled policy is always valid.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []
    if not policy.enabled:
        return errors

    if not policy.openrouter_endpoint:
        errors.append("openrouter_endpoint is required when augmentation is enabled")
    if not policy.openrouter_auth:
        errors.append("openrouter_auth is required when augmentation is enabled")
    if policy.additional_instructions is not None and (
        not isinstance(policy.additional_instructions, list)
        or not all(isinstance(i, str) for i in policy.additional_instructions)
    ):
        errors.append("additional_instructions must be an array of strings")
    if policy.extra_context is not None and not is_json_object(policy.extra_context):
        errors.append("extra_context must be a JSON object")

    return errors


@dataclass
class ProxyConfig:
    """Configuration for the augment proxy server."""

    host: str = "127.0.0.1"
    port: int = 3456

    # Anthropic-compatible upstream for requests that are not augmented
    passthrough_base_url: str | None = None
    passthrough_api_key: str | None = None

    # Client configuration
    connect_timeout: float = 10.0
    read_timeout: float = 300.0

    # Request limits
    max_body_size: int = 500 * 1024 * 1024  # 500MB

    # Debug: save raw requests to files
    debug_dir: str | None = None

    policy: AugmentPolicy = field(default_factory=lambda: DEFAULT_POLICY)


_SERVER_KEYS = {f.name for f in fields(ProxyConfig)} - {"policy"}


def config_from_mapping(data: Mapping[str, Any] | None) -> ProxyConfig:
    """Build a ProxyConfig from a parsed YAML document.

    Raises:
        ConfigError: On unknown keys or a non-mapping section.
    """
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration root must be a mapping")

    server = data.get("server") or {}
    augment = data.get("augment") or {}
    if not isinstance(server, Mapping):
        raise ConfigError("'server' section must be a mapping")
    if not isinstance(augment, Mapping):
        raise ConfigError("'augment' section must be a mapping")

    unknown = set(server) - _SERVER_KEYS
    if unknown:
        raise ConfigError(f"Unknown server setting(s): {', '.join(sorted(unknown))}")

    try:
        return ProxyConfig(**server, policy=policy_from_mapping(augment))
    except TypeError as e:
        raise ConfigError(str(e)) from e


def load_config(path: str | Path) -> ProxyConfig:
    """Load a ProxyConfig from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    try:
        content = Path(path).read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    return config_from_mapping(data)

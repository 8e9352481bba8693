"""Augment proxy - prompt augmentation middleware for Claude Code.

Detects Claude Code requests, injects configured prompt augmentations and
forwards them to an OpenAI-compatible provider, translating replies back
to the Anthropic Messages API (including streaming).
"""

from augment_proxy.config import (
    DEFAULT_POLICY,
    AugmentPolicy,
    ConfigError,
    DetectionSpec,
    ProxyConfig,
    load_config,
    merge_policy,
    policy_from_mapping,
    validate_policy_config,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_POLICY",
    "AugmentPolicy",
    "ConfigError",
    "DetectionSpec",
    "ProxyConfig",
    "load_config",
    "merge_policy",
    "policy_from_mapping",
    "validate_policy_config",
]

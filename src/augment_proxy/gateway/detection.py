"""Detection of requests that should be augmented.

A request matches when either configured criterion holds:

- header: the configured header is present (case-insensitive name), and,
  if a value is configured, equals it exactly;
- metadata: the configured dotted path resolves inside ``body["metadata"]``,
  and, if a value is configured, its string form equals it exactly.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from augment_proxy.config import AugmentPolicy, DetectionSpec


class _Missing:
    """Sentinel for a path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def resolve_path(value: Any, path: str) -> Any:
    """Resolve a dotted path by descending through nested mappings.

    Args:
        value: Root value (normally the request metadata).
        path: Dotted key path, e.g. ``"client.name"``.

    Returns:
        The resolved value, or ``MISSING`` if an intermediate value is not
        a mapping or a key is absent.
    """
    head, _, rest = path.partition(".")
    if not isinstance(value, Mapping) or head not in value:
        return MISSING
    if not rest:
        return value[head]
    return resolve_path(value[head], rest)


def _string_form(value: Any) -> str:
    # Scalars compare the way the client serialized them (true/false/null)
    if value is None or isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _header_matches(detection: DetectionSpec, headers: Mapping[str, str]) -> bool:
    if not detection.header_field:
        return False

    wanted = detection.header_field.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            if detection.header_value:
                return value == detection.header_value
            return True
    return False


def _metadata_matches(detection: DetectionSpec, body: Mapping[str, Any]) -> bool:
    if not detection.metadata_field:
        return False

    resolved = resolve_path(body.get("metadata"), detection.metadata_field)
    if resolved is MISSING:
        return False
    if detection.metadata_value:
        return _string_form(resolved) == detection.metadata_value
    return True


def matches(
    policy: AugmentPolicy,
    headers: Mapping[str, str],
    body: Mapping[str, Any],
) -> bool:
    """Decide whether a request should be augmented.

    Never raises; an unusable body or header set simply does not match.
    """
    if not policy.enabled:
        return False
    if not isinstance(body, Mapping):
        body = {}
    detection = policy.detection
    return _header_matches(detection, headers or {}) or _metadata_matches(detection, body)


@dataclass(frozen=True)
class DetectionRule:
    """Detection rule bound to a policy."""

    policy: AugmentPolicy

    def matches(self, headers: Mapping[str, str], body: Mapping[str, Any]) -> bool:
        return matches(self.policy, headers, body)

"""Request augmentation.

Builds the provider request from an inbound Anthropic request:
system messages assembled from the policy (replacement prompt or original
system text, then each instruction, then the structured context), followed
by the translated conversation and the pass-through sampling parameters.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from augment_proxy.config import AugmentPolicy, is_json_object
from augment_proxy.gateway.transforms.openai import OpenAITransformer

logger = logging.getLogger(__name__)

# Sampling parameters copied verbatim when present on the inbound request
PASSTHROUGH_FIELDS = (
    "temperature",
    "top_p",
    "top_k",
    "frequency_penalty",
    "presence_penalty",
    "stop",
)


@dataclass(frozen=True)
class AugmentResult:
    """Outcome of validating and augmenting a request."""

    success: bool
    augmented: bool = False
    error: str | None = None
    error_code: int | None = None


def _failure(message: str) -> AugmentResult:
    return AugmentResult(success=False, error=message, error_code=400)


def validate_policy(policy: AugmentPolicy) -> AugmentResult:
    """Check the settings the augmenter needs before any transformation."""
    if not policy.openrouter_endpoint:
        return _failure("Missing required parameter: openrouter_endpoint")
    if not policy.openrouter_auth:
        return _failure("Missing required parameter: openrouter_auth")
    if policy.additional_instructions is not None and not isinstance(
        policy.additional_instructions, list
    ):
        return _failure("Invalid parameter: additional_instructions must be an array")
    if policy.extra_context is not None and not is_json_object(policy.extra_context):
        return _failure("Invalid parameter: extra_context must be an object")
    return AugmentResult(success=True)


def original_system_text(system: Any) -> str | None:
    """Extract the inbound system prompt text.

    Anthropic accepts either a string or a list of text segments; segments
    are joined with a blank line.
    """
    if isinstance(system, str):
        return system or None
    if isinstance(system, list):
        parts = [
            segment.get("text")
            for segment in system
            if isinstance(segment, dict) and segment.get("type") == "text" and segment.get("text")
        ]
        return "\n\n".join(parts) or None
    return None


def format_context(context: Mapping[str, Any]) -> str:
    """Render structured context as a ``<context>`` system message."""
    return f"<context>\n{json.dumps(context, indent=2, ensure_ascii=False)}\n</context>"


def augment(
    policy: AugmentPolicy,
    body: Mapping[str, Any],
) -> tuple[dict[str, Any], AugmentResult]:
    """Build the provider request for an inbound request.

    Args:
        policy: Augmentation settings.
        body: Inbound Anthropic Messages API request body.

    Returns:
        Tuple of (provider request body, result). On failure the body is
        empty and must not be forwarded.
    """
    validation = validate_policy(policy)
    if not validation.success:
        logger.warning("Augmentation rejected: %s", validation.error)
        return {}, validation

    transformer = OpenAITransformer()
    messages: list[dict[str, Any]] = []
    augmented = False

    if policy.modified_system_prompt:
        messages.append({"role": "system", "content": policy.modified_system_prompt})
        augmented = True
    else:
        system_text = original_system_text(body.get("system"))
        if system_text:
            messages.append({"role": "system", "content": system_text})

    for instruction in policy.additional_instructions or []:
        messages.append({"role": "system", "content": instruction})
        augmented = True

    if policy.extra_context is not None:
        messages.append({"role": "system", "content": format_context(policy.extra_context)})
        augmented = True

    messages.extend(transformer.convert_messages(body.get("messages") or []))

    outbound: dict[str, Any] = {"model": body.get("model"), "messages": messages}
    for key in ("max_tokens", "stream"):
        if key in body:
            outbound[key] = body[key]

    tools = body.get("tools")
    if tools:
        outbound["tools"] = transformer.convert_tools(tools)

    for key in PASSTHROUGH_FIELDS:
        if key in body:
            outbound[key] = body[key]

    logger.debug(
        "Augmented request: model=%s, messages=%d, tools=%d, augmented=%s",
        outbound["model"],
        len(messages),
        len(outbound.get("tools", [])),
        augmented,
    )
    return outbound, AugmentResult(success=True, augmented=augmented)


@dataclass(frozen=True)
class Augmenter:
    """Augmenter bound to a policy."""

    policy: AugmentPolicy

    def validate(self) -> AugmentResult:
        return validate_policy(self.policy)

    def augment(self, body: Mapping[str, Any]) -> tuple[dict[str, Any], AugmentResult]:
        return augment(self.policy, body)

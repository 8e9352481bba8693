"""Pytest configuration and fixtures."""

import json

import pytest

from augment_proxy.config import AugmentPolicy, DetectionSpec

PROVIDER_URL = "https://openrouter.test/api/v1/chat/completions"


@pytest.fixture
def policy():
    """Enabled policy detecting the x-agent header, with no augmentation."""
    return AugmentPolicy(
        enabled=True,
        openrouter_endpoint=PROVIDER_URL,
        openrouter_auth="test-auth-token",
        detection=DetectionSpec(header_field="x-agent", header_value="claude-code"),
    )


@pytest.fixture
def augmented_policy(policy):
    """Policy with a replacement prompt, instructions and extra context."""
    return AugmentPolicy(
        enabled=True,
        modified_system_prompt="You are an augmented assistant.",
        additional_instructions=[
            "Always provide detailed explanations.",
            "Include code examples when relevant.",
        ],
        extra_context={"project_name": "test-project", "framework": "react"},
        openrouter_endpoint=policy.openrouter_endpoint,
        openrouter_auth=policy.openrouter_auth,
        detection=policy.detection,
    )


@pytest.fixture
def anthropic_body():
    """Minimal non-streaming Anthropic request body."""
    return {
        "model": "claude-sonnet-4",
        "messages": [{"role": "user", "content": "Hello"}],
        "max_tokens": 1024,
        "stream": False,
    }


@pytest.fixture
def parse_sse():
    """Return a function splitting SSE bytes into (event, data) pairs."""
    return _parse_sse


def _parse_sse(raw: bytes) -> list[tuple[str, dict]]:
    events = []
    for block in raw.decode().split("\n\n"):
        if not block.strip():
            continue
        lines = block.split("\n")
        event = lines[0].removeprefix("event: ")
        data = json.loads(lines[1].removeprefix("data: "))
        events.append((event, data))
    return events

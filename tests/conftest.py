"""Shared test fixtures."""

import json
import tempfile
from pathlib import Path

import httpx
import pytest

from inkstream._core._credentials import static
from inkstream._core._registry import GatewayRegistry


@pytest.fixture(autouse=True)
def fresh_registry():
    """Each test starts without a process-wide configuration."""
    GatewayRegistry.reset_instance()
    yield
    GatewayRegistry.reset_instance()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry():
    """Registry configured for deepseek (default) and siliconflow."""
    registry = GatewayRegistry()
    registry.set_config(
        {
            "default_provider": "deepseek",
            "deepseek": {"get_api_key": static("sk-deepseek"), "model": "deepseek-chat"},
            "siliconflow": {"get_api_key": static("sk-silicon")},
        }
    )
    return registry


def sse_body(*events, done=True):
    """Encode events as an upstream ``data:`` stream."""
    lines = [f"data: {json.dumps(e) if not isinstance(e, str) else e}\n\n" for e in events]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def delta(content=None, reasoning=None):
    """One OpenAI-style streaming event."""
    d = {}
    if content is not None:
        d["content"] = content
    if reasoning is not None:
        d["reasoning_content"] = reasoning
    return {"choices": [{"index": 0, "delta": d}]}


def completion(content, reasoning=None):
    """One OpenAI-style non-streaming response body."""
    message = {"role": "assistant", "content": content}
    if reasoning is not None:
        message["reasoning_content"] = reasoning
    return {
        "choices": [{"index": 0, "message": message}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 2},
    }


class Upstream:
    """Scripted upstream served through ``httpx.MockTransport``.

    Responses are served in order; the last one repeats. Every request is
    recorded.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        if len(self.requests) > len(self.responses):
            # Repeats get a fresh copy; a Response can only be sent once
            return httpx.Response(
                response.status_code, headers=response.headers, content=response.content
            )
        return response

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def calls(self):
        return len(self.requests)

    def body(self, index=-1):
        return json.loads(self.requests[index].content)

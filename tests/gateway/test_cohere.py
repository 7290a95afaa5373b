"""Tests for Cohere adapter."""

import json

import httpx
import pytest
from conftest import Upstream

from inkstream._core._errors import ErrorKind, MalformedUpstreamLine
from inkstream._core._models import GenerationRequest, StreamChunk
from inkstream._gateway._cohere import CohereAdapter

REQUEST = GenerationRequest(
    user_prompt="Suggest a title",
    system_prompt="You are an editor",
    model="command",
    provider="cohere",
    temperature=0.7,
    max_tokens=100,
)


def _ndjson(*events):
    return "".join(json.dumps(e) + "\n" for e in events).encode()


@pytest.mark.asyncio
async def test_generate_once():
    body = {"id": "g1", "generations": [{"id": "x", "text": "The Salt Road"}]}
    upstream = Upstream(httpx.Response(200, json=body))
    async with upstream.client() as client:
        result = await CohereAdapter(client).generate_once(REQUEST, "co-key")

    assert result.content == "The Salt Road"
    assert result.provider == "cohere"
    assert str(upstream.requests[0].url) == "https://api.cohere.ai/v1/generate"
    assert upstream.requests[0].headers["Authorization"] == "Bearer co-key"
    assert upstream.body() == {
        "model": "command",
        "prompt": "You are an editor\n\nSuggest a title",
        "stream": False,
        "temperature": 0.7,
        "max_tokens": 100,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"generations": []}, {"generations": ["oops"]}, {"generations": [{"text": ""}]}],
)
async def test_generate_once_empty(body):
    upstream = Upstream(httpx.Response(200, json=body))
    async with upstream.client() as client:
        result = await CohereAdapter(client).generate_once(REQUEST, "co-key")
    assert result.error_kind is ErrorKind.EMPTY_COMPLETION


@pytest.mark.asyncio
async def test_generate_once_http_error():
    upstream = Upstream(httpx.Response(401, json={"message": "invalid api token"}))
    async with upstream.client() as client:
        result = await CohereAdapter(client).generate_once(REQUEST, "co-key")
    assert result.error == "invalid api token"
    assert result.status == 401


@pytest.mark.asyncio
async def test_generate_stream_ndjson():
    body = _ndjson(
        {"text": "The ", "is_finished": False},
        {"text": "Salt Road", "is_finished": False},
        {"is_finished": True, "finish_reason": "COMPLETE"},
    )
    upstream = Upstream(httpx.Response(200, content=body))
    async with upstream.client() as client:
        chunks = [c async for c in CohereAdapter(client).generate_stream(REQUEST, "co-key")]

    assert chunks == [StreamChunk.content("The "), StreamChunk.content("Salt Road")]
    assert upstream.body()["stream"] is True


@pytest.mark.asyncio
async def test_generate_stream_error_finish():
    body = _ndjson(
        {"text": "The", "is_finished": False},
        {"is_finished": True, "finish_reason": "ERROR_TOXIC"},
    )
    upstream = Upstream(httpx.Response(200, content=body))
    async with upstream.client() as client:
        chunks = [c async for c in CohereAdapter(client).generate_stream(REQUEST, "co-key")]

    assert chunks[0] == StreamChunk.content("The")
    assert chunks[1].is_error
    assert "ERROR_TOXIC" in chunks[1].text


def test_parse_stream_event_rejects_garbage():
    adapter = CohereAdapter(httpx.AsyncClient())
    with pytest.raises(MalformedUpstreamLine):
        adapter.parse_stream_event("not json")
    with pytest.raises(MalformedUpstreamLine):
        adapter.parse_stream_event("[]")


@pytest.mark.asyncio
async def test_list_models_keeps_generate_models():
    listing = {
        "models": [
            {"name": "command", "endpoints": ["generate", "chat"]},
            {"name": "embed-english-v3.0", "endpoints": ["embed"]},
            "junk",
        ]
    }
    upstream = Upstream(httpx.Response(200, json=listing))
    async with upstream.client() as client:
        models = await CohereAdapter(client).list_models("co-key")

    assert [m.id for m in models] == ["command"]
    assert models[0].owned_by == "cohere"
    assert str(upstream.requests[0].url) == "https://api.cohere.ai/v1/models"

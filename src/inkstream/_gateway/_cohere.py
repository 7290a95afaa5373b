"""Cohere adapter (legacy generate endpoint)."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx

from inkstream._core._errors import MalformedUpstreamLine
from inkstream._core._models import GenerationRequest, ModelInfo, StreamChunk
from inkstream._gateway._base import error_text
from inkstream._gateway._openai_compat import OpenAICompatibleAdapter


class CohereAdapter(OpenAICompatibleAdapter):
    """Cohere ``/v1/generate``.

    Takes one prompt instead of chat messages and answers with
    ``generations[0].text``. Streams are newline-delimited JSON objects
    rather than ``data:`` lines, ending with ``is_finished: true``.
    """

    provider_id = "cohere"
    base_url = "https://api.cohere.ai/v1"
    chat_path = "/generate"
    models_path = "/models"
    temperature_range = (0.0, 5.0)

    def build_payload(self, request: GenerationRequest, stream: bool) -> dict[str, Any]:
        prompt = request.user_prompt
        if request.system_prompt:
            prompt = f"{request.system_prompt}\n\n{prompt}"
        payload: dict[str, Any] = {"model": request.model, "prompt": prompt, "stream": stream}
        temperature = self.clamp_temperature(request.temperature)
        if temperature is not None:
            payload["temperature"] = temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    def extract_message(self, data: Any) -> dict[str, Any] | None:
        generations = data.get("generations") if isinstance(data, dict) else None
        first = generations[0] if isinstance(generations, list) and generations else None
        if not isinstance(first, dict):
            return None
        return {"content": first.get("text")}

    async def iter_payloads(self, response: httpx.Response) -> AsyncIterator[str]:
        async for line in response.aiter_lines():
            if line.strip():
                yield line

    def parse_stream_event(self, payload: str) -> list[StreamChunk]:
        try:
            event = json.loads(payload)
        except ValueError as e:
            raise MalformedUpstreamLine(f"Invalid JSON: {e}", provider=self.provider_id) from e
        if not isinstance(event, dict):
            raise MalformedUpstreamLine("Event is not an object", provider=self.provider_id)

        if event.get("is_finished"):
            reason = str(event.get("finish_reason") or "")
            if reason.startswith("ERROR"):
                message = error_text(event) or f"Generation stopped: {reason}"
                return [StreamChunk.error(message)]
            return []

        text = event.get("text")
        if isinstance(text, str) and text:
            return [StreamChunk.content(text)]
        return []

    def parse_models(self, data: Any) -> list[ModelInfo] | None:
        entries = data.get("models") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return None
        # Only models served by the generate endpoint can be used here
        return [
            ModelInfo(id=str(entry["name"]), owned_by="cohere")
            for entry in entries
            if isinstance(entry, dict)
            and entry.get("name")
            and "generate" in (entry.get("endpoints") or [])
        ]

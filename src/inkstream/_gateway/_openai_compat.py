"""Shared wire handling for OpenAI-style chat-completion providers."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx

from inkstream._core._errors import (
    EmptyCompletion,
    GatewayError,
    MalformedUpstreamLine,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from inkstream._core._logging import get_logger
from inkstream._core._models import GenerationRequest, GenerationResult, ModelInfo, StreamChunk
from inkstream._core._sse import iter_data
from inkstream._gateway._base import (
    USER_AGENT,
    ProviderAdapter,
    error_text,
    parse_error_message,
    transport_message,
)

logger = get_logger(__name__)


class OpenAICompatibleAdapter(ProviderAdapter):
    """Bearer-token chat completions with ``data: {...}`` / ``data: [DONE]`` streams."""

    chat_path: str = "/chat/completions"
    models_path: str = "/models"

    def headers(self, credential: str, stream: bool = False) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if stream else "application/json",
            "User-Agent": USER_AGENT,
        }

    def build_payload(self, request: GenerationRequest, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": request.messages(),
            "stream": stream,
        }
        temperature = self.clamp_temperature(request.temperature)
        if temperature is not None:
            payload["temperature"] = temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    async def generate_once(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> GenerationResult:
        url = f"{self._base_url}{self.chat_path}"
        logger.debug(
            "Inkstream --> LLM",
            provider=self.provider_id,
            model=request.model,
            prompt_chars=len(request.user_prompt),
        )
        try:
            response = await self._client.post(
                url,
                json=self.build_payload(request, stream=False),
                headers=self.headers(credential),
            )
            content, reasoning = self._parse_completion(response, request)
        except GatewayError as e:
            return self.failure(request, e)
        except httpx.HTTPError as e:
            error = UpstreamTransportError(
                transport_message(self.provider_id, e),
                provider=self.provider_id,
                model=request.model,
            )
            return self.failure(request, error)

        logger.debug("Inkstream <-- LLM", provider=self.provider_id, chars=len(content))
        return GenerationResult.success(
            content,
            provider=self.provider_id,
            model=request.model,
            status=response.status_code,
            reasoning=reasoning,
        )

    def _parse_completion(
        self,
        response: httpx.Response,
        request: GenerationRequest,
    ) -> tuple[str, str | None]:
        """Return (content, reasoning) from a non-streaming response."""
        context = {"provider": self.provider_id, "model": request.model}

        if not response.is_success:
            raise UpstreamHTTPError(
                parse_error_message(response.content, response.status_code),
                status=response.status_code,
                **context,
            )

        if not response.text.strip():
            raise EmptyCompletion("Upstream returned an empty response body", **context)
        try:
            data = response.json()
        except ValueError as e:
            raise EmptyCompletion(
                "Upstream returned an unparseable response body", **context
            ) from e

        usage = data.get("usage") if isinstance(data, dict) else None
        if isinstance(usage, dict):
            logger.debug(
                "Token usage",
                provider=self.provider_id,
                prompt_tokens=usage.get("prompt_tokens"),
                completion_tokens=usage.get("completion_tokens"),
            )

        message = self.extract_message(data)
        if message is None:
            raise EmptyCompletion("Upstream response contained no completion", **context)

        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise EmptyCompletion("Upstream returned an empty completion", **context)

        reasoning = message.get("reasoning_content")
        return content, reasoning if isinstance(reasoning, str) and reasoning else None

    def extract_message(self, data: Any) -> dict[str, Any] | None:
        """The completion message of a response body, or None if it has none.

        The message carries ``content`` and optionally ``reasoning_content``.
        """
        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        return message if isinstance(message, dict) else None

    async def generate_stream(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> AsyncIterator[StreamChunk]:
        url = f"{self._base_url}{self.chat_path}"
        logger.debug(
            "Inkstream --> LLM (stream)",
            provider=self.provider_id,
            model=request.model,
            prompt_chars=len(request.user_prompt),
        )
        try:
            async with self._client.stream(
                "POST",
                url,
                json=self.build_payload(request, stream=True),
                headers=self.headers(credential, stream=True),
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    message = parse_error_message(body, response.status_code)
                    logger.error(
                        "Stream request rejected",
                        provider=self.provider_id,
                        model=request.model,
                        status=response.status_code,
                        error=message,
                    )
                    yield StreamChunk.error(message)
                    return

                async for payload in self.iter_payloads(response):
                    try:
                        chunks = self.parse_stream_event(payload)
                    except MalformedUpstreamLine as e:
                        logger.warning(
                            "Skipping malformed upstream line",
                            provider=self.provider_id,
                            error=e.message,
                            line=payload[:200],
                        )
                        continue

                    for chunk in chunks:
                        yield chunk
                        if chunk.is_error:
                            return
        except httpx.HTTPError as e:
            message = transport_message(self.provider_id, e)
            logger.error("Stream transport failure", provider=self.provider_id, error=message)
            yield StreamChunk.error(message)

    def iter_payloads(self, response: httpx.Response) -> AsyncIterator[str]:
        """Event payloads of a streaming response, in arrival order."""
        return iter_data(response.aiter_bytes())

    def parse_stream_event(self, payload: str) -> list[StreamChunk]:
        """Map one ``data:`` payload to chunks.

        Raises:
            MalformedUpstreamLine: Payload is not the expected JSON envelope.
        """
        try:
            event = json.loads(payload)
        except ValueError as e:
            raise MalformedUpstreamLine(f"Invalid JSON: {e}", provider=self.provider_id) from e

        if not isinstance(event, dict):
            raise MalformedUpstreamLine("Event is not an object", provider=self.provider_id)

        if event.get("error"):
            message = error_text(event) or "Upstream reported an error mid-stream"
            return [StreamChunk.error(message)]

        choices = event.get("choices")
        if not isinstance(choices, list):
            raise MalformedUpstreamLine("Event has no choices", provider=self.provider_id)
        if not choices:
            # usage-only trailer
            return []

        choice = choices[0]
        if not isinstance(choice, dict):
            raise MalformedUpstreamLine("Choice is not an object", provider=self.provider_id)
        delta = choice.get("delta") or {}
        if not isinstance(delta, dict):
            raise MalformedUpstreamLine("Delta is not an object", provider=self.provider_id)
        chunks = []
        reasoning = delta.get("reasoning_content")
        if isinstance(reasoning, str) and reasoning:
            chunks.append(StreamChunk.reasoning(reasoning))
        content = delta.get("content")
        if isinstance(content, str) and content:
            chunks.append(StreamChunk.content(content))
        return chunks

    async def list_models(self, credential: str) -> list[ModelInfo]:
        url = f"{self._base_url}{self.models_path}"
        try:
            response = await self._client.get(url, headers=self.headers(credential))
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                transport_message(self.provider_id, e), provider=self.provider_id
            ) from e

        if not response.is_success:
            raise UpstreamHTTPError(
                parse_error_message(response.content, response.status_code),
                provider=self.provider_id,
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamHTTPError(
                "Upstream returned an unparseable model listing",
                provider=self.provider_id,
                status=response.status_code,
            ) from e

        models = self.parse_models(data)
        if models is None:
            raise UpstreamHTTPError(
                "Upstream model listing has an unexpected shape",
                provider=self.provider_id,
                status=response.status_code,
            )
        return self.filter_models(models)

    def parse_models(self, data: Any) -> list[ModelInfo] | None:
        """Models from a listing body; entries that aren't objects are skipped."""
        entries = data.get("data") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return None
        return [
            ModelInfo.from_dict(entry)
            for entry in entries
            if isinstance(entry, dict) and entry.get("id")
        ]

    def filter_models(self, models: list[ModelInfo]) -> list[ModelInfo]:
        """Hook for providers whose listing mixes in non-chat models."""
        return models

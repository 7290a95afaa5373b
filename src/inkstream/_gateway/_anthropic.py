"""Anthropic adapter using the anthropic SDK."""

from __future__ import annotations

from typing import Any, AsyncIterator

import anthropic
from anthropic import APIConnectionError, APIStatusError, APITimeoutError

from inkstream._core._errors import (
    EmptyCompletion,
    GatewayError,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from inkstream._core._logging import get_logger
from inkstream._core._models import GenerationRequest, GenerationResult, ModelInfo, StreamChunk
from inkstream._gateway._base import ProviderAdapter, error_text

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4096


def _status_error(e: APIStatusError, provider: str, model: str | None = None) -> UpstreamHTTPError:
    message = (
        error_text(e.body) or e.message or f"Upstream request failed with HTTP {e.status_code}"
    )
    return UpstreamHTTPError(message, provider=provider, model=model, status=e.status_code)


def _transport_error(
    e: APIConnectionError, provider: str, model: str | None = None
) -> UpstreamTransportError:
    if isinstance(e, APITimeoutError):
        message = f"Request to {provider} timed out"
    else:
        message = f"Network error contacting {provider}: {e}"
    return UpstreamTransportError(message, provider=provider, model=model)


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API.

    The SDK decodes the event stream itself; text deltas become content
    chunks and thinking deltas become reasoning chunks. SDK retries are
    disabled since retry belongs to the orchestrator.
    """

    provider_id = "anthropic"
    base_url = "https://api.anthropic.com"
    temperature_range = (0.0, 1.0)

    def _build_client(self, credential: str) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=credential,
            base_url=self._base_url,
            http_client=self._client,
            max_retries=0,
        )

    def _message_kwargs(self, request: GenerationRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [{"role": "user", "content": request.user_prompt}],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt
        temperature = self.clamp_temperature(request.temperature)
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    async def generate_once(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> GenerationResult:
        client = self._build_client(credential)
        logger.debug("Inkstream --> LLM", provider=self.provider_id, model=request.model)
        try:
            try:
                response = await client.messages.create(**self._message_kwargs(request))
            except APIStatusError as e:
                raise _status_error(e, self.provider_id, request.model) from e
            except APIConnectionError as e:
                raise _transport_error(e, self.provider_id, request.model) from e

            text = "".join(
                block.text for block in response.content if getattr(block, "type", None) == "text"
            )
            thinking = "".join(
                block.thinking
                for block in response.content
                if getattr(block, "type", None) == "thinking"
            )
            if not text.strip():
                raise EmptyCompletion(
                    "Upstream returned an empty completion",
                    provider=self.provider_id,
                    model=request.model,
                )
        except GatewayError as e:
            return self.failure(request, e)

        logger.debug(
            "Inkstream <-- LLM",
            provider=self.provider_id,
            tokens=getattr(response.usage, "output_tokens", None),
        )
        return GenerationResult.success(
            text,
            provider=self.provider_id,
            model=request.model,
            reasoning=thinking or None,
        )

    async def generate_stream(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> AsyncIterator[StreamChunk]:
        client = self._build_client(credential)
        logger.debug("Inkstream --> LLM (stream)", provider=self.provider_id, model=request.model)
        try:
            async with client.messages.stream(**self._message_kwargs(request)) as stream:
                async for event in stream:
                    if event.type != "content_block_delta":
                        continue
                    delta = event.delta
                    if delta.type == "text_delta" and delta.text:
                        yield StreamChunk.content(delta.text)
                    elif delta.type == "thinking_delta" and delta.thinking:
                        yield StreamChunk.reasoning(delta.thinking)
        except APIStatusError as e:
            error: GatewayError = _status_error(e, self.provider_id, request.model)
            logger.error("Stream request rejected", provider=self.provider_id, error=error.message)
            yield StreamChunk.error(error.message)
        except APIConnectionError as e:
            error = _transport_error(e, self.provider_id, request.model)
            logger.error("Stream transport failure", provider=self.provider_id, error=error.message)
            yield StreamChunk.error(error.message)

    async def list_models(self, credential: str) -> list[ModelInfo]:
        client = self._build_client(credential)
        models = []
        try:
            async for model in client.models.list():
                created = getattr(model, "created_at", None)
                models.append(
                    ModelInfo(
                        id=model.id,
                        owned_by="anthropic",
                        created=int(created.timestamp()) if created else 0,
                    )
                )
        except APIStatusError as e:
            raise _status_error(e, self.provider_id) from e
        except APIConnectionError as e:
            raise _transport_error(e, self.provider_id) from e
        return models

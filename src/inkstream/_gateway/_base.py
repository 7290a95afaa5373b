"""Provider adapter base class."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

import httpx

from inkstream._core._errors import GatewayError
from inkstream._core._logging import get_logger
from inkstream._core._models import GenerationRequest, GenerationResult, ModelInfo, StreamChunk

logger = get_logger(__name__)

USER_AGENT = "inkstream/0.1"


def error_text(data: Any) -> str | None:
    """Pull a human-readable message out of a provider error envelope.

    Handles ``{"error": {"message": ...}}``, ``{"error": "..."}`` and
    ``{"message": ...}``.
    """
    if isinstance(data, str):
        return data or None
    if not isinstance(data, dict):
        return None

    err = data.get("error")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str) and err:
        return err
    if data.get("message"):
        return str(data["message"])
    return None


def parse_error_message(body: bytes | str, status: int) -> str:
    """Best-effort upstream error message, falling back to a generic one."""
    generic = f"Upstream request failed with HTTP {status}"
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        data = json.loads(text)
    except ValueError:
        return generic
    return error_text(data) or generic


def transport_message(provider: str, exc: Exception) -> str:
    """Message for a network-level failure."""
    if isinstance(exc, httpx.TimeoutException):
        return f"Request to {provider} timed out"
    return f"Network error contacting {provider}: {str(exc) or type(exc).__name__}"


class ProviderAdapter(ABC):
    """Translates generation requests to one provider's wire format and back.

    Adapters never retry; a failed call is reported once and retry is left
    to the orchestrator.
    """

    provider_id: str = ""
    base_url: str = ""
    temperature_range: tuple[float, float] = (0.0, 2.0)

    def __init__(self, client: httpx.AsyncClient, base_url: str | None = None) -> None:
        self._client = client
        self._base_url = (base_url or self.base_url).rstrip("/")

    @property
    def endpoint(self) -> str:
        return self._base_url

    @abstractmethod
    async def generate_once(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> GenerationResult:
        """Single non-streaming call. Failures come back as results, not raises."""
        ...

    @abstractmethod
    def generate_stream(
        self,
        request: GenerationRequest,
        credential: str,
    ) -> AsyncIterator[StreamChunk]:
        """Streaming call.

        Yields content/reasoning chunks in upstream order. A failure ends the
        sequence with exactly one error chunk.
        """
        ...

    @abstractmethod
    async def list_models(self, credential: str) -> list[ModelInfo]:
        """Models the credential can use.

        Raises:
            UpstreamHTTPError, UpstreamTransportError
        """
        ...

    def clamp_temperature(self, temperature: float | None) -> float | None:
        if temperature is None:
            return None
        low, high = self.temperature_range
        return min(max(temperature, low), high)

    def failure(self, request: GenerationRequest, error: GatewayError) -> GenerationResult:
        """Convert a raised gateway error into a failed result with context."""
        logger.error(
            "Generation failed",
            provider=self.provider_id,
            model=request.model,
            error_kind=error.kind.value,
            status=error.status,
            error=error.message,
        )
        return GenerationResult.failure(
            error.kind,
            error.message,
            provider=self.provider_id,
            model=request.model,
            status=error.status,
        )

"""Generation orchestrator: the gateway's single entry point."""

from __future__ import annotations

import asyncio
from contextlib import aclosing, asynccontextmanager, suppress
from dataclasses import dataclass, replace
from enum import Enum
from typing import AsyncIterator

import httpx

from inkstream._core._credentials import resolve_credential
from inkstream._core._errors import ErrorKind, GatewayError
from inkstream._core._logging import get_logger
from inkstream._core._models import (
    ChunkKind,
    ConnectionReport,
    GenerationRequest,
    GenerationResult,
    ModelInfo,
    ProviderConfig,
    SpeedReport,
    StreamChunk,
    TerminalSignal,
)
from inkstream._core._probe import probe_connection, probe_speed
from inkstream._core._registry import GatewayRegistry
from inkstream._core._retry import RetryPolicy, run_with_retry
from inkstream._core._sinks import QueueSink, SinkClosedError, StreamSink
from inkstream._core._sse import encode_chunk, encode_terminal
from inkstream._gateway import adapter_class
from inkstream._gateway._base import ProviderAdapter

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 300.0
EMPTY_STREAM_MESSAGE = "Generation produced no content, please retry"
INTERRUPTED_MESSAGE = "Generation was interrupted"


class GenerationState(str, Enum):
    IDLE = "idle"
    CONFIG_RESOLVED = "config_resolved"
    CREDENTIAL_RESOLVED = "credential_resolved"
    UPSTREAM_OPEN = "upstream_open"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class _Generation:
    """Working state of one generation. Never shared between calls."""

    provider: str | None = None
    model: str | None = None
    state: GenerationState = GenerationState.IDLE
    chunks: int = 0
    content_chunks: int = 0

    def advance(self, state: GenerationState) -> None:
        logger.debug(
            "Generation state",
            provider=self.provider,
            model=self.model,
            transition=f"{self.state.value} -> {state.value}",
        )
        self.state = state


@dataclass
class _Resolved:
    """Everything needed to open the upstream call."""

    request: GenerationRequest
    adapter_cls: type[ProviderAdapter]
    credential: str


class Gateway:
    """Multi-provider LLM gateway.

    Resolves provider config and credentials on every request, drives the
    provider adapter and republishes its output. Pass ``registry`` to use an
    explicit configuration instead of the process-wide one, and
    ``http_client`` to share a connection pool (it is never closed here).
    """

    def __init__(
        self,
        registry: GatewayRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._http_client = http_client
        self._timeout = timeout

    @property
    def registry(self) -> GatewayRegistry:
        return self._registry or GatewayRegistry.get_instance()

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        timeout = httpx.Timeout(self._timeout, connect=min(self._timeout, 30.0))
        async with httpx.AsyncClient(timeout=timeout) as client:
            yield client

    def _resolve_provider(
        self, provider_id: str | None, gen: _Generation
    ) -> tuple[ProviderConfig, type[ProviderAdapter]]:
        provider = self.registry.select_provider(provider_id)
        gen.provider = provider
        config = self.registry.resolve_provider_config(provider)
        return config, adapter_class(provider)

    async def _resolve(self, request: GenerationRequest, gen: _Generation) -> _Resolved:
        """Resolve config, then credential. Fill request defaults from config.

        Raises:
            GatewayError: ConfigNotInitialized, UnknownProvider or MissingCredential.
        """
        config, adapter_cls = self._resolve_provider(request.provider, gen)
        provider = config.provider_id

        request = replace(
            request,
            provider=provider,
            model=request.model or config.model or "",
            temperature=(
                request.temperature if request.temperature is not None else config.temperature
            ),
            max_tokens=request.max_tokens or config.max_tokens,
        )
        gen.model = request.model
        gen.advance(GenerationState.CONFIG_RESOLVED)

        credential = await resolve_credential(config)
        gen.advance(GenerationState.CREDENTIAL_RESOLVED)
        return _Resolved(request=request, adapter_cls=adapter_cls, credential=credential)

    def _failure(self, error: GatewayError, gen: _Generation) -> GenerationResult:
        gen.advance(GenerationState.TERMINATED)
        provider = error.provider or gen.provider
        model = error.model or gen.model
        logger.error(
            "Generation failed",
            provider=provider,
            model=model,
            error_kind=error.kind.value,
            error=error.message,
        )
        return GenerationResult.failure(
            error.kind,
            error.message,
            provider=provider,
            model=model,
            status=error.status,
            attempts=0,
        )

    def _with_context(self, result: GenerationResult, gen: _Generation) -> GenerationResult:
        gen.advance(GenerationState.TERMINATED)
        result.provider = result.provider or gen.provider
        result.model = result.model or gen.model
        return result

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Single-shot generation. Gateway failures come back as results."""
        gen = _Generation(provider=request.provider, model=request.model)
        try:
            resolved = await self._resolve(request, gen)
        except GatewayError as e:
            return self._failure(e, gen)

        async with self._client() as client:
            adapter = resolved.adapter_cls(client)
            gen.advance(GenerationState.UPSTREAM_OPEN)
            result = await adapter.generate_once(resolved.request, resolved.credential)

        return self._with_context(result, gen)

    async def generate_with_retry(
        self,
        request: GenerationRequest,
        policy: RetryPolicy | None = None,
    ) -> GenerationResult:
        """Single-shot generation with bounded retry of transient failures.

        Config and credential are resolved once; only the upstream call is
        repeated. The last attempt's failure is returned unchanged.
        """
        policy = policy or RetryPolicy()
        gen = _Generation(provider=request.provider, model=request.model)
        try:
            resolved = await self._resolve(request, gen)
        except GatewayError as e:
            return self._failure(e, gen)

        async with self._client() as client:
            adapter = resolved.adapter_cls(client)
            gen.advance(GenerationState.UPSTREAM_OPEN)

            async def call() -> GenerationResult:
                return await adapter.generate_once(resolved.request, resolved.credential)

            result = await run_with_retry(call, policy)

        if result.ok and result.attempts > 1:
            logger.info("Generation succeeded after retry", attempts=result.attempts)
        return self._with_context(result, gen)

    async def stream(
        self,
        request: GenerationRequest,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Normalized chunk stream for one generation.

        Pre-flight and upstream failures both end the stream with a single
        error chunk. Closing this generator early releases the upstream
        connection.
        """
        gen = _Generation(provider=request.provider, model=request.model)
        chunks = self._stream(request, gen, cancel)
        async with aclosing(chunks):
            async for chunk in chunks:
                yield chunk

    async def _stream(
        self,
        request: GenerationRequest,
        gen: _Generation,
        cancel: asyncio.Event | None,
    ) -> AsyncIterator[StreamChunk]:
        try:
            resolved = await self._resolve(request, gen)
        except GatewayError as e:
            gen.advance(GenerationState.TERMINATED)
            logger.error(
                "Stream pre-flight failed",
                provider=e.provider or gen.provider,
                error_kind=e.kind.value,
                error=e.message,
            )
            yield StreamChunk.error(e.message)
            return

        async with self._client() as client:
            adapter = resolved.adapter_cls(client)
            gen.advance(GenerationState.UPSTREAM_OPEN)
            upstream = adapter.generate_stream(resolved.request, resolved.credential)
            async with aclosing(upstream):
                async for chunk in upstream:
                    if _cancelled(cancel):
                        logger.info(
                            "Generation cancelled", provider=gen.provider, chunks=gen.chunks
                        )
                        break
                    if gen.state is GenerationState.UPSTREAM_OPEN:
                        gen.advance(GenerationState.STREAMING)
                    gen.chunks += 1
                    if chunk.kind is ChunkKind.CONTENT:
                        gen.content_chunks += 1
                    yield chunk
                    if chunk.is_error:
                        break

        gen.advance(GenerationState.TERMINATED)

    async def generate_streaming(
        self,
        request: GenerationRequest,
        sink: StreamSink,
        cancel: asyncio.Event | None = None,
    ) -> TerminalSignal:
        """Write framed chunks to ``sink``, then one terminal signal, then close it.

        A sink closed by the caller counts as cancellation: reading stops at
        the next chunk and later writes are dropped.
        """
        gen = _Generation(provider=request.provider, model=request.model)
        signal: TerminalSignal | None = None
        chunks = self._stream(request, gen, cancel)

        try:
            async with aclosing(chunks):
                async for chunk in chunks:
                    if chunk.is_error:
                        signal = TerminalSignal(error=chunk.text)
                        break
                    if sink.closed:
                        logger.info("Sink closed by consumer", provider=gen.provider)
                        break
                    await self._write(sink, encode_chunk(chunk))

            stopped = sink.closed or _cancelled(cancel)
            if signal is None and gen.content_chunks == 0 and not stopped:
                logger.warning(
                    "Stream ended without content",
                    provider=gen.provider,
                    error_kind=ErrorKind.EMPTY_COMPLETION.value,
                )
                signal = TerminalSignal(error=EMPTY_STREAM_MESSAGE)
            signal = signal or TerminalSignal()
        finally:
            final = signal or TerminalSignal(error=INTERRUPTED_MESSAGE)
            for frame in encode_terminal(final):
                await self._write(sink, frame)
            await sink.close()
            logger.debug(
                "Stream terminated", provider=gen.provider, chunks=gen.chunks, error=final.error
            )

        return signal

    async def _write(self, sink: StreamSink, frame: str) -> None:
        if sink.closed:
            return
        try:
            await sink.write(frame)
        except SinkClosedError:
            logger.debug("Dropped write to closed sink")

    async def iter_frames(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Framed event stream, e.g. for an HTTP streaming response body."""
        sink = QueueSink()
        task = asyncio.create_task(self.generate_streaming(request, sink))
        try:
            async for frame in sink:
                yield frame
        finally:
            if task.done():
                task.result()
            else:
                # Consumer stopped early
                sink.cancel()
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

    async def list_models(self, provider: str | None = None) -> list[ModelInfo]:
        """Models available to the configured credential.

        Raises:
            GatewayError: Config, credential or upstream failure.
        """
        gen = _Generation(provider=provider)
        config, adapter_cls = self._resolve_provider(provider, gen)
        credential = await resolve_credential(config)
        async with self._client() as client:
            return await adapter_cls(client).list_models(credential)

    async def test_connection(self, provider: str | None = None) -> ConnectionReport:
        """List models and run one short generation against a provider."""
        return await probe_connection(self, provider)

    async def test_speed(self, provider: str | None, model: str) -> SpeedReport:
        """Time one short generation."""
        return await probe_speed(self, provider, model)


def _cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()

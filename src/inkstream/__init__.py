"""Inkstream: multi-provider streaming LLM gateway."""

from typing import Any

from inkstream._core._credentials import from_env, static
from inkstream._core._errors import (
    ConfigNotInitialized,
    EmptyCompletion,
    ErrorKind,
    GatewayError,
    MissingCredential,
    UnknownProvider,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from inkstream._core._models import (
    ChunkKind,
    ConnectionReport,
    GatewayConfig,
    GenerationRequest,
    GenerationResult,
    ModelInfo,
    ProviderConfig,
    SpeedReport,
    StreamChunk,
    TerminalSignal,
    load_config,
)
from inkstream._core._orchestrator import Gateway
from inkstream._core._probe import print_report
from inkstream._core._registry import GatewayRegistry
from inkstream._core._retry import RetryPolicy
from inkstream._core._sinks import CollectingSink, QueueSink, SinkClosedError, StreamSink
from inkstream._gateway import supported_providers


def set_config(config: GatewayConfig | dict[str, Any]) -> None:
    """Replace the process-wide gateway configuration."""
    GatewayRegistry.get_instance().set_config(config)


__all__ = [
    "Gateway",
    "GatewayRegistry",
    "GatewayConfig",
    "ProviderConfig",
    "GenerationRequest",
    "GenerationResult",
    "StreamChunk",
    "ChunkKind",
    "TerminalSignal",
    "ModelInfo",
    "ConnectionReport",
    "SpeedReport",
    "RetryPolicy",
    "StreamSink",
    "CollectingSink",
    "QueueSink",
    "SinkClosedError",
    "ErrorKind",
    "GatewayError",
    "ConfigNotInitialized",
    "UnknownProvider",
    "MissingCredential",
    "UpstreamHTTPError",
    "EmptyCompletion",
    "UpstreamTransportError",
    "from_env",
    "static",
    "load_config",
    "print_report",
    "set_config",
    "supported_providers",
]

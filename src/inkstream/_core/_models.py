"""Core data models for Inkstream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

import yaml

from inkstream._core._errors import ErrorKind

CredentialResolver = Callable[[], Union[str, None, Awaitable[Union[str, None]]]]

PROVIDER_FIELDS = ("get_api_key", "model", "temperature", "max_tokens")


@dataclass(frozen=True)
class GenerationRequest:
    """A single generation call.

    One request yields exactly one logical generation. ``provider=None``
    selects the configured default provider and an empty ``model`` selects
    the provider config's model.
    """

    user_prompt: str
    model: str = ""
    provider: str | None = None
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    def __post_init__(self) -> None:
        if not self.user_prompt:
            raise ValueError("user_prompt must not be empty")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be > 0, got {self.max_tokens}")
        if self.temperature is not None and self.temperature < 0:
            raise ValueError(f"temperature must be >= 0, got {self.temperature}")

    def messages(self) -> list[dict[str, str]]:
        """Render the prompts as chat messages."""
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.user_prompt})
        return messages


class ChunkKind(str, Enum):
    CONTENT = "content"
    REASONING = "reasoning"
    ERROR = "error"


@dataclass(frozen=True)
class StreamChunk:
    """One incremental unit of a streamed generation."""

    kind: ChunkKind
    text: str

    @classmethod
    def content(cls, text: str) -> StreamChunk:
        return cls(ChunkKind.CONTENT, text)

    @classmethod
    def reasoning(cls, text: str) -> StreamChunk:
        return cls(ChunkKind.REASONING, text)

    @classmethod
    def error(cls, message: str) -> StreamChunk:
        return cls(ChunkKind.ERROR, message)

    @property
    def is_error(self) -> bool:
        return self.kind is ChunkKind.ERROR


@dataclass(frozen=True)
class TerminalSignal:
    """Ends a generation's stream: done when ``error`` is None."""

    error: str | None = None

    @property
    def done(self) -> bool:
        return self.error is None


@dataclass
class GenerationResult:
    """Outcome of a non-streaming generation.

    Exactly one of ``content`` or ``error`` is set.
    """

    content: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    provider: str | None = None
    model: str | None = None
    status: int | None = None
    reasoning: str | None = None
    attempts: int = 1

    def __post_init__(self) -> None:
        if (self.content is None) == (self.error is None):
            raise ValueError("GenerationResult needs exactly one of content or error")
        if self.error is not None and not self.error:
            raise ValueError("GenerationResult error message must not be empty")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, content: str, **kw: Any) -> GenerationResult:
        return cls(content=content, **kw)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **kw: Any) -> GenerationResult:
        return cls(error=message, error_kind=kind, **kw)


@dataclass
class ProviderConfig:
    """Per-provider settings held by the registry."""

    provider_id: str
    get_api_key: CredentialResolver | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def from_dict(cls, provider_id: str, data: dict[str, Any]) -> ProviderConfig:
        """Create ProviderConfig from the configuration surface dict."""
        unknown = set(data) - set(PROVIDER_FIELDS)
        if unknown:
            raise ValueError(
                f"Unrecognized options for provider '{provider_id}': {sorted(unknown)}"
            )
        get_api_key = data.get("get_api_key")
        if get_api_key is not None and not callable(get_api_key):
            raise ValueError(f"get_api_key for provider '{provider_id}' must be callable")

        return cls(
            provider_id=provider_id,
            get_api_key=get_api_key,
            model=data.get("model"),
            temperature=data.get("temperature"),
            max_tokens=data.get("max_tokens"),
        )


@dataclass
class GatewayConfig:
    """The whole active configuration: default provider plus provider table."""

    default_provider: str | None = None
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GatewayConfig:
        """Create GatewayConfig from ``{default_provider, <provider>: {...}}``."""
        providers: dict[str, ProviderConfig] = {}
        for key, value in data.items():
            if key == "default_provider":
                continue
            if isinstance(value, ProviderConfig):
                providers[key] = value
            elif isinstance(value, dict):
                providers[key] = ProviderConfig.from_dict(key, value)
            else:
                raise ValueError(f"Config for provider '{key}' must be a mapping")

        default = data.get("default_provider")
        if default is not None and default not in providers:
            raise ValueError(f"default_provider '{default}' has no provider entry")

        return cls(default_provider=default, providers=providers)


def load_config(path: Path | str) -> GatewayConfig:
    """Load a GatewayConfig from YAML.

    Keys are never stored in the file: each provider names the environment
    variable holding its key via ``api_key_env`` (default ``<PROVIDER>_API_KEY``).
    """
    from inkstream._core._credentials import from_env

    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Gateway config must be a mapping: {path}")

    surface: dict[str, Any] = {}
    for key, value in data.items():
        if key == "default_provider":
            surface[key] = value
            continue
        entry = dict(value or {})
        entry["get_api_key"] = from_env(key, var=entry.pop("api_key_env", None))
        surface[key] = entry

    return GatewayConfig.from_dict(surface)


@dataclass
class ModelInfo:
    """One entry from a provider's model listing."""

    id: str
    owned_by: str = ""
    created: int = 0
    object: str = "model"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelInfo:
        return cls(
            id=str(data["id"]),
            owned_by=str(data.get("owned_by") or ""),
            created=int(data.get("created") or 0),
            object=str(data.get("object") or "model"),
        )


@dataclass
class SpeedReport:
    """Result of timing one short generation."""

    provider: str
    model: str
    success: bool
    duration_ms: float
    response: str = ""
    error: str | None = None


@dataclass
class ConnectionReport:
    """Result of probing a provider: model listing plus a test generation."""

    provider: str
    success: bool
    latency_ms: float
    endpoint: str = ""
    models: list[ModelInfo] = field(default_factory=list)
    generation: SpeedReport | None = None
    error: str | None = None

    @property
    def model_count(self) -> int:
        return len(self.models)

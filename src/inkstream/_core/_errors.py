"""Error taxonomy for the generation gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any

RETRYABLE_STATUSES = frozenset({408, 409, 425, 429})


class ErrorKind(str, Enum):
    """Tag carried by failed results so retry policy can match on kind."""

    CONFIG_NOT_INITIALIZED = "ConfigNotInitialized"
    UNKNOWN_PROVIDER = "UnknownProvider"
    MISSING_CREDENTIAL = "MissingCredential"
    UPSTREAM_HTTP = "UpstreamHTTPError"
    EMPTY_COMPLETION = "EmptyCompletion"
    UPSTREAM_TRANSPORT = "UpstreamTransportError"
    MALFORMED_LINE = "MalformedUpstreamLine"


def is_retryable(kind: ErrorKind | None, status: int | None = None) -> bool:
    """Whether a failure of this kind may be retried on the non-streaming path."""
    if kind in (ErrorKind.UPSTREAM_TRANSPORT, ErrorKind.EMPTY_COMPLETION):
        return True
    if kind is ErrorKind.UPSTREAM_HTTP and status is not None:
        return status in RETRYABLE_STATUSES or status >= 500
    return False


class GatewayError(Exception):
    """Base for all gateway failures.

    Carries the provider and model being attempted so the caller can tell
    where the failure came from.
    """

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        status: int | None = None,
    ) -> None:
        self.message = message
        self.provider = provider
        self.model = model
        self.status = status
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind, self.status)


class ConfigNotInitialized(GatewayError):
    """Generation attempted before any configuration was set."""

    kind = ErrorKind.CONFIG_NOT_INITIALIZED

    def __init__(
        self, message: str = "LLM gateway configuration has not been set", **kw: Any
    ) -> None:
        super().__init__(message, **kw)


class UnknownProvider(GatewayError):
    """Provider id has no entry in the active config or no adapter."""

    kind = ErrorKind.UNKNOWN_PROVIDER

    def __init__(self, provider: str, message: str | None = None, **kw: Any) -> None:
        super().__init__(message or f"Unknown LLM provider: {provider}", provider=provider, **kw)


class MissingCredential(GatewayError):
    """Credential resolver returned nothing usable."""

    kind = ErrorKind.MISSING_CREDENTIAL

    def __init__(self, provider: str, detail: str | None = None, **kw: Any) -> None:
        message = (
            f"MissingCredential: no API key configured for provider '{provider}'. "
            f"Configure get_api_key for '{provider}' or set {provider.upper()}_API_KEY"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, provider=provider, **kw)


class UpstreamHTTPError(GatewayError):
    """Provider answered with a non-2xx status."""

    kind = ErrorKind.UPSTREAM_HTTP


class EmptyCompletion(GatewayError):
    """Provider answered 2xx but without usable content."""

    kind = ErrorKind.EMPTY_COMPLETION


class UpstreamTransportError(GatewayError):
    """Network-level failure or forced abort (timeout)."""

    kind = ErrorKind.UPSTREAM_TRANSPORT


class MalformedUpstreamLine(GatewayError):
    """A single streamed line could not be parsed. Logged and skipped."""

    kind = ErrorKind.MALFORMED_LINE

"""Credential resolvers and their invocation.

A resolver is any zero-argument callable returning the provider's secret,
either directly or as an awaitable. It is called on every request; secrets
may rotate, so nothing here caches them.
"""

from __future__ import annotations

import inspect
import os

from inkstream._core._errors import MissingCredential
from inkstream._core._logging import get_logger
from inkstream._core._models import CredentialResolver, ProviderConfig

logger = get_logger(__name__)


def from_env(provider_id: str, var: str | None = None) -> CredentialResolver:
    """Resolver reading ``var`` (default ``<PROVIDER>_API_KEY``) at call time."""
    name = var or f"{provider_id.upper()}_API_KEY"

    def resolve() -> str | None:
        return os.environ.get(name)

    resolve.__name__ = f"from_env_{name}"
    return resolve


def static(secret: str) -> CredentialResolver:
    """Resolver that always returns the same secret."""

    def resolve() -> str | None:
        return secret

    return resolve


async def resolve_credential(config: ProviderConfig) -> str:
    """Invoke the provider's resolver and return a non-empty secret.

    Raises:
        MissingCredential: No resolver, resolver failed, or empty secret.
    """
    provider = config.provider_id
    if config.get_api_key is None:
        raise MissingCredential(provider, model=config.model)

    try:
        value = config.get_api_key()
        if inspect.isawaitable(value):
            value = await value
    except Exception as e:
        logger.warning("Credential resolver failed", provider=provider, error=str(e))
        raise MissingCredential(provider, detail=str(e), model=config.model) from e

    if not isinstance(value, str) or not value.strip():
        raise MissingCredential(provider, model=config.model)

    logger.debug("Credential resolved", provider=provider)
    return value.strip()

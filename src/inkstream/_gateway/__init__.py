"""Provider adapters."""

import httpx

from inkstream._core._errors import UnknownProvider
from inkstream._gateway._anthropic import AnthropicAdapter
from inkstream._gateway._base import ProviderAdapter
from inkstream._gateway._cohere import CohereAdapter
from inkstream._gateway._deepseek import DeepSeekAdapter
from inkstream._gateway._openai import OpenAIAdapter
from inkstream._gateway._siliconflow import SiliconFlowAdapter
from inkstream._gateway._volc import VolcAdapter

ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "deepseek": DeepSeekAdapter,
    "siliconflow": SiliconFlowAdapter,
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
    "volc": VolcAdapter,
    "cohere": CohereAdapter,
}


def adapter_class(provider: str) -> type[ProviderAdapter]:
    """Look up the adapter class for a provider id."""
    adapter_cls = ADAPTERS.get(provider)
    if adapter_cls is None:
        raise UnknownProvider(provider, message=f"No adapter for LLM provider: {provider}")
    return adapter_cls


def create_adapter(provider: str, client: httpx.AsyncClient) -> ProviderAdapter:
    """Create the adapter for a provider id (e.g. 'deepseek')."""
    return adapter_class(provider)(client)


def supported_providers() -> list[str]:
    return sorted(ADAPTERS)

"""Process-wide gateway configuration."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from inkstream._core._errors import ConfigNotInitialized, UnknownProvider
from inkstream._core._logging import get_logger
from inkstream._core._models import GatewayConfig, ProviderConfig

logger = get_logger(__name__)

# Built-in fallbacks for fields a provider config leaves unset
PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "deepseek": {"model": "deepseek-chat", "temperature": 0.7, "max_tokens": 2000},
    "siliconflow": {
        "model": "Qwen/Qwen2.5-7B-Instruct",
        "temperature": 0.7,
        "max_tokens": 2000,
    },
    "openai": {"model": "gpt-4o-mini", "temperature": 0.7, "max_tokens": 2000},
    "anthropic": {
        "model": "claude-sonnet-4-20250514",
        "temperature": 0.7,
        "max_tokens": 4096,
    },
    "volc": {"model": "doubao-pro-32k", "temperature": 0.7, "max_tokens": 2000},
    "cohere": {"model": "command", "temperature": 0.7, "max_tokens": 2000},
}
FALLBACK_DEFAULTS: dict[str, Any] = {"temperature": 0.7, "max_tokens": 2000}


class GatewayRegistry:
    """Holds the active configuration.

    ``set_config`` swaps the whole configuration in one assignment. Requests
    racing a reconfiguration see either the old or the new config, never a
    merge: last write wins.
    """

    _instance: GatewayRegistry | None = None

    def __init__(self) -> None:
        self._config: GatewayConfig | None = None

    @classmethod
    def get_instance(cls) -> GatewayRegistry:
        """Return the process-wide registry, creating it on first access."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the process-wide registry."""
        cls._instance = None

    def set_config(self, config: GatewayConfig | dict[str, Any]) -> None:
        """Replace the entire active configuration."""
        if not isinstance(config, GatewayConfig):
            config = GatewayConfig.from_dict(config)
        self._config = config
        logger.info(
            "Gateway configured",
            providers=sorted(config.providers),
            default_provider=config.default_provider,
        )

    @property
    def configured(self) -> bool:
        return self._config is not None

    @property
    def default_provider(self) -> str | None:
        return self._config.default_provider if self._config else None

    def providers(self) -> list[str]:
        """Provider ids present in the active configuration."""
        return sorted(self._config.providers) if self._config else []

    def select_provider(self, provider_id: str | None) -> str:
        """Return ``provider_id`` or the configured default provider."""
        config = self._require_config()
        selected = provider_id or config.default_provider
        if not selected:
            raise UnknownProvider(
                "", message="No provider given and no default_provider configured"
            )
        return selected

    def resolve_provider_config(self, provider_id: str) -> ProviderConfig:
        """Return the provider's config with built-in defaults filled in.

        Raises:
            ConfigNotInitialized: set_config has never been called.
            UnknownProvider: provider_id is absent from the active config.
        """
        config = self._require_config()
        provider_config = config.providers.get(provider_id)
        if provider_config is None:
            raise UnknownProvider(
                provider_id,
                message=f"Provider '{provider_id}' is not configured",
            )

        defaults = {**FALLBACK_DEFAULTS, **PROVIDER_DEFAULTS.get(provider_id, {})}
        return replace(
            provider_config,
            model=provider_config.model or defaults.get("model"),
            temperature=(
                provider_config.temperature
                if provider_config.temperature is not None
                else defaults["temperature"]
            ),
            max_tokens=provider_config.max_tokens or defaults["max_tokens"],
        )

    def _require_config(self) -> GatewayConfig:
        # Read once: a concurrent set_config swaps the reference, not its contents
        config = self._config
        if config is None:
            raise ConfigNotInitialized()
        return config

"""Tests for the gateway registry."""

import pytest

from inkstream._core._credentials import static
from inkstream._core._errors import ConfigNotInitialized, UnknownProvider
from inkstream._core._models import GatewayConfig
from inkstream._core._registry import PROVIDER_DEFAULTS, GatewayRegistry


def test_get_instance_is_singleton():
    assert GatewayRegistry.get_instance() is GatewayRegistry.get_instance()


def test_reset_instance_drops_config():
    GatewayRegistry.get_instance().set_config({"deepseek": {}})
    GatewayRegistry.reset_instance()
    assert not GatewayRegistry.get_instance().configured


def test_resolve_before_set_config_raises():
    registry = GatewayRegistry()
    with pytest.raises(ConfigNotInitialized):
        registry.resolve_provider_config("deepseek")
    with pytest.raises(ConfigNotInitialized):
        registry.select_provider(None)


def test_resolve_fills_builtin_defaults():
    registry = GatewayRegistry()
    registry.set_config({"deepseek": {"get_api_key": static("sk")}})

    config = registry.resolve_provider_config("deepseek")

    assert config.model == PROVIDER_DEFAULTS["deepseek"]["model"]
    assert config.temperature == 0.7
    assert config.max_tokens == 2000
    assert config.get_api_key() == "sk"


def test_resolve_keeps_explicit_values():
    registry = GatewayRegistry()
    registry.set_config({"siliconflow": {"model": "deepseek-ai/DeepSeek-V3", "temperature": 0.0}})

    config = registry.resolve_provider_config("siliconflow")

    assert config.model == "deepseek-ai/DeepSeek-V3"
    assert config.temperature == 0.0


def test_resolve_unconfigured_provider():
    registry = GatewayRegistry()
    registry.set_config({"deepseek": {}})
    with pytest.raises(UnknownProvider, match="'siliconflow' is not configured"):
        registry.resolve_provider_config("siliconflow")


def test_set_config_replaces_without_merging():
    registry = GatewayRegistry()
    registry.set_config({"deepseek": {"model": "deepseek-chat"}})
    registry.set_config({"siliconflow": {}})

    assert registry.providers() == ["siliconflow"]
    assert registry.resolve_provider_config("siliconflow").provider_id == "siliconflow"
    with pytest.raises(UnknownProvider):
        registry.resolve_provider_config("deepseek")


def test_set_config_accepts_gateway_config():
    registry = GatewayRegistry()
    registry.set_config(GatewayConfig.from_dict({"default_provider": "deepseek", "deepseek": {}}))
    assert registry.default_provider == "deepseek"


def test_select_provider_falls_back_to_default(registry):
    assert registry.select_provider(None) == "deepseek"
    assert registry.select_provider("siliconflow") == "siliconflow"


def test_select_provider_without_default():
    registry = GatewayRegistry()
    registry.set_config({"deepseek": {}})
    with pytest.raises(UnknownProvider, match="no default_provider"):
        registry.select_provider(None)


def test_set_config_rejects_unknown_fields():
    registry = GatewayRegistry()
    with pytest.raises(ValueError):
        registry.set_config({"deepseek": {"base_url": "http://localhost"}})
    assert not registry.configured

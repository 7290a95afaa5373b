"""Tests for logging module."""

from unittest.mock import MagicMock, patch

from inkstream._core._logging import (
    COMPONENT_MAP,
    MASK,
    ComponentLogger,
    get_logger,
    mask_secrets,
)


def test_component_logger_name():
    """Logger name is prefix:component."""
    comp_logger = ComponentLogger("orchestrator")
    assert comp_logger.name == "Inkstream:orchestrator"

    with patch("inkstream._core._logging.structlog.get_logger") as mock_get:
        mock_logger = MagicMock()
        mock_get.return_value = mock_logger

        comp_logger.info("Test message", provider="deepseek")

        mock_get.assert_called_with("Inkstream:orchestrator")
        mock_logger.info.assert_called_once_with("Test message", provider="deepseek")


def test_component_logger_all_levels():
    comp_logger = ComponentLogger("sse")

    with patch("inkstream._core._logging.structlog.get_logger") as mock_get:
        mock_logger = MagicMock()
        mock_get.return_value = mock_logger

        comp_logger.debug("debug msg")
        comp_logger.info("info msg")
        comp_logger.warning("warning msg")
        comp_logger.error("error msg")

        mock_logger.debug.assert_called_with("debug msg")
        mock_logger.info.assert_called_with("info msg")
        mock_logger.warning.assert_called_with("warning msg")
        mock_logger.error.assert_called_with("error msg")


def test_get_logger_returns_component_logger():
    logger = get_logger("inkstream._core._registry")
    assert isinstance(logger, ComponentLogger)
    assert logger._component == "registry"


def test_get_logger_maps_adapters_to_gateway():
    assert get_logger("inkstream._gateway._deepseek")._component == "llm-gateway"
    assert get_logger("inkstream._gateway._cohere")._component == "llm-gateway"


def test_get_logger_fallback_component():
    logger = get_logger("inkstream._core._unknown_module")
    assert logger._component == "unknown_module"


def test_mask_secrets():
    event = {"event": "call", "api_key": "sk-live", "Authorization": "Bearer x", "provider": "volc"}
    masked = mask_secrets(None, "info", event)
    assert masked["api_key"] == MASK
    assert masked["Authorization"] == MASK
    assert masked["provider"] == "volc"


def test_mask_secrets_leaves_empty_values():
    assert mask_secrets(None, "info", {"credential": None})["credential"] is None


def test_component_map_coverage():
    expected_components = {
        "llm-gateway",
        "orchestrator",
        "registry",
        "credentials",
        "retry",
        "sse",
        "probe",
    }
    assert set(COMPONENT_MAP.values()) == expected_components

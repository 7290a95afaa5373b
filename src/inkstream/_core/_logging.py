"""Structured logging for Inkstream.

Loggers are named ``Inkstream:<component>``, e.g. ``Inkstream:orchestrator``.
Values under credential-like keys are masked before rendering.
"""

import logging
import os
from typing import Any

import structlog

_CONFIGURED = False
LOGGER_PREFIX = "Inkstream"

COMPONENT_MAP = {
    "inkstream._gateway._base": "llm-gateway",
    "inkstream._gateway._openai_compat": "llm-gateway",
    "inkstream._gateway._deepseek": "llm-gateway",
    "inkstream._gateway._siliconflow": "llm-gateway",
    "inkstream._gateway._openai": "llm-gateway",
    "inkstream._gateway._anthropic": "llm-gateway",
    "inkstream._gateway._volc": "llm-gateway",
    "inkstream._gateway._cohere": "llm-gateway",
    "inkstream._core._orchestrator": "orchestrator",
    "inkstream._core._registry": "registry",
    "inkstream._core._credentials": "credentials",
    "inkstream._core._retry": "retry",
    "inkstream._core._sse": "sse",
    "inkstream._core._probe": "probe",
}

SECRET_KEYS = frozenset({"api_key", "credential", "authorization", "secret", "token"})
MASK = "***"


def mask_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor replacing credential-like values with a mask."""
    for key in event_dict:
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _ensure_configured() -> None:
    """Install a console config unless the host app already configured structlog."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    for noisy in ("httpx", "httpcore", "anthropic", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.ERROR)

    if structlog.is_configured():
        return

    level = os.getenv("INKSTREAM_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO"))
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            mask_secrets,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


class ComponentLogger:
    """Thin wrapper logging under ``Inkstream:<component>``.

    The structlog logger is looked up per call so a host app configuring
    structlog after import still takes effect.
    """

    def __init__(self, component: str) -> None:
        self._component = component
        self._name = f"{LOGGER_PREFIX}:{component}"

    @property
    def name(self) -> str:
        return self._name

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        return structlog.get_logger(self._name)

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)


def get_logger(name: str | None = None) -> ComponentLogger:
    """Logger for a module; pass ``__name__``.

    Modules listed in COMPONENT_MAP share a component name, anything else
    uses its last dotted segment.
    """
    _ensure_configured()
    logger_name = name or "inkstream"
    component = COMPONENT_MAP.get(logger_name, logger_name.split(".")[-1].strip("_"))
    return ComponentLogger(component)

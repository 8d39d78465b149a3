"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from warden.core.settings import WardenSettings


def _service_context(service_name: str) -> Processor:
    """Build a processor that stamps events with the owning service."""

    def add_service_context(
        _logger: Any, _method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        logger_name = event_dict.get("logger", "")
        if "." in logger_name:
            event_dict["service"] = logger_name.split(".")[0]
        else:
            event_dict["service"] = service_name
        return event_dict

    return add_service_context


def configure_logging(
    service_name: str = "warden", log_level: str = "info", json_logs: bool = True
) -> None:
    """Configure structlog on top of the standard library logging module."""
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _service_context(service_name),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def configure_from_settings(settings: WardenSettings | None = None) -> None:
    """Configure logging from ``WARDEN_`` environment settings."""
    settings = settings or WardenSettings()
    configure_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        json_logs=settings.log_json,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger bound to the given name."""
    return structlog.get_logger(name)

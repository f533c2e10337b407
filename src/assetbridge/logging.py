"""
Centralized logging configuration using structlog
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog

# Context variables for lifecycle tracking
asset_id_ctx: ContextVar[str | None] = ContextVar("asset_id", default=None)
backend_ctx: ContextVar[str | None] = ContextVar("backend", default=None)


class AssetContextFilter:
    """Add asset lifecycle context to log records."""

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        """Add asset context to the event dict."""
        # Required by the structlog processor signature
        _ = logger, method_name

        asset_id = asset_id_ctx.get()
        backend = backend_ctx.get()

        if asset_id:
            event_dict.setdefault("asset_id", asset_id)

        if backend:
            event_dict.setdefault("backend", backend)

        return event_dict


def configure_logging(debug: bool = False, log_level: str | None = None) -> None:
    """Configure structlog with appropriate processors and formatters.

    Args:
        debug: If True, use human-readable console output. If False, use JSON.
        log_level: Optional explicit level name; overrides the debug-derived level.
    """

    level = logging.DEBUG if debug else logging.INFO
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    # Configure stdlib logging
    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        AssetContextFilter(),
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        # Development: human-readable console output
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Production: JSON output
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def set_asset_context(asset_id: str | None = None, backend: str | None = None) -> None:
    """Bind the asset being processed to subsequent log events."""
    asset_id_ctx.set(asset_id)
    backend_ctx.set(backend)


def clear_asset_context() -> None:
    """Clear asset context variables."""
    asset_id_ctx.set(None)
    backend_ctx.set(None)


def get_asset_id() -> str | None:
    """Get the current asset ID."""
    return asset_id_ctx.get()

"""Logging configuration using structlog.

Stores log through ``LoggerMixin``: every logger of an object that has a
``directory`` is bound to it, so lines from two stores on different
directories can be told apart. ``card_context`` gives the fields used to
identify a card in log lines.
"""

import logging
import sys
import time
from typing import Any, Dict, Optional

import structlog

from . import config


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None):
    """Configure structured logging.

    Level and renderer default to ``LOG_LEVEL`` and ``LOG_FORMAT`` from
    settings; ``console`` gives coloured key/value lines, anything else JSON.
    """
    level_name = str(log_level or config.settings.LOG_LEVEL).upper()
    log_format = log_format or config.settings.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a logger, configuring structlog on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)


def card_context(card: Any) -> Dict[str, Any]:
    """Fields identifying a card in log lines."""
    return {"card_id": card.id, "has_image": bool(card.image_filename)}


def _elapsed_ms(context: Dict[str, Any]) -> Optional[int]:
    started = context.get("start_time")
    if started is None:
        return None
    return int((time.perf_counter() - started) * 1000)


class LoggerMixin:
    """Mixin giving stores a bound logger and timed operation logging."""

    @property
    def logger(self) -> structlog.BoundLogger:
        if not hasattr(self, "_logger"):
            logger = get_logger(self.__class__.__name__)
            bindings = self.log_bindings()
            self._logger = logger.bind(**bindings) if bindings else logger
        return self._logger

    def log_bindings(self) -> Dict[str, Any]:
        """Context bound to every line this object logs."""
        directory = getattr(self, "directory", None)
        if directory is None:
            return {}
        return {"directory": str(directory)}

    def log_start(self, event: str, **kwargs: Any) -> Dict[str, Any]:
        """Log (at debug) the start of a slow operation and return its context."""
        context = {"event": event, "start_time": time.perf_counter(), **kwargs}
        self.logger.debug(f"{event} started", **kwargs)
        return context

    def log_success(self, context: Dict[str, Any], **kwargs: Any):
        """Log completion with the operation's context and duration."""
        duration_ms = _elapsed_ms(context)
        if duration_ms is not None:
            kwargs["duration_ms"] = duration_ms

        fields = {k: v for k, v in context.items() if k not in ("event", "start_time")}
        self.logger.info(
            f"{context.get('event', 'operation')} completed", **{**fields, **kwargs}
        )

    def log_error(self, context: Dict[str, Any], error: Exception, **kwargs: Any):
        """Log failure with the operation's context, the error and duration."""
        duration_ms = _elapsed_ms(context)
        if duration_ms is not None:
            kwargs["duration_ms"] = duration_ms

        fields = {k: v for k, v in context.items() if k not in ("event", "start_time")}
        self.logger.error(
            f"{context.get('event', 'operation')} failed",
            **{**fields, **kwargs, "error": str(error), "error_type": type(error).__name__},
        )

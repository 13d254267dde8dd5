"""Utilities package."""

from .config import ensure_storage_dir, resolve_export_dir, resolve_storage_dir, settings
from .log import LoggerMixin, configure_logging, get_logger

__all__ = [
    "settings",
    "resolve_storage_dir",
    "resolve_export_dir",
    "ensure_storage_dir",
    "get_logger",
    "LoggerMixin",
    "configure_logging",
]

"""
Centralized error handling for the card persistence layer.

This module provides the exception hierarchy raised by the stores together
with the helpers used on best-effort paths, where a failure is logged with
its context and then dropped instead of reaching the caller.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class KardError(Exception):
    """Base exception class for all card store errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(KardError):
    """Raised when settings, directories or colour values are invalid."""
    pass


class DecodeError(KardError):
    """Raised when a card record is malformed or incompatible."""
    pass


class StorageError(KardError):
    """Raised when creating, reading, writing or deleting files fails."""
    pass


class ExportError(StorageError):
    """Raised when an export bundle cannot be assembled."""
    pass


class CardNotFoundError(KardError):
    """Describes an update or removal aimed at an id the store does not hold."""
    pass


class DuplicateCardError(KardError):
    """Raised when a card id is already present in the collection."""
    pass


class PaletteError(KardError):
    """Raised when a palette mutation is not allowed."""
    pass


@dataclass
class ErrorContext:
    """Context information for error reporting."""
    operation: str
    module: str
    function: str
    input_data: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


def handle_error(
    error: Exception,
    context: ErrorContext,
    logger: Any,
    reraise: bool = True,
    default_return: Any = None
) -> Any:
    """
    Centralized error handling with logging and optional recovery.

    Args:
        error: The exception that occurred
        context: Context information about where the error occurred
        logger: structlog logger used for error reporting
        reraise: Whether to re-raise the exception after logging
        default_return: Value to return if not re-raising

    Returns:
        The default_return value if not re-raising

    Raises:
        The original exception if reraise is True
    """
    error_msg = f"Error in {context.module}.{context.function} during {context.operation}"

    if isinstance(error, KardError):
        error_msg += f": {error.message}"
        if error.details:
            error_msg += f" | Details: {error.details}"
    else:
        error_msg += f": {str(error)}"

    logger.error(
        error_msg,
        error_type=type(error).__name__,
        operation=context.operation,
        error_module=context.module,
        error_function=context.function,
        input_data=context.input_data,
        timestamp=context.timestamp,
        exc_info=True,
    )

    if reraise:
        raise error

    return default_return


def safe_execute(
    func,
    *args,
    context: ErrorContext,
    logger: Any,
    default_return: Any = None,
    **kwargs
) -> Any:
    """
    Safely execute a function with error handling and logging.

    Args:
        func: Function to execute
        context: Error context information
        logger: structlog logger
        default_return: Value to return on error
        *args, **kwargs: Arguments to pass to the function

    Returns:
        Function result or default_return on error
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        return handle_error(e, context, logger, reraise=False, default_return=default_return)

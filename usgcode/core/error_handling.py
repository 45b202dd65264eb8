"""Error types and error-context helpers for usgcode."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class UsGcodeError(Exception):
    """Base exception for all usgcode errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(UsGcodeError):
    """Raised when configuration is invalid."""

    pass


class DimensionError(ConfigurationError):
    """Raised when a declared drawing dimension cannot be turned into a length."""

    pass


class DrawingError(UsGcodeError):
    """Raised when the input drawing cannot be read or parsed."""

    pass


class OutputError(UsGcodeError):
    """Raised when the output file cannot be prepared or written."""

    pass


class ErrorContext:
    """Context information for error handling."""

    def __init__(self, operation: str, file_path: Optional[str] = None, **kwargs):
        self.operation = operation
        self.file_path = file_path
        self.context = kwargs


@contextmanager
def error_context(operation: str, **context_kwargs):
    """
    Context manager for error handling with operation context.

    Errors are logged and re-raised unchanged; usgcode errors additionally
    get the operation name and context merged into their details.

    Args:
        operation: Description of the operation being performed
        **context_kwargs: Additional context information
    """
    try:
        yield ErrorContext(operation, **context_kwargs)
    except Exception as e:
        logger.error(f"Error during {operation}: {e}")

        if isinstance(e, UsGcodeError):
            e.details.update({"operation": operation, **context_kwargs})

        raise

#!/usr/bin/env python3
"""
Error Handling Module for the vSphere datastore report.

This module defines the application error types and the decorator used to
turn raw pyVmomi/transport exceptions into them, so the report can decide
per error class whether to abort the run or degrade a single cluster.
"""
import json
import traceback
import functools
import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar

logger = logging.getLogger('error_handler')

# Type variable for function return
T = TypeVar('T')


class AppError(Exception):
    """Base class for application-specific errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 original_error: Optional[Exception] = None):
        """
        Initialize a new application error.

        Args:
            message: Human-readable error message
            details: Additional details about the error (optional)
            original_error: The original exception that caused this error (optional)
        """
        self.message = message
        self.details = details or {}
        self.original_error = original_error

        if original_error is not None:
            self.details['original_error_type'] = original_error.__class__.__name__

        super().__init__(message)

    def log(self, log_level: int = logging.ERROR):
        """Log the error with appropriate level and details."""
        log_message = f"{self.__class__.__name__}: {self.message}"

        if self.original_error:
            log_message += f" (Original error: {self.original_error})"

        logger.log(log_level, log_message)

        if self.details:
            logger.log(log_level, f"Error details: {json.dumps(self.details, default=str)}")

        if self.original_error is not None and self.original_error.__traceback__ is not None:
            tb_str = ''.join(traceback.format_exception(
                type(self.original_error),
                self.original_error,
                self.original_error.__traceback__
            ))
            logger.debug(f"Original traceback:\n{tb_str}")

    def __str__(self) -> str:
        return self.message


class ConfigurationError(AppError):
    """Missing credentials or a malformed connection URL."""
    pass


class AuthenticationError(AppError):
    """The vCenter rejected the supplied credentials."""
    pass


class ResourceNotFoundError(AppError):
    """A named inventory object (usually a datacenter) could not be resolved."""
    pass


class VSphereError(AppError):
    """Error related to VMware vSphere communication."""
    pass


def robust_operation(error_type: Type[AppError] = AppError, error_message: str = "Operation failed",
                     log_level: int = logging.ERROR) -> Callable:
    """
    Decorator converting unexpected exceptions into an AppError subclass.

    Application errors raised inside the wrapped function pass through
    untouched. Anything else is wrapped, logged and re-raised as
    ``error_type`` with ``error_message`` as prefix.

    Args:
        error_type: Type of AppError to raise
        error_message: Error message to use
        log_level: Level the wrapped error is logged at

    Returns:
        Decorator function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                app_error = error_type(
                    message=f"{error_message}: {getattr(e, 'msg', None) or str(e)}",
                    details={'function': func.__name__},
                    original_error=e
                )
                app_error.log(log_level)
                raise app_error from e

        return wrapper

    return decorator

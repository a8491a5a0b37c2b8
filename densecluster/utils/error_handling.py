"""
Error Handling Module

Provides the error handling infrastructure for densecluster:
- Custom exception hierarchy
- Serial fallback decorator for parallel execution paths
"""

import functools
import time
from typing import Any, Callable, Optional, Type, TypeVar

import structlog


logger = structlog.get_logger(__name__)


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class DenseClusterError(Exception):
    """Base exception for all densecluster errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Construction Errors
class InvalidArgumentError(DenseClusterError, ValueError):
    """Bad constructor or configuration parameter (e.g. eps <= 0)."""
    pass


class InvalidAlgorithmError(InvalidArgumentError):
    """Unknown or unsupported clustering algorithm."""
    pass


class InvalidDataError(DenseClusterError, ValueError):
    """Input matrix is empty or not two-dimensional."""
    pass


class NumericError(DenseClusterError, ArithmeticError):
    """Input contains NaN values."""
    pass


# Internal Errors
class DimensionMismatchError(DenseClusterError):
    """Indexing or shape inconsistency. Unreachable in correct usage."""
    pass


# Lifecycle Errors
class ModelNotFittedError(DenseClusterError):
    """Operation requires a fitted model."""
    pass


# Persistence Errors
class PersistenceError(DenseClusterError, IOError):
    """Failure while saving or loading a model."""
    pass


# Resource Management Errors
class ResourceExhaustedError(DenseClusterError):
    """Parallel execution cannot be scheduled with the available resources."""
    pass


# =============================================================================
# Serial Fallback Decorator
# =============================================================================


T = TypeVar("T")

FALLBACK_EXCEPTIONS: tuple[Type[BaseException], ...] = (
    ResourceExhaustedError,
    MemoryError,
    RuntimeError,
)


def with_serial_fallback(
    fallback: Callable[..., T],
    exceptions: tuple[Type[BaseException], ...] = FALLBACK_EXCEPTIONS,
    on_fallback: Optional[Callable[[BaseException], None]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that re-runs a parallel operation serially when it cannot run.

    The wrapped function and ``fallback`` receive the same arguments. Only
    the exception types in ``exceptions`` trigger the fallback; everything
    else propagates unchanged. Callers may also pass ``on_fallback=`` at
    call time, which overrides the decorator-level hook and is not
    forwarded to either function.

    Args:
        fallback: Serial implementation with the same signature
        exceptions: Exception types that signal resource exhaustion
        on_fallback: Optional hook called with the caught exception

    Example:
        @with_serial_fallback(contains_nan)
        def contains_nan_parallel(data, n_jobs=None):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            hook = kwargs.pop("on_fallback", on_fallback)
            try:
                return func(*args, **kwargs)
            except exceptions as e:
                logger.warning(
                    "parallel_fallback",
                    function=func.__name__,
                    fallback=fallback.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if hook is not None:
                    hook(e)
                return fallback(*args, **kwargs)

        return wrapper

    return decorator

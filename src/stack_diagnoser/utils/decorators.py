"""Decorator utilities for cross-cutting concerns."""
import functools
import logging
import time
from typing import Any, Callable, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_aws_call(operation: str) -> Callable[[F], F]:
    """Decorator to log the duration and outcome of an AWS query.

    Errors are logged and re-raised unchanged; nothing is retried here.

    Args:
        operation: API operation name used in log lines, e.g. "DescribeStacks"

    Returns:
        Decorator function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.monotonic() - start_time
                logger.error(f"{operation} failed after {duration:.2f}s: {str(e)}")
                raise
            duration = time.monotonic() - start_time
            logger.debug(f"{operation} completed in {duration:.2f}s")
            return result
        return cast(F, wrapper)
    return decorator

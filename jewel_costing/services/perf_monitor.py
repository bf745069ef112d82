"""Timing helpers for catalog-wide batch runs."""
import time
import logging
import functools
from typing import Callable

logger = logging.getLogger("jewelcost.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def recompute_catalog(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                f"{func.__qualname__} finished",
                extra={"duration_ms": duration_ms},
            )
    return wrapper

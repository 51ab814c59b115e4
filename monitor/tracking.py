"""
Lightweight call tracking for engine entry points.

Wraps a function, times it, and logs success or failure at DEBUG. Nothing is
stored between calls; exceptions are re-raised untouched.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def tracked(name: str | None = None) -> Callable[[F], F]:
    """Decorator: log call duration and outcome under `name` (default: qualname)."""

    def decorator(func: F) -> F:
        method = name or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - start) * 1000.0
                logger.debug("%s failed in %.2fms: %s", method, elapsed_ms, e)
                raise
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.debug("%s ok in %.2fms", method, elapsed_ms)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator

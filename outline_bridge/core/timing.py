"""
Performance timing utilities for debugging.

Measures the public conversions when OB_DEBUG is on. The flag is read on every
call, so the CLI's --debug switch takes effect after import.
"""

import functools
import sys
import time
from typing import Callable, ParamSpec, TypeVar

from .debug_log import is_debug_enabled

P = ParamSpec("P")
R = TypeVar("R")


def timer(func: Callable[P, R]) -> Callable[P, R]:
    """
    Decorator that prints execution time to stderr when OB_DEBUG is on.

    Args:
        func: Function to measure

    Returns:
        Wrapped function
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not is_debug_enabled():
            return func(*args, **kwargs)

        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        # stderr keeps converted output on stdout clean
        print(f"[OB_DEBUG] {func.__qualname__}: {elapsed_ms:.2f}ms", file=sys.stderr)
        return result

    return wrapper

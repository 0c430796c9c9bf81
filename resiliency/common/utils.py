"""
Common helpers for calling user supplied callables.
"""

import inspect
from typing import Any, Callable


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call(func: Callable, *args, **kwargs) -> Any:
    """Call a sync or async callable and return its result."""
    return await maybe_await(func(*args, **kwargs))


def describe(func: Callable) -> str:
    """Return a readable name for a callable, for log lines."""
    return getattr(func, '__qualname__', None) or getattr(func, '__name__', None) or repr(func)

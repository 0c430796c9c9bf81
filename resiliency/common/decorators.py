"""
Decorators for running functions under a policy.
"""

import functools
from typing import Any, Callable, TypeVar

from ..core.policy import Policy

F = TypeVar('F', bound=Callable[..., Any])


def protect(policy: Policy) -> Callable[[F], F]:
    """
    Decorator that runs every call of the decorated function through ``policy``.

    Works for sync and async functions; the decorated function is always a
    coroutine function.

    Example:
        @protect(retry_policy)
        async def fetch(key):
            ...
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await policy.execute(lambda: func(*args, **kwargs))

        wrapper.policy = policy
        return wrapper

    return decorator

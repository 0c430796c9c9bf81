"""
Backoff strategies for the retry policy.

A backoff strategy maps the current retry count (1 for the first retry) to
a delay in milliseconds. Strategies may be sync or async.
"""

import secrets
from typing import Awaitable, Callable, Optional, Protocol, Union

from ..common.utils import call
from ..errors import InvalidArgumentError
from ..util.validation import validate_integer

BackoffStrategy = Callable[[int], Union[int, float, Awaitable[Union[int, float]]]]


class RandomGenerator(Protocol):
    """Source of random integers used by jittered backoff."""

    def integer(self, min_value: int, max_value: int) -> Union[int, Awaitable[int]]:
        """Return a random integer N with min_value <= N <= max_value."""
        ...


class SecureRandomGenerator:
    """Random integers from the operating system's cryptographically secure source."""

    def __init__(self):
        self._random = secrets.SystemRandom()

    def integer(self, min_value: int, max_value: int) -> int:
        if min_value > max_value:
            raise InvalidArgumentError("min_value must be less than or equal to max_value", 'min_value', min_value)
        return self._random.randint(min_value, max_value)


class BackoffStrategyFactory:
    """Builds backoff strategies. With ``fast_first`` the first retry happens without delay."""

    @staticmethod
    def constant_backoff(delay_ms: int, fast_first: bool = False) -> BackoffStrategy:
        delay_ms = validate_integer('delay_ms', delay_ms, minimum=0)

        if fast_first:
            return lambda current_retry_count: 0 if current_retry_count == 1 else delay_ms
        return lambda current_retry_count: delay_ms

    @staticmethod
    def linear_backoff(delay_ms: int, fast_first: bool = False) -> BackoffStrategy:
        delay_ms = validate_integer('delay_ms', delay_ms, minimum=0)

        if fast_first:
            return lambda current_retry_count: delay_ms * (current_retry_count - 1)
        return lambda current_retry_count: delay_ms * current_retry_count

    @staticmethod
    def exponential_backoff(delay_ms: int, fast_first: bool = False, base: float = 2) -> BackoffStrategy:
        delay_ms = validate_integer('delay_ms', delay_ms, minimum=0)

        if fast_first:
            return lambda current_retry_count: (
                0 if current_retry_count == 1 else delay_ms * base ** (current_retry_count - 2)
            )
        return lambda current_retry_count: delay_ms * base ** (current_retry_count - 1)

    @staticmethod
    def jittered_backoff(
        min_delay_ms: int,
        max_delay_ms: int,
        fast_first: bool = False,
        random_generator: Optional[RandomGenerator] = None
    ) -> BackoffStrategy:
        """Random delay between ``min_delay_ms`` and ``max_delay_ms``, both inclusive."""
        min_delay_ms = validate_integer('min_delay_ms', min_delay_ms, minimum=0)
        max_delay_ms = validate_integer('max_delay_ms', max_delay_ms, minimum=0)
        if min_delay_ms > max_delay_ms:
            raise InvalidArgumentError(
                "min_delay_ms must be less than or equal to max_delay_ms", 'min_delay_ms', min_delay_ms
            )

        generator = random_generator or SecureRandomGenerator()

        async def jittered(current_retry_count: int) -> int:
            if fast_first and current_retry_count == 1:
                return 0
            return await call(generator.integer, min_delay_ms, max_delay_ms)

        return jittered

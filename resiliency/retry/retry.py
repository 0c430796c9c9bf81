"""
Retry policy implementation.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from ..common.hooks import HookRegistry
from ..common.predicates import Predicate
from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.reactive import ReactivePolicy
from ..util.validation import validate_integer
from .backoff import BackoffStrategy

logger = logging.getLogger(__name__)

OnRetryFn = Callable[[Optional[Any], Optional[BaseException], int], Union[None, Awaitable[None]]]
OnFinallyFn = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class RetryOptions:
    """Retry configuration."""
    retry_count: Optional[int] = None
    retry_forever: bool = False
    backoff: Optional[BackoffStrategy] = None
    react_on_result: List[Predicate] = field(default_factory=list)
    react_on_exception: List[Any] = field(default_factory=list)
    on_retry: List[OnRetryFn] = field(default_factory=list)
    on_finally: List[OnFinallyFn] = field(default_factory=list)
    name: Optional[str] = None

    def apply(self, policy: 'RetryPolicy') -> None:
        if self.retry_forever:
            policy.retry_forever()
        elif self.retry_count is not None:
            policy.retry_count(self.retry_count)
        if self.backoff is not None:
            policy.wait_before_retry(self.backoff)
        for predicate in self.react_on_result:
            policy.react_on_result(predicate)
        for predicate in self.react_on_exception:
            policy.react_on_exception(predicate)
        for fn in self.on_retry:
            policy.on_retry(fn)
        for fn in self.on_finally:
            policy.on_finally(fn)


def _no_backoff(current_retry_count: int) -> int:
    return 0


class RetryPolicy(ReactivePolicy[ResultType]):
    """
    Runs the operation again while its outcome is reactive.

    Retries once by default. Before each retry the backoff delay is awaited,
    then the on-retry hooks run with the triggering result or exception and
    the current retry count. When retries run out, the last outcome is
    returned or raised as is. On-finally hooks run once per execution.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._total_retry_count: Union[int, float] = 1
        self._backoff_strategy: BackoffStrategy = _no_backoff
        self._on_retry = HookRegistry('on_retry')
        self._on_finally = HookRegistry('on_finally')

    @property
    def total_retry_count(self) -> Union[int, float]:
        return self._total_retry_count

    def retry_count(self, retry_count: int) -> None:
        retry_count = validate_integer('retry_count', retry_count)
        self._check_modifiable()

        self._total_retry_count = retry_count

    def retry_forever(self) -> None:
        self._check_modifiable()

        self._total_retry_count = math.inf

    def wait_before_retry(self, strategy: BackoffStrategy) -> None:
        """Set the backoff strategy, see ``BackoffStrategyFactory``."""
        self._check_modifiable()

        if not callable(strategy):
            raise TypeError("backoff strategy must be callable")
        self._backoff_strategy = strategy

    def on_retry(self, fn: OnRetryFn) -> None:
        self._check_modifiable()

        self._on_retry.add(fn)

    def on_finally(self, fn: OnFinallyFn) -> None:
        self._check_modifiable()

        self._on_finally.add(fn)

    async def _execute_policy(self, fn: Operation) -> ResultType:
        try:
            current_retry_count = 0

            while True:
                try:
                    result = await call(fn)
                except Exception as ex:
                    if not await self._is_reactive_to_exception(ex):
                        raise

                    current_retry_count += 1
                    if not self._has_retry_left(current_retry_count):
                        logger.warning(f"Policy '{self.name}' gave up after {current_retry_count - 1} retries: {ex}")
                        raise

                    error = ex
                else:
                    if not await self._is_reactive_to_result(result):
                        return result

                    current_retry_count += 1
                    if not self._has_retry_left(current_retry_count):
                        logger.warning(f"Policy '{self.name}' gave up after {current_retry_count - 1} retries")
                        return result

                    error = None

                await self._wait_for(await call(self._backoff_strategy, current_retry_count))

                logger.debug(f"Policy '{self.name}' retrying (retry {current_retry_count})")
                if error is not None:
                    await self._on_retry.fire(None, error, current_retry_count)
                else:
                    await self._on_retry.fire(result, None, current_retry_count)
        finally:
            await self._on_finally.fire()

    def _has_retry_left(self, current_retry_count: int) -> bool:
        return current_retry_count <= self._total_retry_count

    @staticmethod
    async def _wait_for(delay_ms: Union[int, float]) -> None:
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

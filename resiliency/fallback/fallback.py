"""
Fallback policy implementation.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, List, Optional, Union

from ..common.hooks import HookRegistry
from ..common.predicates import Predicate
from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.reactive import ReactivePolicy
from ..errors import FallbackChainExhaustedException

logger = logging.getLogger(__name__)

FallbackChainLink = Operation
OnFallbackFn = Callable[[Optional[Any], Optional[BaseException]], Union[None, Awaitable[None]]]
OnFinallyFn = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class FallbackOptions:
    """Fallback configuration."""
    fallbacks: List[FallbackChainLink] = field(default_factory=list)
    react_on_result: List[Predicate] = field(default_factory=list)
    react_on_exception: List[Any] = field(default_factory=list)
    on_fallback: List[OnFallbackFn] = field(default_factory=list)
    on_finally: List[OnFinallyFn] = field(default_factory=list)
    name: Optional[str] = None

    def apply(self, policy: 'FallbackPolicy') -> None:
        for link in self.fallbacks:
            policy.fallback(link)
        for predicate in self.react_on_result:
            policy.react_on_result(predicate)
        for predicate in self.react_on_exception:
            policy.react_on_exception(predicate)
        for fn in self.on_fallback:
            policy.on_fallback(fn)
        for fn in self.on_finally:
            policy.on_finally(fn)


class FallbackPolicy(ReactivePolicy[ResultType]):
    """
    Tries substitute operations in order while the outcome stays reactive.

    Each execution walks its own copy of the chain. When the chain runs out
    ``FallbackChainExhaustedException`` is raised; that exception is never
    itself a reason to fall back. On-fallback hooks receive either the
    triggering result or the triggering exception, the other is None.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._fallback_chain: List[FallbackChainLink] = []
        self._on_fallback = HookRegistry('on_fallback')
        self._on_finally = HookRegistry('on_finally')

    def fallback(self, fallback_chain_link: FallbackChainLink) -> None:
        """Append a substitute operation to the chain."""
        self._check_modifiable()

        if not callable(fallback_chain_link):
            raise TypeError("fallback must be callable")
        self._fallback_chain.append(fallback_chain_link)

    def on_fallback(self, fn: OnFallbackFn) -> None:
        self._check_modifiable()

        self._on_fallback.add(fn)

    def on_finally(self, fn: OnFinallyFn) -> None:
        self._check_modifiable()

        self._on_finally.add(fn)

    async def _execute_policy(self, fn: Operation) -> ResultType:
        try:
            remaining: Deque[FallbackChainLink] = deque(self._fallback_chain)
            executor = fn

            while True:
                try:
                    result = await call(executor)
                except FallbackChainExhaustedException:
                    raise
                except Exception as ex:
                    if not await self._is_reactive_to_exception(ex):
                        raise

                    if not remaining:
                        logger.warning(f"Policy '{self.name}' exhausted its fallback chain: {ex}")
                        raise FallbackChainExhaustedException(cause=ex) from ex

                    executor = remaining.popleft()
                    logger.debug(f"Policy '{self.name}' falling back on exception: {ex}")
                    await self._on_fallback.fire(None, ex)
                    continue

                if not await self._is_reactive_to_result(result):
                    return result

                if not remaining:
                    logger.warning(f"Policy '{self.name}' exhausted its fallback chain")
                    raise FallbackChainExhaustedException()

                executor = remaining.popleft()
                logger.debug(f"Policy '{self.name}' falling back on result")
                await self._on_fallback.fire(result, None)
        finally:
            await self._on_finally.fire()

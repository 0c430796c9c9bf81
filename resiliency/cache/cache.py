"""
Cache policy implementation.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

from ..common.hooks import HookRegistry
from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.proactive import ProactivePolicy
from ..errors import InvalidArgumentError
from ..util import clock
from ..util.validation import to_milliseconds, validate_integer

logger = logging.getLogger(__name__)

OnCacheFn = Callable[[], Union[None, Awaitable[None]]]

_MISSING = object()


class TimeToLiveStrategy(str, Enum):
    """How long a cached value stays valid."""
    RELATIVE = "relative"  # ttl after the value was stored
    SLIDING = "sliding"    # ttl after the value was last stored or read
    ABSOLUTE = "absolute"  # until a fixed epoch time in milliseconds

    def __str__(self) -> str:
        return self.value


@dataclass
class CacheOptions:
    """Cache configuration."""
    strategy: Union[TimeToLiveStrategy, str] = TimeToLiveStrategy.RELATIVE
    time_to_live: Optional[Union[int, timedelta, datetime]] = None
    on_cache_get: List[OnCacheFn] = field(default_factory=list)
    on_cache_miss: List[OnCacheFn] = field(default_factory=list)
    on_cache_put: List[OnCacheFn] = field(default_factory=list)
    name: Optional[str] = None

    def apply(self, policy: 'CachePolicy') -> None:
        if self.time_to_live is not None:
            value = self.time_to_live
            if isinstance(value, datetime):
                value = round(value.timestamp() * 1000)
            policy.time_to_live(self.strategy, to_milliseconds(value))
        for fn in self.on_cache_get:
            policy.on_cache_get(fn)
        for fn in self.on_cache_miss:
            policy.on_cache_miss(fn)
        for fn in self.on_cache_put:
            policy.on_cache_put(fn)


class CachePolicy(ProactivePolicy[ResultType]):
    """
    Memoizes the last result of the operation.

    The default is a relative time to live of 1000ms. A failing operation
    stores nothing; its exception propagates and the next call is a miss again.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._strategy = TimeToLiveStrategy.RELATIVE
        self._time_to_live = 1000
        self._on_cache_get = HookRegistry('on_cache_get')
        self._on_cache_miss = HookRegistry('on_cache_miss')
        self._on_cache_put = HookRegistry('on_cache_put')

        self._cache: Any = _MISSING
        self._valid_until = -1
        self._lock = threading.Lock()

    @property
    def strategy(self) -> TimeToLiveStrategy:
        return self._strategy

    @property
    def valid_until(self) -> int:
        with self._lock:
            return self._valid_until

    def time_to_live(self, strategy: Union[TimeToLiveStrategy, str], value: int) -> None:
        """
        Configure validity.

        Args:
            strategy: ``relative``, ``sliding`` or ``absolute``
            value: Milliseconds for relative and sliding, epoch milliseconds for absolute
        """
        try:
            strategy = TimeToLiveStrategy(strategy)
        except ValueError:
            raise InvalidArgumentError(
                f"strategy must be one of: {[s.value for s in TimeToLiveStrategy]}", 'strategy', strategy
            ) from None
        value = validate_integer('value', value)
        self._check_modifiable()

        self._strategy = strategy
        self._time_to_live = value

    def on_cache_get(self, fn: OnCacheFn) -> None:
        self._check_modifiable()

        self._on_cache_get.add(fn)

    def on_cache_put(self, fn: OnCacheFn) -> None:
        self._check_modifiable()

        self._on_cache_put.add(fn)

    def on_cache_miss(self, fn: OnCacheFn) -> None:
        self._check_modifiable()

        self._on_cache_miss.add(fn)

    def invalidate(self) -> None:
        """Make the next execution a miss."""
        with self._lock:
            self._valid_until = -1

    async def _execute_policy(self, fn: Operation) -> ResultType:
        valid, value = self._read()

        if valid:
            logger.debug(f"Cache '{self.name}' hit")
            await self._on_cache_get.fire()
            return value

        logger.debug(f"Cache '{self.name}' miss")
        await self._on_cache_miss.fire()

        value = await call(fn)
        with self._lock:
            self._cache = value
            self._valid_until = self._next_valid_until()

        await self._on_cache_put.fire()

        return value

    def _read(self) -> Tuple[bool, Any]:
        with self._lock:
            if self._cache is _MISSING or clock.now_ms() >= self._valid_until:
                return False, None

            if self._strategy is TimeToLiveStrategy.SLIDING:
                self._valid_until = self._next_valid_until()

            return True, self._cache

    def _next_valid_until(self) -> int:
        if self._strategy is TimeToLiveStrategy.ABSOLUTE:
            return self._time_to_live
        return clock.now_ms() + self._time_to_live

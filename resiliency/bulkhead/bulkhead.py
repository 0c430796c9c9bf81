"""
Bulkhead isolation policy implementation.
"""

import asyncio
import logging
import math
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Union

from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.proactive import ProactivePolicy
from ..errors import BulkheadCompartmentRejectedException
from ..util.validation import validate_integer

logger = logging.getLogger(__name__)


@dataclass
class BulkheadOptions:
    """Bulkhead configuration."""
    max_concurrency: Optional[int] = None
    max_queued_actions: Optional[int] = None
    name: Optional[str] = None

    def apply(self, policy: 'BulkheadIsolationPolicy') -> None:
        if self.max_concurrency is not None:
            policy.max_concurrency(self.max_concurrency)
        if self.max_queued_actions is not None:
            policy.max_queued_actions(self.max_queued_actions)


class BulkheadIsolationPolicy(ProactivePolicy[ResultType]):
    """
    Limits how many executions run at once.

    Calls over the limit wait in a FIFO queue of bounded size; calls that
    find the queue full are rejected with
    ``BulkheadCompartmentRejectedException``. When an execution finishes, its
    slot goes straight to the head of the queue so that a newly arriving call
    cannot overtake a waiting one.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._compartment_size: Union[int, float] = math.inf
        self._queue_size = 0
        self._compartment_usage = 0
        self._queue: Deque['asyncio.Future[None]'] = deque()
        self._lock = threading.Lock()

    def max_concurrency(self, compartment_size: int) -> None:
        """Set the maximum number of concurrent executions."""
        compartment_size = validate_integer('compartment_size', compartment_size)
        self._check_modifiable()

        self._compartment_size = compartment_size

    def max_queued_actions(self, queue_size: int) -> None:
        """Set the maximum number of waiting executions. 0 disables queuing."""
        queue_size = validate_integer('queue_size', queue_size, minimum=0)
        self._check_modifiable()

        self._queue_size = queue_size

    def get_available_slots_count(self) -> Union[int, float]:
        with self._lock:
            return self._compartment_size - self._compartment_usage

    def get_available_queued_actions_count(self) -> int:
        with self._lock:
            return self._queue_size - len(self._queue)

    async def _execute_policy(self, fn: Operation) -> ResultType:
        await self._acquire()
        try:
            return await call(fn)
        finally:
            self._release()

    async def _acquire(self) -> None:
        waiter = None
        with self._lock:
            if self._compartment_usage < self._compartment_size:
                self._compartment_usage += 1
                return

            if len(self._queue) < self._queue_size:
                waiter = asyncio.get_running_loop().create_future()
                self._queue.append(waiter)

        if waiter is None:
            logger.warning(f"Bulkhead '{self.name}' rejected execution: compartment and queue are full")
            raise BulkheadCompartmentRejectedException()

        logger.debug(f"Bulkhead '{self.name}' queued execution")

        try:
            await waiter
        except asyncio.CancelledError:
            with self._lock:
                if waiter in self._queue:
                    self._queue.remove(waiter)
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over before the cancellation landed
                self._release()
            raise

    def _release(self) -> None:
        with self._lock:
            self._compartment_usage -= 1
            while self._queue:
                waiter = self._queue.popleft()
                if not waiter.done():
                    self._compartment_usage += 1
                    waiter.set_result(None)
                    break

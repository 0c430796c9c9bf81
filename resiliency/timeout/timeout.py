"""
Timeout policy implementation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable, List, Optional, Union

from ..common.hooks import HookRegistry
from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.proactive import ProactivePolicy
from ..errors import TimeoutException
from ..util.validation import to_milliseconds, validate_integer

logger = logging.getLogger(__name__)

OnTimeoutFn = Callable[[int], Union[None, Awaitable[None]]]


class ExecutionException(Exception):
    """
    Carries an exception raised by the operation through the timeout race.

    Keeps a ``TimeoutException`` raised inside the operation apart from the
    policy's own timeout. Never escapes ``TimeoutPolicy.execute``.
    """

    def __init__(self, inner_exception: BaseException):
        super().__init__(str(inner_exception))
        self.inner_exception = inner_exception


@dataclass
class TimeoutOptions:
    """Timeout configuration."""
    timeout: Optional[Union[int, timedelta]] = None
    on_timeout: List[OnTimeoutFn] = field(default_factory=list)
    name: Optional[str] = None

    def apply(self, policy: 'TimeoutPolicy') -> None:
        if self.timeout is not None:
            policy.timeout_after(to_milliseconds(self.timeout))
        for fn in self.on_timeout:
            policy.on_timeout(fn)


def _discard_outcome(task: 'asyncio.Future[Any]') -> None:
    # Retrieve the late outcome so asyncio does not report it as never retrieved
    if not task.cancelled():
        task.exception()


class TimeoutPolicy(ProactivePolicy[ResultType]):
    """
    Races the operation against a deadline.

    When the deadline passes first, the on-timeout hooks run and
    ``TimeoutException`` is raised. The operation is not cancelled; it keeps
    running in the background and its outcome is dropped.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._timeout_ms: Optional[int] = None
        self._on_timeout = HookRegistry('on_timeout')

    @property
    def timeout_ms(self) -> Optional[int]:
        return self._timeout_ms

    def timeout_after(self, timeout_ms: int) -> None:
        """Set the deadline in milliseconds."""
        timeout_ms = validate_integer('timeout_ms', timeout_ms)
        self._check_modifiable()

        self._timeout_ms = timeout_ms

    def on_timeout(self, fn: OnTimeoutFn) -> None:
        """Register a hook called with the timeout in milliseconds."""
        self._check_modifiable()

        self._on_timeout.add(fn)

    async def _execute_policy(self, fn: Operation) -> ResultType:
        timeout_ms = self._timeout_ms
        execution = asyncio.ensure_future(self._run_operation(fn))

        try:
            done, _ = await asyncio.wait({execution}, timeout=timeout_ms / 1000 if timeout_ms is not None else None)
        except asyncio.CancelledError:
            execution.cancel()
            raise

        if execution in done:
            try:
                return execution.result()
            except ExecutionException as ex:
                error = ex.inner_exception
            raise error

        execution.add_done_callback(_discard_outcome)
        logger.warning(f"Policy '{self.name}' timed out after {timeout_ms}ms")

        await self._on_timeout.fire(timeout_ms)

        raise TimeoutException(timeout_ms)

    @staticmethod
    async def _run_operation(fn: Operation) -> Any:
        try:
            return await call(fn)
        except Exception as ex:
            raise ExecutionException(ex) from ex

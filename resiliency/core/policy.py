"""
Base policy contract.

A policy governs how a protected operation runs. Policies count their
in-flight executions and refuse reconfiguration while any execution is
running. A policy can wrap another policy; the outer policy then treats
"run the inner policy with the operation" as its own operation.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Generic, Iterator, Optional, TypeVar, Union

from ..errors import InvalidArgumentError, PolicyModificationNotAllowedError

logger = logging.getLogger(__name__)

ResultType = TypeVar('ResultType')

Operation = Callable[[], Union[ResultType, Awaitable[ResultType]]]


class Policy(ABC, Generic[ResultType]):
    """
    Abstract executable unit.

    Subclasses implement ``_execute_policy``. Configuration setters must call
    ``_check_modifiable`` before changing any state.
    """

    def __init__(self, name: Optional[str] = None):
        self._name = name
        self._executing = 0
        self._executing_lock = threading.Lock()
        self._wrapped_policy: Optional['Policy[ResultType]'] = None

    @property
    def name(self) -> str:
        """Get policy name."""
        return self._name or type(self).__name__

    @property
    def executing(self) -> int:
        """Number of executions currently in flight."""
        with self._executing_lock:
            return self._executing

    @property
    def wrapped_policy(self) -> Optional['Policy[ResultType]']:
        return self._wrapped_policy

    def wrap(self, policy: 'Policy[ResultType]') -> None:
        """Delegate execution to ``policy``, which then runs the operation."""
        self._check_modifiable()

        if not isinstance(policy, Policy):
            raise InvalidArgumentError("policy must be a Policy instance", 'policy', policy)

        node: Optional[Policy] = policy
        while node is not None:
            if node is self:
                raise InvalidArgumentError("wrapping would create a cycle", 'policy', policy.name)
            node = node._wrapped_policy

        self._wrapped_policy = policy
        logger.debug(f"Policy '{self.name}' wraps '{policy.name}'")

    async def execute(self, fn: Operation) -> ResultType:
        """Execute ``fn`` under this policy (and any policy it wraps)."""
        with self._execution():
            wrapped = self._wrapped_policy
            if wrapped is not None:
                return await self._execute_policy(lambda: wrapped.execute(fn))
            return await self._execute_policy(fn)

    @classmethod
    def from_options(cls, options: Any) -> 'Policy[ResultType]':
        """Create a policy and configure it from an options dataclass."""
        policy = cls(name=getattr(options, 'name', None))
        options.apply(policy)
        return policy

    @abstractmethod
    async def _execute_policy(self, fn: Operation) -> ResultType:
        """Run ``fn`` according to this policy."""

    @contextmanager
    def _execution(self) -> Iterator[None]:
        with self._executing_lock:
            self._executing += 1
        try:
            yield
        finally:
            with self._executing_lock:
                self._executing -= 1

    def _check_modifiable(self) -> None:
        with self._executing_lock:
            if self._executing > 0:
                raise PolicyModificationNotAllowedError()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} executing={self._executing}>"

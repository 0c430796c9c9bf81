"""
A policy that does nothing but run the operation.
"""

from ..common.utils import call
from .policy import Operation, ResultType
from .proactive import ProactivePolicy


class NopPolicy(ProactivePolicy[ResultType]):
    """Runs the operation (or the wrapped policy) unchanged."""

    async def _execute_policy(self, fn: Operation) -> ResultType:
        return await call(fn)

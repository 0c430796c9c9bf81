"""
Ordered hook registry used by every policy.
"""

import logging
from typing import Any, Callable, Iterator, List

from .utils import call, describe

logger = logging.getLogger(__name__)


class HookRegistry:
    """
    Ordered list of callbacks for one kind of policy event.

    Hooks run one after another in registration order; each is awaited before
    the next starts. A failing hook is logged and skipped, it never stops the
    remaining hooks or the policy that fired it.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._hooks: List[Callable] = []

    def add(self, hook: Callable) -> None:
        if not callable(hook):
            raise TypeError(f"{self.kind} hook must be callable")
        self._hooks.append(hook)

    async def fire(self, *args: Any) -> None:
        # Iterate a copy so a hook registered while firing does not run this round
        for hook in list(self._hooks):
            try:
                await call(hook, *args)
            except Exception as e:
                logger.warning(f"{self.kind} hook {describe(hook)} failed: {e}")

    def __len__(self) -> int:
        return len(self._hooks)

    def __iter__(self) -> Iterator[Callable]:
        return iter(list(self._hooks))

"""
Predicate evaluation for reactive policies.
"""

from typing import Any, Awaitable, Callable, Sequence, TypeVar, Union

from .utils import call

T = TypeVar('T')

Predicate = Callable[[T], Union[bool, Awaitable[bool]]]


class PredicateChecker:
    """Evaluates a subject against sync or async predicates, one at a time in order."""

    @staticmethod
    async def single(subject: Any, predicate: Predicate) -> bool:
        return bool(await call(predicate, subject))

    @staticmethod
    async def some(subject: Any, predicates: Sequence[Predicate]) -> bool:
        """True if any predicate holds. Stops at the first match; False for an empty set."""
        if not predicates:
            return False

        for predicate in predicates:
            if await call(predicate, subject):
                return True

        return False

    @staticmethod
    async def every(subject: Any, predicates: Sequence[Predicate]) -> bool:
        """True if all predicates hold. Stops at the first miss; False for an empty set."""
        if not predicates:
            return False

        for predicate in predicates:
            if not await call(predicate, subject):
                return False

        return True

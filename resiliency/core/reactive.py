"""
Base class for reactive policies.
"""

from typing import Any, List

from ..common.predicates import Predicate, PredicateChecker
from .policy import Policy, ResultType


class ReactivePolicy(Policy[ResultType]):
    """
    A policy that reacts to the outcome of the operation (retry, circuit breaker, fallback).

    An outcome is reactive when any registered predicate for it returns true.
    With no predicates registered nothing is reactive.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._result_predicates: List[Predicate] = []
        self._exception_predicates: List[Predicate] = []

    def react_on_result(self, predicate: Predicate) -> None:
        """React when ``predicate(result)`` is true."""
        self._check_modifiable()

        self._result_predicates.append(predicate)

    def react_on_exception(self, predicate: Any) -> None:
        """
        React when ``predicate(exception)`` is true.

        An exception class may be given instead of a predicate; it matches
        instances of that class.
        """
        self._check_modifiable()

        if isinstance(predicate, type) and issubclass(predicate, BaseException):
            exception_type = predicate
            predicate = lambda ex: isinstance(ex, exception_type)  # noqa: E731

        self._exception_predicates.append(predicate)

    async def _is_reactive_to_result(self, result: Any) -> bool:
        return await PredicateChecker.some(result, self._result_predicates)

    async def _is_reactive_to_exception(self, exception: BaseException) -> bool:
        return await PredicateChecker.some(exception, self._exception_predicates)

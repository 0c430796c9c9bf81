"""
Circuit breaker policy implementation.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Union

from ..common.hooks import HookRegistry
from ..common.predicates import Predicate
from ..common.utils import call
from ..core.policy import Operation, ResultType
from ..core.reactive import ReactivePolicy
from ..errors import (
    BrokenCircuitException,
    CircuitStateError,
    InvalidCircuitTransitionError,
    IsolatedCircuitException,
)
from ..util import clock
from ..util.validation import to_milliseconds, validate_integer

logger = logging.getLogger(__name__)

OnTransitionFn = Callable[[], Union[None, Awaitable[None]]]
OnOpenFn = OnTransitionFn
OnCloseFn = OnTransitionFn
OnAttemptingCloseFn = OnTransitionFn
OnIsolateFn = OnTransitionFn


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "Closed"                     # Normal operation
    OPEN = "Open"                         # Failing fast until the break duration passes
    ATTEMPTING_CLOSE = "AttemptingClose"  # Letting calls through to probe recovery
    ISOLATED = "Isolated"                 # Held open manually until reset()

    def __str__(self) -> str:
        return self.value


# Target state -> states it may be entered from
VALID_TRANSITIONS: Dict[CircuitState, FrozenSet[CircuitState]] = {
    CircuitState.OPEN: frozenset({CircuitState.CLOSED, CircuitState.ATTEMPTING_CLOSE}),
    CircuitState.ATTEMPTING_CLOSE: frozenset({CircuitState.OPEN}),
    CircuitState.CLOSED: frozenset({CircuitState.ATTEMPTING_CLOSE, CircuitState.ISOLATED}),
    CircuitState.ISOLATED: frozenset({CircuitState.CLOSED, CircuitState.OPEN, CircuitState.ATTEMPTING_CLOSE}),
}


@dataclass
class StateTransition:
    """Circuit breaker state transition."""
    from_state: CircuitState
    to_state: CircuitState
    timestamp: int


@dataclass
class CircuitBreakerOptions:
    """Circuit breaker configuration options."""
    break_after: Optional[int] = None
    break_for: Optional[Union[int, timedelta]] = None
    react_on_result: List[Predicate] = field(default_factory=list)
    react_on_exception: List[Any] = field(default_factory=list)
    on_open: List[OnOpenFn] = field(default_factory=list)
    on_close: List[OnCloseFn] = field(default_factory=list)
    on_attempting_close: List[OnAttemptingCloseFn] = field(default_factory=list)
    on_isolate: List[OnIsolateFn] = field(default_factory=list)
    name: Optional[str] = None

    def apply(self, policy: 'CircuitBreakerPolicy') -> None:
        if self.break_after is not None:
            policy.break_after(self.break_after)
        if self.break_for is not None:
            policy.break_for(to_milliseconds(self.break_for))
        for predicate in self.react_on_result:
            policy.react_on_result(predicate)
        for predicate in self.react_on_exception:
            policy.react_on_exception(predicate)
        for fn in self.on_open:
            policy.on_open(fn)
        for fn in self.on_close:
            policy.on_close(fn)
        for fn in self.on_attempting_close:
            policy.on_attempting_close(fn)
        for fn in self.on_isolate:
            policy.on_isolate(fn)


class CircuitBreakerPolicy(ReactivePolicy[ResultType]):
    """
    Circuit breaker with manual isolation.

    States:
    - Closed: calls run; consecutive reactive outcomes are counted and the
      circuit opens when the count reaches the break-after threshold
    - Open: calls fail with BrokenCircuitException until the break duration
      has passed, then the next call moves the circuit to AttemptingClose
    - AttemptingClose: calls run; a non-reactive outcome closes the circuit,
      a single reactive outcome opens it again
    - Isolated: calls fail with IsolatedCircuitException until reset()

    The outcome of a call that ran is always returned or raised unchanged.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._break_after = 1
        self._break_for_ms = 1000
        self._hooks: Dict[CircuitState, HookRegistry] = {
            CircuitState.OPEN: HookRegistry('on_open'),
            CircuitState.CLOSED: HookRegistry('on_close'),
            CircuitState.ATTEMPTING_CLOSE: HookRegistry('on_attempting_close'),
            CircuitState.ISOLATED: HookRegistry('on_isolate'),
        }

        self._state = CircuitState.CLOSED
        self._last_state_transition = clock.now_ms()
        self._consecutive_reaction_counter = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current state."""
        with self._lock:
            return self._state

    @property
    def consecutive_reaction_count(self) -> int:
        with self._lock:
            return self._consecutive_reaction_counter

    def get_circuit_state(self) -> CircuitState:
        return self.state

    def get_last_state_transition(self) -> int:
        """Epoch milliseconds of the last state change."""
        with self._lock:
            return self._last_state_transition

    def break_after(self, number_of_consecutive_reactions: int) -> None:
        """Open the circuit after this many consecutive reactive outcomes."""
        number_of_consecutive_reactions = validate_integer(
            'number_of_consecutive_reactions', number_of_consecutive_reactions
        )
        self._check_modifiable()

        self._break_after = number_of_consecutive_reactions

    def break_for(self, duration_ms: int) -> None:
        """Keep the circuit open for this many milliseconds before probing."""
        duration_ms = validate_integer('duration_ms', duration_ms)
        self._check_modifiable()

        self._break_for_ms = duration_ms

    def on_open(self, fn: OnOpenFn) -> None:
        self._check_modifiable()

        self._hooks[CircuitState.OPEN].add(fn)

    def on_close(self, fn: OnCloseFn) -> None:
        self._check_modifiable()

        self._hooks[CircuitState.CLOSED].add(fn)

    def on_attempting_close(self, fn: OnAttemptingCloseFn) -> None:
        self._check_modifiable()

        self._hooks[CircuitState.ATTEMPTING_CLOSE].add(fn)

    def on_isolate(self, fn: OnIsolateFn) -> None:
        self._check_modifiable()

        self._hooks[CircuitState.ISOLATED].add(fn)

    async def isolate(self) -> None:
        """Hold the circuit open until reset() is called."""
        with self._lock:
            transition = self._transition(CircuitState.ISOLATED)
        await self._fire(transition)

    async def reset(self) -> None:
        """Close an isolated circuit."""
        with self._lock:
            if self._state is not CircuitState.ISOLATED:
                raise CircuitStateError()
            transition = self._transition(CircuitState.CLOSED)
        await self._fire(transition)

    async def _execute_policy(self, fn: Operation) -> ResultType:
        transition = None
        with self._lock:
            if (self._state is CircuitState.OPEN
                    and clock.now_ms() >= self._last_state_transition + self._break_for_ms):
                transition = self._transition(CircuitState.ATTEMPTING_CLOSE)
            state = self._state
        await self._fire(transition)

        if state is CircuitState.OPEN:
            raise BrokenCircuitException()

        if state is CircuitState.ISOLATED:
            raise IsolatedCircuitException()

        try:
            result = await call(fn)
        except Exception as ex:
            await self._record_outcome(await self._is_reactive_to_exception(ex))
            raise

        await self._record_outcome(await self._is_reactive_to_result(result))
        return result

    async def _record_outcome(self, reactive: bool) -> None:
        transition = None
        with self._lock:
            if not reactive:
                self._consecutive_reaction_counter = 0
                if self._state is CircuitState.ATTEMPTING_CLOSE:
                    transition = self._transition(CircuitState.CLOSED)
            elif self._state is CircuitState.ATTEMPTING_CLOSE:
                transition = self._transition(CircuitState.OPEN)
            elif self._state is CircuitState.CLOSED:
                self._consecutive_reaction_counter += 1
                if self._consecutive_reaction_counter >= self._break_after:
                    transition = self._transition(CircuitState.OPEN)
        await self._fire(transition)

    def _transition(self, new_state: CircuitState) -> StateTransition:
        # Caller must hold self._lock
        old_state = self._state
        if old_state not in VALID_TRANSITIONS[new_state]:
            raise InvalidCircuitTransitionError(old_state, new_state)

        self._state = new_state
        self._last_state_transition = clock.now_ms()
        if new_state is CircuitState.CLOSED:
            self._consecutive_reaction_counter = 0

        logger.info(f"Circuit breaker '{self.name}' transitioned from {old_state} to {new_state}")
        return StateTransition(old_state, new_state, self._last_state_transition)

    async def _fire(self, transition: Optional[StateTransition]) -> None:
        if transition is not None:
            await self._hooks[transition.to_state].fire()

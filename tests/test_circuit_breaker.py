"""
Tests for the circuit breaker policy.
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from resiliency import CircuitBreakerOptions, CircuitBreakerPolicy, CircuitState
from resiliency.errors import (
    BrokenCircuitException, CircuitStateError, InvalidArgumentError, InvalidCircuitTransitionError,
    IsolatedCircuitException, PolicyModificationNotAllowedError,
)


class FakeClock:
    """Manually advanced epoch millisecond clock."""

    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    fake = FakeClock()
    with patch('resiliency.util.clock.now_ms', fake):
        yield fake


def always_reactive_breaker(break_after=1, break_for=1000):
    policy = CircuitBreakerPolicy()
    policy.react_on_result(lambda r: r == 'bad')
    policy.react_on_exception(ValueError)
    policy.break_after(break_after)
    policy.break_for(break_for)
    return policy


class TestCircuitBreakerConfiguration:
    """Test circuit breaker settings."""

    def test_initial_state_is_closed(self):
        assert CircuitBreakerPolicy().get_circuit_state() == CircuitState.CLOSED

    @pytest.mark.parametrize("value", [0, -5, 2.5, 2 ** 53, None])
    def test_invalid_thresholds_are_rejected(self, value):
        policy = CircuitBreakerPolicy()

        with pytest.raises(InvalidArgumentError):
            policy.break_after(value)
        with pytest.raises(InvalidArgumentError):
            policy.break_for(value)

    @pytest.mark.asyncio
    async def test_cannot_modify_during_execution(self):
        policy = CircuitBreakerPolicy()

        async def op():
            for setter, arg in [
                (policy.break_after, 2), (policy.break_for, 10), (policy.on_open, print),
                (policy.on_close, print), (policy.on_attempting_close, print),
                (policy.on_isolate, print), (policy.react_on_result, bool),
            ]:
                with pytest.raises(PolicyModificationNotAllowedError):
                    setter(arg)
            return 'ok'

        assert await policy.execute(op) == 'ok'

    def test_state_values(self):
        assert [state.value for state in CircuitState] == ['Closed', 'Open', 'AttemptingClose', 'Isolated']


class TestCircuitBreakerTransitions:
    """Test the circuit state machine."""

    @pytest.mark.asyncio
    async def test_opens_on_nth_consecutive_reaction(self, clock):
        policy = always_reactive_breaker(break_after=3)

        for _ in range(2):
            assert await policy.execute(lambda: 'bad') == 'bad'
            assert policy.state == CircuitState.CLOSED

        assert await policy.execute(lambda: 'bad') == 'bad'
        assert policy.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_non_reactive_outcome_resets_counter(self, clock):
        policy = always_reactive_breaker(break_after=3)

        await policy.execute(lambda: 'bad')
        await policy.execute(lambda: 'bad')
        assert policy.consecutive_reaction_count == 2

        await policy.execute(lambda: 'good')
        assert policy.consecutive_reaction_count == 0

        await policy.execute(lambda: 'bad')
        await policy.execute(lambda: 'bad')
        assert policy.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_non_reactive_exception_resets_counter_and_propagates(self, clock):
        policy = always_reactive_breaker(break_after=2)

        await policy.execute(lambda: 'bad')

        def type_error():
            raise TypeError("not reactive")

        with pytest.raises(TypeError):
            await policy.execute(type_error)

        assert policy.consecutive_reaction_count == 0
        assert policy.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reactive_exception_opens_and_is_reraised(self, clock):
        policy = always_reactive_breaker()
        error = ValueError("boom")

        def failing():
            raise error

        with pytest.raises(ValueError) as exc_info:
            await policy.execute(failing)

        assert exc_info.value is error
        assert policy.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast_without_running_operation(self, clock):
        policy = always_reactive_breaker()
        await policy.execute(lambda: 'bad')
        calls = []

        with pytest.raises(BrokenCircuitException):
            await policy.execute(lambda: calls.append('ran'))

        assert calls == []

    @pytest.mark.asyncio
    async def test_break_duration_then_successful_probe_closes(self, clock):
        events = []
        policy = always_reactive_breaker(break_after=10, break_for=30000)
        policy.on_open(lambda: events.append('open'))
        policy.on_attempting_close(lambda: events.append('attempting_close'))
        policy.on_close(lambda: events.append('close'))

        for _ in range(10):
            await policy.execute(lambda: 'bad')
        assert policy.state == CircuitState.OPEN

        clock.advance(29999)
        with pytest.raises(BrokenCircuitException):
            await policy.execute(lambda: 'good')
        assert policy.state == CircuitState.OPEN

        clock.advance(1)

        async def probe():
            events.append(('probe', policy.state))
            return 'good'

        assert await policy.execute(probe) == 'good'
        assert policy.state == CircuitState.CLOSED
        assert policy.consecutive_reaction_count == 0
        assert events == ['open', 'attempting_close', ('probe', CircuitState.ATTEMPTING_CLOSE), 'close']

    @pytest.mark.asyncio
    async def test_failing_probe_reopens_immediately(self, clock):
        policy = always_reactive_breaker(break_after=5, break_for=1000)

        for _ in range(5):
            await policy.execute(lambda: 'bad')
        assert policy.state == CircuitState.OPEN

        clock.advance(1000)
        assert await policy.execute(lambda: 'bad') == 'bad'
        assert policy.state == CircuitState.OPEN
        assert policy.get_last_state_transition() == clock.now

        with pytest.raises(BrokenCircuitException):
            await policy.execute(lambda: 'good')

        clock.advance(1000)
        await policy.execute(lambda: 'good')
        assert policy.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_closing_resets_counter(self, clock):
        policy = always_reactive_breaker(break_after=2, break_for=100)

        await policy.execute(lambda: 'bad')
        await policy.execute(lambda: 'bad')
        clock.advance(100)
        await policy.execute(lambda: 'good')

        await policy.execute(lambda: 'bad')
        assert policy.state == CircuitState.CLOSED
        await policy.execute(lambda: 'bad')
        assert policy.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_transition_hook_failures_are_ignored(self, clock):
        calls = []
        policy = always_reactive_breaker()

        def failing():
            calls.append('failing')
            raise RuntimeError("hook failure")

        policy.on_open(failing)
        policy.on_open(lambda: calls.append('second'))

        assert await policy.execute(lambda: 'bad') == 'bad'
        assert calls == ['failing', 'second']
        assert policy.state == CircuitState.OPEN


class TestCircuitBreakerConcurrency:
    """Test interleaved executions on one breaker."""

    async def _run_concurrent_probes(self, policy, outcomes):
        started = []
        release = asyncio.Event()

        def make_probe(outcome):
            async def probe():
                started.append(outcome)
                await release.wait()
                return outcome
            return probe

        tasks = [asyncio.ensure_future(policy.execute(make_probe(outcome))) for outcome in outcomes]
        while len(started) < len(outcomes):
            await asyncio.sleep(0)

        release.set()
        return await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_concurrent_probes_close_once(self, clock):
        events = []
        policy = always_reactive_breaker(break_after=1, break_for=1000)
        policy.on_attempting_close(lambda: events.append('attempting_close'))
        policy.on_close(lambda: events.append('close'))

        await policy.execute(lambda: 'bad')
        clock.advance(1000)

        results = await self._run_concurrent_probes(policy, ['good', 'good', 'good'])

        assert results == ['good', 'good', 'good']
        assert policy.state == CircuitState.CLOSED
        assert policy.consecutive_reaction_count == 0
        assert events == ['attempting_close', 'close']

    @pytest.mark.asyncio
    async def test_first_probe_outcome_decides(self, clock):
        events = []
        policy = always_reactive_breaker(break_after=1, break_for=1000)
        policy.on_open(lambda: events.append('open'))
        policy.on_close(lambda: events.append('close'))

        await policy.execute(lambda: 'bad')
        clock.advance(1000)

        results = await self._run_concurrent_probes(policy, ['bad', 'good', 'good'])

        assert results == ['bad', 'good', 'good']
        assert policy.state == CircuitState.OPEN
        assert events == ['open', 'open']

        with pytest.raises(BrokenCircuitException):
            await policy.execute(lambda: 'good')


class TestCircuitBreakerIsolation:
    """Test manual isolation and reset."""

    @pytest.mark.asyncio
    async def test_isolate_and_reset(self, clock):
        events = []
        policy = always_reactive_breaker()
        policy.on_isolate(lambda: events.append('isolate'))
        policy.on_close(lambda: events.append('close'))

        await policy.isolate()
        assert policy.state == CircuitState.ISOLATED

        with pytest.raises(IsolatedCircuitException):
            await policy.execute(lambda: 'good')

        clock.advance(10 ** 9)
        with pytest.raises(IsolatedCircuitException):
            await policy.execute(lambda: 'good')

        await policy.reset()
        assert policy.state == CircuitState.CLOSED
        assert await policy.execute(lambda: 'good') == 'good'
        assert events == ['isolate', 'close']

    @pytest.mark.asyncio
    async def test_isolate_from_open(self, clock):
        policy = always_reactive_breaker()
        await policy.execute(lambda: 'bad')

        await policy.isolate()
        assert policy.state == CircuitState.ISOLATED

    @pytest.mark.asyncio
    async def test_reset_outside_isolated_state_fails(self, clock):
        policy = CircuitBreakerPolicy()

        with pytest.raises(CircuitStateError):
            await policy.reset()

        assert policy.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_isolating_twice_is_an_invalid_transition(self, clock):
        policy = CircuitBreakerPolicy()
        await policy.isolate()

        with pytest.raises(InvalidCircuitTransitionError):
            await policy.isolate()

        assert policy.state == CircuitState.ISOLATED


class TestCircuitBreakerOptions:
    """Test configuration through options."""

    @pytest.mark.asyncio
    async def test_from_options(self, clock):
        opened = []
        policy = CircuitBreakerPolicy.from_options(CircuitBreakerOptions(
            break_after=2,
            break_for=timedelta(seconds=30),
            react_on_exception=[ValueError],
            on_open=[lambda: opened.append(True)],
            name="payments",
        ))

        def failing():
            raise ValueError("boom")

        for _ in range(2):
            with pytest.raises(ValueError):
                await policy.execute(failing)

        assert policy.name == "payments"
        assert policy.state == CircuitState.OPEN
        assert opened == [True]

        clock.advance(29999)
        with pytest.raises(BrokenCircuitException):
            await policy.execute(failing)

"""
Basic resiliency usage example.

This example demonstrates the fundamental policies:
- Retrying a flaky operation with backoff
- Breaking a circuit after repeated failures
- Bounding an operation with a timeout
- Falling back to a default value
"""

import asyncio
import logging

from resiliency import (
    BackoffStrategyFactory,
    BrokenCircuitException,
    CircuitBreakerPolicy,
    FallbackPolicy,
    PolicyCombination,
    RetryPolicy,
    TimeoutException,
    TimeoutPolicy,
)


class FlakyService:
    """Fails a fixed number of times before answering."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def fetch(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return f"data after {self.calls} calls"


async def basic_example():
    """Demonstrate basic resiliency usage"""
    print("Basic Resiliency Example")
    print("=" * 30)

    # 1. Retry with exponential backoff
    retry = RetryPolicy(name="fetch-retry")
    retry.retry_count(3)
    retry.react_on_exception(ConnectionError)
    retry.wait_before_retry(BackoffStrategyFactory.exponential_backoff(10))
    retry.on_retry(lambda result, error, count: print(f"  retry {count} after: {error}"))

    service = FlakyService(failures=2)
    print(f"✓ Retried successfully: {await retry.execute(service.fetch)}")

    # 2. Circuit breaker
    breaker = CircuitBreakerPolicy(name="fetch-breaker")
    breaker.break_after(2)
    breaker.break_for(1000)
    breaker.react_on_exception(ConnectionError)
    breaker.on_open(lambda: print("  circuit opened"))

    broken = FlakyService(failures=10)
    for _ in range(3):
        try:
            await breaker.execute(broken.fetch)
        except ConnectionError as e:
            print(f"  operation failed: {e}")
        except BrokenCircuitException:
            print(f"✓ Call rejected, circuit is {breaker.state}")

    # 3. Timeout
    timeout = TimeoutPolicy(name="slow-call")
    timeout.timeout_after(50)

    async def slow_operation():
        await asyncio.sleep(1)
        return "too late"

    try:
        await timeout.execute(slow_operation)
    except TimeoutException as e:
        print(f"✓ Timed out: {e}")

    # 4. Fallback wrapped around a timeout
    fallback = FallbackPolicy(name="default-value")
    fallback.react_on_exception(TimeoutException)
    fallback.fallback(lambda: "cached default")

    pipeline = PolicyCombination.combine([fallback, timeout])
    print(f"✓ Fallback result: {await pipeline.execute(slow_operation)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(basic_example())

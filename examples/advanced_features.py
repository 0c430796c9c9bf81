"""
Advanced resiliency features example.

This example demonstrates:
- Bulkhead isolation with a waiting queue
- Caching with a sliding time to live
- Building a pipeline from configuration
- The protect decorator
- Manual circuit isolation
"""

import asyncio
import logging

from resiliency import (
    BulkheadCompartmentRejectedException,
    BulkheadIsolationPolicy,
    CachePolicy,
    CircuitBreakerPolicy,
    IsolatedCircuitException,
    ResiliencyError,
    build_pipeline,
    protect,
)


async def bulkhead_example():
    """Limit concurrency and reject overflow"""
    print("\nBulkhead isolation")
    print("-" * 30)

    bulkhead = BulkheadIsolationPolicy(name="db-pool")
    bulkhead.max_concurrency(2)
    bulkhead.max_queued_actions(1)

    async def query(n: int) -> str:
        await asyncio.sleep(0.05)
        return f"query {n}"

    results = await asyncio.gather(
        *(bulkhead.execute(lambda n=n: query(n)) for n in range(4)),
        return_exceptions=True
    )
    for result in results:
        if isinstance(result, BulkheadCompartmentRejectedException):
            print(f"  rejected: {result.to_dict()}")
        else:
            print(f"  completed: {result}")
    print(f"✓ Free slots afterwards: {bulkhead.get_available_slots_count()}")


async def cache_example():
    """Memoize an expensive lookup"""
    print("\nCache")
    print("-" * 30)

    cache = CachePolicy(name="config-cache")
    cache.time_to_live("sliding", 500)
    cache.on_cache_miss(lambda: print("  cache miss"))
    cache.on_cache_get(lambda: print("  cache hit"))

    for _ in range(3):
        value = await cache.execute(lambda: {"feature": True})
    print(f"✓ Cached value: {value}")


async def configuration_example():
    """Build a pipeline from a configuration dictionary"""
    print("\nConfigured pipeline")
    print("-" * 30)

    pipeline = build_pipeline({
        "retry": {"retry_count": "2", "backoff": {"type": "jittered", "min_delay": "5ms", "max_delay": "20ms"}},
        "circuit_breaker": {"break_after": 3, "break_for": "30s"},
        "timeout": {"timeout": "500ms"},
        "pipeline": ["retry", "circuit_breaker", "timeout"],
    })
    pipeline.react_on_exception(ConnectionError)

    @protect(pipeline)
    async def call_service() -> str:
        return "service response"

    print(f"✓ Protected call: {await call_service()}")


async def isolation_example():
    """Take a dependency out of service by hand"""
    print("\nManual isolation")
    print("-" * 30)

    breaker = CircuitBreakerPolicy(name="maintenance")
    breaker.on_isolate(lambda: print("  circuit isolated"))
    breaker.on_close(lambda: print("  circuit closed"))

    await breaker.isolate()
    try:
        await breaker.execute(lambda: "unreachable")
    except IsolatedCircuitException as e:
        print(f"  rejected: {e}")

    await breaker.reset()
    print(f"✓ Back in service: {await breaker.execute(lambda: 'reachable')}")


async def advanced_example():
    """Demonstrate advanced resiliency features"""
    print("Advanced Resiliency Example")
    print("=" * 30)

    try:
        await bulkhead_example()
        await cache_example()
        await configuration_example()
        await isolation_example()
    except ResiliencyError as e:
        print(f"✗ Unexpected policy error: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(advanced_example())

"""
Resiliency Python Package

Composable policies that govern how an operation runs: retry, circuit breaker,
timeout, bulkhead isolation, fallback and cache.
"""

__version__ = "0.1.0"

from .core import (
    Policy,
    ProactivePolicy,
    ReactivePolicy,
    NopPolicy,
    PolicyCombination,
)
from .common import Predicate, PredicateChecker
from .common.decorators import protect
from .retry import (
    RetryPolicy,
    RetryOptions,
    BackoffStrategy,
    BackoffStrategyFactory,
    RandomGenerator,
    SecureRandomGenerator,
)
from .circuit import (
    CircuitBreakerPolicy,
    CircuitBreakerOptions,
    CircuitState,
)
from .timeout import TimeoutPolicy, TimeoutOptions, ExecutionException
from .bulkhead import BulkheadIsolationPolicy, BulkheadOptions
from .fallback import FallbackPolicy, FallbackOptions
from .cache import CachePolicy, CacheOptions, TimeToLiveStrategy
from .errors import (
    ErrorCode,
    ResiliencyError,
    ConfigurationError,
    InvalidArgumentError,
    PolicyModificationNotAllowedError,
    InvalidCircuitTransitionError,
    CircuitStateError,
    PolicyException,
    TimeoutException,
    BrokenCircuitException,
    IsolatedCircuitException,
    BulkheadCompartmentRejectedException,
    FallbackChainExhaustedException,
)
from .config import build_policy, build_policies, build_pipeline, load_pipeline

__all__ = [
    # Core
    "Policy",
    "ProactivePolicy",
    "ReactivePolicy",
    "NopPolicy",
    "PolicyCombination",
    "Predicate",
    "PredicateChecker",
    "protect",

    # Policies
    "RetryPolicy",
    "RetryOptions",
    "BackoffStrategy",
    "BackoffStrategyFactory",
    "RandomGenerator",
    "SecureRandomGenerator",
    "CircuitBreakerPolicy",
    "CircuitBreakerOptions",
    "CircuitState",
    "TimeoutPolicy",
    "TimeoutOptions",
    "ExecutionException",
    "BulkheadIsolationPolicy",
    "BulkheadOptions",
    "FallbackPolicy",
    "FallbackOptions",
    "CachePolicy",
    "CacheOptions",
    "TimeToLiveStrategy",

    # Errors
    "ErrorCode",
    "ResiliencyError",
    "ConfigurationError",
    "InvalidArgumentError",
    "PolicyModificationNotAllowedError",
    "InvalidCircuitTransitionError",
    "CircuitStateError",
    "PolicyException",
    "TimeoutException",
    "BrokenCircuitException",
    "IsolatedCircuitException",
    "BulkheadCompartmentRejectedException",
    "FallbackChainExhaustedException",

    # Configuration
    "build_policy",
    "build_policies",
    "build_pipeline",
    "load_pipeline",
]

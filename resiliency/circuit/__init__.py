# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Package circuit provides the circuit breaker policy.

This package implements the circuit breaker pattern to stop calling a failing operation:
- Circuit state management (closed, open, attempting close, isolated)
- Consecutive reaction counting against a break-after threshold
- Timed recovery probing after a break duration
- Manual isolation and reset
- State transition hooks
"""

from .circuit import (
    # Core circuit breaker
    CircuitBreakerPolicy,
    CircuitBreakerOptions,

    # State management
    CircuitState,
    StateTransition,
    VALID_TRANSITIONS,

    # Hooks
    OnOpenFn,
    OnCloseFn,
    OnAttemptingCloseFn,
    OnIsolateFn,
)
from ..errors import (
    BrokenCircuitException,
    IsolatedCircuitException,
)

__all__ = [
    # Core circuit breaker
    'CircuitBreakerPolicy',
    'CircuitBreakerOptions',

    # State management
    'CircuitState',
    'StateTransition',
    'VALID_TRANSITIONS',

    # Hooks
    'OnOpenFn',
    'OnCloseFn',
    'OnAttemptingCloseFn',
    'OnIsolateFn',

    # Exceptions
    'BrokenCircuitException',
    'IsolatedCircuitException',
]

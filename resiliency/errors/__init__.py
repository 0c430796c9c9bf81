# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Error types for the resiliency package.

Errors fall into two families:
- Configuration errors, raised synchronously by policy setters and never retried
- Policy control exceptions, raised by a policy when it refuses or times out a call

Errors raised by the protected operation itself are never wrapped; they reach
the caller of ``execute`` unchanged.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes used across the resiliency package."""
    INVALID_ARGUMENT = "invalid_argument"
    POLICY_MODIFICATION_NOT_ALLOWED = "policy_modification_not_allowed"
    INVALID_STATE = "invalid_state"
    TIMEOUT = "timeout"
    BROKEN_CIRCUIT = "broken_circuit"
    ISOLATED_CIRCUIT = "isolated_circuit"
    BULKHEAD_REJECTED = "bulkhead_rejected"
    FALLBACK_EXHAUSTED = "fallback_exhausted"

    def __str__(self) -> str:
        return self.value


class ResiliencyError(Exception):
    """Base exception for all resiliency errors."""

    default_code = ErrorCode.INVALID_STATE
    default_message = "resiliency error"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ConfigurationError(ResiliencyError):
    """Raised when a policy is configured incorrectly."""
    default_code = ErrorCode.INVALID_ARGUMENT
    default_message = "invalid policy configuration"


class InvalidArgumentError(ConfigurationError, ValueError):
    """Raised when a numeric setting is not a valid integer in range."""

    def __init__(self, message: str, argument: Optional[str] = None, value: Any = None):
        details = {}
        if argument is not None:
            details['argument'] = argument
            details['value'] = value
        super().__init__(message, ErrorCode.INVALID_ARGUMENT, details)
        self.argument = argument
        self.value = value


class PolicyModificationNotAllowedError(ConfigurationError):
    """Raised when a policy is reconfigured while it is executing."""
    default_code = ErrorCode.POLICY_MODIFICATION_NOT_ALLOWED
    default_message = "cannot modify policy during execution"


class InvalidCircuitTransitionError(ResiliencyError):
    """Raised on a circuit state transition that is not allowed. Indicates a bug."""
    default_code = ErrorCode.INVALID_STATE
    default_message = "invalid transition"

    def __init__(self, from_state: Any, to_state: Any):
        super().__init__(
            f"invalid transition from {from_state} to {to_state}",
            details={'from_state': str(from_state), 'to_state': str(to_state)}
        )
        self.from_state = from_state
        self.to_state = to_state


class CircuitStateError(ResiliencyError):
    """Raised when a manual circuit operation is requested in the wrong state."""
    default_code = ErrorCode.INVALID_STATE
    default_message = "cannot reset if not in Isolated state"


class PolicyException(ResiliencyError):
    """Base class for exceptions a policy raises on its own behalf."""


class TimeoutException(PolicyException):
    """Raised when the timeout policy gives up waiting for an operation."""
    default_code = ErrorCode.TIMEOUT

    def __init__(self, timed_out_after_ms: int):
        super().__init__(
            f"operation timed out after {timed_out_after_ms}ms",
            details={'timed_out_after_ms': timed_out_after_ms}
        )
        self.timed_out_after_ms = timed_out_after_ms


class BrokenCircuitException(PolicyException):
    """Raised when the circuit is open."""
    default_code = ErrorCode.BROKEN_CIRCUIT
    default_message = "circuit is open"


class IsolatedCircuitException(PolicyException):
    """Raised when the circuit was isolated manually."""
    default_code = ErrorCode.ISOLATED_CIRCUIT
    default_message = "circuit is isolated"


class BulkheadCompartmentRejectedException(PolicyException):
    """Raised when both the bulkhead compartment and its queue are full."""
    default_code = ErrorCode.BULKHEAD_REJECTED
    default_message = "bulkhead compartment and queue are full"


class FallbackChainExhaustedException(PolicyException):
    """Raised when no fallback is left to try."""
    default_code = ErrorCode.FALLBACK_EXHAUSTED
    default_message = "fallback chain exhausted"


__all__ = [
    'ErrorCode',
    'ResiliencyError',
    'ConfigurationError',
    'InvalidArgumentError',
    'PolicyModificationNotAllowedError',
    'InvalidCircuitTransitionError',
    'CircuitStateError',
    'PolicyException',
    'TimeoutException',
    'BrokenCircuitException',
    'IsolatedCircuitException',
    'BulkheadCompartmentRejectedException',
    'FallbackChainExhaustedException',
]

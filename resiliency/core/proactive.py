"""
Base class for proactive policies.
"""

from .policy import Policy, ResultType


class ProactivePolicy(Policy[ResultType]):
    """A policy that acts before or around the operation, regardless of its outcome (timeout, bulkhead, cache)."""

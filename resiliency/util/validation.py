"""
Validation utilities for policy settings.
Numeric settings must be integers, within range, and no larger than 2^53 - 1.
"""

from datetime import timedelta
from typing import Any, Union

from ..errors import InvalidArgumentError

MAX_SAFE_INTEGER = 2 ** 53 - 1


def is_integer(value: Any) -> bool:
    """Check that value is an int (bool excluded) or a float with no fraction."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_integer(name: str, value: Any, minimum: int = 1) -> int:
    """
    Validate a numeric policy setting and return it as an int.

    Args:
        name: Setting name used in the error message
        value: Value to validate
        minimum: Smallest allowed value (1 for "greater than 0", 0 for "greater than or equal to 0")

    Raises:
        InvalidArgumentError: If the value is not an integer, too small or not safely representable
    """
    if not is_integer(value):
        raise InvalidArgumentError(f"{name} must be integer", name, value)

    if value < minimum:
        if minimum == 1:
            raise InvalidArgumentError(f"{name} must be greater than 0", name, value)
        raise InvalidArgumentError(f"{name} must be greater than or equal to {minimum}", name, value)

    if value > MAX_SAFE_INTEGER:
        raise InvalidArgumentError(f"{name} must be less than or equal to 2^53 - 1", name, value)

    return int(value)


def to_milliseconds(value: Union[int, float, timedelta]) -> Union[int, float]:
    """Convert a timedelta to whole milliseconds, rounding to the nearest; numbers are returned unchanged."""
    if isinstance(value, timedelta):
        return round(value / timedelta(milliseconds=1))
    return value

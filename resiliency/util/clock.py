"""
Wall clock access for time based policies.
"""

import time


def now_ms() -> int:
    """Return the current time as whole milliseconds since the epoch."""
    return int(time.time() * 1000)

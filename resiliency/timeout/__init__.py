# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Package timeout provides the timeout policy.
"""

from .timeout import (
    TimeoutPolicy,
    TimeoutOptions,
    ExecutionException,
    OnTimeoutFn,
)
from ..errors import TimeoutException

__all__ = [
    'TimeoutPolicy',
    'TimeoutOptions',
    'ExecutionException',
    'OnTimeoutFn',
    'TimeoutException',
]

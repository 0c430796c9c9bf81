# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Package bulkhead provides the bulkhead isolation policy.
"""

from .bulkhead import (
    BulkheadIsolationPolicy,
    BulkheadOptions,
)
from ..errors import BulkheadCompartmentRejectedException

__all__ = [
    'BulkheadIsolationPolicy',
    'BulkheadOptions',
    'BulkheadCompartmentRejectedException',
]

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Package core provides the policy contract and policy composition.
"""

from .policy import Policy, Operation, ResultType
from .proactive import ProactivePolicy
from .reactive import ReactivePolicy
from .nop import NopPolicy
from .combination import PolicyCombination

__all__ = [
    'Policy',
    'Operation',
    'ResultType',
    'ProactivePolicy',
    'ReactivePolicy',
    'NopPolicy',
    'PolicyCombination',
]

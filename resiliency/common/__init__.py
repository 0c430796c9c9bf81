# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Common helpers shared by all policies: predicate evaluation, hook registries,
sync/async call helpers and decorators.
"""

from .predicates import Predicate, PredicateChecker
from .hooks import HookRegistry
from .utils import call, maybe_await, describe

__all__ = [
    'Predicate',
    'PredicateChecker',
    'HookRegistry',
    'call',
    'maybe_await',
    'describe',
]

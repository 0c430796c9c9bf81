# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components must include this license text and are provided without warranty.

"""
Utility package providing helpers shared by all policies.

This package includes:
- Validation of numeric policy settings
- Wall clock access in epoch milliseconds
- Configuration loading from environment variables, JSON and YAML files
"""

from .clock import now_ms
from .validation import MAX_SAFE_INTEGER, is_integer, validate_integer, to_milliseconds
from .config import (
    load_config_from_env, parse_duration_string, parse_bool, merge_configs,
    validate_config, normalize_config_key, load_config_file, save_config_file
)

__all__ = [
    # Clock
    'now_ms',

    # Validation utilities
    'MAX_SAFE_INTEGER', 'is_integer', 'validate_integer', 'to_milliseconds',

    # Configuration utilities
    'load_config_from_env', 'parse_duration_string', 'parse_bool', 'merge_configs',
    'validate_config', 'normalize_config_key', 'load_config_file', 'save_config_file'
]

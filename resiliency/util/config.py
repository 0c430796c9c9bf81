"""
Configuration utilities for the resiliency package.
Provides configuration loading, validation, and coercion helpers.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

ENV_PREFIX = "RESILIENCY_"

# Separates nesting levels in environment variable names, e.g. RESILIENCY_RETRY__RETRY_COUNT
ENV_NESTING_SEPARATOR = "__"

_DURATION_UNITS = {
    'ms': timedelta(milliseconds=1),
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
}


def load_config_from_env(prefix: str = ENV_PREFIX,
                         environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load configuration from environment variables with given prefix.

    Double underscores split a name into nested sections:
    ``RESILIENCY_CIRCUIT_BREAKER__BREAK_AFTER=5`` becomes
    ``{'circuit_breaker': {'break_after': '5'}}``. Values stay strings.
    """
    environ = os.environ if environ is None else environ
    config: Dict[str, Any] = {}

    for key, value in environ.items():
        if not key.startswith(prefix):
            continue

        # Remove prefix and convert to lowercase
        path = [normalize_config_key(part) for part in key[len(prefix):].split(ENV_NESTING_SEPARATOR)]
        section = config
        for part in path[:-1]:
            section = section.setdefault(part, {})
            if not isinstance(section, dict):
                break
        else:
            section[path[-1]] = value

    return config


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse duration string like '250ms', '30s', '5m', '2h', '1d' into timedelta.
    """
    if not isinstance(duration_str, str):
        raise ValueError("Duration must be a string")

    duration_str = duration_str.strip().lower()

    # Pattern to match number followed by unit
    pattern = r'^(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)$'
    match = re.match(pattern, duration_str)

    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    return float(value) * _DURATION_UNITS[unit]


def parse_bool(value: Any) -> bool:
    """Interpret common string spellings of booleans."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple configuration dictionaries.
    Later configs override earlier ones; nested sections are merged key by key.
    """
    result: Dict[str, Any] = {}

    for config in configs:
        if not isinstance(config, dict):
            continue
        for key, value in config.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            else:
                result[key] = value

    return result


def validate_config(config: Dict[str, Any],
                    schema: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Validate configuration against a schema.
    Returns list of validation errors.

    Schema format:
    {
        'field_name': {
            'required': True/False,
            'type': type,
            'choices': [list_of_valid_values],
            'min': min_value,
            'max': max_value
        }
    }
    """
    errors = []

    for field, rules in schema.items():
        if rules.get('required', False) and field not in config:
            errors.append(f"Missing required field: {field}")
            continue

        if field not in config:
            continue

        value = config[field]

        # Type validation
        expected_type = rules.get('type')
        if expected_type and not isinstance(value, expected_type):
            if isinstance(expected_type, tuple):
                type_name = ' or '.join(t.__name__ for t in expected_type)
            else:
                type_name = expected_type.__name__
            errors.append(f"Field {field} must be of type {type_name}")
            continue

        # Choice validation
        choices = rules.get('choices')
        if choices and value not in choices:
            errors.append(f"Field {field} must be one of: {choices}")

        # Range validation for numeric types
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            min_val = rules.get('min')
            max_val = rules.get('max')

            if min_val is not None and value < min_val:
                errors.append(f"Field {field} must be >= {min_val}")

            if max_val is not None and value > max_val:
                errors.append(f"Field {field} must be <= {max_val}")

    unknown = sorted(set(config) - set(schema))
    for field in unknown:
        errors.append(f"Unknown field: {field}")

    return errors


def normalize_config_key(key: str) -> str:
    """Normalize configuration key to standard format."""
    # Convert to lowercase and replace hyphens with underscores
    return key.lower().replace('-', '_')


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext in ['.json']:
            return json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")


def save_config_file(config: Dict[str, Any], file_path: str,
                     format_type: Optional[str] = None) -> None:
    """Save configuration to a file."""
    if format_type is None:
        format_type = Path(file_path).suffix.lower().lstrip('.')

    # Create directory if it doesn't exist
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(file_path, 'w', encoding='utf-8') as f:
        if format_type == 'json':
            json.dump(config, f, indent=2, separators=(',', ': '))
        elif format_type in ['yaml', 'yml']:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2)
        else:
            raise ValueError(f"Unsupported configuration format: {format_type}")

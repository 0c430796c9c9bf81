"""
Build policies from configuration dictionaries.

A configuration maps policy kinds to their settings, for example::

    retry:
      retry_count: 3
      backoff: {type: exponential, delay: 100ms}
    circuit_breaker:
      break_after: 5
      break_for: 30s
    timeout:
      timeout: 2s
    pipeline: [retry, circuit_breaker, timeout]

Values may be strings (as loaded from environment variables); they are
coerced before validation. Predicates, hooks and fallbacks are code and are
registered on the built policies afterwards.
"""

import logging
from typing import Any, Dict, List, Optional

from .bulkhead import BulkheadIsolationPolicy, BulkheadOptions
from .cache import CacheOptions, CachePolicy, TimeToLiveStrategy
from .circuit import CircuitBreakerOptions, CircuitBreakerPolicy
from .core.combination import PolicyCombination
from .core.nop import NopPolicy
from .core.policy import Policy
from .errors import InvalidArgumentError
from .fallback import FallbackOptions, FallbackPolicy
from .retry import BackoffStrategy, BackoffStrategyFactory, RetryOptions, RetryPolicy
from .timeout import TimeoutOptions, TimeoutPolicy
from .util.validation import to_milliseconds
from .util.config import (
    load_config_file,
    load_config_from_env,
    merge_configs,
    parse_bool,
    parse_duration_string,
    validate_config,
)

logger = logging.getLogger(__name__)

# Marker type for settings given as milliseconds or a duration string
DURATION = 'duration'

POLICY_SCHEMAS: Dict[str, Dict[str, Dict[str, Any]]] = {
    'retry': {
        'name': {'type': str},
        'retry_count': {'type': int, 'min': 1},
        'retry_forever': {'type': bool},
        'backoff': {'type': dict},
    },
    'timeout': {
        'name': {'type': str},
        'timeout': {'type': DURATION, 'min': 1},
    },
    'circuit_breaker': {
        'name': {'type': str},
        'break_after': {'type': int, 'min': 1},
        'break_for': {'type': DURATION, 'min': 1},
    },
    'bulkhead': {
        'name': {'type': str},
        'max_concurrency': {'type': int, 'min': 1},
        'max_queued_actions': {'type': int, 'min': 0},
    },
    'cache': {
        'name': {'type': str},
        'strategy': {'type': str, 'choices': [s.value for s in TimeToLiveStrategy]},
        'time_to_live': {'type': DURATION, 'min': 1},
    },
    'fallback': {
        'name': {'type': str},
    },
    'nop': {
        'name': {'type': str},
    },
}

BACKOFF_SCHEMA: Dict[str, Dict[str, Any]] = {
    'type': {'type': str, 'required': True,
             'choices': ['constant', 'linear', 'exponential', 'jittered']},
    'delay': {'type': DURATION, 'min': 0},
    'min_delay': {'type': DURATION, 'min': 0},
    'max_delay': {'type': DURATION, 'min': 0},
    'fast_first': {'type': bool},
    'base': {'type': float, 'min': 1},
}


def _coerce(value: Any, expected_type: Any) -> Any:
    if expected_type == DURATION:
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return int(text)
            return to_milliseconds(parse_duration_string(text))
        return to_milliseconds(value)
    if not isinstance(value, str):
        if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value
    if expected_type is bool:
        return parse_bool(value)
    if expected_type in (int, float):
        try:
            return expected_type(value.strip())
        except ValueError:
            return value
    return value


def coerce_section(section: Dict[str, Any], schema: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Convert string values to the types the schema expects."""
    result = {}
    for key, value in section.items():
        rules = schema.get(key)
        if rules is None or 'type' not in rules:
            result[key] = value
            continue
        try:
            result[key] = _coerce(value, rules['type'])
        except ValueError as e:
            raise InvalidArgumentError(f"{key}: {e}", key, value) from e
    return result


def _check_section(kind: str, section: Dict[str, Any], schema: Dict[str, Dict[str, Any]]) -> None:
    typed_schema = {
        key: dict(rules, type=(int, float) if rules.get('type') == DURATION else rules.get('type'))
        for key, rules in schema.items()
    }
    errors = validate_config(section, typed_schema)
    if errors:
        raise InvalidArgumentError(f"invalid {kind} configuration: {'; '.join(errors)}", kind, section)


def build_backoff(section: Dict[str, Any]) -> BackoffStrategy:
    """Create a backoff strategy from a configuration section."""
    section = coerce_section(section, BACKOFF_SCHEMA)
    _check_section('backoff', section, BACKOFF_SCHEMA)

    kind = section['type']
    fast_first = section.get('fast_first', False)

    if kind == 'jittered':
        return BackoffStrategyFactory.jittered_backoff(
            section.get('min_delay', 0), section.get('max_delay', 0), fast_first
        )

    delay = section.get('delay', 0)
    if kind == 'constant':
        return BackoffStrategyFactory.constant_backoff(delay, fast_first)
    if kind == 'linear':
        return BackoffStrategyFactory.linear_backoff(delay, fast_first)
    return BackoffStrategyFactory.exponential_backoff(delay, fast_first, section.get('base', 2))


def build_policy(kind: str, section: Optional[Dict[str, Any]] = None) -> Policy:
    """Create one configured policy of the given kind."""
    kind = kind.lower().replace('-', '_')
    if kind not in POLICY_SCHEMAS:
        raise InvalidArgumentError(f"unknown policy kind: {kind}", 'kind', kind)

    schema = POLICY_SCHEMAS[kind]
    section = coerce_section(section or {}, schema)
    _check_section(kind, section, schema)

    name = section.get('name')

    if kind == 'retry':
        backoff = section.get('backoff')
        options = RetryOptions(
            retry_count=section.get('retry_count'),
            retry_forever=section.get('retry_forever', False),
            backoff=build_backoff(backoff) if backoff is not None else None,
            name=name,
        )
        return RetryPolicy.from_options(options)

    if kind == 'timeout':
        return TimeoutPolicy.from_options(TimeoutOptions(timeout=section.get('timeout'), name=name))

    if kind == 'circuit_breaker':
        return CircuitBreakerPolicy.from_options(CircuitBreakerOptions(
            break_after=section.get('break_after'),
            break_for=section.get('break_for'),
            name=name,
        ))

    if kind == 'bulkhead':
        return BulkheadIsolationPolicy.from_options(BulkheadOptions(
            max_concurrency=section.get('max_concurrency'),
            max_queued_actions=section.get('max_queued_actions'),
            name=name,
        ))

    if kind == 'cache':
        return CachePolicy.from_options(CacheOptions(
            strategy=section.get('strategy', TimeToLiveStrategy.RELATIVE),
            time_to_live=section.get('time_to_live'),
            name=name,
        ))

    if kind == 'fallback':
        return FallbackPolicy.from_options(FallbackOptions(name=name))

    return NopPolicy(name=name)


def build_policies(config: Dict[str, Any]) -> Dict[str, Policy]:
    """Create every policy configured in ``config``, keyed by kind."""
    policies = {}
    for kind, section in config.items():
        if kind == 'pipeline':
            continue
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise InvalidArgumentError(f"{kind} configuration must be a mapping", kind, section)
        policies[kind] = build_policy(kind, section)
        logger.debug(f"Built {kind} policy '{policies[kind].name}' from configuration")
    return policies


def build_pipeline(config: Dict[str, Any]) -> Policy:
    """
    Create the configured policies and combine them in ``pipeline`` order,
    outermost first. A single-entry pipeline returns that policy alone.
    """
    policies = build_policies(config)
    order: List[str] = config.get('pipeline') or list(policies)

    missing = [kind for kind in order if kind not in policies]
    if missing:
        raise InvalidArgumentError(f"pipeline refers to unconfigured policies: {missing}", 'pipeline', order)

    if not order:
        raise InvalidArgumentError("pipeline is empty", 'pipeline', order)

    if len(order) == 1:
        return policies[order[0]]

    return PolicyCombination.combine([policies[kind] for kind in order])


def load_pipeline(file_path: Optional[str] = None, env_prefix: Optional[str] = None) -> Policy:
    """Build a pipeline from a JSON or YAML file, overridden by environment variables."""
    file_config = load_config_file(file_path) if file_path else {}
    env_config = load_config_from_env(env_prefix) if env_prefix else load_config_from_env()

    # Other settings may share the prefix; only policy sections and the pipeline are ours
    for key in [key for key in env_config if key not in POLICY_SCHEMAS and key != 'pipeline']:
        logger.debug(f"Ignoring environment setting '{key}': not a policy section")
        del env_config[key]

    env_pipeline = env_config.get('pipeline')
    if isinstance(env_pipeline, str):
        env_config['pipeline'] = [item.strip() for item in env_pipeline.split(',') if item.strip()]
    return build_pipeline(merge_configs(file_config, env_config))

"""
Tests for configuration loading and policy building.
"""

import json
from datetime import timedelta

import pytest
import yaml

from resiliency import (
    BulkheadIsolationPolicy, CachePolicy, CircuitBreakerPolicy, NopPolicy, RetryPolicy,
    TimeoutPolicy, TimeToLiveStrategy, build_pipeline, build_policies, build_policy, load_pipeline,
)
from resiliency.config import build_backoff
from resiliency.errors import InvalidArgumentError
from resiliency.util.config import (
    load_config_file, load_config_from_env, merge_configs, parse_duration_string, save_config_file,
    validate_config,
)


class TestConfigUtilities:
    """Test generic configuration helpers."""

    @pytest.mark.parametrize("text, expected", [
        ("250ms", timedelta(milliseconds=250)),
        ("30s", timedelta(seconds=30)),
        ("1.5m", timedelta(seconds=90)),
        ("2h", timedelta(hours=2)),
        ("1d", timedelta(days=1)),
    ])
    def test_parse_duration_string(self, text, expected):
        assert parse_duration_string(text) == expected

    @pytest.mark.parametrize("text", ["", "10", "5 weeks", "-1s"])
    def test_parse_duration_string_rejects_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration_string(text)

    def test_load_config_from_env_nests_sections(self):
        environ = {
            'RESILIENCY_RETRY__RETRY_COUNT': '3',
            'RESILIENCY_CIRCUIT_BREAKER__BREAK_FOR': '30s',
            'RESILIENCY_PIPELINE': 'retry,circuit_breaker',
            'OTHER_SETTING': 'ignored',
        }

        assert load_config_from_env(environ=environ) == {
            'retry': {'retry_count': '3'},
            'circuit_breaker': {'break_for': '30s'},
            'pipeline': 'retry,circuit_breaker',
        }

    def test_merge_configs_merges_nested_sections(self):
        merged = merge_configs(
            {'retry': {'retry_count': 2, 'name': 'a'}, 'timeout': {'timeout': 10}},
            {'retry': {'retry_count': 5}},
        )

        assert merged == {'retry': {'retry_count': 5, 'name': 'a'}, 'timeout': {'timeout': 10}}

    def test_validate_config_reports_errors(self):
        schema = {
            'size': {'type': int, 'required': True, 'min': 1},
            'mode': {'type': str, 'choices': ['a', 'b']},
        }

        assert validate_config({'size': 2, 'mode': 'a'}, schema) == []
        errors = validate_config({'mode': 'c', 'extra': 1}, schema)
        assert "Missing required field: size" in errors
        assert "Field mode must be one of: ['a', 'b']" in errors
        assert "Unknown field: extra" in errors

    def test_save_and_load_config_files(self, tmp_path):
        config = {'retry': {'retry_count': 3}}

        json_path = str(tmp_path / 'config.json')
        yaml_path = str(tmp_path / 'nested' / 'config.yaml')
        save_config_file(config, json_path)
        save_config_file(config, yaml_path)

        assert load_config_file(json_path) == config
        assert load_config_file(yaml_path) == config

    def test_load_config_file_errors(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(str(tmp_path / 'missing.yaml'))

        path = tmp_path / 'config.toml'
        path.write_text('retry = 1')
        with pytest.raises(ValueError):
            load_config_file(str(path))


class TestBuildPolicy:
    """Test building policies from configuration sections."""

    def test_build_retry_from_strings(self):
        policy = build_policy('retry', {'retry_count': '4', 'name': 'api'})

        assert isinstance(policy, RetryPolicy)
        assert policy.total_retry_count == 4
        assert policy.name == 'api'

    def test_build_retry_forever(self):
        policy = build_policy('retry', {'retry_forever': 'true'})
        assert policy.total_retry_count == float('inf')

    def test_build_timeout_from_duration(self):
        policy = build_policy('timeout', {'timeout': '2s'})

        assert isinstance(policy, TimeoutPolicy)
        assert policy.timeout_ms == 2000

    def test_build_bulkhead(self):
        policy = build_policy('bulkhead', {'max_concurrency': 2, 'max_queued_actions': '0'})

        assert isinstance(policy, BulkheadIsolationPolicy)
        assert policy.get_available_slots_count() == 2
        assert policy.get_available_queued_actions_count() == 0

    def test_build_cache(self):
        policy = build_policy('cache', {'strategy': 'sliding', 'time_to_live': '1m'})

        assert isinstance(policy, CachePolicy)
        assert policy.strategy is TimeToLiveStrategy.SLIDING

    def test_build_nop(self):
        assert isinstance(build_policy('nop'), NopPolicy)

    @pytest.mark.parametrize("kind, section", [
        ('retry', {'retry_count': 0}),
        ('retry', {'retry_count': 'many'}),
        ('timeout', {'timeout': 'soon'}),
        ('circuit_breaker', {'unknown': 1}),
        ('cache', {'strategy': 'forever'}),
        ('teleport', {}),
    ])
    def test_invalid_sections_are_rejected(self, kind, section):
        with pytest.raises(InvalidArgumentError):
            build_policy(kind, section)

    def test_build_backoff(self):
        assert build_backoff({'type': 'constant', 'delay': '100ms'})(3) == 100
        assert build_backoff({'type': 'linear', 'delay': 50, 'fast_first': 'yes'})(3) == 100
        assert build_backoff({'type': 'exponential', 'delay': 10, 'base': 3})(3) == 90

        with pytest.raises(InvalidArgumentError):
            build_backoff({'delay': 10})

    @pytest.mark.asyncio
    async def test_build_retry_with_jittered_backoff(self):
        policy = build_policy('retry', {'backoff': {'type': 'jittered', 'min_delay': 1, 'max_delay': 2}})
        policy.react_on_result(lambda r: r == 'bad')
        outcomes = iter(['bad', 'good'])

        assert await policy.execute(lambda: next(outcomes)) == 'good'


class TestBuildPipeline:
    """Test combining configured policies."""

    def test_build_policies(self):
        policies = build_policies({'retry': {'retry_count': 2}, 'nop': None})

        assert set(policies) == {'retry', 'nop'}

    @pytest.mark.asyncio
    async def test_build_pipeline_in_order(self):
        pipeline = build_pipeline({
            'retry': {'retry_count': 2},
            'circuit_breaker': {'break_after': 5, 'break_for': '30s'},
            'timeout': {'timeout': 1000},
            'pipeline': ['retry', 'circuit_breaker', 'timeout'],
        })

        assert isinstance(pipeline, RetryPolicy)
        assert isinstance(pipeline.wrapped_policy, CircuitBreakerPolicy)
        assert isinstance(pipeline.wrapped_policy.wrapped_policy, TimeoutPolicy)
        assert await pipeline.execute(lambda: 'ok') == 'ok'

    def test_single_policy_pipeline(self):
        pipeline = build_pipeline({'timeout': {'timeout': 10}})
        assert isinstance(pipeline, TimeoutPolicy)
        assert pipeline.wrapped_policy is None

    def test_pipeline_must_refer_to_configured_policies(self):
        with pytest.raises(InvalidArgumentError):
            build_pipeline({'retry': {}, 'pipeline': ['retry', 'timeout']})

    def test_load_pipeline_from_yaml_with_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / 'resiliency.yaml'
        path.write_text(yaml.safe_dump({
            'retry': {'retry_count': 2},
            'bulkhead': {'max_concurrency': 4},
            'pipeline': ['retry', 'bulkhead'],
        }))
        monkeypatch.setenv('RESILIENCY_RETRY__RETRY_COUNT', '7')

        pipeline = load_pipeline(str(path))

        assert isinstance(pipeline, RetryPolicy)
        assert pipeline.total_retry_count == 7
        assert isinstance(pipeline.wrapped_policy, BulkheadIsolationPolicy)

    def test_load_pipeline_from_json_with_env_pipeline(self, tmp_path, monkeypatch):
        path = tmp_path / 'resiliency.json'
        path.write_text(json.dumps({'timeout': {'timeout': 100}, 'nop': {}}))
        monkeypatch.setenv('RESILIENCYTESTS_PIPELINE', 'nop, timeout')

        pipeline = load_pipeline(str(path), env_prefix='RESILIENCYTESTS_')

        assert isinstance(pipeline, NopPolicy)
        assert isinstance(pipeline.wrapped_policy, TimeoutPolicy)

    def test_load_pipeline_ignores_unrelated_environment_settings(self, tmp_path, monkeypatch):
        path = tmp_path / 'resiliency.yaml'
        path.write_text(yaml.safe_dump({
            'retry': {'retry_count': 2},
            'timeout': {'timeout': '1s'},
            'pipeline': ['retry', 'timeout'],
        }))
        monkeypatch.setenv('RESILIENCY_LOG_LEVEL', 'debug')
        monkeypatch.setenv('RESILIENCY_SERVICE__URL', 'http://localhost')

        pipeline = load_pipeline(str(path))

        assert isinstance(pipeline, RetryPolicy)
        assert pipeline.total_retry_count == 2
        assert isinstance(pipeline.wrapped_policy, TimeoutPolicy)
        assert pipeline.wrapped_policy.timeout_ms == 1000

    def test_fractional_durations_round_to_whole_milliseconds(self):
        assert build_policy('timeout', {'timeout': '2.4ms'}).timeout_ms == 2
        assert build_policy('timeout', {'timeout': timedelta(microseconds=2400)}).timeout_ms == 2

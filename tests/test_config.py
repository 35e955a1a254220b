"""Tests for runtime configuration."""

import pytest
from pydantic import ValidationError

from dep_inspector.config import InspectorConfig


class TestInspectorConfig:
    def test_defaults(self):
        config = InspectorConfig.from_env({})
        assert config.github_token is None
        assert config.max_attempts == 2
        assert config.supported_hosts == ["github.com"]
        assert config.registry_lookups

    def test_token_precedence(self):
        env = {"GH_TOKEN": "gh", "GITHUB_TOKEN": "github"}
        assert InspectorConfig.from_env(env).github_token == "github"
        env["DEP_INSPECTOR_GITHUB_TOKEN"] = "user:tok"
        assert InspectorConfig.from_env(env).github_token == "user:tok"
        assert InspectorConfig.from_env({"GH_TOKEN": "gh"}).github_token == "gh"

    def test_prefixed_values(self):
        config = InspectorConfig.from_env(
            {
                "DEP_INSPECTOR_PROXY": "http://127.0.0.1:3128",
                "DEP_INSPECTOR_MAX_CONCURRENCY": "8",
                "DEP_INSPECTOR_REQUEST_TIMEOUT": "2.5",
                "DEP_INSPECTOR_SUPPORTED_HOSTS": "github.com, gitlab.com",
                "DEP_INSPECTOR_REGISTRY_LOOKUPS": "off",
                "DEP_INSPECTOR_WEIGHT_LOC": "0.5",
            }
        )
        assert config.proxy == "http://127.0.0.1:3128"
        assert config.max_concurrency == 8
        assert config.request_timeout == 2.5
        assert config.supported_hosts == ["github.com", "gitlab.com"]
        assert not config.registry_lookups
        assert config.weights.loc == 0.5
        assert config.weights.transitive == 10.0

    def test_overrides_win_unless_none(self):
        env = {"GITHUB_TOKEN": "env-token", "DEP_INSPECTOR_PROXY": "http://env:1"}
        config = InspectorConfig.from_env(env, github_token="cli-token", proxy=None)
        assert config.github_token == "cli-token"
        assert config.proxy == "http://env:1"

    def test_more_than_one_retry_rejected(self):
        with pytest.raises(ValidationError):
            InspectorConfig.from_env({"DEP_INSPECTOR_MAX_ATTEMPTS": "3"})

    def test_invalid_number_rejected(self):
        with pytest.raises(ValidationError):
            InspectorConfig.from_env({"DEP_INSPECTOR_MAX_CONCURRENCY": "zero"})

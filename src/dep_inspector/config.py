"""Runtime configuration."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from dep_inspector.analysis.ranking import ScoreWeights
from dep_inspector.repository import DEFAULT_HOSTS

ENV_PREFIX = "DEP_INSPECTOR_"


class InspectorConfig(BaseModel):
    """Settings of one inspection run."""

    github_token: Optional[str] = None  # "user:token" or a bare token
    proxy: Optional[str] = None
    max_concurrency: int = Field(default=4, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)
    query_timeout: float = Field(default=30.0, gt=0)  # all requests of one lookup
    max_attempts: int = Field(default=2, ge=1, le=2)  # one retry at most
    retry_backoff: float = Field(default=2.0, ge=0)
    request_interval: float = Field(default=0.0, ge=0)
    test_marker: str = "test"
    supported_hosts: list[str] = Field(default_factory=lambda: sorted(DEFAULT_HOSTS))
    registry_lookups: bool = True
    weights: ScoreWeights = Field(default_factory=ScoreWeights)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "InspectorConfig":  # type: ignore[no-untyped-def]
        """Build a config from ``GITHUB_TOKEN``/``GH_TOKEN`` and ``DEP_INSPECTOR_*``."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        token = env.get(f"{ENV_PREFIX}GITHUB_TOKEN") or env.get("GITHUB_TOKEN") or env.get("GH_TOKEN")
        if token:
            values["github_token"] = token
        simple = {
            "proxy": "PROXY",
            "max_concurrency": "MAX_CONCURRENCY",
            "request_timeout": "REQUEST_TIMEOUT",
            "query_timeout": "QUERY_TIMEOUT",
            "max_attempts": "MAX_ATTEMPTS",
            "retry_backoff": "RETRY_BACKOFF",
            "request_interval": "REQUEST_INTERVAL",
            "test_marker": "TEST_MARKER",
        }
        for field, suffix in simple.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None and raw != "":
                values[field] = raw
        hosts = env.get(f"{ENV_PREFIX}SUPPORTED_HOSTS")
        if hosts:
            values["supported_hosts"] = [h.strip() for h in hosts.split(",") if h.strip()]
        registry = env.get(f"{ENV_PREFIX}REGISTRY_LOOKUPS")
        if registry:
            values["registry_lookups"] = registry.strip().lower() not in ("0", "false", "no", "off")
        weights = {
            name: env[f"{ENV_PREFIX}WEIGHT_{name.upper()}"]
            for name in ScoreWeights.model_fields
            if env.get(f"{ENV_PREFIX}WEIGHT_{name.upper()}")
        }
        if weights:
            values["weights"] = ScoreWeights(**weights)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re
from datetime import timedelta

from kubeverdict.models.config import (
    ClusterConfig,
    KubeVerdictConfig,
    LogConfig,
    MetricsConfig,
    RunConfig,
    SamplerConfig,
)

_DURATION_RE = re.compile(r"^([0-9]+)(s|m|h)$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEVERDICT_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> list[str]:
    return [item.strip() for item in _env(key, "").split(",") if item.strip()]


def _validate_duration(value: str) -> str:
    if not _DURATION_RE.match(value):
        raise ValueError(f"Invalid duration format: {value}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def parse_duration(value: str) -> timedelta:
    """Convert a ``[0-9]+(s|m|h)`` string into a timedelta."""
    match = _DURATION_RE.match(_validate_duration(value))
    assert match is not None
    return timedelta(seconds=int(match.group(1)) * _UNIT_SECONDS[match.group(2)])


def load_config() -> KubeVerdictConfig:
    """Load configuration from KUBEVERDICT_* environment variables."""
    return KubeVerdictConfig(
        run=RunConfig(
            duration=_validate_duration(_env("RUN_DURATION", "10m")),
            storage_dir=_env("STORAGE_DIR", ""),
            junit_dir=_env("JUNIT_DIR", "."),
            plugins=_env_list("PLUGINS"),
        ),
        sampler=SamplerConfig(
            interval_seconds=_env_float("SAMPLER_INTERVAL", 1.0, min_val=0.1, max_val=60.0),
            timeout_seconds=_env_float("SAMPLER_TIMEOUT", 5.0, min_val=0.1, max_val=60.0),
            merge_gap_seconds=_env_float("MERGE_GAP", 2.0, min_val=0.0),
            api_server=_env("API_SERVER", ""),
        ),
        cluster=ClusterConfig(
            request_timeout=_env_int("REQUEST_TIMEOUT", 30, min_val=1, max_val=300),
        ),
        metrics=MetricsConfig(
            port=_env_int("METRICS_PORT", 0, min_val=0, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )

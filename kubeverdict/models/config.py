"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunConfig:
    """Run window and output locations."""

    duration: str = "10m"
    storage_dir: str = ""
    junit_dir: str = "."
    plugins: list[str] = field(default_factory=list)


@dataclass
class SamplerConfig:
    """Backend sampler configuration."""

    interval_seconds: float = 1.0
    timeout_seconds: float = 5.0
    merge_gap_seconds: float = 2.0
    api_server: str = ""


@dataclass
class ClusterConfig:
    """Cluster API access configuration."""

    request_timeout: int = 30


@dataclass
class MetricsConfig:
    """Prometheus exposition configuration."""

    port: int = 0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeVerdictConfig:
    """Top-level kubeverdict configuration."""

    run: RunConfig = field(default_factory=RunConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)

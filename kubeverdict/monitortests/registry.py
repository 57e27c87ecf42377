"""Builds the monitor tests for a run from configuration."""

from __future__ import annotations

from datetime import timedelta

from kubeverdict.cluster.client import ClusterClientFactory, ProbeSettings
from kubeverdict.models.config import KubeVerdictConfig
from kubeverdict.models.topology import TopologyFacts
from kubeverdict.monitortests.backend_disruption import BackendDisruptionMonitorTest, default_backends
from kubeverdict.monitortests.base import MonitorTest
from kubeverdict.monitortests.required_scc import RequiredSCCMonitorTest
from kubeverdict.observability.logging import get_logger
from kubeverdict.sampler.probes import HttpProbe

_logger = get_logger("monitortests.registry")


def available_plugins() -> list[str]:
    """Names of every monitor test this build can run."""
    return ["required-scc"] + [f"backend-disruption-{b.name}" for b in default_backends()]


def build_plugins(
    config: KubeVerdictConfig,
    client_factory: ClusterClientFactory,
    topology: TopologyFacts,
    probe_settings: ProbeSettings | None,
) -> list[MonitorTest]:
    """Instantiate the configured monitor tests.

    Backend disruption tests are skipped when no API server address is
    known.  ``config.run.plugins`` restricts the set when non-empty.
    """
    tests: list[MonitorTest] = [RequiredSCCMonitorTest(client_factory)]

    sampler = config.sampler
    host = sampler.api_server or (probe_settings.host if probe_settings else "")
    if host:
        for backend in default_backends():
            probe = HttpProbe(
                name=backend.name,
                host=host,
                path=backend.path,
                reuse_connections=backend.reuse_connections,
                headers=probe_settings.headers if probe_settings else None,
                verify=probe_settings.verify if probe_settings else True,
                timeout=sampler.timeout_seconds,
            )
            tests.append(
                BackendDisruptionMonitorTest(
                    backend=backend,
                    probe=probe,
                    topology=topology,
                    interval=sampler.interval_seconds,
                    timeout=sampler.timeout_seconds,
                    merge_gap=timedelta(seconds=sampler.merge_gap_seconds),
                )
            )
    else:
        _logger.warning("backend_disruption_disabled", reason="no API server address")

    selected = set(config.run.plugins)
    if selected:
        unknown = selected - set(available_plugins())
        if unknown:
            raise ValueError(f"Unknown monitor tests: {sorted(unknown)}")
        tests = [test for test in tests if test.name in selected]
    return tests

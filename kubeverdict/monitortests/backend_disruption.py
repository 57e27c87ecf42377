"""Backend disruption monitor test.

Samples one API backend for the whole run, turns failed samples into
``Disrupted`` intervals, and judges the total disruption against the
tolerance model's budget for the cluster's topology.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from kubeverdict.intervals.aggregator import DEFAULT_MERGE_GAP, aggregate, disrupted_duration
from kubeverdict.models.evidence import Interval, IntervalKind
from kubeverdict.models.topology import TopologyFacts
from kubeverdict.models.verdicts import TestCase
from kubeverdict.monitortests.base import MonitorTest, ResourcesMap, RunContext
from kubeverdict.observability.logging import get_logger
from kubeverdict.sampler.probes import Probe
from kubeverdict.sampler.sampler import BackendSampler
from kubeverdict.tolerance.model import compute_budget
from kubeverdict.verdicts.renderer import render_disruption

_logger = get_logger("monitortests.backend_disruption")


@dataclass(frozen=True)
class Backend:
    """One API endpoint to keep available, and how to connect to it."""

    name: str
    test_name: str
    path: str
    reuse_connections: bool = False


_APIS = (
    ("kube-api", "Kubernetes APIs", "/api/v1/namespaces/default"),
    ("openshift-api", "OpenShift APIs", "/apis/image.openshift.io/v1/namespaces/default/imagestreams"),
    ("oauth-api", "OAuth APIs", "/apis/oauth.openshift.io/v1/oauthclients"),
)


def default_backends() -> list[Backend]:
    """The Kubernetes, OpenShift and OAuth APIs, each with new and reused connections."""
    backends: list[Backend] = []
    for name, label, path in _APIS:
        backends.append(
            Backend(
                name=f"{name}-new-connections",
                test_name=f"[sig-api-machinery] {label} remain available for new connections",
                path=path,
            )
        )
        backends.append(
            Backend(
                name=f"{name}-reused-connections",
                test_name=f"[sig-api-machinery] {label} remain available with reused connections",
                path=path,
                reuse_connections=True,
            )
        )
    return backends


class BackendDisruptionMonitorTest(MonitorTest):
    """Samples ``backend`` through ``probe`` and renders one disruption verdict.

    Args:
        backend:   The endpoint under test.
        probe:     Health check for the endpoint; closed on cleanup if it has ``close``.
        topology:  Cluster shape facts shared by every test of the run.
        interval:  Sampling cadence in seconds.
        timeout:   Per-probe timeout in seconds.
        merge_gap: Failures closer than this are one interval.
    """

    def __init__(
        self,
        backend: Backend,
        probe: Probe,
        topology: TopologyFacts,
        interval: float = 1.0,
        timeout: float = 5.0,
        merge_gap: timedelta = DEFAULT_MERGE_GAP,
    ) -> None:
        self.backend = backend
        self._probe = probe
        self._topology = topology
        self._interval = interval
        self._merge_gap = merge_gap
        self._sampler = BackendSampler(backend.name, probe, interval=interval, timeout=timeout)
        self._task: asyncio.Task[object] | None = None
        self._window = timedelta(0)
        self._intervals: list[Interval] = []

    @property
    def name(self) -> str:
        return f"backend-disruption-{self.backend.name}"

    async def start_collection(self, ctx: RunContext) -> None:
        self._task = asyncio.create_task(
            self._sampler.run(ctx.beginning, ctx.end, ctx.cancelled),
            name=f"sampler-{self.backend.name}",
        )

    async def collect_data(
        self,
        storage_dir: str,
        beginning: datetime,
        end: datetime,
    ) -> tuple[list[Interval], list[TestCase]]:
        await self._stop_sampler()
        samples = self._sampler.samples
        self._window = end - beginning
        self._intervals = aggregate(samples, locator=self.backend.name, merge_gap=self._merge_gap)
        _logger.info(
            "backend_samples_collected",
            backend=self.backend.name,
            samples=len(samples),
            failed=sum(1 for s in samples if not s.succeeded),
            intervals=len(self._intervals),
        )
        return list(self._intervals), []

    async def evaluate_tests_from_constructed_intervals(self, final_intervals: list[Interval]) -> list[TestCase]:
        mine = [
            interval
            for interval in final_intervals
            if interval.locator == self.backend.name and interval.kind == IntervalKind.DISRUPTED
        ]
        disrupted = disrupted_duration(mine, timedelta(seconds=self._interval))
        budget = compute_budget(self._topology, self._window)
        return [render_disruption(self.backend.test_name, disrupted, budget, mine)]

    async def write_content_to_storage(
        self,
        storage_dir: str,
        time_suffix: str,
        final_intervals: list[Interval],
        final_resource_state: ResourcesMap,
    ) -> None:
        if not storage_dir:
            return
        path = Path(storage_dir) / f"backend-disruption_{self.backend.name}_{time_suffix}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "backend": self.backend.name,
            "test_name": self.backend.test_name,
            "samples": len(self._sampler.samples),
            "intervals": [interval.to_dict() for interval in self._intervals],
        }
        path.write_text(json.dumps(payload, indent=2))
        _logger.debug("backend_intervals_written", path=str(path))

    async def cleanup(self) -> None:
        await self._stop_sampler()
        close = getattr(self._probe, "close", None)
        if close is not None:
            result = close()
            if asyncio.iscoroutine(result):
                await result

    async def _stop_sampler(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

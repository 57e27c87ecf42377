"""Run bootstrap for kubeverdict.

Wires components in dependency order for one monitor run:
    config -> logging -> metrics -> cluster client -> topology facts
           -> monitor tests -> lifecycle controller -> JUnit report

SIGINT/SIGTERM end the observation window early instead of killing the
process, so an interrupted run still reports the evidence it gathered.
"""

from __future__ import annotations

import asyncio
import functools
import signal
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from kubeverdict.cluster.client import ClusterClientFactory, KubernetesClusterClient, ProbeSettings
from kubeverdict.config import load_config, parse_duration
from kubeverdict.models.config import KubeVerdictConfig
from kubeverdict.models.topology import TopologyFacts
from kubeverdict.monitortests.controller import LifecycleController, RunResult
from kubeverdict.monitortests.registry import build_plugins
from kubeverdict.observability.logging import bind_run, get_logger, setup_logging
from kubeverdict.observability.metrics import start_metrics_server
from kubeverdict.tolerance.topology import fetch_topology_facts
from kubeverdict.verdicts.junit import flaked, gating_failures, write_junit_xml

if TYPE_CHECKING:
    import structlog


class MonitorRun:
    """Owns every component of one run and coordinates their lifecycle.

    Args:
        config:         Run configuration; loaded from the environment when None.
        client_factory: Builds cluster clients; defaults to kubernetes-asyncio.
    """

    def __init__(
        self,
        config: KubeVerdictConfig | None = None,
        client_factory: ClusterClientFactory | None = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._cancelled = asyncio.Event()
        self._log: structlog.stdlib.BoundLogger | None = None
        self.result: RunResult | None = None
        self.report_path: Path | None = None

    def cancel(self) -> None:
        """End the observation window early; evidence gathered so far is kept."""
        self._cancelled.set()

    async def execute(self) -> int:
        """Run every configured monitor test and write the report.

        Returns the process exit status: 1 when any test failed without a
        passing twin (a gating failure), 0 otherwise.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()
        config = self.config

        # --- 2. Logging -------------------------------------------------
        setup_logging(config.log.level)
        run_id = uuid.uuid4().hex[:12]
        bind_run(run_id)
        self._log = get_logger("app")
        self._log.info("kubeverdict starting", version=_kubeverdict_version(), duration=config.run.duration)

        # --- 3. Metrics -------------------------------------------------
        if config.metrics.port:
            start_metrics_server(config.metrics.port)
            self._log.info("metrics server started", port=config.metrics.port)

        # --- 4-5. Cluster client and topology facts ---------------------
        factory = self._client_factory or functools.partial(
            KubernetesClusterClient.connect, request_timeout=config.cluster.request_timeout
        )
        topology, probe_settings = await self._discover_cluster(factory)

        # --- 6. Monitor tests -------------------------------------------
        tests = build_plugins(config, factory, topology, probe_settings)
        self._log.info("monitor tests selected", tests=[t.name for t in tests])

        # --- 7. Lifecycle -----------------------------------------------
        controller = LifecycleController(tests, storage_dir=config.run.storage_dir)
        self._install_signal_handlers()
        try:
            self.result = await controller.run(parse_duration(config.run.duration), cancelled=self._cancelled)
        finally:
            self._remove_signal_handlers()

        # --- 8. Report --------------------------------------------------
        return self._write_report(self.result)

    async def _discover_cluster(self, factory: ClusterClientFactory) -> tuple[TopologyFacts, ProbeSettings | None]:
        """Fetch topology facts once for the whole run.

        A cluster that cannot be reached is not fatal here: tolerance falls
        back to the rules that need no facts, and each monitor test reports
        its own client failure.
        """
        assert self._log is not None
        try:
            client = await factory()
        except Exception as exc:
            self._log.warning("cluster unreachable; topology facts unavailable", error=str(exc))
            return TopologyFacts(fetch_error=str(exc)), None

        try:
            topology = await fetch_topology_facts(client)
            probe_settings_fn = getattr(client, "probe_settings", None)
            probe_settings = probe_settings_fn() if probe_settings_fn is not None else None
        finally:
            await client.close()
        return topology, probe_settings

    def _write_report(self, result: RunResult) -> int:
        assert self._log is not None
        assert self.config is not None
        report = result.report()
        time_suffix = result.beginning.strftime("%Y%m%d-%H%M%S")
        self.report_path = write_junit_xml(
            report,
            Path(self.config.run.junit_dir) / f"junit_kubeverdict_{time_suffix}.xml",
        )

        gating = gating_failures(report)
        self._log.info(
            "kubeverdict finished",
            report=str(self.report_path),
            test_cases=len(result.test_cases),
            gating_failures=gating,
            flakes=flaked(report),
            tests_without_evidence=[f.plugin for f in result.failures],
            cancelled=result.cancelled,
        )
        return 1 if gating else 0

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.cancel)
            except (NotImplementedError, RuntimeError):
                # not supported outside the main thread or on some platforms
                return

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                return


def _kubeverdict_version() -> str:
    from kubeverdict import __version__

    return __version__

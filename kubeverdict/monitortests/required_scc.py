"""Required-SCC annotation monitor test.

Every workload pod in ``default``, ``kube-*`` and permanent ``openshift-*``
namespaces is expected to declare the SecurityContextConstraints it needs
through the ``openshift.io/required-scc`` annotation.  Findings are reported
as flakes while the annotation is still being rolled out across components.
"""

from __future__ import annotations

from datetime import datetime

from kubeverdict.cluster.client import ClusterClient, ClusterClientFactory
from kubeverdict.compliance.classifier import ComplianceClassifier, CompliancePolicy
from kubeverdict.errors import ClientInitError
from kubeverdict.models.evidence import Interval
from kubeverdict.models.verdicts import TestCase
from kubeverdict.monitortests.base import MonitorTest, RunContext
from kubeverdict.observability.logging import get_logger
from kubeverdict.verdicts.renderer import render_findings

_logger = get_logger("monitortests.required_scc")

REQUIRED_SCC_ANNOTATION = "openshift.io/required-scc"
VALIDATED_SCC_ANNOTATION = "openshift.io/scc"

DEFAULT_SCCS = frozenset(
    {
        "anyuid",
        "hostaccess",
        "hostmount-anyuid",
        "hostnetwork",
        "hostnetwork-v2",
        "nonroot",
        "nonroot-v2",
        "privileged",
        "restricted",
        "restricted-v2",
    }
)

NON_STANDARD_SCC_NAMESPACES: dict[str, frozenset[str]] = {
    "node-exporter": frozenset({"openshift-monitoring"}),
    "machine-api-termination-handler": frozenset({"openshift-machine-api"}),
}

REQUIRED_SCC_POLICY = CompliancePolicy(
    required_annotation=REQUIRED_SCC_ANNOTATION,
    validated_annotation=VALIDATED_SCC_ANNOTATION,
    default_values=DEFAULT_SCCS,
    allowed_namespaces=NON_STANDARD_SCC_NAMESPACES,
    permanent_root="openshift",
    permanent_prefix="openshift-",
    # must-gather namespaces are generated per diagnostic run
    excluded_prefix="openshift-must-gather-",
    label="SCC",
    required_short_name="required-scc",
)


def required_scc_test_name(namespace: str) -> str:
    return f"[sig-auth] all workloads in ns/{namespace} must set the '{REQUIRED_SCC_ANNOTATION}' annotation"


class RequiredSCCMonitorTest(MonitorTest):
    """Checks the required-SCC annotation on every pod in platform namespaces."""

    def __init__(
        self,
        client_factory: ClusterClientFactory,
        classifier: ComplianceClassifier | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._classifier = classifier or ComplianceClassifier(REQUIRED_SCC_POLICY)
        self._client: ClusterClient | None = None

    @property
    def name(self) -> str:
        return "required-scc"

    async def start_collection(self, ctx: RunContext) -> None:
        try:
            self._client = await self._client_factory()
        except Exception as exc:
            raise ClientInitError(self.name, exc) from exc

    async def collect_data(
        self,
        storage_dir: str,
        beginning: datetime,
        end: datetime,
    ) -> tuple[list[Interval], list[TestCase]]:
        if self._client is None:
            return [], []

        cases: list[TestCase] = []
        for namespace in await self._client.list_namespaces():
            if not self._classifier.in_scope(namespace):
                continue
            pods = await self._client.list_pods(namespace)
            violations = self._classifier.violations(pods)
            if violations:
                _logger.info("required_scc_violations", namespace=namespace, pods=len(pods), violations=len(violations))
            cases.append(render_findings(required_scc_test_name(namespace), violations))
        return [], cases

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

"""Shared fixtures for kubeverdict integration tests.

Provides an in-memory cluster that satisfies the ClusterClient protocol, so
monitor tests and the lifecycle controller can run full pipelines without
touching a real Kubernetes cluster.
"""

from __future__ import annotations

from typing import Any

import pytest

from kubeverdict.cluster.client import ClusterClient, ClusterClientFactory
from kubeverdict.errors import ListError
from kubeverdict.models.compliance import ClusterObjectRecord, OwnerReference
from kubeverdict.monitortests.required_scc import REQUIRED_SCC_ANNOTATION, VALIDATED_SCC_ANNOTATION

# ---------------------------------------------------------------------------
# Record factory helpers
# ---------------------------------------------------------------------------


def make_pod(
    namespace: str,
    name: str,
    validated: str | None = None,
    required: str | None = None,
    owner: tuple[str, str] | None = None,
) -> ClusterObjectRecord:
    """Create a pod record with the SCC annotations set as requested."""
    annotations: dict[str, str] = {}
    if validated is not None:
        annotations[VALIDATED_SCC_ANNOTATION] = validated
    if required is not None:
        annotations[REQUIRED_SCC_ANNOTATION] = required
    owners = (OwnerReference(kind=owner[0], name=owner[1]),) if owner else ()
    return ClusterObjectRecord(namespace=namespace, name=name, owner_references=owners, annotations=annotations)


# ---------------------------------------------------------------------------
# In-memory cluster
# ---------------------------------------------------------------------------


class FakeClusterClient:
    """ClusterClient over fixed snapshots; ``failing_namespaces`` raise ListError."""

    def __init__(
        self,
        pods: dict[str, list[ClusterObjectRecord]] | None = None,
        infrastructure: dict[str, Any] | None = None,
        versions: list[str] | None = None,
        failing_namespaces: set[str] | None = None,
    ) -> None:
        self.pods = pods or {}
        self.infrastructure = infrastructure or {}
        self.versions = versions or []
        self.failing_namespaces = failing_namespaces or set()
        self.closed = 0

    async def list_namespaces(self) -> list[str]:
        return list(self.pods)

    async def list_pods(self, namespace: str) -> list[ClusterObjectRecord]:
        if namespace in self.failing_namespaces:
            raise ListError("pods", namespace, RuntimeError("connection refused"))
        return list(self.pods.get(namespace, []))

    async def get_infrastructure(self) -> dict[str, Any]:
        return self.infrastructure

    async def list_cluster_versions(self) -> list[str]:
        return list(self.versions)

    async def close(self) -> None:
        self.closed += 1


def factory_for(client: FakeClusterClient) -> ClusterClientFactory:
    async def factory() -> ClusterClient:
        return client

    return factory


async def unreachable_factory() -> ClusterClient:
    raise ConnectionError("no route to host")


@pytest.fixture
def cluster() -> FakeClusterClient:
    """A small cluster with compliant, suggestible and violating pods."""
    return FakeClusterClient(
        pods={
            "default": [make_pod("default", "web", validated="restricted-v2", required="restricted-v2")],
            "kube-foo": [make_pod("kube-foo", "foo-0")],
            "openshift-monitoring": [
                make_pod("openshift-monitoring", "node-exporter-x", validated="node-exporter", owner=("DaemonSet", "node-exporter")),
            ],
            "openshift-machine-api": [make_pod("openshift-machine-api", "mapi-0", validated="node-exporter")],
            "openshift-must-gather-abcde": [make_pod("openshift-must-gather-abcde", "gather")],
            "my-app": [make_pod("my-app", "app")],
        },
        infrastructure={
            "status": {"controlPlaneTopology": "HighlyAvailable", "platformStatus": {"type": "AWS"}},
        },
        versions=["4.16.3", "4.15.12"],
    )

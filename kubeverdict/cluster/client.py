"""Cluster query boundary.

``ClusterClient`` is the minimal interface monitor tests need: snapshot
listings, never watches.  ``KubernetesClusterClient`` implements it on top of
kubernetes-asyncio; tests substitute an in-memory fake.
"""

from __future__ import annotations

import ssl
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from kubeverdict.errors import ListError
from kubeverdict.models.compliance import ClusterObjectRecord, OwnerReference
from kubeverdict.observability.logging import get_logger

_logger = get_logger("cluster.client")

_CONFIG_GROUP = "config.openshift.io"
_CONFIG_VERSION = "v1"


class ClusterClient(Protocol):
    """Minimal cluster interface required by monitor tests."""

    async def list_namespaces(self) -> list[str]: ...

    async def list_pods(self, namespace: str) -> list[ClusterObjectRecord]: ...

    async def get_infrastructure(self) -> dict[str, Any]: ...

    async def list_cluster_versions(self) -> list[str]: ...

    async def close(self) -> None: ...


ClusterClientFactory = Callable[[], Awaitable[ClusterClient]]


@dataclass
class ProbeSettings:
    """What an HTTP probe needs to reach the API server the client talks to."""

    host: str
    headers: dict[str, str] = field(default_factory=dict)
    verify: ssl.SSLContext | bool = True


def pod_to_record(pod: Any) -> ClusterObjectRecord:
    """Convert a kubernetes-asyncio ``V1Pod`` into a ClusterObjectRecord."""
    metadata = pod.metadata
    owners = tuple(OwnerReference(kind=ref.kind, name=ref.name) for ref in (metadata.owner_references or []))
    return ClusterObjectRecord(
        namespace=metadata.namespace or "",
        name=metadata.name or "",
        owner_references=owners,
        annotations=dict(metadata.annotations or {}),
    )


class KubernetesClusterClient:
    """ClusterClient backed by kubernetes-asyncio.

    Every call is bounded by ``request_timeout`` seconds and returns a fresh
    snapshot; nothing is cached between calls.
    """

    def __init__(self, api_client: Any, request_timeout: int = 30) -> None:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        self._api_client = api_client
        self._core = k8s_client.CoreV1Api(api_client)
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self._request_timeout = request_timeout

    @classmethod
    async def connect(cls, request_timeout: int = 30) -> KubernetesClusterClient:
        """Load in-cluster config, falling back to kubeconfig, and build a client."""
        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _logger.info("cluster_client_configured", source="in-cluster service account")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config()
            _logger.info("cluster_client_configured", source="kubeconfig")
        return cls(k8s_client.ApiClient(), request_timeout=request_timeout)

    async def list_namespaces(self) -> list[str]:
        try:
            result = await self._core.list_namespace(_request_timeout=self._request_timeout)
        except Exception as exc:
            raise ListError("namespaces", "", exc) from exc
        return [ns.metadata.name for ns in result.items]

    async def list_pods(self, namespace: str) -> list[ClusterObjectRecord]:
        try:
            result = await self._core.list_namespaced_pod(namespace, _request_timeout=self._request_timeout)
        except Exception as exc:
            raise ListError("pods", namespace, exc) from exc
        return [pod_to_record(pod) for pod in result.items]

    async def get_infrastructure(self) -> dict[str, Any]:
        try:
            return await self._custom.get_cluster_custom_object(  # type: ignore[no-any-return]
                _CONFIG_GROUP,
                _CONFIG_VERSION,
                "infrastructures",
                "cluster",
                _request_timeout=self._request_timeout,
            )
        except Exception as exc:
            raise ListError("infrastructures/cluster", "", exc) from exc

    async def list_cluster_versions(self) -> list[str]:
        """Return every version in the ClusterVersion history, newest first."""
        try:
            cv = await self._custom.get_cluster_custom_object(
                _CONFIG_GROUP,
                _CONFIG_VERSION,
                "clusterversions",
                "version",
                _request_timeout=self._request_timeout,
            )
        except Exception as exc:
            raise ListError("clusterversions/version", "", exc) from exc
        history = cv.get("status", {}).get("history", []) or []
        return [str(entry.get("version", "")) for entry in history if entry.get("version")]

    def probe_settings(self) -> ProbeSettings:
        """Derive host, bearer token and TLS settings from the loaded configuration."""
        cfg = self._api_client.configuration
        headers: dict[str, str] = {}
        token = cfg.get_api_key_with_prefix("BearerToken") or cfg.get_api_key_with_prefix("authorization")
        if token:
            headers["Authorization"] = token

        context = ssl.create_default_context(cafile=cfg.ssl_ca_cert or None)
        if not cfg.verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if cfg.cert_file and cfg.key_file:
            context.load_cert_chain(cfg.cert_file, cfg.key_file)
        return ProbeSettings(host=cfg.host, headers=headers, verify=context)

    async def close(self) -> None:
        await self._api_client.close()

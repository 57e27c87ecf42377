"""Reads TopologyFacts from the cluster.

Failures are folded into ``TopologyFacts.fetch_error`` rather than raised,
so the tolerance model can still apply the rules that do not depend on the
missing facts.
"""

from __future__ import annotations

from typing import Any

from kubeverdict.cluster.client import ClusterClient
from kubeverdict.errors import ListError
from kubeverdict.models.topology import ControlPlaneTopology, TopologyFacts, Version
from kubeverdict.observability.logging import get_logger

_logger = get_logger("tolerance.topology")


def _control_plane_topology(infra: dict[str, Any]) -> ControlPlaneTopology | None:
    raw = infra.get("status", {}).get("controlPlaneTopology", "")
    try:
        return ControlPlaneTopology(raw)
    except ValueError:
        return None


# Infrastructure platform types whose e2e provider name differs
_PROVIDER_NAMES = {"gcp": "gce"}


def _provider(infra: dict[str, Any]) -> str:
    status = infra.get("status", {})
    platform = str(status.get("platformStatus", {}).get("type") or status.get("platform") or "").lower()
    return _PROVIDER_NAMES.get(platform, platform)


def version_baseline(versions: list[str]) -> Version | None:
    """Lowest parseable version in ``versions``; None if there is none."""
    parsed: list[Version] = []
    for raw in versions:
        try:
            parsed.append(Version.parse(raw))
        except ValueError:
            _logger.debug("unparseable_cluster_version", version=raw)
    return min(parsed) if parsed else None


async def fetch_topology_facts(client: ClusterClient) -> TopologyFacts:
    """Fetch the Infrastructure and ClusterVersion snapshots into TopologyFacts."""
    errors: list[str] = []
    topology: ControlPlaneTopology | None = None
    provider = ""
    baseline: Version | None = None

    try:
        infra = await client.get_infrastructure()
        topology = _control_plane_topology(infra)
        provider = _provider(infra)
    except ListError as exc:
        errors.append(str(exc))

    try:
        baseline = version_baseline(await client.list_cluster_versions())
    except ListError as exc:
        errors.append(str(exc))

    if errors:
        _logger.warning("topology_fetch_failed", errors=errors)
    facts = TopologyFacts(
        control_plane_topology=topology,
        infrastructure_provider=provider,
        version_baseline=baseline,
        fetch_error="; ".join(errors),
    )
    _logger.info(
        "topology_facts",
        control_plane_topology=str(topology) if topology else None,
        provider=provider,
        baseline=str(baseline) if baseline else None,
    )
    return facts

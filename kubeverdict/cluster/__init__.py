"""Cluster API access for kubeverdict.

Exposes:
    ClusterClient            -- Protocol every monitor test lists through.
    KubernetesClusterClient  -- kubernetes-asyncio implementation.
"""

from kubeverdict.cluster.client import ClusterClient, ClusterClientFactory, KubernetesClusterClient, ProbeSettings

__all__ = ["ClusterClient", "ClusterClientFactory", "KubernetesClusterClient", "ProbeSettings"]

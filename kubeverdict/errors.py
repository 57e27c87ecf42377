"""Exception taxonomy for monitor test collection.

Only collection problems are exceptions.  Classification and tolerance
outcomes are always values: "cannot classify" is a verdict, and a probe
timeout becomes a failed Sample.
"""

from __future__ import annotations


class MonitorTestError(Exception):
    """Base class for errors raised by monitor test collection."""


class ClientInitError(MonitorTestError):
    """Raised when a monitor test cannot build its cluster client."""

    def __init__(self, plugin: str, cause: Exception) -> None:
        super().__init__(f"Monitor test '{plugin}' could not initialise its cluster client: {cause}")
        self.plugin = plugin
        self.cause = cause


class ListError(MonitorTestError):
    """Raised when a single listing call against the cluster API fails."""

    def __init__(self, resource: str, namespace: str, cause: Exception) -> None:
        where = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"Listing {resource}{where} failed: {cause}")
        self.resource = resource
        self.namespace = namespace
        self.cause = cause


class ProbeTimeoutError(MonitorTestError):
    """Raised by a probe that did not answer within its timeout."""

    def __init__(self, target: str, timeout: float) -> None:
        super().__init__(f"probe of '{target}' timed out after {timeout:g}s")
        self.target = target
        self.timeout = timeout


class LifecycleError(MonitorTestError):
    """Raised when a lifecycle phase is invoked out of order."""

    def __init__(self, plugin: str, state: str, phase: str) -> None:
        super().__init__(f"Monitor test '{plugin}' cannot run phase '{phase}' from state '{state}'")
        self.plugin = plugin
        self.state = state
        self.phase = phase

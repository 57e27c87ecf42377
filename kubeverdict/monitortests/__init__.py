"""Monitor tests and the lifecycle controller that runs them.

Submodules:
    base                -- MonitorTest interface and RunContext.
    controller          -- LifecycleController: phase ordering and failure isolation.
    required_scc        -- Required-SCC annotation compliance test.
    backend_disruption  -- API availability test against the disruption budget.
    registry            -- Builds the configured set of tests for a run.
"""

from kubeverdict.monitortests.base import MonitorTest, ResourcesMap, RunContext
from kubeverdict.monitortests.controller import LifecycleController, Phase, PluginState, RunResult

__all__ = [
    "LifecycleController",
    "MonitorTest",
    "Phase",
    "PluginState",
    "ResourcesMap",
    "RunContext",
    "RunResult",
]

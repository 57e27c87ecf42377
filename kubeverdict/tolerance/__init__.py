"""Tolerance model: topology facts to disruption budgets."""

from kubeverdict.tolerance.model import TOLERANCE_RULES, ToleranceRule, compute_budget, select_rule
from kubeverdict.tolerance.topology import fetch_topology_facts, version_baseline

__all__ = [
    "TOLERANCE_RULES",
    "ToleranceRule",
    "compute_budget",
    "fetch_topology_facts",
    "select_rule",
    "version_baseline",
]

"""Core data structures for kubeverdict."""

from kubeverdict.models.compliance import (
    ClusterObjectRecord,
    ComplianceVerdict,
    Compliant,
    MissingAnnotationNoSuggestion,
    MissingAnnotationSuggest,
    NonStandardScopeViolation,
    OwnerReference,
    VerdictKind,
)
from kubeverdict.models.config import KubeVerdictConfig
from kubeverdict.models.evidence import Interval, IntervalKind, Sample
from kubeverdict.models.topology import (
    ControlPlaneTopology,
    DisruptionBudget,
    TopologyFacts,
    Version,
)
from kubeverdict.models.verdicts import JUnitTestCase, PluginFailure, TestCase, TestOutcome

__all__ = [
    "ClusterObjectRecord",
    "ComplianceVerdict",
    "Compliant",
    "ControlPlaneTopology",
    "DisruptionBudget",
    "Interval",
    "IntervalKind",
    "JUnitTestCase",
    "KubeVerdictConfig",
    "MissingAnnotationNoSuggestion",
    "MissingAnnotationSuggest",
    "NonStandardScopeViolation",
    "OwnerReference",
    "PluginFailure",
    "Sample",
    "TestCase",
    "TestOutcome",
    "TopologyFacts",
    "VerdictKind",
    "Version",
]

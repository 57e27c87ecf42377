"""Compliance classification of cluster objects under an annotation policy."""

from kubeverdict.compliance.classifier import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    ComplianceClassifier,
    CompliancePolicy,
    format_owners,
)

__all__ = [
    "CLASSIFICATION_RULES",
    "ClassificationRule",
    "ComplianceClassifier",
    "CompliancePolicy",
    "format_owners",
]

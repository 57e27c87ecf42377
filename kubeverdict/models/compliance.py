"""Cluster object records and the compliance verdicts computed for them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class OwnerReference:
    """The ``kind``/``name`` pair of one ``metadata.ownerReferences`` entry."""

    kind: str
    name: str


@dataclass(frozen=True)
class ClusterObjectRecord:
    """Point-in-time view of one namespaced object.

    Only the fields the classifier reads are kept.  Immutable for the
    duration of a classification pass.
    """

    namespace: str
    name: str
    owner_references: tuple[OwnerReference, ...] = ()
    annotations: dict[str, str] = field(default_factory=dict)


class VerdictKind(StrEnum):
    """Discriminator for ComplianceVerdict variants."""

    OK = "ok"
    MISSING_ANNOTATION_SUGGEST = "missing_annotation_suggest"
    MISSING_ANNOTATION_NO_SUGGESTION = "missing_annotation_no_suggestion"
    NON_STANDARD_SCOPE_VIOLATION = "non_standard_scope_violation"


@dataclass(frozen=True)
class Compliant:
    kind = VerdictKind.OK


@dataclass(frozen=True)
class MissingAnnotationSuggest:
    """Required annotation absent; ``value`` is a safe suggestion for it."""

    value: str
    non_standard: bool = False
    kind = VerdictKind.MISSING_ANNOTATION_SUGGEST


@dataclass(frozen=True)
class MissingAnnotationNoSuggestion:
    """Required annotation absent and no suggestion can be made.

    This is the classifier's "cannot determine" outcome.
    """

    reason: str
    validated: str = ""
    kind = VerdictKind.MISSING_ANNOTATION_NO_SUGGESTION


@dataclass(frozen=True)
class NonStandardScopeViolation:
    """Validated value is allow-listed, but not for the object's namespace."""

    value: str
    allowed_namespaces: tuple[str, ...]
    annotation_present: bool = False
    kind = VerdictKind.NON_STANDARD_SCOPE_VIOLATION


ComplianceVerdict = Compliant | MissingAnnotationSuggest | MissingAnnotationNoSuggestion | NonStandardScopeViolation

"""Compliance classifier: ordered-rule classification of cluster objects.

For every in-scope object, the classifier reads a *required* annotation (a
workload's declaration of the capability it needs) and a *validated*
annotation (the capability the platform actually admitted it with), and
walks an ordered list of guarded rules; the first rule that matches yields
the verdict.

    1. required present      -> Compliant, or NonStandardScopeViolation when the
                                validated value is allow-listed elsewhere
    2. validated empty       -> MissingAnnotationNoSuggestion
    3. validated is default  -> MissingAnnotationSuggest
    4. validated allow-listed-> MissingAnnotationSuggest (non-standard) in an
                                allowed namespace, NonStandardScopeViolation otherwise
    5. anything else         -> MissingAnnotationNoSuggestion (custom value)

Verdicts are values, never exceptions, and classification is a pure
function of the record and the policy.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from kubeverdict.models.compliance import (
    ClusterObjectRecord,
    ComplianceVerdict,
    Compliant,
    MissingAnnotationNoSuggestion,
    MissingAnnotationSuggest,
    NonStandardScopeViolation,
)
from kubeverdict.observability.logging import get_logger
from kubeverdict.observability.metrics import compliance_verdicts_total

_logger = get_logger("compliance.classifier")

REASON_NO_VALIDATED = "no validated value on object"
REASON_CUSTOM = "custom/unrecognized validated value"


@dataclass(frozen=True)
class CompliancePolicy:
    """Everything the classifier needs to know about one capability check.

    Args:
        required_annotation:  Annotation a workload sets to declare its capability.
        validated_annotation: Annotation the platform sets at admission.
        default_values:       Well-known validated values that are safe to suggest.
        allowed_namespaces:   Non-standard validated values mapped to the only
                              namespaces where they are permitted.
        permanent_root:       Namespace name of the platform root namespace.
        permanent_prefix:     Prefix of permanent platform namespaces.
        excluded_prefix:      Prefix of dynamically generated namespaces that
                              otherwise match ``permanent_prefix``.
        label:                Name of the capability in violation messages.
        required_short_name:  Short name of the required annotation in messages.
    """

    required_annotation: str
    validated_annotation: str
    label: str = "value"
    required_short_name: str = ""
    default_values: frozenset[str] = field(default_factory=frozenset)
    allowed_namespaces: Mapping[str, frozenset[str]] = field(default_factory=dict)
    permanent_root: str = ""
    permanent_prefix: str = ""
    excluded_prefix: str = ""


@dataclass(frozen=True)
class _Facts:
    """Inputs every rule guard sees for one record."""

    namespace: str
    required_present: bool
    validated: str
    allowed: frozenset[str] | None

    @property
    def allow_listed(self) -> bool:
        return self.allowed is not None

    @property
    def namespace_allowed(self) -> bool:
        return self.allowed is not None and self.namespace in self.allowed


@dataclass(frozen=True)
class ClassificationRule:
    """One guarded rule: ``verdict`` applies when ``matches`` is true."""

    name: str
    matches: Callable[[_Facts, CompliancePolicy], bool]
    verdict: Callable[[_Facts, CompliancePolicy], ComplianceVerdict]


def _sorted_allowed(facts: _Facts) -> tuple[str, ...]:
    return tuple(sorted(facts.allowed or ()))


def _required_present_verdict(facts: _Facts, _policy: CompliancePolicy) -> ComplianceVerdict:
    if facts.allow_listed and not facts.namespace_allowed:
        return NonStandardScopeViolation(
            value=facts.validated,
            allowed_namespaces=_sorted_allowed(facts),
            annotation_present=True,
        )
    return Compliant()


def _allow_listed_verdict(facts: _Facts, _policy: CompliancePolicy) -> ComplianceVerdict:
    if facts.namespace_allowed:
        return MissingAnnotationSuggest(value=facts.validated, non_standard=True)
    return NonStandardScopeViolation(value=facts.validated, allowed_namespaces=_sorted_allowed(facts))


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        name="required-present",
        matches=lambda f, p: f.required_present,
        verdict=_required_present_verdict,
    ),
    ClassificationRule(
        name="validated-empty",
        matches=lambda f, p: not f.validated,
        verdict=lambda f, p: MissingAnnotationNoSuggestion(reason=REASON_NO_VALIDATED),
    ),
    ClassificationRule(
        name="validated-default",
        matches=lambda f, p: f.validated in p.default_values,
        verdict=lambda f, p: MissingAnnotationSuggest(value=f.validated),
    ),
    ClassificationRule(
        name="validated-allow-listed",
        matches=lambda f, p: f.allow_listed,
        verdict=_allow_listed_verdict,
    ),
    ClassificationRule(
        name="validated-custom",
        matches=lambda f, p: True,
        verdict=lambda f, p: MissingAnnotationNoSuggestion(reason=REASON_CUSTOM, validated=f.validated),
    ),
)


def format_owners(record: ClusterObjectRecord) -> str:
    """Return `` (owners: kind/name, ...)`` with lower-cased kinds, or "" if unowned."""
    if not record.owner_references:
        return ""
    owners = ", ".join(f"{ref.kind.lower()}/{ref.name}" for ref in record.owner_references)
    return f" (owners: {owners})"


class ComplianceClassifier:
    """Applies CLASSIFICATION_RULES under a CompliancePolicy."""

    def __init__(
        self,
        policy: CompliancePolicy,
        rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
    ) -> None:
        self.policy = policy
        self._rules = rules

    def in_scope(self, namespace: str) -> bool:
        """True for ``default``, ``kube-*`` and permanent platform namespaces."""
        if namespace == "default" or namespace.startswith("kube-"):
            return True
        policy = self.policy
        is_platform = bool(policy.permanent_root) and namespace == policy.permanent_root
        if policy.permanent_prefix and namespace.startswith(policy.permanent_prefix):
            is_platform = True
        if policy.excluded_prefix and namespace.startswith(policy.excluded_prefix):
            is_platform = False
        return is_platform

    def _facts(self, record: ClusterObjectRecord) -> _Facts:
        validated = record.annotations.get(self.policy.validated_annotation, "")
        allowed = self.policy.allowed_namespaces.get(validated)
        return _Facts(
            namespace=record.namespace,
            required_present=self.policy.required_annotation in record.annotations,
            validated=validated,
            allowed=frozenset(allowed) if allowed is not None else None,
        )

    def classify(self, record: ClusterObjectRecord) -> ComplianceVerdict:
        """Return the verdict of the first matching rule for ``record``."""
        facts = self._facts(record)
        for rule in self._rules:
            if rule.matches(facts, self.policy):
                verdict = rule.verdict(facts, self.policy)
                compliance_verdicts_total.labels(verdict=verdict.kind).inc()
                return verdict
        raise ValueError("classification rules must end with a catch-all rule")

    def describe(self, record: ClusterObjectRecord, verdict: ComplianceVerdict) -> str | None:
        """Human-readable violation message for ``verdict``; None when compliant."""
        required = self.policy.required_short_name or self.policy.required_annotation
        label = self.policy.label
        ns = record.namespace
        missing = f"annotation missing from pod '{record.name}'{format_owners(record)}"

        match verdict:
            case Compliant():
                return None
            case NonStandardScopeViolation(value=value, allowed_namespaces=allowed, annotation_present=True):
                return (
                    f"pod '{record.name}' has a non-standard {label} '{value}' not allowed in "
                    f"namespace '{ns}'; allowed namespaces are: {', '.join(allowed)}"
                )
            case NonStandardScopeViolation(value=value, allowed_namespaces=allowed):
                return (
                    f"{missing}; pod is using non-standard {label} '{value}' not allowed in namespace "
                    f"'{ns}'; allowed namespaces are: {', '.join(allowed)}"
                )
            case MissingAnnotationSuggest(value=value, non_standard=True):
                return f"{missing}; suggested {required}: '{value}', this is a non-standard {label}"
            case MissingAnnotationSuggest(value=value):
                return f"{missing}; suggested {required}: '{value}'"
            case MissingAnnotationNoSuggestion(reason=reason, validated=validated) if reason == REASON_CUSTOM:
                return f"{missing}; cannot suggest {required}, validated {label} '{validated}' is a custom {label}"
            case MissingAnnotationNoSuggestion(reason=reason) if reason == REASON_NO_VALIDATED:
                return f"{missing}; cannot suggest {required}, no validated {label} on pod"
            case MissingAnnotationNoSuggestion(reason=reason):
                return f"{missing}; cannot suggest {required}, {reason}"
        return None

    def violations(self, records: Iterable[ClusterObjectRecord]) -> list[str]:
        """Classify ``records`` and return the violation messages in listing order."""
        messages: list[str] = []
        for record in records:
            message = self.describe(record, self.classify(record))
            if message is not None:
                messages.append(message)
        return messages

"""Tests for the compliance classifier under the required-SCC policy.

Covers rule order, every verdict variant, namespace scope and the
violation messages written into test output.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubeverdict.compliance.classifier import (
    CLASSIFICATION_RULES,
    REASON_CUSTOM,
    REASON_NO_VALIDATED,
    ComplianceClassifier,
    format_owners,
)
from kubeverdict.models.compliance import (
    ClusterObjectRecord,
    Compliant,
    MissingAnnotationNoSuggestion,
    MissingAnnotationSuggest,
    NonStandardScopeViolation,
    OwnerReference,
)
from kubeverdict.monitortests.required_scc import (
    NON_STANDARD_SCC_NAMESPACES,
    REQUIRED_SCC_ANNOTATION,
    REQUIRED_SCC_POLICY,
    VALIDATED_SCC_ANNOTATION,
)

# ---------------------------------------------------------------------------
# Helper factories
# ---------------------------------------------------------------------------


def _make_pod(
    namespace: str = "kube-foo",
    name: str = "pod-1",
    validated: str | None = None,
    required: str | None = None,
    owners: tuple[OwnerReference, ...] = (),
) -> ClusterObjectRecord:
    annotations: dict[str, str] = {}
    if validated is not None:
        annotations[VALIDATED_SCC_ANNOTATION] = validated
    if required is not None:
        annotations[REQUIRED_SCC_ANNOTATION] = required
    return ClusterObjectRecord(namespace=namespace, name=name, owner_references=owners, annotations=annotations)


def _classifier() -> ComplianceClassifier:
    return ComplianceClassifier(REQUIRED_SCC_POLICY)


# =====================================================================
# classify()
# =====================================================================


class TestClassify:
    def test_no_annotations_cannot_suggest(self) -> None:
        verdict = _classifier().classify(_make_pod(namespace="kube-foo"))
        assert verdict == MissingAnnotationNoSuggestion(reason=REASON_NO_VALIDATED)

    def test_non_standard_value_in_allowed_namespace_is_suggested(self) -> None:
        pod = _make_pod(namespace="openshift-monitoring", validated="node-exporter")
        verdict = _classifier().classify(pod)
        assert verdict == MissingAnnotationSuggest(value="node-exporter", non_standard=True)

    def test_non_standard_value_outside_allowed_namespace_is_violation(self) -> None:
        pod = _make_pod(namespace="openshift-machine-api", validated="node-exporter")
        verdict = _classifier().classify(pod)
        assert verdict == NonStandardScopeViolation(
            value="node-exporter",
            allowed_namespaces=("openshift-monitoring",),
        )

    @pytest.mark.parametrize("scc", ["restricted-v2", "privileged", "hostnetwork", "nonroot-v2"])
    def test_default_value_is_suggested(self, scc: str) -> None:
        verdict = _classifier().classify(_make_pod(namespace="openshift-etcd", validated=scc))
        assert verdict == MissingAnnotationSuggest(value=scc)

    def test_custom_value_cannot_be_suggested(self) -> None:
        verdict = _classifier().classify(_make_pod(validated="my-team-scc"))
        assert verdict == MissingAnnotationNoSuggestion(reason=REASON_CUSTOM, validated="my-team-scc")

    def test_required_present_is_compliant(self) -> None:
        pod = _make_pod(validated="restricted-v2", required="restricted-v2")
        assert _classifier().classify(pod) == Compliant()

    def test_required_present_without_validated_is_compliant(self) -> None:
        assert _classifier().classify(_make_pod(required="anyuid")) == Compliant()

    def test_required_present_does_not_excuse_non_standard_scope(self) -> None:
        pod = _make_pod(namespace="openshift-etcd", validated="machine-api-termination-handler", required="x")
        verdict = _classifier().classify(pod)
        assert isinstance(verdict, NonStandardScopeViolation)
        assert verdict.annotation_present is True
        assert verdict.allowed_namespaces == ("openshift-machine-api",)

    def test_required_present_with_allowed_non_standard_is_compliant(self) -> None:
        pod = _make_pod(namespace="openshift-monitoring", validated="node-exporter", required="node-exporter")
        assert _classifier().classify(pod) == Compliant()

    def test_rule_order_is_first_match_wins(self) -> None:
        assert [r.name for r in CLASSIFICATION_RULES] == [
            "required-present",
            "validated-empty",
            "validated-default",
            "validated-allow-listed",
            "validated-custom",
        ]

    @given(
        validated=st.none() | st.sampled_from(["", "restricted-v2", "node-exporter", "custom"]) | st.text(max_size=12),
        required=st.none() | st.text(max_size=8),
        namespace=st.sampled_from(["default", "kube-system", "openshift-monitoring", "openshift-machine-api"]),
    )
    def test_classification_is_idempotent(self, validated: str | None, required: str | None, namespace: str) -> None:
        classifier = _classifier()
        pod = _make_pod(namespace=namespace, validated=validated, required=required)
        assert classifier.classify(pod) == classifier.classify(pod)

    @given(
        namespace=st.text(max_size=40),
        validated=st.none()
        | st.sampled_from(["", "restricted-v2", "privileged", "anyuid"])
        | st.text(max_size=24).filter(lambda v: v not in NON_STANDARD_SCC_NAMESPACES),
        required=st.text(max_size=24),
    )
    def test_declared_annotation_with_standard_validated_is_compliant(
        self, namespace: str, validated: str | None, required: str
    ) -> None:
        pod = _make_pod(namespace=namespace, validated=validated, required=required)
        assert _classifier().classify(pod) == Compliant()


# =====================================================================
# in_scope()
# =====================================================================


class TestInScope:
    @pytest.mark.parametrize(
        "namespace",
        ["default", "kube-system", "kube-foo", "openshift", "openshift-etcd", "openshift-monitoring"],
    )
    def test_platform_namespaces_are_in_scope(self, namespace: str) -> None:
        assert _classifier().in_scope(namespace) is True

    @pytest.mark.parametrize(
        "namespace",
        ["my-app", "openshift-must-gather-x7k2p", "openshiftish", "e2e-test-default"],
    )
    def test_other_namespaces_are_out_of_scope(self, namespace: str) -> None:
        assert _classifier().in_scope(namespace) is False


# =====================================================================
# describe() / violations()
# =====================================================================


class TestDescribe:
    def test_compliant_has_no_message(self) -> None:
        pod = _make_pod(required="restricted-v2")
        assert _classifier().describe(pod, Compliant()) is None

    def test_suggestion_message(self) -> None:
        pod = _make_pod(name="etcd-0", validated="privileged")
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message == "annotation missing from pod 'etcd-0'; suggested required-scc: 'privileged'"

    def test_non_standard_suggestion_is_flagged(self) -> None:
        pod = _make_pod(namespace="openshift-monitoring", name="node-exporter-abc", validated="node-exporter")
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message is not None
        assert message.endswith("suggested required-scc: 'node-exporter', this is a non-standard SCC")

    def test_scope_violation_names_allowed_namespaces(self) -> None:
        pod = _make_pod(namespace="openshift-machine-api", name="p", validated="node-exporter")
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message is not None
        assert "non-standard SCC 'node-exporter' not allowed in namespace 'openshift-machine-api'" in message
        assert message.endswith("allowed namespaces are: openshift-monitoring")

    def test_custom_value_message(self) -> None:
        pod = _make_pod(name="p", validated="my-team-scc")
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message == (
            "annotation missing from pod 'p'; cannot suggest required-scc, "
            "validated SCC 'my-team-scc' is a custom SCC"
        )

    def test_missing_validated_message(self) -> None:
        pod = _make_pod(name="p")
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message == "annotation missing from pod 'p'; cannot suggest required-scc, no validated SCC on pod"

    def test_owners_are_listed(self) -> None:
        owners = (OwnerReference(kind="ReplicaSet", name="api-7d9f"), OwnerReference(kind="Node", name="n1"))
        pod = _make_pod(name="api-7d9f-x", validated="restricted-v2", owners=owners)
        message = _classifier().describe(pod, _classifier().classify(pod))
        assert message is not None
        assert "pod 'api-7d9f-x' (owners: replicaset/api-7d9f, node/n1);" in message

    def test_violations_keep_listing_order_and_skip_compliant(self) -> None:
        pods = [
            _make_pod(name="b", validated="restricted-v2"),
            _make_pod(name="ok", required="restricted-v2"),
            _make_pod(name="a"),
        ]
        messages = _classifier().violations(pods)
        assert len(messages) == 2
        assert "'b'" in messages[0]
        assert "'a'" in messages[1]


class TestFormatOwners:
    def test_unowned_is_empty(self) -> None:
        assert format_owners(_make_pod()) == ""

    def test_kinds_are_lower_cased(self) -> None:
        pod = _make_pod(owners=(OwnerReference(kind="DaemonSet", name="node-exporter"),))
        assert format_owners(pod) == " (owners: daemonset/node-exporter)"

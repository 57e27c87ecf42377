"""Tests for the tolerance model and topology fact fetching."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubeverdict.errors import ListError
from kubeverdict.models.topology import ControlPlaneTopology, TopologyFacts, Version
from kubeverdict.tolerance.model import (
    DEFAULT_FRACTION,
    TOLERANCE_RULES,
    ToleranceRule,
    compute_budget,
    select_rule,
)
from kubeverdict.tolerance.topology import fetch_topology_facts, version_baseline

_RUN = timedelta(minutes=100)

_facts = st.builds(
    TopologyFacts,
    control_plane_topology=st.none() | st.sampled_from(list(ControlPlaneTopology)),
    infrastructure_provider=st.sampled_from(["", "azure", "AWS", "gce", "baremetal", "vsphere"]),
    version_baseline=st.none()
    | st.builds(Version, st.integers(3, 5), st.integers(0, 20), st.integers(0, 30)),
    fetch_error=st.sampled_from(["", "forbidden"]),
)


class _FakeClient:
    def __init__(
        self,
        infra: dict[str, Any] | Exception | None = None,
        versions: list[str] | Exception | None = None,
    ) -> None:
        self._infra = infra if infra is not None else {}
        self._versions = versions if versions is not None else []

    async def get_infrastructure(self) -> dict[str, Any]:
        if isinstance(self._infra, Exception):
            raise self._infra
        return self._infra

    async def list_cluster_versions(self) -> list[str]:
        if isinstance(self._versions, Exception):
            raise self._versions
        return self._versions


# ---------------------------------------------------------------------------
# Rule selection
# ---------------------------------------------------------------------------


class TestSelectRule:
    def test_single_replica_non_azure_allows_fifteen_percent(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.SINGLE_REPLICA,
            infrastructure_provider="aws",
            version_baseline=Version(4, 14),
        )
        budget = compute_budget(facts, _RUN)
        assert budget.allowed_fraction == 0.15
        assert budget.allowed_duration == timedelta(minutes=15)
        assert budget.rule == "single-replica"

    def test_single_replica_azure_allows_twenty_three_percent(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.SINGLE_REPLICA,
            infrastructure_provider="Azure",
            version_baseline=Version(4, 14),
        )
        assert select_rule(facts).name == "single-replica-azure"
        assert compute_budget(facts, _RUN).allowed_duration == timedelta(minutes=23)

    @pytest.mark.parametrize("provider", ["azure", "aws", "gce"])
    def test_fixed_provider_allows_nothing(self, provider: str) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.HIGHLY_AVAILABLE,
            infrastructure_provider=provider,
            version_baseline=Version(4, 8),
        )
        budget = compute_budget(facts, _RUN)
        assert budget.allowed_fraction == 0.0
        assert budget.allowed_duration == timedelta(0)
        assert budget.caveats == ()

    def test_old_version_on_strict_provider_falls_back_to_default(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.HIGHLY_AVAILABLE,
            infrastructure_provider="aws",
            version_baseline=Version(4, 7, 12),
        )
        assert select_rule(facts).name == "default"

    def test_other_provider_uses_default(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.HIGHLY_AVAILABLE,
            infrastructure_provider="baremetal",
            version_baseline=Version(4, 16),
        )
        assert compute_budget(facts, _RUN).allowed_fraction == DEFAULT_FRACTION

    def test_rule_order_is_auditable(self) -> None:
        assert [r.name for r in TOLERANCE_RULES] == [
            "single-replica-azure",
            "single-replica",
            "fixed-provider",
            "default",
        ]

    def test_rules_without_catch_all_raise(self) -> None:
        never = ToleranceRule(name="never", applies=lambda f: False, fraction=1.0)
        with pytest.raises(ValueError):
            select_rule(TopologyFacts(), (never,))


class TestCaveats:
    def test_missing_facts_fall_through_with_caveats(self) -> None:
        facts = TopologyFacts(fetch_error="Listing infrastructures/cluster failed: forbidden")
        budget = compute_budget(facts, _RUN)
        assert budget.rule == "default"
        assert len(budget.caveats) == 2
        assert "could not read cluster topology" in budget.caveats[0]
        assert "4.8" in budget.caveats[1]

    def test_unknown_versions_never_yield_zero_tolerance(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.HIGHLY_AVAILABLE,
            infrastructure_provider="gce",
        )
        budget = compute_budget(facts, _RUN)
        assert budget.allowed_fraction == DEFAULT_FRACTION
        assert budget.caveats


class TestBudgetProperties:
    @given(facts=_facts, minutes=st.integers(0, 600))
    def test_duration_is_fraction_of_run(self, facts: TopologyFacts, minutes: int) -> None:
        total = timedelta(minutes=minutes)
        budget = compute_budget(facts, total)
        assert budget.allowed_fraction in {0.23, 0.15, 0.0, DEFAULT_FRACTION}
        assert budget.allowed_duration == total * budget.allowed_fraction

    @given(facts=_facts)
    def test_single_replica_is_never_stricter_than_fifteen_percent(self, facts: TopologyFacts) -> None:
        budget = compute_budget(facts, _RUN)
        if facts.control_plane_topology == ControlPlaneTopology.SINGLE_REPLICA:
            assert budget.allowed_fraction >= 0.15

    @given(facts=_facts)
    def test_caveats_present_exactly_when_facts_missing(self, facts: TopologyFacts) -> None:
        budget = compute_budget(facts, _RUN)
        missing = bool(facts.fetch_error) or facts.version_baseline is None
        assert bool(budget.caveats) is missing


# ---------------------------------------------------------------------------
# Topology facts
# ---------------------------------------------------------------------------


class TestVersionBaseline:
    def test_lowest_version_wins(self) -> None:
        assert version_baseline(["4.14.3", "4.7.0", "4.12.1"]) == Version(4, 7, 0)

    def test_unparseable_versions_are_ignored(self) -> None:
        assert version_baseline(["garbage", "v4.10"]) == Version(4, 10)

    def test_empty_history_has_no_baseline(self) -> None:
        assert version_baseline([]) is None

    def test_parse_keeps_prerelease_and_drops_build(self) -> None:
        assert Version.parse("4.16.0-rc.2") == Version(4, 16, 0, "rc.2")
        assert Version.parse("4.16.0+build.5") == Version(4, 16, 0)
        assert str(Version.parse("4.16")) == "4.16.0"
        assert str(Version.parse("4.8.0-rc.1")) == "4.8.0-rc.1"

    def test_prerelease_sorts_below_release(self) -> None:
        assert Version.parse("4.8.0-rc.1") < Version(4, 8)
        assert Version.parse("4.8.0-rc.1") < Version.parse("4.8.0-rc.2")
        assert Version.parse("4.8.0-rc.2") < Version.parse("4.8.0-rc.10")
        assert Version.parse("4.8.0-1") < Version.parse("4.8.0-alpha")
        assert Version.parse("4.8.0-rc") < Version.parse("4.8.0-rc.1")
        assert Version.parse("4.7.9") < Version.parse("4.8.0-rc.1")

    def test_release_candidate_in_history_is_the_baseline(self) -> None:
        assert version_baseline(["4.8.2", "4.8.0-rc.1"]) == Version(4, 8, 0, "rc.1")

    def test_release_candidate_baseline_does_not_meet_fix_baseline(self) -> None:
        facts = TopologyFacts(
            control_plane_topology=ControlPlaneTopology.HIGHLY_AVAILABLE,
            infrastructure_provider="aws",
            version_baseline=version_baseline(["4.8.2", "4.8.0-rc.1"]),
        )
        budget = compute_budget(facts, _RUN)
        assert budget.rule == "default"
        assert budget.allowed_fraction == DEFAULT_FRACTION


class TestFetchTopologyFacts:
    async def test_reads_topology_provider_and_baseline(self) -> None:
        client = _FakeClient(
            infra={"status": {"controlPlaneTopology": "SingleReplica", "platformStatus": {"type": "Azure"}}},
            versions=["4.15.2", "4.14.9"],
        )
        facts = await fetch_topology_facts(client)  # type: ignore[arg-type]
        assert facts.control_plane_topology is ControlPlaneTopology.SINGLE_REPLICA
        assert facts.infrastructure_provider == "azure"
        assert facts.version_baseline == Version(4, 14, 9)
        assert facts.fetch_error == ""

    async def test_legacy_platform_field_is_used(self) -> None:
        client = _FakeClient(infra={"status": {"platform": "AWS"}}, versions=["4.9.0"])
        facts = await fetch_topology_facts(client)  # type: ignore[arg-type]
        assert facts.infrastructure_provider == "aws"
        assert facts.control_plane_topology is None

    @pytest.mark.parametrize("status_key", ["platformStatus", "platform"])
    async def test_gcp_platform_maps_to_gce_provider(self, status_key: str) -> None:
        status = {"controlPlaneTopology": "HighlyAvailable"}
        status[status_key] = {"type": "GCP"} if status_key == "platformStatus" else "GCP"  # type: ignore[assignment]
        client = _FakeClient(infra={"status": status}, versions=["4.14.3", "4.13.0"])
        facts = await fetch_topology_facts(client)  # type: ignore[arg-type]
        assert facts.infrastructure_provider == "gce"

        budget = compute_budget(facts, _RUN)
        assert budget.rule == "fixed-provider"
        assert budget.allowed_fraction == 0.0

    async def test_list_errors_become_fetch_error(self) -> None:
        client = _FakeClient(
            infra=ListError("infrastructures/cluster", "", RuntimeError("forbidden")),
            versions=ListError("clusterversions/version", "", RuntimeError("not found")),
        )
        facts = await fetch_topology_facts(client)  # type: ignore[arg-type]
        assert facts.control_plane_topology is None
        assert facts.version_baseline is None
        assert "forbidden" in facts.fetch_error
        assert "not found" in facts.fetch_error

"""Tolerance model: how much API disruption a run may show.

The policy is an ordered list of guarded rules evaluated top to bottom; the
first rule whose guard matches sets the tolerated fraction of the run.

  1. single-replica control plane on azure      -> 0.23
  2. single-replica control plane                -> 0.15
  3. azure/aws/gce with every version >= 4.8     -> 0
  4. anything else                               -> 0.08

Single-node control planes cannot avoid downtime while the API server
restarts, and azure single-node upgrades are observed to be worse.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from kubeverdict.models.topology import ControlPlaneTopology, DisruptionBudget, TopologyFacts, Version
from kubeverdict.observability.logging import get_logger

_logger = get_logger("tolerance.model")

FIXED_BASELINE = Version(4, 8)
STRICT_PROVIDERS = frozenset({"azure", "aws", "gce"})
DEFAULT_FRACTION = 0.08


@dataclass(frozen=True)
class ToleranceRule:
    """One guarded rule of the tolerance policy."""

    name: str
    applies: Callable[[TopologyFacts], bool]
    fraction: float


def _single_replica(facts: TopologyFacts) -> bool:
    return facts.control_plane_topology == ControlPlaneTopology.SINGLE_REPLICA


def _provider(facts: TopologyFacts) -> str:
    return facts.infrastructure_provider.lower()


def _has_all_fixes(facts: TopologyFacts) -> bool:
    return facts.version_baseline is not None and facts.version_baseline >= FIXED_BASELINE


TOLERANCE_RULES: tuple[ToleranceRule, ...] = (
    ToleranceRule(
        name="single-replica-azure",
        applies=lambda f: _single_replica(f) and _provider(f) == "azure",
        fraction=0.23,
    ),
    ToleranceRule(
        name="single-replica",
        applies=_single_replica,
        fraction=0.15,
    ),
    ToleranceRule(
        name="fixed-provider",
        applies=lambda f: _provider(f) in STRICT_PROVIDERS and _has_all_fixes(f),
        fraction=0.0,
    ),
    ToleranceRule(
        name="default",
        applies=lambda f: True,
        fraction=DEFAULT_FRACTION,
    ),
)


def select_rule(facts: TopologyFacts, rules: tuple[ToleranceRule, ...] = TOLERANCE_RULES) -> ToleranceRule:
    """Return the first rule whose guard matches ``facts``."""
    for rule in rules:
        if rule.applies(facts):
            return rule
    raise ValueError("tolerance rules must end with a catch-all rule")


def _caveats(facts: TopologyFacts) -> tuple[str, ...]:
    caveats: list[str] = []
    if facts.fetch_error:
        caveats.append(f"could not read cluster topology: {facts.fetch_error}")
    if facts.version_baseline is None:
        caveats.append(
            f"cannot require full control plane availability, cluster versions could not be "
            f"checked against {FIXED_BASELINE.major}.{FIXED_BASELINE.minor}"
        )
    return tuple(caveats)


def compute_budget(facts: TopologyFacts, total_duration: timedelta) -> DisruptionBudget:
    """Compute the disruption budget for a run of ``total_duration``.

    Never raises on incomplete facts: rules that depend on an unknown fact
    simply do not match, and the gap is reported in ``caveats``.
    """
    rule = select_rule(facts)
    caveats = _caveats(facts)
    for caveat in caveats:
        _logger.warning("tolerance_caveat", caveat=caveat, rule=rule.name)
    if rule.name == "fixed-provider":
        _logger.info("tolerating_no_disruption", baseline=str(facts.version_baseline))

    return DisruptionBudget(
        allowed_fraction=rule.fraction,
        allowed_duration=total_duration * rule.fraction,
        rule=rule.name,
        caveats=caveats,
    )

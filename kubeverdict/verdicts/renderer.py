"""Verdict renderer: evidence and evaluator results to named TestCases.

Each scope unit (a namespace, a backend) renders to exactly one TestCase.
Findings on checks that are still being rolled out render as FLAKE so they
are reported without gating the run.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

from kubeverdict.models.evidence import Interval
from kubeverdict.models.topology import DisruptionBudget
from kubeverdict.models.verdicts import TestCase, TestOutcome
from kubeverdict.observability.metrics import test_cases_total


def _emit(case: TestCase) -> TestCase:
    test_cases_total.labels(outcome=case.outcome).inc()
    return case


def render_findings(name: str, violations: Sequence[str]) -> TestCase:
    """One TestCase for a scope unit: PASS with no violations, else FLAKE."""
    if not violations:
        return _emit(TestCase(name=name, outcome=TestOutcome.PASS))
    return _emit(TestCase(name=name, outcome=TestOutcome.FLAKE, output="\n".join(violations)))


def _format_duration(value: timedelta) -> str:
    return f"{value.total_seconds():.1f}s"


def render_disruption(
    name: str,
    disrupted: timedelta,
    budget: DisruptionBudget,
    intervals: Sequence[Interval] = (),
) -> TestCase:
    """Judge observed disruption against ``budget``.

    PASS when nothing was disrupted, FLAKE when disruption stayed within the
    budget, FAIL when it exceeded it.  Budget caveats are always included in
    the output so an unverified tolerance is visible in the report.
    """
    lines = [
        f"observed disruption {_format_duration(disrupted)}, allowed "
        f"{_format_duration(budget.allowed_duration)} "
        f"({budget.allowed_fraction:.0%} of the run, rule '{budget.rule}')"
    ]
    lines.extend(f"caveat: {caveat}" for caveat in budget.caveats)
    lines.extend(
        f"{interval.start.isoformat()} - {interval.end.isoformat()}: {interval.message}" for interval in intervals
    )
    output = "\n".join(lines)

    if disrupted <= timedelta(0):
        return _emit(TestCase(name=name, outcome=TestOutcome.PASS, output=output))
    if disrupted > budget.allowed_duration:
        return _emit(TestCase(name=name, outcome=TestOutcome.FAIL, output=output))
    return _emit(TestCase(name=name, outcome=TestOutcome.FLAKE, output=output))

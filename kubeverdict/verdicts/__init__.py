"""Verdict rendering and the JUnit report boundary."""

from kubeverdict.verdicts.junit import (
    failure_cases,
    flaked,
    gating_failures,
    to_report_cases,
    write_junit_xml,
)
from kubeverdict.verdicts.renderer import render_disruption, render_findings

__all__ = [
    "failure_cases",
    "flaked",
    "gating_failures",
    "render_disruption",
    "render_findings",
    "to_report_cases",
    "write_junit_xml",
]

"""Test case data structures.

Internally a finding is a single TestCase tagged PASS, FAIL or FLAKE.  The
JUnit report boundary (``kubeverdict.verdicts.junit``) serialises FLAKE into
the legacy duplicate-name Fail+Pass pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TestOutcome(StrEnum):
    """Outcome of one named test."""

    __test__ = False

    PASS = "pass"
    FAIL = "fail"
    FLAKE = "flake"


@dataclass(frozen=True)
class TestCase:
    """One named verdict produced by a monitor test."""

    __test__ = False

    name: str
    outcome: TestOutcome
    output: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome is not TestOutcome.PASS


@dataclass(frozen=True)
class JUnitTestCase:
    """One ``<testcase>`` entry as written to the report.

    ``failure_output`` is set for failing entries, ``skipped`` for plugins
    that raised during a lifecycle phase.
    """

    __test__ = False

    name: str
    failure_output: str | None = None
    system_out: str = ""
    skipped: str | None = None

    @property
    def failed(self) -> bool:
        return self.failure_output is not None


@dataclass(frozen=True)
class PluginFailure:
    """A monitor test that raised during a lifecycle phase.

    ``evidence_kept`` is false when collection failed and the test's
    contribution was dropped, true when a later phase failed and the
    collected evidence still went into the report.
    """

    plugin: str
    phase: str
    error: str
    evidence_kept: bool = False

"""JUnit report boundary.

Downstream tooling reads flakes from the report as a *name* with both a
failing and a passing ``<testcase>`` entry, and gates only on names whose
entries all fail.  Internally a flake is one TestCase tagged FLAKE; this
module is the only place it is expanded into the duplicate-name pair.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from pathlib import Path

from kubeverdict.models.verdicts import JUnitTestCase, PluginFailure, TestCase, TestOutcome
from kubeverdict.observability.logging import get_logger

_logger = get_logger("verdicts.junit")


def to_report_cases(cases: Iterable[TestCase]) -> list[JUnitTestCase]:
    """Serialise TestCases to report entries, expanding FLAKE into Fail+Pass."""
    report: list[JUnitTestCase] = []
    for case in cases:
        if case.outcome is TestOutcome.PASS:
            report.append(JUnitTestCase(name=case.name, system_out=case.output))
            continue
        report.append(JUnitTestCase(name=case.name, failure_output=case.output, system_out=case.output))
        if case.outcome is TestOutcome.FLAKE:
            # a passing entry with the same name marks the failure as a flake
            report.append(JUnitTestCase(name=case.name))
    return report


def _failure_case(failure: PluginFailure) -> JUnitTestCase:
    if failure.evidence_kept:
        return JUnitTestCase(
            name=f"[kubeverdict] monitor test {failure.plugin} completed {failure.phase}",
            skipped=f"partial evidence: {failure.phase} failed: {failure.error}",
        )
    return JUnitTestCase(
        name=f"[kubeverdict] monitor test {failure.plugin} collected evidence",
        skipped=f"no evidence: {failure.phase} failed: {failure.error}",
    )


def failure_cases(failures: Iterable[PluginFailure]) -> list[JUnitTestCase]:
    """Report entries for monitor tests that raised during a lifecycle phase."""
    return [_failure_case(failure) for failure in failures]


def gating_failures(report: Sequence[JUnitTestCase]) -> list[str]:
    """Names with at least one failing entry and no passing entry, in report order."""
    failed: dict[str, None] = {}
    passed: set[str] = set()
    for case in report:
        if case.skipped is not None:
            continue
        if case.failed:
            failed.setdefault(case.name, None)
        else:
            passed.add(case.name)
    return [name for name in failed if name not in passed]


def flaked(report: Sequence[JUnitTestCase]) -> list[str]:
    """Names with both a failing and a passing entry, in report order."""
    failed = {case.name for case in report if case.failed}
    seen: dict[str, None] = {}
    for case in report:
        if case.skipped is None and not case.failed and case.name in failed:
            seen.setdefault(case.name, None)
    return list(seen)


def build_junit_xml(report: Sequence[JUnitTestCase], suite_name: str) -> ET.Element:
    """Build a ``<testsuite>`` element for ``report``."""
    suite = ET.Element("testsuite")
    suite.set("name", suite_name)
    suite.set("tests", str(len(report)))
    suite.set("failures", str(sum(1 for case in report if case.failed)))
    suite.set("skipped", str(sum(1 for case in report if case.skipped is not None)))

    for case in report:
        element = ET.SubElement(suite, "testcase", {"name": case.name})
        if case.skipped is not None:
            skipped = ET.SubElement(element, "skipped", {"message": case.skipped})
            skipped.text = case.skipped
        if case.failure_output is not None:
            failure = ET.SubElement(element, "failure")
            failure.text = case.failure_output
        if case.system_out:
            system_out = ET.SubElement(element, "system-out")
            system_out.text = case.system_out
    return suite


def write_junit_xml(report: Sequence[JUnitTestCase], path: Path, suite_name: str = "kubeverdict") -> Path:
    """Write ``report`` to ``path`` as JUnit XML and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(build_junit_xml(report, suite_name))
    ET.indent(tree)
    tree.write(path, encoding="utf-8", xml_declaration=True)
    _logger.info("junit_written", path=str(path), test_cases=len(report))
    return path

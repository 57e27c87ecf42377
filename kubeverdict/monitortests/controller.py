"""Lifecycle controller: drives every monitor test through the run phases.

Per test the states advance strictly in order, with no skipping and no
re-entry:

    Uninitialized -> Collecting -> Collected -> (IntervalsComputed)
                  -> Evaluated -> Persisted -> CleanedUp

Each phase runs for all live tests concurrently and completes before the
next phase starts, because ``construct_computed_intervals`` needs every
test's raw intervals.  A test that raises in ``start_collection`` or
``collect_data`` is recorded as a PluginFailure, its contribution is dropped,
and it only receives ``cleanup``.  Cleanup runs for every test, whatever
happened before.  A failure in a later phase also stops the test, but the
evidence it already collected stays in the report.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from kubeverdict.errors import LifecycleError
from kubeverdict.intervals.aggregator import merge_overlapping
from kubeverdict.models.evidence import Interval
from kubeverdict.models.verdicts import JUnitTestCase, PluginFailure, TestCase
from kubeverdict.monitortests.base import MonitorTest, ResourcesMap, RunContext
from kubeverdict.observability.logging import get_logger
from kubeverdict.observability.metrics import plugin_phase_duration_seconds, plugin_phase_errors_total
from kubeverdict.verdicts.junit import failure_cases, to_report_cases

_logger = get_logger("monitortests.controller")

_CLEANUP_TIMEOUT_SECONDS = 30.0


class PluginState(StrEnum):
    """Lifecycle state of one monitor test within a run."""

    UNINITIALIZED = "Uninitialized"
    COLLECTING = "Collecting"
    COLLECTED = "Collected"
    INTERVALS_COMPUTED = "IntervalsComputed"
    EVALUATED = "Evaluated"
    PERSISTED = "Persisted"
    CLEANED_UP = "CleanedUp"


class Phase(StrEnum):
    """Lifecycle phases, in run order."""

    START_COLLECTION = "StartCollection"
    COLLECT_DATA = "CollectData"
    CONSTRUCT_COMPUTED_INTERVALS = "ConstructComputedIntervals"
    EVALUATE_TESTS = "EvaluateTestsFromConstructedIntervals"
    WRITE_CONTENT = "WriteContentToStorage"
    CLEANUP = "Cleanup"


# phase -> (states it may start from, state it leads to)
_TRANSITIONS: dict[Phase, tuple[frozenset[PluginState], PluginState]] = {
    Phase.START_COLLECTION: (frozenset({PluginState.UNINITIALIZED}), PluginState.COLLECTING),
    Phase.COLLECT_DATA: (frozenset({PluginState.COLLECTING}), PluginState.COLLECTED),
    Phase.CONSTRUCT_COMPUTED_INTERVALS: (frozenset({PluginState.COLLECTED}), PluginState.INTERVALS_COMPUTED),
    Phase.EVALUATE_TESTS: (
        frozenset({PluginState.COLLECTED, PluginState.INTERVALS_COMPUTED}),
        PluginState.EVALUATED,
    ),
    Phase.WRITE_CONTENT: (frozenset({PluginState.EVALUATED}), PluginState.PERSISTED),
    Phase.CLEANUP: (frozenset(PluginState) - {PluginState.CLEANED_UP}, PluginState.CLEANED_UP),
}

# failures in these phases mean the test produced no evidence at all
_COLLECTION_PHASES = frozenset({Phase.START_COLLECTION, Phase.COLLECT_DATA})


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class PluginRunner:
    """Holds one monitor test's lifecycle state and its results for a run."""

    def __init__(self, test: MonitorTest) -> None:
        self.test = test
        self.state = PluginState.UNINITIALIZED
        self.failure: PluginFailure | None = None
        self.raw_intervals: list[Interval] = []
        self.computed_intervals: list[Interval] = []
        self.test_cases: list[TestCase] = []

    @property
    def name(self) -> str:
        return self.test.name

    @property
    def active(self) -> bool:
        return self.failure is None and self.state is not PluginState.CLEANED_UP

    def advance(self, phase: Phase) -> None:
        """Move to the state ``phase`` leads to, or raise LifecycleError."""
        allowed, target = _TRANSITIONS[phase]
        if self.state not in allowed:
            raise LifecycleError(self.name, self.state, phase)
        self.state = target

    def fail(self, phase: Phase, exc: BaseException) -> None:
        collection = phase in _COLLECTION_PHASES
        self.failure = PluginFailure(
            plugin=self.name,
            phase=phase,
            error=str(exc) or type(exc).__name__,
            evidence_kept=not collection,
        )
        if collection:
            self.raw_intervals = []
            self.test_cases = []


@dataclass
class RunResult:
    """Everything a run produced."""

    beginning: datetime
    end: datetime
    test_cases: list[TestCase] = field(default_factory=list)
    failures: list[PluginFailure] = field(default_factory=list)
    intervals: list[Interval] = field(default_factory=list)
    cancelled: bool = False

    def report(self) -> list[JUnitTestCase]:
        """Report entries: every test case, then one skipped entry per failed test."""
        return to_report_cases(self.test_cases) + failure_cases(self.failures)


class LifecycleController:
    """Runs a set of monitor tests over one observation window.

    Args:
        tests:           Monitor tests to run; names must be unique.
        storage_dir:     Directory handed to collection and persistence phases.
        cleanup_timeout: Seconds each test's cleanup may take before it is abandoned.
        clock:           Source of the current UTC time.
    """

    def __init__(
        self,
        tests: Sequence[MonitorTest],
        storage_dir: str = "",
        cleanup_timeout: float = _CLEANUP_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        names = [test.name for test in tests]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate monitor test names: {duplicates}")
        self._runners = [PluginRunner(test) for test in tests]
        self._storage_dir = storage_dir
        self._cleanup_timeout = cleanup_timeout
        self._clock = clock

    @property
    def runners(self) -> list[PluginRunner]:
        return list(self._runners)

    async def run(
        self,
        duration: timedelta,
        cancelled: asyncio.Event | None = None,
        recorded_resources: ResourcesMap | None = None,
    ) -> RunResult:
        """Observe the cluster for ``duration`` and evaluate every monitor test.

        Setting ``cancelled`` ends the observation window early; evidence
        gathered so far is still collected and evaluated.
        """
        beginning = self._clock()
        ctx = RunContext(
            beginning=beginning,
            end=beginning + duration,
            cancelled=cancelled or asyncio.Event(),
        )
        resources = recorded_resources or {}
        _logger.info("run_started", tests=[r.name for r in self._runners], duration_s=duration.total_seconds())

        try:
            await self._phase(Phase.START_COLLECTION, lambda r: r.test.start_collection(ctx))
            await self._wait_for_window(ctx)
            end = min(self._clock(), ctx.end)

            await self._phase(Phase.COLLECT_DATA, lambda r: self._collect(r, beginning, end))
            starting = merge_overlapping(i for r in self._live() for i in r.raw_intervals)

            await self._phase(
                Phase.CONSTRUCT_COMPUTED_INTERVALS,
                lambda r: self._construct(r, starting, resources, beginning, end),
            )
            final = merge_overlapping(starting + [i for r in self._live() for i in r.computed_intervals])

            await self._phase(Phase.EVALUATE_TESTS, lambda r: self._evaluate(r, final))
            time_suffix = beginning.strftime("%Y%m%d-%H%M%S")
            await self._phase(
                Phase.WRITE_CONTENT,
                lambda r: r.test.write_content_to_storage(self._storage_dir, time_suffix, final, resources),
            )
        finally:
            await self._cleanup_all()

        result = RunResult(
            beginning=beginning,
            end=end,
            test_cases=[case for r in self._runners for case in r.test_cases],
            failures=[r.failure for r in self._runners if r.failure is not None],
            intervals=final,
            cancelled=ctx.cancelled.is_set(),
        )
        _logger.info(
            "run_finished",
            test_cases=len(result.test_cases),
            failed_tests=[f.plugin for f in result.failures],
            intervals=len(result.intervals),
            cancelled=result.cancelled,
        )
        return result

    # ------------------------------------------------------------------
    # Phase helpers
    # ------------------------------------------------------------------

    def _live(self) -> list[PluginRunner]:
        return [r for r in self._runners if r.active]

    async def _phase(self, phase: Phase, call: Callable[[PluginRunner], Awaitable[Any]]) -> None:
        runners = self._live()
        if runners:
            await asyncio.gather(*(self._run_one(r, phase, call) for r in runners))

    async def _run_one(
        self,
        runner: PluginRunner,
        phase: Phase,
        call: Callable[[PluginRunner], Awaitable[Any]],
    ) -> None:
        runner.advance(phase)
        t_start = time.monotonic()
        try:
            await call(runner)
        except Exception as exc:
            plugin_phase_errors_total.labels(plugin=runner.name, phase=phase).inc()
            _logger.error("plugin_phase_failed", plugin=runner.name, phase=phase, error=str(exc))
            runner.fail(phase, exc)
        finally:
            plugin_phase_duration_seconds.labels(plugin=runner.name, phase=phase).observe(
                time.monotonic() - t_start
            )

    async def _collect(self, runner: PluginRunner, beginning: datetime, end: datetime) -> None:
        intervals, cases = await runner.test.collect_data(self._storage_dir, beginning, end)
        runner.raw_intervals = list(intervals or [])
        runner.test_cases.extend(cases or [])

    async def _construct(
        self,
        runner: PluginRunner,
        starting: list[Interval],
        resources: ResourcesMap,
        beginning: datetime,
        end: datetime,
    ) -> None:
        computed = await runner.test.construct_computed_intervals(list(starting), resources, beginning, end)
        runner.computed_intervals = list(computed or [])

    async def _evaluate(self, runner: PluginRunner, final: list[Interval]) -> None:
        cases = await runner.test.evaluate_tests_from_constructed_intervals(list(final))
        runner.test_cases.extend(cases or [])

    async def _wait_for_window(self, ctx: RunContext) -> None:
        remaining = (ctx.end - self._clock()).total_seconds()
        if remaining > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(ctx.cancelled.wait(), timeout=remaining)
        if ctx.cancelled.is_set():
            _logger.warning("run_cancelled", collecting_partial_evidence=True)

    async def _cleanup_all(self) -> None:
        pending = [r for r in self._runners if r.state is not PluginState.CLEANED_UP]
        await asyncio.gather(*(self._cleanup_one(r) for r in pending))

    async def _cleanup_one(self, runner: PluginRunner) -> None:
        runner.advance(Phase.CLEANUP)
        try:
            await asyncio.wait_for(runner.test.cleanup(), timeout=self._cleanup_timeout)
        except TimeoutError:
            _logger.warning("plugin_cleanup_timed_out", plugin=runner.name, timeout=self._cleanup_timeout)
        except Exception as exc:
            plugin_phase_errors_total.labels(plugin=runner.name, phase=Phase.CLEANUP).inc()
            _logger.error("plugin_cleanup_failed", plugin=runner.name, error=str(exc))

"""Monitor test interface.

Every analysis implements the same six lifecycle phases; the controller
drives them in order and never branches on the concrete type.

    start_collection                          acquire clients, start background sampling
    collect_data                              gather evidence, return raw intervals and
                                              any test cases already decidable
    construct_computed_intervals              derive intervals from every test's raw
                                              intervals and the recorded resources
    evaluate_tests_from_constructed_intervals test cases that need the final interval set
    write_content_to_storage                  persist raw artifacts
    cleanup                                   release resources, always called

Only the first two are mandatory; the rest default to no-ops.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from kubeverdict.models.compliance import ClusterObjectRecord
from kubeverdict.models.evidence import Interval
from kubeverdict.models.verdicts import TestCase

# kind -> records seen during the run
ResourcesMap = dict[str, list[ClusterObjectRecord]]


@dataclass
class RunContext:
    """The run window and cancellation signal shared with every monitor test."""

    beginning: datetime
    end: datetime
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)


class MonitorTest(ABC):
    """Abstract base class for all monitor tests."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier used in logs, metrics and plugin selection."""

    @abstractmethod
    async def start_collection(self, ctx: RunContext) -> None:
        """Acquire whatever the test needs to observe the cluster.

        Raising here removes the test from the run; siblings are unaffected.
        """

    @abstractmethod
    async def collect_data(
        self,
        storage_dir: str,
        beginning: datetime,
        end: datetime,
    ) -> tuple[list[Interval], list[TestCase]]:
        """Return raw intervals and the test cases decidable without other tests."""

    async def construct_computed_intervals(
        self,
        starting_intervals: list[Interval],
        recorded_resources: ResourcesMap,
        beginning: datetime,
        end: datetime,
    ) -> list[Interval]:
        return []

    async def evaluate_tests_from_constructed_intervals(self, final_intervals: list[Interval]) -> list[TestCase]:
        return []

    async def write_content_to_storage(
        self,
        storage_dir: str,
        time_suffix: str,
        final_intervals: list[Interval],
        final_resource_state: ResourcesMap,
    ) -> None:
        return None

    async def cleanup(self) -> None:
        return None

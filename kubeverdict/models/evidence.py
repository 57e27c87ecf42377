"""Evidence data structures: probe samples and the intervals derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum


class IntervalKind(StrEnum):
    """Kind of an observed interval."""

    DISRUPTED = "Disrupted"


@dataclass(frozen=True)
class Sample:
    """One probe observation.

    Produced by the BackendSampler at a fixed cadence, consumed only by the
    interval aggregator.  Immutable once recorded.
    """

    timestamp: datetime
    succeeded: bool
    detail: str = ""
    latency: timedelta | None = None


@dataclass(frozen=True)
class Interval:
    """A named span of time observed during a run.

    Intervals of the same kind for the same locator never overlap; the
    aggregator and ``merge_overlapping`` keep that true.
    """

    kind: str
    locator: str
    start: datetime
    end: datetime
    message: str = ""

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Interval start {self.start.isoformat()} is after end {self.end.isoformat()}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict[str, str]:
        """Serialise to a plain dict for JSON artifacts."""
        return {
            "kind": self.kind,
            "locator": self.locator,
            "from": self.start.isoformat(),
            "to": self.end.isoformat(),
            "message": self.message,
        }

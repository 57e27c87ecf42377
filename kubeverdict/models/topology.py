"""Cluster shape facts and the disruption budget derived from them."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.(\d+))?(?:-([0-9A-Za-z.-]+))?")


class ControlPlaneTopology(StrEnum):
    """Values of ``Infrastructure.status.controlPlaneTopology``."""

    SINGLE_REPLICA = "SingleReplica"
    HIGHLY_AVAILABLE = "HighlyAvailable"
    EXTERNAL = "External"
    DUAL_REPLICA = "DualReplica"
    HIGHLY_AVAILABLE_ARBITER = "HighlyAvailableArbiter"


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A ``major.minor.patch[-prerelease]`` version with semver ordering.

    A pre-release sorts below its release (``4.8.0-rc.1 < 4.8.0``); build
    metadata after ``+`` is ignored.
    """

    major: int
    minor: int
    patch: int = 0
    prerelease: str = ""

    @classmethod
    def parse(cls, value: str) -> Version:
        match = _VERSION_RE.match(value.strip())
        if match is None:
            raise ValueError(f"Invalid version: {value!r}")
        return cls(
            int(match.group(1)),
            int(match.group(2)),
            int(match.group(3) or 0),
            match.group(4) or "",
        )

    def _sort_key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        # numeric identifiers sort before alphanumeric ones
        identifiers = tuple(
            (0, int(part)) if part.isdigit() else (1, part) for part in self.prerelease.split(".") if part
        )
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, identifiers)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.prerelease}" if self.prerelease else base


@dataclass(frozen=True)
class TopologyFacts:
    """Read-only snapshot of the cluster shape, fetched once per run.

    ``control_plane_topology`` and ``version_baseline`` are None when they
    could not be read; ``fetch_error`` then says why.
    """

    control_plane_topology: ControlPlaneTopology | None = None
    infrastructure_provider: str = ""
    version_baseline: Version | None = None
    fetch_error: str = ""


@dataclass(frozen=True)
class DisruptionBudget:
    """Maximum disruption tolerated for one run.

    ``rule`` names the tolerance rule that produced the fraction;
    ``caveats`` lists facts that could not be verified while computing it.
    """

    allowed_fraction: float
    allowed_duration: timedelta
    rule: str = ""
    caveats: tuple[str, ...] = field(default_factory=tuple)

"""Interval aggregation: sample streams to disjoint named intervals."""

from kubeverdict.intervals.aggregator import (
    DEFAULT_MERGE_GAP,
    aggregate,
    disrupted_duration,
    merge_overlapping,
)

__all__ = [
    "DEFAULT_MERGE_GAP",
    "aggregate",
    "disrupted_duration",
    "merge_overlapping",
]

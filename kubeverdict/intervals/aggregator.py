"""Interval aggregator: compresses a sample stream into disjoint intervals.

A run of failed samples becomes one interval.  Failures separated by at most
``merge_gap`` are the same interval even if successes were seen between
them; a success that outlasts the gap closes the interval.  An isolated
failure still yields a zero-length interval so transient blips are reported.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import timedelta

from kubeverdict.models.evidence import Interval, IntervalKind, Sample
from kubeverdict.observability.logging import get_logger
from kubeverdict.observability.metrics import intervals_total

_logger = get_logger("intervals.aggregator")

DEFAULT_MERGE_GAP = timedelta(seconds=2)


def _build_interval(kind: str, locator: str, failures: list[Sample]) -> Interval:
    first = failures[0]
    details = sorted({s.detail for s in failures if s.detail})
    message = f"{locator} unreachable for {len(failures)} sample(s)"
    if details:
        message += ": " + "; ".join(details[:3])
    return Interval(
        kind=kind,
        locator=locator,
        start=first.timestamp,
        end=failures[-1].timestamp,
        message=message,
    )


def aggregate(
    samples: Iterable[Sample],
    locator: str,
    kind: str = IntervalKind.DISRUPTED,
    merge_gap: timedelta = DEFAULT_MERGE_GAP,
) -> list[Interval]:
    """Return the ordered, non-overlapping intervals of failure in ``samples``."""
    ordered = sorted(samples, key=lambda s: s.timestamp)
    intervals: list[Interval] = []
    open_run: list[Sample] = []

    for sample in ordered:
        if sample.succeeded:
            continue
        if open_run and sample.timestamp - open_run[-1].timestamp > merge_gap:
            intervals.append(_build_interval(kind, locator, open_run))
            open_run = []
        open_run.append(sample)

    if open_run:
        intervals.append(_build_interval(kind, locator, open_run))

    if intervals:
        intervals_total.labels(kind=kind).inc(len(intervals))
        _logger.info(
            "intervals_aggregated",
            locator=locator,
            kind=kind,
            samples=len(ordered),
            intervals=len(intervals),
        )
    return intervals


def merge_overlapping(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping intervals that share kind and locator.

    Used when unioning intervals from several monitor tests.  The result is
    ordered by start time; messages of merged intervals are joined.
    """
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    merged: list[Interval] = []
    open_by_key: dict[tuple[str, str], int] = {}

    for interval in ordered:
        key = (interval.kind, interval.locator)
        idx = open_by_key.get(key)
        if idx is not None and interval.start <= merged[idx].end:
            current = merged[idx]
            message = current.message
            if interval.message and interval.message != current.message:
                message = f"{message}\n{interval.message}" if message else interval.message
            merged[idx] = replace(current, end=max(current.end, interval.end), message=message)
            continue
        open_by_key[key] = len(merged)
        merged.append(interval)

    return merged


def disrupted_duration(intervals: Iterable[Interval], cadence: timedelta) -> timedelta:
    """Total unavailability represented by ``intervals``.

    Each failed sample stands for one sampling cadence of unavailability, so
    an interval counts its span plus one cadence.
    """
    total = timedelta(0)
    for interval in intervals:
        total += interval.duration + cadence
    return total

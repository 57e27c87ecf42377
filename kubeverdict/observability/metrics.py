"""Prometheus metrics for kubeverdict.

All metrics live in the default registry.  ``start_metrics_server`` exposes
them over HTTP for long runs; it is never called when the port is 0.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

samples_total = Counter(
    "kubeverdict_samples_total",
    "Probe samples recorded by backend samplers.",
    ["target", "succeeded"],
)

intervals_total = Counter(
    "kubeverdict_intervals_total",
    "Intervals produced by the interval aggregator.",
    ["kind"],
)

plugin_phase_errors_total = Counter(
    "kubeverdict_plugin_phase_errors_total",
    "Monitor test lifecycle phases that raised.",
    ["plugin", "phase"],
)

plugin_phase_duration_seconds = Histogram(
    "kubeverdict_plugin_phase_duration_seconds",
    "Wall-clock time spent in each monitor test lifecycle phase.",
    ["plugin", "phase"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0),
)

compliance_verdicts_total = Counter(
    "kubeverdict_compliance_verdicts_total",
    "Compliance verdicts computed by the classifier.",
    ["verdict"],
)

test_cases_total = Counter(
    "kubeverdict_test_cases_total",
    "Test cases rendered, by outcome.",
    ["outcome"],
)


def start_metrics_server(port: int) -> None:
    """Serve the default registry on ``port`` from a daemon thread."""
    start_http_server(port)

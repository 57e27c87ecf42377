"""Sampler package: backend probes and the fixed-cadence evidence sampler."""

from kubeverdict.sampler.probes import HttpProbe, Probe, ProbeResult
from kubeverdict.sampler.sampler import BackendSampler

__all__ = [
    "BackendSampler",
    "HttpProbe",
    "Probe",
    "ProbeResult",
]

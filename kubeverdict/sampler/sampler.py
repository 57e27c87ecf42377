"""Evidence sampler: polls one backend at a fixed cadence during a run window.

Samples are kept on the sampler as they are recorded, so a run that is
cancelled part-way still yields the evidence gathered so far.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from datetime import UTC, datetime

from kubeverdict.errors import ProbeTimeoutError
from kubeverdict.models.evidence import Sample
from kubeverdict.observability.logging import get_logger
from kubeverdict.observability.metrics import samples_total
from kubeverdict.sampler.probes import Probe

_logger = get_logger("sampler")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class BackendSampler:
    """Records one Sample per ``interval`` seconds for the window ``[beginning, end)``.

    A probe that does not answer within ``timeout`` seconds is recorded as a
    failed Sample and the loop moves on; the sampler itself never retries.
    """

    def __init__(
        self,
        target: str,
        probe: Probe,
        interval: float = 1.0,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError("Sampler interval must be positive")
        self.target = target
        self._probe = probe
        self._interval = interval
        self._timeout = timeout
        self._clock = clock
        self._samples: list[Sample] = []

    @property
    def samples(self) -> list[Sample]:
        """Samples recorded so far, in time order."""
        return list(self._samples)

    async def run(
        self,
        beginning: datetime,
        end: datetime,
        cancelled: asyncio.Event | None = None,
    ) -> list[Sample]:
        """Poll until ``end`` or until ``cancelled`` is set.

        Task cancellation is also honoured; in every case the samples
        recorded so far remain available through :attr:`samples`.
        """
        cancelled = cancelled or asyncio.Event()

        delay = (beginning - self._clock()).total_seconds()
        if delay > 0 and await self._wait(cancelled, delay):
            return self.samples

        while not cancelled.is_set():
            tick = time.monotonic()
            if self._clock() >= end:
                break
            self._record(await self._probe_once())
            remaining = self._interval - (time.monotonic() - tick)
            if remaining > 0 and await self._wait(cancelled, remaining):
                break

        _logger.debug("sampler_finished", target=self.target, samples=len(self._samples))
        return self.samples

    async def _probe_once(self) -> Sample:
        timestamp = self._clock()
        try:
            result = await asyncio.wait_for(self._probe(), timeout=self._timeout)
        except (TimeoutError, ProbeTimeoutError):
            return Sample(
                timestamp=timestamp,
                succeeded=False,
                detail=str(ProbeTimeoutError(self.target, self._timeout)),
            )
        except Exception as exc:
            _logger.debug("probe_raised", target=self.target, error=str(exc))
            return Sample(timestamp=timestamp, succeeded=False, detail=f"probe error: {exc}")
        return Sample(
            timestamp=timestamp,
            succeeded=result.succeeded,
            detail=result.detail,
            latency=result.latency,
        )

    def _record(self, sample: Sample) -> None:
        self._samples.append(sample)
        samples_total.labels(target=self.target, succeeded="true" if sample.succeeded else "false").inc()
        if not sample.succeeded:
            _logger.debug("sample_failed", target=self.target, detail=sample.detail)

    @staticmethod
    async def _wait(cancelled: asyncio.Event, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancellation arrived first."""
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(cancelled.wait(), timeout=seconds)
        return cancelled.is_set()

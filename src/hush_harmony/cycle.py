"""One end-to-end sampling cycle.

A cycle authorizes, samples location and noise concurrently, stores the
resulting Reading, and submits it. Both samplers must succeed before a
Reading exists; a failed submission does not fail the cycle.
"""

from __future__ import annotations

from dataclasses import dataclass

import asyncio
import logging

from .config import LocationConfig, NoiseConfig
from .errors import AudioCaptureError, CycleError, CycleFailure, LocationError, PermissionDeniedError
from .location import LocationSampler
from .models import LocationFix, Reading, SubmissionOutcome
from .noise import NoiseSampler
from .observability import CycleMetrics, HealthMonitor
from .permissions import PermissionGate
from .store import ReadingStore
from .submitter import Submitter


@dataclass(frozen=True)
class SamplingParameters:
    """Per-cycle sampler arguments."""

    location_timeout_ms: int = 15_000
    location_max_age_ms: int = 10_000
    high_accuracy: bool = True
    capture_frames: int = 100
    calibration_frames: int = 2
    frame_interval_ms: int = 20

    @classmethod
    def from_config(cls, location: LocationConfig, noise: NoiseConfig) -> "SamplingParameters":
        return cls(
            location_timeout_ms=location.timeout_ms,
            location_max_age_ms=location.max_age_ms,
            high_accuracy=location.high_accuracy,
            capture_frames=noise.capture_frames,
            calibration_frames=noise.calibration_frames,
            frame_interval_ms=noise.frame_interval_ms,
        )


class SamplingCycle:
    """Run permission check, dual sampling, store, and submit."""

    def __init__(
        self,
        gate: PermissionGate,
        location: LocationSampler,
        noise: NoiseSampler,
        store: ReadingStore,
        submitter: Submitter,
        parameters: SamplingParameters | None = None,
        metrics: CycleMetrics | None = None,
        health: HealthMonitor | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._gate = gate
        self._location = location
        self._noise = noise
        self._store = store
        self._submitter = submitter
        self._parameters = parameters or SamplingParameters()
        self._metrics = metrics or CycleMetrics()
        self._health = health or HealthMonitor()
        self._logger = logger or logging.getLogger(__name__)
        self._last_outcome: SubmissionOutcome | None = None

    @property
    def last_outcome(self) -> SubmissionOutcome | None:
        return self._last_outcome

    async def run(self) -> Reading:
        state = await self._gate.authorize()
        if not state.authorized:
            self._metrics.record_cycle("unauthorized")
            raise CycleError(CycleFailure.UNAUTHORIZED, ", ".join(state.refused())) from PermissionDeniedError(state)

        fix, decibels = await self._sample_both()

        reading = Reading(
            latitude=fix.latitude,
            longitude=fix.longitude,
            timestamp_utc=fix.timestamp_utc,
            noise_decibels=decibels,
        )
        self._store.update(reading)
        self._metrics.record_cycle("ok")
        self._health.mark_cycle()
        self._logger.info("cycle_completed", extra=reading.payload())

        outcome = await self._submitter.submit(reading)
        self._last_outcome = outcome
        self._metrics.record_submission(outcome)
        self._health.mark_submission(outcome)
        if not outcome.succeeded:
            self._logger.warning(
                "cycle_submission_failed",
                extra={"status": outcome.http_status, "error": outcome.error},
            )
        return reading

    async def _sample_both(self) -> tuple[LocationFix, float]:
        params = self._parameters
        location_task = asyncio.create_task(
            self._location.sample(params.location_timeout_ms, params.location_max_age_ms, params.high_accuracy)
        )
        noise_task = asyncio.create_task(
            self._noise.sample(params.capture_frames, params.calibration_frames, params.frame_interval_ms)
        )
        tasks = (location_task, noise_task)
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # A failed or abandoned sampler must not leave its sibling running.
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task, failure, label in (
            (location_task, CycleFailure.LOCATION, "location_failed"),
            (noise_task, CycleFailure.AUDIO, "audio_failed"),
        ):
            if task.cancelled() or task.exception() is None:
                continue
            exc = task.exception()
            if isinstance(exc, (LocationError, AudioCaptureError)):
                self._metrics.record_cycle(label)
                raise CycleError(failure, str(exc)) from exc
            raise exc
        return location_task.result(), noise_task.result()

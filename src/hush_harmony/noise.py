"""Windowed ambient noise capture and decibel reduction.

The audio level provider streams frames through a callback. ``NoiseSampler``
turns that stream into a single awaitable: frames are collected into a
``NoiseWindow`` until the configured count has been observed, then the window
is reduced to one decibel value from the mean square of the retained raw
amplitudes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import asyncio
import logging
import math

from .errors import AudioCaptureError, AudioFailure
from .providers import AudioFrame, AudioLevelProvider

# Level reported for a window of pure digital silence (rms floor of 1e-12).
SILENCE_FLOOR_DB = -240.0


def decibels_from_amplitudes(amplitudes: Sequence[float]) -> float:
    """Return ``20 * log10(sqrt(mean(x^2)))`` for the given amplitudes."""

    if not amplitudes:
        raise AudioCaptureError(AudioFailure.INSUFFICIENT_SAMPLES, "no samples retained after calibration")
    if not all(math.isfinite(value) for value in amplitudes):
        raise AudioCaptureError(AudioFailure.DEVICE_UNAVAILABLE, "device reported a non-finite amplitude")
    peak = max(abs(value) for value in amplitudes)
    if peak <= 0.0:
        return SILENCE_FLOOR_DB
    # Squares are taken relative to the peak so large amplitudes cannot overflow.
    mean_square = sum((value / peak) ** 2 for value in amplitudes) / len(amplitudes)
    rms = peak * math.sqrt(mean_square)
    return max(20.0 * math.log10(rms), SILENCE_FLOOR_DB)


@dataclass
class NoiseWindow:
    """Per-cycle buffer of raw frame amplitudes.

    The first ``calibration_frames`` frames are counted but not retained:
    audio hardware reports spurious values right after activation.
    """

    capture_frames: int
    calibration_frames: int
    amplitudes: list[float] = field(default_factory=list)
    observed: int = 0

    @property
    def complete(self) -> bool:
        return self.observed >= self.capture_frames

    def offer(self, amplitude: float) -> bool:
        """Record one frame and return True once the window is full."""

        if self.complete:
            return True
        self.observed += 1
        if self.observed > self.calibration_frames and math.isfinite(amplitude):
            self.amplitudes.append(float(amplitude))
        return self.complete

    def reduce(self) -> float:
        return decibels_from_amplitudes(self.amplitudes)


class _CaptureHandle:
    """Stops the provider at most once."""

    def __init__(self, provider: AudioLevelProvider) -> None:
        self._provider = provider
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._provider.stop()


class NoiseSampler:
    """Capture one noise window and reduce it to decibels."""

    def __init__(
        self,
        provider: AudioLevelProvider,
        stall_timeout_ms: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._stall_timeout_ms = stall_timeout_ms
        self._logger = logger or logging.getLogger(__name__)

    async def sample(self, capture_frames: int, calibration_frames: int, frame_interval_ms: int) -> float:
        """Return the decibel level of one window or raise ``AudioCaptureError``."""

        if capture_frames <= calibration_frames:
            raise AudioCaptureError(
                AudioFailure.INSUFFICIENT_SAMPLES,
                f"capture_frames={capture_frames} leaves nothing after {calibration_frames} calibration frames",
            )

        stall_ms = self._stall_timeout_ms or max(1000, 10 * frame_interval_ms)
        window = NoiseWindow(capture_frames=capture_frames, calibration_frames=calibration_frames)
        progress = asyncio.Event()
        handle = _CaptureHandle(self._provider)

        def on_frame(frame: AudioFrame) -> None:
            if window.complete:
                return
            if window.offer(frame.amplitude):
                handle.stop()
            progress.set()

        try:
            try:
                self._provider.start(frame_interval_ms, on_frame)
            except (OSError, RuntimeError) as exc:
                raise AudioCaptureError(AudioFailure.DEVICE_UNAVAILABLE, str(exc)) from exc
            while not window.complete:
                progress.clear()
                try:
                    await asyncio.wait_for(progress.wait(), timeout=stall_ms / 1000.0)
                except asyncio.TimeoutError as exc:
                    raise AudioCaptureError(
                        AudioFailure.DEVICE_UNAVAILABLE,
                        f"no audio frame for {stall_ms} ms after {window.observed} frames",
                    ) from exc
        finally:
            # Every exit path, cancellation included, releases the microphone.
            handle.stop()

        decibels = window.reduce()
        self._logger.debug(
            "noise_window_reduced",
            extra={"observed": window.observed, "retained": len(window.amplitudes), "decibels": decibels},
        )
        return decibels

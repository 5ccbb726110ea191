"""In-process capability providers for testing and experimentation.

These classes stand in for the device services with known, controllable
behaviour, which is useful for unit tests and for running the collector on a
workstation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

import asyncio
import itertools
import random
import time

from .providers import (
    AudioFrame,
    BackgroundEventHandler,
    BackgroundFetchConfig,
    BackgroundStatus,
    Capability,
    FetchResult,
    FrameCallback,
    PermissionStatus,
    Position,
    PositionError,
)


class StaticPermissionProvider:
    """Permission provider answering from a fixed table.

    Records every call as ``(method, capability)`` for inspection.
    """

    def __init__(self, statuses: Mapping[Capability, PermissionStatus] | None = None) -> None:
        self._statuses = dict(statuses or {})
        self.calls: list[tuple[str, Capability]] = []

    def set_status(self, capability: Capability, status: PermissionStatus) -> None:
        self._statuses[capability] = status

    async def check(self, capability: Capability) -> PermissionStatus:
        self.calls.append(("check", capability))
        return self._statuses.get(capability, PermissionStatus.GRANTED)

    async def request(self, capability: Capability) -> PermissionStatus:
        self.calls.append(("request", capability))
        await asyncio.sleep(0)
        return self._statuses.get(capability, PermissionStatus.GRANTED)


@dataclass
class SimulatedLocationProvider:
    """A location source that answers after a delay with optional jitter.

    Attributes:
        latitude: Latitude of the simulated device.
        longitude: Longitude of the simulated device.
        delay_s: Time the fix takes to arrive.
        jitter_deg: Standard deviation of Gaussian noise added to each fix.
        error: Raised instead of answering when set.
    """

    latitude: float
    longitude: float
    delay_s: float = 0.0
    jitter_deg: float = 0.0
    accuracy_m: float = 5.0
    error: PositionError | None = None
    requests: int = 0
    cancelled: int = 0

    async def get_current_position(
        self,
        *,
        high_accuracy: bool,
        timeout_s: float | None,
        max_age_s: float,
    ) -> Position:
        del high_accuracy, timeout_s, max_age_s
        self.requests += 1
        try:
            await asyncio.sleep(self.delay_s)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if self.error is not None:
            raise self.error
        return Position(
            latitude=self.latitude + random.gauss(0.0, self.jitter_deg) if self.jitter_deg else self.latitude,
            longitude=self.longitude + random.gauss(0.0, self.jitter_deg) if self.jitter_deg else self.longitude,
            accuracy_m=self.accuracy_m,
            timestamp=time.time(),
        )


class ScriptedAudioLevelProvider:
    """Audio level meter that replays amplitudes on the event loop.

    Amplitudes come from ``amplitudes`` (replayed in order, then the stream
    goes silent, no more frames) or from ``generator`` (called with the frame
    index). Frames are delivered with ``loop.call_later`` at the requested
    interval, so delivery interleaves with other coroutines.
    """

    def __init__(
        self,
        amplitudes: Sequence[float] | None = None,
        generator: Callable[[int], float] | None = None,
        fail_on_start: Exception | None = None,
    ) -> None:
        if amplitudes is None and generator is None:
            raise ValueError("amplitudes or generator is required")
        # A scripted list takes precedence over a generator.
        self._amplitudes = list(amplitudes) if amplitudes is not None else []
        self._generator = generator if amplitudes is None else None
        self._fail_on_start = fail_on_start
        self._handle: asyncio.TimerHandle | None = None
        self._index = 0
        self.active = False
        self.start_count = 0
        self.stop_count = 0
        self.delivered = 0

    @classmethod
    def gaussian(cls, mean: float, std: float) -> "ScriptedAudioLevelProvider":
        return cls(generator=lambda _index: abs(random.gauss(mean, std)))

    def start(self, interval_ms: int, on_frame: FrameCallback) -> None:
        self.start_count += 1
        if self._fail_on_start is not None:
            raise self._fail_on_start
        loop = asyncio.get_running_loop()
        self.active = True
        self._index = 0
        interval_s = interval_ms / 1000.0

        def deliver() -> None:
            if not self.active:
                return
            amplitude = self._next_amplitude()
            if amplitude is None:
                self._handle = None
                return
            self._handle = loop.call_later(interval_s, deliver)
            self.delivered += 1
            on_frame(AudioFrame(amplitude=amplitude, timestamp=time.time()))

        self._handle = loop.call_later(interval_s, deliver)

    def stop(self) -> None:
        self.stop_count += 1
        self.active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _next_amplitude(self) -> float | None:
        index = self._index
        self._index += 1
        if self._generator is not None:
            return self._generator(index)
        if index >= len(self._amplitudes):
            return None
        return self._amplitudes[index]


class AsyncioBackgroundTaskProvider:
    """Background execution service driven by the asyncio loop.

    ``seconds_per_minute`` scales the registered interval so demos and tests
    need not wait real minutes. ``fire`` delivers a wake immediately.
    """

    def __init__(
        self,
        seconds_per_minute: float = 60.0,
        available: BackgroundStatus = BackgroundStatus.AVAILABLE,
    ) -> None:
        self.seconds_per_minute = seconds_per_minute
        self.available = available
        self.config: BackgroundFetchConfig | None = None
        # Every result signaled per task id, in order.
        self.finished: dict[str, list[FetchResult]] = {}
        self._on_event: BackgroundEventHandler | None = None
        self._on_timeout: BackgroundEventHandler | None = None
        self._ticker: asyncio.Task[None] | None = None
        self._ids = itertools.count(1)
        self._running: set[asyncio.Task[None]] = set()

    async def configure(
        self,
        config: BackgroundFetchConfig,
        on_event: BackgroundEventHandler,
        on_timeout: BackgroundEventHandler,
    ) -> BackgroundStatus:
        self.config = config
        self._on_event = on_event
        self._on_timeout = on_timeout
        if self.available is BackgroundStatus.AVAILABLE:
            interval_s = config.min_interval_minutes * self.seconds_per_minute
            self._ticker = asyncio.get_running_loop().create_task(self._tick(interval_s))
        return self.available

    def status(self) -> BackgroundStatus:
        return self.available

    def finish(self, task_id: str, result: FetchResult) -> None:
        self.finished.setdefault(task_id, []).append(result)

    def fire(self) -> tuple[str, asyncio.Task[None]]:
        """Deliver one wake now and return its task id and handler task."""

        if self._on_event is None:
            raise RuntimeError("background task not configured")
        task_id = f"fetch-{next(self._ids)}"
        task = asyncio.get_running_loop().create_task(self._on_event(task_id))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return task_id, task

    async def expire(self, task_id: str) -> None:
        """Deliver the OS timeout notification for ``task_id``."""

        if self._on_timeout is None:
            raise RuntimeError("background task not configured")
        await self._on_timeout(task_id)

    async def shutdown(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            await asyncio.gather(self._ticker, return_exceptions=True)
            self._ticker = None
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    async def _tick(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            self.fire()

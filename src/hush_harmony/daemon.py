"""Daemon service for running the collector in a long-lived process."""

from __future__ import annotations

from dataclasses import dataclass

import asyncio
import logging

from .api import CollectorRuntime, build_collector
from .config import CollectorSettings
from .errors import NoReadingError
from .simulation import (
    AsyncioBackgroundTaskProvider,
    ScriptedAudioLevelProvider,
    SimulatedLocationProvider,
    StaticPermissionProvider,
)


@dataclass
class DaemonConfig:
    """Configuration for the daemon runtime loop."""

    # Run until stopped when None.
    duration_s: float | None = None
    share_on_exit: bool = False


class CollectorDaemon:
    """Daemon runner that keeps the collector's tracks alive."""

    def __init__(self, runtime: CollectorRuntime, config: DaemonConfig) -> None:
        self._runtime = runtime
        self._config = config
        self._logger = logging.getLogger(__name__)
        self._stopped = asyncio.Event()

    async def run(self) -> bool:
        """Run until the duration elapses or ``stop`` is called.

        Returns False when permissions were refused and nothing was started.
        """

        state = await self._runtime.start()
        if not state.authorized:
            await self._runtime.stop()
            return False
        self._logger.info("daemon_started", extra={"duration_s": self._config.duration_s})
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self._config.duration_s)
        except asyncio.TimeoutError:
            pass
        try:
            if self._config.share_on_exit:
                try:
                    outcome = await self._runtime.scheduler.trigger_manual_share()
                    self._logger.info("daemon_shared", extra={"succeeded": outcome.succeeded})
                except NoReadingError as exc:
                    self._logger.warning("daemon_share_skipped", extra={"error": str(exc)})
        finally:
            await self._runtime.stop()
            self._logger.info("daemon_stopped")
        return True

    def stop(self) -> None:
        """Stop the daemon loop."""

        self._stopped.set()


def build_simulated_collector(settings: CollectorSettings) -> tuple[CollectorRuntime, AsyncioBackgroundTaskProvider]:
    """Wire the collector to the in-process simulated providers."""

    sim = settings.simulation
    background = AsyncioBackgroundTaskProvider(seconds_per_minute=sim.seconds_per_minute)
    runtime = build_collector(
        permissions=StaticPermissionProvider(),
        location=SimulatedLocationProvider(
            latitude=sim.latitude,
            longitude=sim.longitude,
            delay_s=sim.location_delay_ms / 1000.0,
            jitter_deg=sim.location_jitter_deg,
        ),
        audio=ScriptedAudioLevelProvider.gaussian(sim.amplitude_mean, sim.amplitude_std),
        background=background,
        settings=settings,
    )
    return runtime, background


def run_daemon(settings: CollectorSettings | None = None, config: DaemonConfig | None = None) -> bool:
    """Entry point for a basic daemon execution with simulated providers."""

    settings = settings or CollectorSettings()
    config = config or DaemonConfig()

    async def main() -> bool:
        runtime, background = build_simulated_collector(settings)
        try:
            return await CollectorDaemon(runtime, config).run()
        finally:
            await background.shutdown()

    return asyncio.run(main())

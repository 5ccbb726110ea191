"""Public API facade for the noise collector.

This module provides a single, discoverable entry point that assembles the
permission gate, samplers, store, submitter, and scheduler from settings and
the host's capability providers.
"""

from __future__ import annotations

from dataclasses import dataclass

import logging

from .config import CollectorSettings
from .cycle import SamplingCycle, SamplingParameters
from .location import LocationSampler
from .logging_utils import configure_logging
from .models import PermissionState
from .noise import NoiseSampler
from .observability import CycleMetrics, HealthMonitor, MetricsExporter
from .permissions import LocationPolicy, PermissionGate
from .providers import AudioLevelProvider, BackgroundTaskProvider, LocationProvider, PermissionProvider
from .scheduler import Scheduler
from .store import ReadingStore
from .submitter import Submitter


@dataclass
class CollectorRuntime:
    """Structured runtime handles for the host application."""

    settings: CollectorSettings
    gate: PermissionGate
    store: ReadingStore
    submitter: Submitter
    cycle: SamplingCycle
    scheduler: Scheduler
    metrics: CycleMetrics
    health: HealthMonitor
    exporter: MetricsExporter
    background: BackgroundTaskProvider | None = None

    async def start(self) -> PermissionState:
        """Authorize and, only when authorized, start both scheduling tracks.

        Safe to call again later, e.g. after the user grants a permission
        that was refused at startup; running tracks are left untouched.
        """

        logger = logging.getLogger(__name__)
        state = await self.gate.authorize()
        if not state.authorized:
            logger.warning("Permission denied", extra={"refused": state.refused()})
            return state

        schedule = self.settings.schedule
        current = self.scheduler.state
        if not current.foreground_timer_active:
            self.scheduler.start(schedule.foreground_interval_ms)
        if self.background is not None and not current.background_registered:
            await self.scheduler.register_background_wake(schedule.background_min_interval_minutes)
        return state

    async def stop(self) -> None:
        await self.scheduler.aclose()
        self.exporter.stop()
        self.submitter.close()


def build_collector(
    permissions: PermissionProvider,
    location: LocationProvider,
    audio: AudioLevelProvider,
    background: BackgroundTaskProvider | None = None,
    settings: CollectorSettings | None = None,
    logger: logging.Logger | None = None,
) -> CollectorRuntime:
    """Create a collector runtime with sensible defaults and observability."""

    settings = settings or CollectorSettings()
    configure_logging(settings.logging)

    logger = logger or logging.getLogger(__name__)
    policy = settings.permissions.location_policy
    gate = PermissionGate(
        permissions,
        platform=settings.permissions.platform,
        location_policy=LocationPolicy(policy) if policy else None,
        logger=logger,
    )
    store = ReadingStore(logger=logger)
    submitter = Submitter(
        settings.submission.backend_url,
        timeout_s=settings.submission.timeout_s,
        logger=logger,
    )
    metrics = CycleMetrics()
    health = HealthMonitor(freshness_window=settings.metrics.freshness_window_s)
    cycle = SamplingCycle(
        gate=gate,
        location=LocationSampler(location, logger=logger),
        noise=NoiseSampler(audio, stall_timeout_ms=settings.noise.stall_timeout_ms, logger=logger),
        store=store,
        submitter=submitter,
        parameters=SamplingParameters.from_config(settings.location, settings.noise),
        metrics=metrics,
        health=health,
        logger=logger,
    )
    scheduler = Scheduler(
        cycle=cycle,
        store=store,
        submitter=submitter,
        background=background,
        background_deadline_s=settings.schedule.background_deadline_s,
        logger=logger,
    )

    exporter = MetricsExporter(metrics, health, store)
    if settings.metrics.enabled:
        exporter.start(settings.metrics.host, settings.metrics.port)

    return CollectorRuntime(
        settings=settings,
        gate=gate,
        store=store,
        submitter=submitter,
        cycle=cycle,
        scheduler=scheduler,
        metrics=metrics,
        health=health,
        exporter=exporter,
        background=background,
    )

from __future__ import annotations

import asyncio
import math

import pytest

from conftest import CollectorServer
from hush_harmony.api import CollectorRuntime, build_collector
from hush_harmony.cli import main
from hush_harmony.config import (
    CollectorSettings,
    LocationConfig,
    NoiseConfig,
    ScheduleConfig,
    SimulationConfig,
    SubmissionConfig,
)
from hush_harmony.daemon import DaemonConfig, run_daemon
from hush_harmony.errors import CycleError, CycleFailure, LocationError, LocationFailure
from hush_harmony.providers import Capability, PermissionStatus
from hush_harmony.simulation import (
    AsyncioBackgroundTaskProvider,
    ScriptedAudioLevelProvider,
    SimulatedLocationProvider,
    StaticPermissionProvider,
)

SCENARIO_AMPLITUDES = [0.0, 0.0] + [5.0 * i for i in range(1, 39)]


def _settings(backend_url: str, **overrides: object) -> CollectorSettings:
    fields: dict[str, object] = {
        "submission": SubmissionConfig(backend_url=backend_url, timeout_s=2.0),
        "noise": NoiseConfig(capture_frames=40, calibration_frames=2, frame_interval_ms=1),
        "location": LocationConfig(timeout_ms=1000, max_age_ms=0),
    }
    fields.update(overrides)
    return CollectorSettings(**fields)


def _runtime(
    settings: CollectorSettings,
    location: SimulatedLocationProvider | None = None,
    audio: ScriptedAudioLevelProvider | None = None,
    permissions: StaticPermissionProvider | None = None,
    background: AsyncioBackgroundTaskProvider | None = None,
) -> CollectorRuntime:
    return build_collector(
        permissions=permissions or StaticPermissionProvider(),
        location=location or SimulatedLocationProvider(latitude=52.2297, longitude=21.0122),
        audio=audio or ScriptedAudioLevelProvider(amplitudes=SCENARIO_AMPLITUDES),
        background=background,
        settings=settings,
    )


def test_cycle_reduces_scripted_window_and_posts_it(collector: CollectorServer) -> None:
    runtime = _runtime(_settings(collector.url))
    try:
        reading = asyncio.run(runtime.cycle.run())
    finally:
        runtime.submitter.close()

    retained = SCENARIO_AMPLITUDES[2:]
    expected = 20.0 * math.log10(math.sqrt(sum(a * a for a in retained) / len(retained)))
    assert reading.noise_decibels == pytest.approx(expected)
    assert runtime.store.latest() is reading
    assert [request["body"] for request in collector.received] == [reading.payload()]
    assert runtime.cycle.last_outcome is not None and runtime.cycle.last_outcome.succeeded


def test_location_timeout_fails_cycle_without_side_effects(collector: CollectorServer) -> None:
    location = SimulatedLocationProvider(latitude=1.0, longitude=2.0, delay_s=0.25)
    audio = ScriptedAudioLevelProvider.gaussian(0.05, 0.01)
    runtime = _runtime(
        _settings(collector.url, location=LocationConfig(timeout_ms=200, max_age_ms=0)),
        location=location,
        audio=audio,
    )
    try:
        with pytest.raises(CycleError) as excinfo:
            asyncio.run(runtime.cycle.run())
    finally:
        runtime.submitter.close()

    assert excinfo.value.reason is CycleFailure.LOCATION
    assert isinstance(excinfo.value.__cause__, LocationError)
    assert excinfo.value.__cause__.reason is LocationFailure.TIMEOUT
    assert runtime.store.latest() is None
    assert collector.received == []
    assert audio.active is False
    assert runtime.metrics.count("cycles_location_failed") == 1


def test_unreachable_collector_does_not_fail_cycle(refused_url: str) -> None:
    runtime = _runtime(_settings(refused_url))
    try:
        reading = asyncio.run(runtime.cycle.run())
    finally:
        runtime.submitter.close()

    assert runtime.store.latest() is reading
    outcome = runtime.cycle.last_outcome
    assert outcome is not None
    assert outcome.succeeded is False
    assert outcome.http_status is None
    assert runtime.metrics.count("cycles_ok") == 1
    assert runtime.metrics.count("submissions_failed") == 1


def test_runtime_starts_tracks_only_when_authorized(collector: CollectorServer) -> None:
    permissions = StaticPermissionProvider({Capability.LOCATION: PermissionStatus.DENIED})
    background = AsyncioBackgroundTaskProvider(seconds_per_minute=3600.0)
    runtime = _runtime(
        _settings(collector.url, schedule=ScheduleConfig(foreground_interval_ms=60_000)),
        permissions=permissions,
        background=background,
    )

    async def scenario() -> None:
        refused = await runtime.start()
        assert refused.authorized is False
        assert runtime.scheduler.state.foreground_timer_active is False
        assert runtime.scheduler.state.background_registered is False
        assert background.config is None

        permissions.set_status(Capability.LOCATION, PermissionStatus.GRANTED)
        granted = await runtime.start()
        assert granted.authorized is True
        assert runtime.scheduler.state.foreground_timer_active is True
        assert runtime.scheduler.state.background_registered is True

        await runtime.stop()
        await background.shutdown()
        assert runtime.scheduler.state.foreground_timer_active is False

    asyncio.run(scenario())
    assert collector.received == []


def test_daemon_collects_and_shares_on_exit(collector: CollectorServer) -> None:
    settings = _settings(
        collector.url,
        schedule=ScheduleConfig(foreground_interval_ms=20),
        noise=NoiseConfig(capture_frames=5, calibration_frames=1, frame_interval_ms=1),
        simulation=SimulationConfig(location_delay_ms=0, seconds_per_minute=3600.0),
    )

    started = run_daemon(settings, DaemonConfig(duration_s=0.3, share_on_exit=True))

    assert started is True
    assert len(collector.received) >= 2
    for request in collector.received:
        assert request["path"] == "/collect-noise-data"
        assert set(request["body"]) == {"lat", "long", "timestamp", "noise"}


def test_cli_runs_for_requested_duration(collector: CollectorServer, tmp_path) -> None:
    config = tmp_path / "collector.toml"
    config.write_text(
        "[submission]\n"
        f'backend_url = "{collector.url}"\n'
        "\n"
        "[schedule]\n"
        "foreground_interval_ms = 20\n"
        "\n"
        "[noise]\n"
        "capture_frames = 5\n"
        "calibration_frames = 1\n"
        "frame_interval_ms = 1\n"
        "\n"
        "[simulation]\n"
        "location_delay_ms = 0\n"
        "seconds_per_minute = 3600.0\n"
    )

    assert main(["--config", str(config), "--duration", "0.2"]) == 0
    assert collector.received

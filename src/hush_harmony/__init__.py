"""Top-level package for the hush-harmony location and noise collector."""

from .api import CollectorRuntime, build_collector
from .config import (
    CollectorSettings,
    LocationConfig,
    LoggingConfig,
    MetricsConfig,
    NoiseConfig,
    PermissionConfig,
    ScheduleConfig,
    SimulationConfig,
    SubmissionConfig,
)
from .cycle import SamplingCycle, SamplingParameters
from .daemon import CollectorDaemon, DaemonConfig, run_daemon
from .errors import (
    AudioCaptureError,
    AudioFailure,
    CollectorError,
    CycleError,
    CycleFailure,
    LocationError,
    LocationFailure,
    NoReadingError,
    PermissionDeniedError,
    ProtocolViolation,
    SubmissionError,
    SubmissionFailure,
)
from .location import LocationSampler
from .logging_utils import JsonFormatter, configure_logging
from .models import LocationFix, PermissionState, Reading, ScheduleState, SubmissionOutcome
from .noise import NoiseSampler, NoiseWindow, decibels_from_amplitudes
from .observability import CycleMetrics, HealthMonitor, HealthStatus, MetricsExporter
from .permissions import LocationPolicy, PermissionGate
from .providers import (
    AudioFrame,
    AudioLevelProvider,
    BackgroundFetchConfig,
    BackgroundStatus,
    BackgroundTaskProvider,
    Capability,
    FetchResult,
    LocationProvider,
    PermissionProvider,
    PermissionStatus,
    Position,
    PositionError,
    PositionErrorCode,
)
from .scheduler import BackgroundCompletion, Scheduler
from .simulation import (
    AsyncioBackgroundTaskProvider,
    ScriptedAudioLevelProvider,
    SimulatedLocationProvider,
    StaticPermissionProvider,
)
from .store import ReadingStore
from .submitter import Submitter

__all__ = [
    "CollectorRuntime",
    "build_collector",
    "CollectorSettings",
    "LocationConfig",
    "LoggingConfig",
    "MetricsConfig",
    "NoiseConfig",
    "PermissionConfig",
    "ScheduleConfig",
    "SimulationConfig",
    "SubmissionConfig",
    "SamplingCycle",
    "SamplingParameters",
    "CollectorDaemon",
    "DaemonConfig",
    "run_daemon",
    "AudioCaptureError",
    "AudioFailure",
    "CollectorError",
    "CycleError",
    "CycleFailure",
    "LocationError",
    "LocationFailure",
    "NoReadingError",
    "PermissionDeniedError",
    "ProtocolViolation",
    "SubmissionError",
    "SubmissionFailure",
    "LocationSampler",
    "JsonFormatter",
    "configure_logging",
    "LocationFix",
    "PermissionState",
    "Reading",
    "ScheduleState",
    "SubmissionOutcome",
    "NoiseSampler",
    "NoiseWindow",
    "decibels_from_amplitudes",
    "CycleMetrics",
    "HealthMonitor",
    "HealthStatus",
    "MetricsExporter",
    "LocationPolicy",
    "PermissionGate",
    "AudioFrame",
    "AudioLevelProvider",
    "BackgroundFetchConfig",
    "BackgroundStatus",
    "BackgroundTaskProvider",
    "Capability",
    "FetchResult",
    "LocationProvider",
    "PermissionProvider",
    "PermissionStatus",
    "Position",
    "PositionError",
    "PositionErrorCode",
    "BackgroundCompletion",
    "Scheduler",
    "AsyncioBackgroundTaskProvider",
    "ScriptedAudioLevelProvider",
    "SimulatedLocationProvider",
    "StaticPermissionProvider",
    "ReadingStore",
    "Submitter",
]

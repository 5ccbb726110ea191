"""Capability provider protocols consumed by the pipeline.

The device drivers themselves live outside this package. Each provider is a
structural protocol so that platform bindings and the in-process simulators in
``hush_harmony.simulation`` are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Awaitable, Callable, Protocol


class Capability(str, Enum):
    """Device capabilities gated by the OS permission system."""

    MICROPHONE = "microphone"
    LOCATION = "location"


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    RESTRICTED = "restricted"


class PermissionProvider(Protocol):
    """Protocol for the OS permission service."""

    async def check(self, capability: Capability) -> PermissionStatus:
        """Return the current status without prompting."""

    async def request(self, capability: Capability) -> PermissionStatus:
        """Prompt for the capability if needed and return the resulting status."""


@dataclass(frozen=True)
class Position:
    """A location fix as reported by the provider."""

    latitude: float
    longitude: float
    accuracy_m: float | None = None
    # Epoch seconds at which the device computed the fix.
    timestamp: float | None = None


class PositionErrorCode(IntEnum):
    # Numbering follows the W3C geolocation error codes.
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionError(Exception):
    """Raised by location providers when no fix can be produced."""

    def __init__(self, code: PositionErrorCode, message: str = "") -> None:
        super().__init__(message or code.name.lower())
        self.code = code


class LocationProvider(Protocol):
    """Protocol for one-shot position acquisition."""

    async def get_current_position(
        self,
        *,
        high_accuracy: bool,
        timeout_s: float | None,
        max_age_s: float,
    ) -> Position:
        """Return a fix no older than ``max_age_s`` or raise ``PositionError``."""


@dataclass(frozen=True)
class AudioFrame:
    """One audio level frame with its raw linear amplitude."""

    amplitude: float
    timestamp: float | None = None


FrameCallback = Callable[[AudioFrame], None]


class AudioLevelProvider(Protocol):
    """Protocol for a streaming audio level meter.

    ``start`` must deliver frames through ``on_frame`` on the running event
    loop until ``stop`` is called.
    """

    def start(self, interval_ms: int, on_frame: FrameCallback) -> None:
        """Begin streaming frames every ``interval_ms`` milliseconds."""

    def stop(self) -> None:
        """Stop streaming and release the microphone."""


class BackgroundStatus(str, Enum):
    AVAILABLE = "available"
    DENIED = "denied"
    RESTRICTED = "restricted"


class FetchResult(str, Enum):
    NEW_DATA = "new_data"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass(frozen=True)
class BackgroundFetchConfig:
    """Registration options for the periodic background task."""

    min_interval_minutes: int = 15
    stop_on_terminate: bool = False
    start_on_boot: bool = True


BackgroundEventHandler = Callable[[str], Awaitable[None]]


class BackgroundTaskProvider(Protocol):
    """Protocol for the OS periodic background execution service."""

    async def configure(
        self,
        config: BackgroundFetchConfig,
        on_event: BackgroundEventHandler,
        on_timeout: BackgroundEventHandler,
    ) -> BackgroundStatus:
        """Register the periodic task and return the availability status."""

    def finish(self, task_id: str, result: FetchResult) -> None:
        """Signal that the task identified by ``task_id`` has completed."""

    def status(self) -> BackgroundStatus:
        """Return whether background execution is currently available."""

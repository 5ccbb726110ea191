"""Permission gating for microphone and location access."""

from __future__ import annotations

from enum import Enum

import logging

from .models import PermissionState
from .providers import Capability, PermissionProvider, PermissionStatus


class LocationPolicy(str, Enum):
    """How location access is obtained on each authorization."""

    # Prompt on every cold start.
    REQUEST = "request"
    # Trust an earlier grant and only verify it.
    CHECK = "check"


PLATFORM_LOCATION_POLICY: dict[str, LocationPolicy] = {
    "android": LocationPolicy.REQUEST,
    "ios": LocationPolicy.CHECK,
}


class PermissionGate:
    """Resolve microphone and location access into a PermissionState."""

    def __init__(
        self,
        provider: PermissionProvider,
        platform: str = "android",
        location_policy: LocationPolicy | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if location_policy is None:
            if platform not in PLATFORM_LOCATION_POLICY:
                raise ValueError(f"Unsupported platform {platform!r}")
            location_policy = PLATFORM_LOCATION_POLICY[platform]
        self._provider = provider
        self._platform = platform
        self._location_policy = location_policy
        self._logger = logger or logging.getLogger(__name__)

    @property
    def location_policy(self) -> LocationPolicy:
        return self._location_policy

    async def authorize(self) -> PermissionState:
        """Request the microphone and obtain location access per policy."""

        microphone = PermissionStatus(await self._provider.request(Capability.MICROPHONE))
        if self._location_policy is LocationPolicy.REQUEST:
            location = PermissionStatus(await self._provider.request(Capability.LOCATION))
        else:
            location = PermissionStatus(await self._provider.check(Capability.LOCATION))

        state = PermissionState(
            microphone_granted=microphone is PermissionStatus.GRANTED,
            location_granted=location is PermissionStatus.GRANTED,
        )
        if not state.authorized:
            self._logger.warning(
                "permission_denied",
                extra={
                    "platform": self._platform,
                    "refused": state.refused(),
                    "microphone": microphone.value,
                    "location": location.value,
                },
            )
        return state

"""Point-in-time location acquisition with a bounded wait."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import asyncio
import logging
import math

from .errors import LocationError, LocationFailure
from .models import LocationFix
from .providers import LocationProvider, PositionError, PositionErrorCode

_FAILURE_BY_CODE = {
    PositionErrorCode.PERMISSION_DENIED: LocationFailure.PERMISSION_REVOKED,
    PositionErrorCode.POSITION_UNAVAILABLE: LocationFailure.UNAVAILABLE,
    PositionErrorCode.TIMEOUT: LocationFailure.TIMEOUT,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render a UTC datetime as ISO-8601 with millisecond precision and a Z suffix."""

    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _valid_coordinates(latitude: float, longitude: float) -> bool:
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


class LocationSampler:
    """Acquire one location fix from a LocationProvider."""

    def __init__(
        self,
        provider: LocationProvider,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    async def sample(self, max_wait_ms: int, max_age_ms: int, high_accuracy: bool = True) -> LocationFix:
        """Return a fix or raise ``LocationError``.

        The provider request is cancelled when ``max_wait_ms`` elapses, and
        also when the calling task is cancelled.
        """

        max_wait_s = max_wait_ms / 1000.0
        request = self._provider.get_current_position(
            high_accuracy=high_accuracy,
            timeout_s=max_wait_s,
            max_age_s=max_age_ms / 1000.0,
        )
        try:
            position = await asyncio.wait_for(request, timeout=max_wait_s)
        except asyncio.TimeoutError as exc:
            self._logger.warning("location_timeout", extra={"max_wait_ms": max_wait_ms})
            raise LocationError(LocationFailure.TIMEOUT, f"no fix within {max_wait_ms} ms") from exc
        except PositionError as exc:
            reason = _FAILURE_BY_CODE.get(exc.code, LocationFailure.UNAVAILABLE)
            self._logger.warning("location_failed", extra={"reason": reason.value, "error": str(exc)})
            raise LocationError(reason, str(exc)) from exc
        except (OSError, RuntimeError) as exc:
            self._logger.error("location_provider_error", extra={"error": str(exc)})
            raise LocationError(LocationFailure.UNAVAILABLE, str(exc)) from exc

        if not _valid_coordinates(position.latitude, position.longitude):
            self._logger.warning(
                "location_invalid",
                extra={"latitude": position.latitude, "longitude": position.longitude},
            )
            raise LocationError(
                LocationFailure.UNAVAILABLE,
                f"provider returned invalid coordinates ({position.latitude}, {position.longitude})",
            )

        # A cached fix carries the time the device computed it.
        if position.timestamp is not None:
            fixed_at = datetime.fromtimestamp(position.timestamp, timezone.utc)
        else:
            fixed_at = self._clock()
        fix = LocationFix(
            latitude=position.latitude,
            longitude=position.longitude,
            timestamp_utc=format_timestamp(fixed_at),
            accuracy_m=position.accuracy_m,
        )
        self._logger.debug(
            "location_fixed",
            extra={"latitude": fix.latitude, "longitude": fix.longitude, "accuracy_m": fix.accuracy_m},
        )
        return fix

"""Data model for readings, permissions, and submission outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Reading(BaseModel):
    """One assembled location + noise record ready for submission."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False, serialization_alias="lat")
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False, serialization_alias="long")
    timestamp_utc: str = Field(serialization_alias="timestamp", description="ISO-8601 UTC timestamp")
    noise_decibels: float = Field(allow_inf_nan=False, serialization_alias="noise")

    @field_validator("timestamp_utc")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        # Raises ValueError (reported as a validation error) when unparseable.
        datetime.fromisoformat(value)
        return value

    def payload(self) -> dict[str, Any]:
        """Return the canonical wire object with exactly four keys."""

        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class LocationFix:
    """Location fragment of a Reading."""

    latitude: float
    longitude: float
    timestamp_utc: str
    accuracy_m: float | None = None


@dataclass(frozen=True)
class PermissionState:
    """Result of one authorization check."""

    microphone_granted: bool
    location_granted: bool

    @property
    def authorized(self) -> bool:
        return self.microphone_granted and self.location_granted

    def refused(self) -> list[str]:
        names = []
        if not self.microphone_granted:
            names.append("microphone")
        if not self.location_granted:
            names.append("location")
        return names


@dataclass(frozen=True)
class ScheduleState:
    """Snapshot of the scheduler tracks."""

    foreground_timer_active: bool = False
    background_registered: bool = False


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of a single submission attempt."""

    succeeded: bool
    http_status: int | None = None
    error: str | None = None

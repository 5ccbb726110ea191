"""Error taxonomy for the sampling-and-submission pipeline.

Sampler errors are cycle-local: they abort the cycle that raised them and are
logged by whichever track started it. Submission errors only ever describe a
``SubmissionOutcome``; the submitter never lets them escape.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PermissionState


class CollectorError(Exception):
    """Base class for all collector errors."""


class PermissionDeniedError(CollectorError):
    """Microphone or location access was denied or restricted."""

    def __init__(self, state: "PermissionState") -> None:
        refused = ", ".join(state.refused()) or "unknown"
        super().__init__(f"Permission denied: {refused}")
        self.state = state


class LocationFailure(str, Enum):
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    PERMISSION_REVOKED = "permission_revoked"


class LocationError(CollectorError):
    """A location fix could not be obtained."""

    def __init__(self, reason: LocationFailure, detail: str = "") -> None:
        super().__init__(f"location {reason.value}" + (f": {detail}" if detail else ""))
        self.reason = reason


class AudioFailure(str, Enum):
    INSUFFICIENT_SAMPLES = "insufficient_samples"
    DEVICE_UNAVAILABLE = "device_unavailable"


class AudioCaptureError(CollectorError):
    """The noise window could not be captured or reduced."""

    def __init__(self, reason: AudioFailure, detail: str = "") -> None:
        super().__init__(f"audio {reason.value}" + (f": {detail}" if detail else ""))
        self.reason = reason


class SubmissionFailure(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"


class SubmissionError(CollectorError):
    """Describes why a submission attempt did not succeed."""

    def __init__(self, reason: SubmissionFailure, detail: str = "", status_code: int | None = None) -> None:
        if reason is SubmissionFailure.HTTP_STATUS:
            message = f"collector responded with HTTP {status_code}"
        else:
            message = f"transport failure: {detail}"
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class CycleFailure(str, Enum):
    UNAUTHORIZED = "unauthorized"
    LOCATION = "location"
    AUDIO = "audio"


class CycleError(CollectorError):
    """A sampling cycle failed; ``__cause__`` holds the underlying error."""

    def __init__(self, reason: CycleFailure, detail: str = "") -> None:
        super().__init__(f"cycle failed ({reason.value})" + (f": {detail}" if detail else ""))
        self.reason = reason


class ProtocolViolation(CollectorError):
    """Background completion was signaled more than once."""


class NoReadingError(CollectorError):
    """Manual share was requested before any reading was collected."""

    def __init__(self) -> None:
        super().__init__("No reading has been collected yet")

"""Single-attempt submission of readings to the remote collector."""

from __future__ import annotations

import asyncio
import logging

import requests

from .errors import SubmissionError, SubmissionFailure
from .models import Reading, SubmissionOutcome

COLLECT_PATH = "/collect-noise-data"


class Submitter:
    """POST readings to ``{backend_url}/collect-noise-data``.

    Each call makes exactly one attempt and always returns a
    ``SubmissionOutcome``; failures are logged, never raised.
    """

    def __init__(
        self,
        backend_url: str,
        timeout_s: float = 10.0,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._endpoint = backend_url.rstrip("/") + COLLECT_PATH
        self._timeout_s = timeout_s
        self._session = session or requests.Session()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def submit(self, reading: Reading) -> SubmissionOutcome:
        payload = reading.payload()
        try:
            response = await asyncio.to_thread(self._post, payload)
        except requests.RequestException as exc:
            error = SubmissionError(SubmissionFailure.TRANSPORT, str(exc))
            self._logger.warning("submission_failed", extra={"endpoint": self._endpoint, "error": str(error)})
            return SubmissionOutcome(succeeded=False, error=str(error))
        except Exception as exc:
            self._logger.exception("submission_failed", extra={"endpoint": self._endpoint})
            return SubmissionOutcome(succeeded=False, error=str(SubmissionError(SubmissionFailure.TRANSPORT, str(exc))))

        status = response.status_code
        if 200 <= status < 300:
            self._logger.info("submission_succeeded", extra={"endpoint": self._endpoint, "status": status})
            return SubmissionOutcome(succeeded=True, http_status=status)
        error = SubmissionError(SubmissionFailure.HTTP_STATUS, status_code=status)
        self._logger.warning(
            "submission_failed",
            extra={"endpoint": self._endpoint, "status": status, "error": str(error)},
        )
        return SubmissionOutcome(succeeded=False, http_status=status, error=str(error))

    def _post(self, payload: dict[str, object]) -> requests.Response:
        response = self._session.post(
            self._endpoint,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self._timeout_s,
        )
        # The body carries no contract; release the connection right away.
        response.close()
        return response

    def close(self) -> None:
        self._session.close()

from __future__ import annotations

import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Iterator

import pytest

from hush_harmony.models import Reading, SubmissionOutcome


class _CollectorHandler(BaseHTTPRequestHandler):
    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        self.server.received.append(  # type: ignore[attr-defined]
            {
                "path": self.path,
                "content_type": self.headers.get("Content-Type"),
                "body": json.loads(body),
            }
        )
        self.send_response(self.server.status)  # type: ignore[attr-defined]
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
        return


class CollectorServer(HTTPServer):
    received: list[dict[str, Any]]
    status: int

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.server_address[1]}"


@pytest.fixture
def collector() -> Iterator[CollectorServer]:
    server = CollectorServer(("127.0.0.1", 0), _CollectorHandler)
    server.received = []
    server.status = 201
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=1.0)


@pytest.fixture
def refused_url() -> str:
    # Grab a free port and release it so nothing is listening there.
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


class RecordingSubmitter:
    """Submitter stand-in that records readings instead of posting them."""

    def __init__(self, outcome: SubmissionOutcome | None = None) -> None:
        self.outcome = outcome or SubmissionOutcome(succeeded=True, http_status=200)
        self.submitted: list[Reading] = []

    async def submit(self, reading: Reading) -> SubmissionOutcome:
        self.submitted.append(reading)
        return self.outcome

    def close(self) -> None:
        return


@pytest.fixture
def recording_submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


def make_reading(noise: float = 42.0) -> Reading:
    return Reading(
        latitude=52.2297,
        longitude=21.0122,
        timestamp_utc="2024-05-01T12:00:00.000Z",
        noise_decibels=noise,
    )

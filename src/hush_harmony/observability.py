"""Cycle metrics export and health checks."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Iterable

from .models import SubmissionOutcome
from .store import ReadingStore


@dataclass
class HealthStatus:
    """Health status snapshot."""

    last_cycle: float
    last_submission_ok: bool | None
    ok: bool


class HealthMonitor:
    """Track freshness of successful cycles and the last submission result."""

    def __init__(self, freshness_window: float = 60.0) -> None:
        self._freshness_window = freshness_window
        self._last_cycle: float | None = None
        self._last_submission_ok: bool | None = None

    def mark_cycle(self) -> None:
        self._last_cycle = time.time()

    def mark_submission(self, outcome: SubmissionOutcome) -> None:
        self._last_submission_ok = outcome.succeeded

    def status(self) -> HealthStatus:
        now = time.time()
        last_cycle = self._last_cycle or 0.0
        ok = now - last_cycle <= self._freshness_window if last_cycle else False
        return HealthStatus(last_cycle=last_cycle, last_submission_ok=self._last_submission_ok, ok=ok)


class CycleMetrics:
    """Count cycle and submission outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter()

    def record_cycle(self, result: str) -> None:
        with self._lock:
            self._counts[f"cycles_{result}"] += 1

    def record_submission(self, outcome: SubmissionOutcome) -> None:
        with self._lock:
            self._counts["submissions_ok" if outcome.succeeded else "submissions_failed"] += 1

    def count(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def metrics(self) -> dict[str, int]:
        with self._lock:
            return dict(sorted(self._counts.items()))


class MetricsExporter:
    """HTTP server exposing metrics, health, and the latest reading."""

    def __init__(self, metrics: CycleMetrics, health: HealthMonitor, store: ReadingStore) -> None:
        self._metrics = metrics
        self._health = health
        self._store = store
        self._server: HTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int | None:
        if self._server is None:
            return None
        return self._server.server_address[1]

    def start(self, host: str, port: int) -> None:
        metrics = self._metrics
        health = self._health
        store = self._store

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                if self.path == "/metrics":
                    body = []
                    for key, value in metrics.metrics().items():
                        body.append(f"{key} {value}")
                    self._reply(200, "text/plain", "\n".join(body).encode())
                elif self.path == "/health":
                    status = health.status()
                    self._reply(200 if status.ok else 503, "application/json", json.dumps(status.__dict__).encode())
                elif self.path == "/reading":
                    reading = store.latest()
                    if reading is None:
                        self._reply(404, "application/json", b"{}")
                    else:
                        self._reply(200, "application/json", json.dumps(reading.payload()).encode())
                else:
                    self.send_response(404)
                    self.end_headers()

            def _reply(self, status: int, content_type: str, body: bytes) -> None:
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format: str, *args: Iterable[object]) -> None:  # noqa: A003
                return

        self._server = HTTPServer((host, port), Handler)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
        if self._thread:
            self._thread.join(timeout=1.0)
        self._server = None
        self._thread = None

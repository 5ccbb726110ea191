"""Process-wide latest-reading cell."""

from __future__ import annotations

from typing import Callable

import logging
import threading
import time

from .errors import NoReadingError
from .models import Reading

ReadingListener = Callable[[Reading], None]


class ReadingStore:
    """Hold the most recent Reading; the last write wins."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._lock = threading.Lock()
        self._reading: Reading | None = None
        self._updated_at: float | None = None
        self._listeners: list[ReadingListener] = []
        self._logger = logger or logging.getLogger(__name__)

    @property
    def updated_at(self) -> float | None:
        return self._updated_at

    def latest(self) -> Reading | None:
        with self._lock:
            return self._reading

    def require_latest(self) -> Reading:
        reading = self.latest()
        if reading is None:
            raise NoReadingError()
        return reading

    def update(self, reading: Reading) -> None:
        with self._lock:
            self._reading = reading
            self._updated_at = time.time()
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(reading)
            except Exception as exc:
                self._logger.error("reading_listener_failed", extra={"error": str(exc)})

    def add_listener(self, listener: ReadingListener) -> None:
        """Call ``listener`` with every Reading stored from now on."""

        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ReadingListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

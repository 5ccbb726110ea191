"""Foreground, background, and manual triggers for sampling cycles."""

from __future__ import annotations

from types import TracebackType

import asyncio
import logging

from .cycle import SamplingCycle
from .errors import CycleError, ProtocolViolation
from .models import ScheduleState, SubmissionOutcome
from .providers import BackgroundFetchConfig, BackgroundStatus, BackgroundTaskProvider, FetchResult
from .store import ReadingStore
from .submitter import Submitter


class BackgroundCompletion:
    """Scoped guard that signals background task completion exactly once.

    The guard signals on exit: ``NEW_DATA`` when the body finished cleanly,
    ``FAILED`` when it raised or was cancelled. ``signal`` may be called
    inside the body to report early; the exit then does nothing. Signaling
    twice raises ``ProtocolViolation``.
    """

    def __init__(self, provider: BackgroundTaskProvider, task_id: str) -> None:
        self._provider = provider
        self._task_id = task_id
        self._signaled = False

    @property
    def signaled(self) -> bool:
        return self._signaled

    def signal(self, result: FetchResult) -> None:
        if self._signaled:
            raise ProtocolViolation(f"background task {self._task_id} already finished")
        self._signaled = True
        self._provider.finish(self._task_id, result)

    async def __aenter__(self) -> "BackgroundCompletion":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._signaled:
            self.signal(FetchResult.NEW_DATA if exc_type is None else FetchResult.FAILED)


class Scheduler:
    """Own the foreground timer, the background wake, and manual share."""

    def __init__(
        self,
        cycle: SamplingCycle,
        store: ReadingStore,
        submitter: Submitter,
        background: BackgroundTaskProvider | None = None,
        background_deadline_s: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._cycle = cycle
        self._store = store
        self._submitter = submitter
        self._background = background
        self._background_deadline_s = background_deadline_s
        self._logger = logger or logging.getLogger(__name__)
        self._timer: asyncio.Task[None] | None = None
        self._foreground_cycles: set[asyncio.Task[None]] = set()
        self._background_cycles: dict[str, tuple[asyncio.Task[None], BackgroundCompletion]] = {}
        # Wakes whose OS timeout arrived before their cycle started.
        self._expired_wakes: set[str] = set()
        self._background_registered = False

    @property
    def state(self) -> ScheduleState:
        return ScheduleState(
            foreground_timer_active=self._timer is not None and not self._timer.done(),
            background_registered=self._background_registered,
        )

    def start(self, interval_ms: int) -> None:
        """Start invoking a cycle every ``interval_ms``; replaces any prior timer."""

        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._foreground_loop(interval_ms / 1000.0))
        self._logger.info("foreground_started", extra={"interval_ms": interval_ms})

    def stop(self) -> None:
        """Cancel the timer and in-flight foreground cycles. Safe to repeat."""

        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        for task in list(self._foreground_cycles):
            task.cancel()
        self._logger.info("foreground_stopped")

    async def register_background_wake(self, min_interval_minutes: int) -> BackgroundStatus | None:
        """Register the periodic background task once."""

        if self._background is None:
            raise RuntimeError("No background task provider configured")
        if self._background_registered:
            self._logger.debug("background_already_registered")
            return None
        config = BackgroundFetchConfig(min_interval_minutes=min_interval_minutes)
        status = await self._background.configure(config, self._on_background_wake, self._on_background_timeout)
        self._background_registered = True
        if status is BackgroundStatus.AVAILABLE:
            self._logger.info("background_available", extra={"min_interval_minutes": min_interval_minutes})
        else:
            self._logger.warning("background_unavailable", extra={"status": status.value})
        return status

    async def trigger_manual_share(self) -> SubmissionOutcome:
        """Submit the latest stored Reading without sampling.

        Raises ``NoReadingError`` when no cycle has succeeded yet.
        """

        reading = self._store.require_latest()
        self._logger.info("manual_share", extra={"timestamp": reading.timestamp_utc})
        return await self._submitter.submit(reading)

    async def aclose(self) -> None:
        """Stop every track and wait for outstanding cycles to unwind."""

        self.stop()
        pending = list(self._foreground_cycles)
        for task, _ in list(self._background_cycles.values()):
            task.cancel()
            pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _foreground_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            task = asyncio.create_task(self._run_cycle("foreground"))
            self._foreground_cycles.add(task)
            task.add_done_callback(self._foreground_cycles.discard)

    async def _run_cycle(self, track: str) -> None:
        try:
            await self._cycle.run()
        except CycleError as exc:
            self._logger.warning(
                "cycle_failed",
                extra={"track": track, "reason": exc.reason.value, "error": str(exc.__cause__ or exc)},
            )
        except Exception:
            self._logger.exception("cycle_crashed", extra={"track": track})

    async def _on_background_wake(self, task_id: str) -> None:
        self._logger.info("background_wake", extra={"task_id": task_id})
        async with BackgroundCompletion(self._background, task_id) as completion:
            if task_id in self._expired_wakes:
                self._expired_wakes.discard(task_id)
                self._logger.warning("background_wake_expired", extra={"task_id": task_id})
                completion.signal(FetchResult.FAILED)
                return
            task = asyncio.current_task()
            if task is None:
                raise RuntimeError("background wake must run inside a task")
            self._background_cycles[task_id] = (task, completion)
            try:
                await asyncio.wait_for(self._cycle.run(), timeout=self._background_deadline_s)
            except asyncio.TimeoutError:
                self._logger.warning("background_deadline_exceeded", extra={"task_id": task_id})
                completion.signal(FetchResult.FAILED)
            except CycleError as exc:
                self._logger.warning(
                    "cycle_failed",
                    extra={"track": "background", "reason": exc.reason.value, "error": str(exc.__cause__ or exc)},
                )
                completion.signal(FetchResult.FAILED)
            except Exception:
                self._logger.exception("cycle_crashed", extra={"track": "background"})
                completion.signal(FetchResult.FAILED)
            finally:
                self._background_cycles.pop(task_id, None)

    async def _on_background_timeout(self, task_id: str) -> None:
        # The OS is about to suspend us; abandon the cycle and report failure.
        entry = self._background_cycles.pop(task_id, None)
        self._logger.warning("background_timeout", extra={"task_id": task_id})
        if entry is None:
            # Either not started yet or already finished; a wake that has not
            # started yet must not run its cycle.
            self._expired_wakes.add(task_id)
            return
        task, completion = entry
        if not completion.signaled:
            completion.signal(FetchResult.FAILED)
        task.cancel()

"""Scan session state machine and its elapsed-time clock."""

import asyncio
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional

import logfire
from loguru import logger

from turbo_tasker.config import config
from turbo_tasker.exceptions import PayloadDecodeError, ScanInvocationError, StateConflictError
from turbo_tasker.schemas.events import Payload, ProgressEvent
from turbo_tasker.schemas.scan import ProgressRecord, ScanCounters, ScanSnapshot, ScanStatus

ScanOperation = Callable[[str], Awaitable[Any]]


class ElapsedClock:
    """Repeating sampler that calls ``on_tick`` every ``interval`` seconds.

    Runs as a task on the current event loop. ``start`` is a no-op while the
    clock is running and ``stop`` is a no-op when it is not.
    """

    def __init__(self, interval: float, on_tick: Callable[[], None]):
        if interval <= 0:
            raise ValueError("Clock interval must be positive")
        self.interval = interval
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    def stop(self) -> bool:
        if self._task is None:
            return False
        task, self._task = self._task, None
        task.cancel()
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.on_tick()
            except Exception as e:
                logger.exception(f"Elapsed clock tick failed: {e}")


class ScanSession:
    """Owns scan status, running counters and the elapsed clock.

    One instance lives for the whole lifetime of its owner and is reset in
    place by every accepted ``start_scan``. Progress events count from the
    start of a scan until the next reset, including stragglers that arrive
    after the scan call resolved. Counter updates are plain additions so the final
    totals do not depend on the order events arrive in.
    """

    def __init__(
        self,
        scan_operation: ScanOperation,
        tick_interval: Optional[float] = None,
        on_reset: Optional[Iterable[Callable[[], None]]] = None,
        time_source: Callable[[], float] = time.monotonic,
    ):
        self.scan_operation = scan_operation
        self.time_source = time_source
        self.on_reset: List[Callable[[], None]] = list(on_reset or [])
        self.elapsed_listeners: List[Callable[[int], None]] = []

        self.status = ScanStatus.STOPPED
        self.path: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.elapsed_ms = 0
        self.counters = ScanCounters()
        self.progress_log: List[ProgressRecord] = []

        self.clock = ElapsedClock(tick_interval or config.tick_interval, self._sample_elapsed)
        self._started_monotonic = 0.0
        # Bumped on every start/reset so a stale scan cannot finish a newer session
        self._generation = 0

    @property
    def is_scanning(self) -> bool:
        return self.status == ScanStatus.SCANNING

    async def start_scan(self, path: str) -> ScanSnapshot:
        """Start a scan of ``path`` and wait for the external operation.

        Raises:
            StateConflictError: If a scan is already running. Nothing is changed.
            ScanInvocationError: If the scan operation rejects. The session is Failed.
        """
        generation = self._begin(path)

        try:
            with logfire.span("scan", path=path):
                await self.scan_operation(path)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._finish(ScanStatus.STOPPED)
            raise
        except Exception as e:
            logger.error(f"Scan of {path} failed: {e}")
            if generation == self._generation:
                self._finish(ScanStatus.FAILED)
            raise ScanInvocationError(path, str(e)) from e

        if generation == self._generation:
            self._finish(ScanStatus.COMPLETED)
        else:
            logger.info(f"Scan of {path} resolved after the session was reset, ignoring")
        return self.snapshot()

    def _begin(self, path: str) -> int:
        if self.is_scanning:
            raise StateConflictError(f"A scan of {self.path} is already running")

        self._clear()
        for hook in self.on_reset:
            hook()

        self._generation += 1
        self.path = path
        self.started_at = datetime.now()
        self._started_monotonic = self.time_source()
        self.status = ScanStatus.SCANNING
        self.clock.start()
        logger.info(f"Scanning {path}")
        return self._generation

    def _finish(self, status: ScanStatus) -> None:
        self.clock.stop()
        self._sample_elapsed()
        self.status = status
        logger.info(
            f"Scan of {self.path} {status.value.lower()} after {self.elapsed_ms} ms: "
            f"{self.counters.resources_seen} resources, {self.counters.bytes_seen} bytes"
        )

    def _clear(self) -> None:
        self.elapsed_ms = 0
        self.counters = ScanCounters()
        self.progress_log = []

    def _sample_elapsed(self) -> None:
        if not self.is_scanning:
            return
        self.elapsed_ms = int((self.time_source() - self._started_monotonic) * 1000)
        for listener in list(self.elapsed_listeners):
            try:
                listener(self.elapsed_ms)
            except Exception as e:
                logger.exception(f"Elapsed listener failed: {e}")

    def handle_progress(self, payload: Payload) -> bool:
        """Channel handler for progress payloads. Malformed payloads are dropped."""
        try:
            event = ProgressEvent.decode(payload)
        except PayloadDecodeError as e:
            logger.warning(f"Dropping progress event: {e}")
            return False

        raw = payload if isinstance(payload, str) else bytes(payload).decode("utf-8")
        return self.apply_progress(event, raw)

    def apply_progress(self, event: ProgressEvent, raw: Optional[str] = None) -> bool:
        # Events can land after the scan call resolves, so only Stopped drops them
        if self.status == ScanStatus.STOPPED:
            logger.debug(f"Ignoring progress event while {self.status.value}")
            return False

        self.counters.apply(event)
        self.progress_log.append(ProgressRecord(raw=raw or event.model_dump_json(), event=event))
        return True

    def reset(self) -> None:
        """Force the session back to Stopped and clear all counters."""
        self._generation += 1
        if self.is_scanning:
            self._finish(ScanStatus.STOPPED)
        self._clear()
        for hook in self.on_reset:
            hook()
        self.status = ScanStatus.STOPPED
        self.path = None
        self.started_at = None

    def close(self) -> None:
        """Stop the clock on teardown. A running scan is marked Stopped."""
        if self.is_scanning:
            self._generation += 1
            self._finish(ScanStatus.STOPPED)
        else:
            self.clock.stop()

    def snapshot(self) -> ScanSnapshot:
        return ScanSnapshot(
            status=self.status,
            path=self.path,
            started_at=self.started_at,
            elapsed_ms=self.elapsed_ms,
            counters=self.counters.model_copy(),
            log_length=len(self.progress_log),
        )

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of delayed callbacks and of the current time.

    Controllers only talk to this interface, so the same state machine runs on
    real threads or on a virtual clock.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def now(self) -> datetime: ...


class ThreadingScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(0.0, delay), self._run, args=(callback,))
        timer.daemon = True
        timer.start()
        return timer

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", callback)


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns ``True`` as soon as the token is cancelled."""
        return self._event.wait(seconds)


class Debouncer:
    """Runs the most recently submitted callback once ``delay`` passes without a new submit."""

    def __init__(self, scheduler: Scheduler, delay: float) -> None:
        self._scheduler = scheduler
        self.delay = delay
        self._lock = threading.Lock()
        self._handle: TimerHandle | None = None

    def submit(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            handle: TimerHandle | None = None

            def fire() -> None:
                with self._lock:
                    if self._handle is not handle:
                        return
                    self._handle = None
                callback()

            handle = self._scheduler.call_later(self.delay, fire)
            self._handle = handle

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None


class RepeatingTask:
    """Calls ``callback`` every ``period`` seconds until stopped.

    The next tick is scheduled only after the current callback returns, and a
    tick that fires after :meth:`stop` does nothing.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        period: float,
        callback: Callable[[], None],
        *,
        name: str = "task",
    ) -> None:
        if period <= 0:
            msg = "period must be > 0"
            raise ValueError(msg)
        self._scheduler = scheduler
        self.period = period
        self.name = name
        self._callback = callback
        self._lock = threading.RLock()
        self._token: CancellationToken | None = None
        self._handle: TimerHandle | None = None

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            token = CancellationToken()
            self._token = token
            self._schedule(token)
        logger.debug("Started repeating task %s every %.1fs", self.name, self.period)

    def stop(self) -> None:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            if self._handle is not None:
                self._handle.cancel()
            self._token = None
            self._handle = None
        logger.debug("Stopped repeating task %s", self.name)

    @property
    def running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def _schedule(self, token: CancellationToken) -> None:
        self._handle = self._scheduler.call_later(self.period, lambda: self._tick(token))

    def _tick(self, token: CancellationToken) -> None:
        if token.cancelled:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Repeating task %s tick failed", self.name)
        with self._lock:
            if not token.cancelled:
                self._schedule(token)


__all__ = [
    "CancellationToken",
    "Debouncer",
    "RepeatingTask",
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
]

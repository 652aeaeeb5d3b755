from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

DEFAULT_START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
_EPSILON = 1e-9


@dataclass
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual-clock scheduler; callbacks only run inside :meth:`advance`."""

    def __init__(self, start: datetime = DEFAULT_START) -> None:
        self.start = start
        self.elapsed = 0.0
        self._timers: list[_Timer] = []
        self._seq = 0
        self._lock = threading.Lock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        with self._lock:
            self._seq += 1
            timer = _Timer(due=self.elapsed + max(0.0, delay), seq=self._seq, callback=callback)
            self._timers.append(timer)
            return timer

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            with self._lock:
                due = [timer for timer in self._timers if not timer.cancelled and timer.due <= target + _EPSILON]
                if not due:
                    break
                timer = min(due, key=lambda item: (item.due, item.seq))
                self._timers.remove(timer)
                self.elapsed = max(self.elapsed, timer.due)
            timer.callback()
        self.elapsed = target

    def run_pending(self) -> None:
        self.advance(0)

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for timer in self._timers if not timer.cancelled)

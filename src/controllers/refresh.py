from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Callable, Generic, TypeVar

from domain.outcome import Failure, Outcome, Success
from domain.snapshots import StreamSnapshot

from .scheduling import CancellationToken, Debouncer, RepeatingTask, Scheduler

logger = logging.getLogger(__name__)

SnapshotT = TypeVar("SnapshotT", bound=StreamSnapshot)
RequestT = TypeVar("RequestT")
ValueT = TypeVar("ValueT")

Listener = Callable[[SnapshotT], None]


class ControllerState(StrEnum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    READY_WITH_ERROR = "READY_WITH_ERROR"
    STOPPED = "STOPPED"


class RefreshTrigger(StrEnum):
    USER = "USER"
    AUTO = "AUTO"


@dataclass(frozen=True)
class RefreshSession:
    request_id: int
    started_at: datetime
    trigger: RefreshTrigger
    token: CancellationToken = field(default_factory=CancellationToken, compare=False, repr=False)


class RefreshController(ABC, Generic[SnapshotT, RequestT, ValueT]):
    """Single-stream refresh state machine.

    One controller owns one logical stream ("main conversion", "stock list",
    "forex pairs"). It guarantees:

    - automatic refreshes are skipped while any refresh is in flight, user
      refreshes always run and supersede older ones;
    - a result is applied only when its request id is the latest issued, so
      snapshots follow issue order rather than completion order;
    - auto-refresh is armed only after the first successful cycle and only
      while enabled;
    - no fetch error escapes: failures become error snapshots.

    Snapshots are immutable and replaced wholesale; listeners are called with
    each new snapshot from whichever thread produced it and must not block.
    """

    stream_name = "stream"

    def __init__(
        self,
        *,
        initial_snapshot: SnapshotT,
        scheduler: Scheduler,
        refresh_interval: float,
    ) -> None:
        self._scheduler = scheduler
        self.refresh_interval = refresh_interval
        self._lock = threading.RLock()
        self._snapshot = initial_snapshot
        self._listeners: list[Listener[SnapshotT]] = []
        self._state = ControllerState.IDLE
        self._request_ids = itertools.count(1)
        self._latest_request_id = 0
        self._in_flight: dict[int, RefreshSession] = {}
        self._has_succeeded = False
        self._auto_refresh: RepeatingTask | None = None
        self._debouncers: list[Debouncer] = []

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> SnapshotT:
        return self._snapshot

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return bool(self._in_flight)

    @property
    def has_succeeded(self) -> bool:
        return self._has_succeeded

    @property
    def auto_refresh_armed(self) -> bool:
        return self._auto_refresh is not None and self._auto_refresh.running

    def subscribe(self, listener: Listener[SnapshotT]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def refresh(self, trigger: RefreshTrigger = RefreshTrigger.USER) -> bool:
        """Run one refresh cycle in the calling thread.

        Returns ``True`` when the cycle's result was applied to the snapshot.
        """
        with self._lock:
            if self._state is ControllerState.STOPPED:
                return False
            if trigger is RefreshTrigger.AUTO and self._in_flight:
                logger.debug("%s: auto refresh skipped, refresh already in flight", self.stream_name)
                return False
            request = self._prepare(self._snapshot)
            if request is None:
                return False

            session = RefreshSession(
                request_id=next(self._request_ids),
                started_at=self._scheduler.now(),
                trigger=trigger,
            )
            for superseded in self._in_flight.values():
                superseded.token.cancel()
            self._latest_request_id = session.request_id
            self._in_flight[session.request_id] = session
            self._state = ControllerState.LOADING
            self._publish(self._on_start(self._snapshot, session))

        logger.debug("%s: refresh #%d started (%s)", self.stream_name, session.request_id, trigger)
        try:
            outcome = self._fetch(request, session)
        except Exception as exc:
            logger.exception("%s: refresh #%d failed unexpectedly", self.stream_name, session.request_id)
            outcome = Failure.from_error(exc)
        return self._complete(request, session, outcome)

    def request_refresh(self) -> None:
        """Schedule a user refresh without blocking the caller."""
        self._scheduler.call_later(0, self.refresh)

    def set_auto_refresh(self, enabled: bool) -> None:
        with self._lock:
            if self._state is ControllerState.STOPPED:
                return
            self._publish(self._snapshot.model_copy(update={"auto_refresh_enabled": enabled}))
            if enabled:
                self._arm_auto_refresh()
            else:
                self._disarm_auto_refresh()

    def toggle_auto_refresh(self) -> bool:
        enabled = not self._snapshot.auto_refresh_enabled
        self.set_auto_refresh(enabled)
        return enabled

    def stop(self) -> None:
        with self._lock:
            if self._state is ControllerState.STOPPED:
                return
            self._state = ControllerState.STOPPED
            for debouncer in self._debouncers:
                debouncer.cancel()
            self._disarm_auto_refresh()
            for session in self._in_flight.values():
                session.token.cancel()
            # No in-flight request id can match the latest one again.
            self._latest_request_id = next(self._request_ids)
        logger.info("%s: controller stopped", self.stream_name)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    @abstractmethod
    def _prepare(self, snapshot: SnapshotT) -> RequestT | None:
        """Capture the request inputs, or ``None`` when nothing should be fetched."""

    @abstractmethod
    def _fetch(self, request: RequestT, session: RefreshSession) -> Outcome[ValueT]: ...

    @abstractmethod
    def _apply_success(
        self, snapshot: SnapshotT, request: RequestT, value: ValueT, session: RefreshSession
    ) -> SnapshotT: ...

    @abstractmethod
    def _apply_failure(
        self, snapshot: SnapshotT, request: RequestT, failure: Failure, session: RefreshSession
    ) -> SnapshotT: ...

    def _on_start(self, snapshot: SnapshotT, session: RefreshSession) -> SnapshotT:
        # Spinner only until the stream has data.
        return snapshot.model_copy(update={"is_loading": not self._has_succeeded, "error_message": None})

    # ------------------------------------------------------------------
    # Internals shared with subclasses
    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        return self._scheduler.now()

    def _new_debouncer(self, delay: float) -> Debouncer:
        debouncer = Debouncer(self._scheduler, delay)
        self._debouncers.append(debouncer)
        return debouncer

    def _invalidate_in_flight(self) -> None:
        """Turn every in-flight result stale without stopping the controller."""
        with self._lock:
            if not self._in_flight:
                return
            for session in self._in_flight.values():
                session.token.cancel()
            self._latest_request_id = next(self._request_ids)
            if self._state is ControllerState.LOADING:
                self._state = ControllerState.READY if self._has_succeeded else ControllerState.IDLE
        logger.debug("%s: in-flight refreshes invalidated", self.stream_name)

    def _update(self, **changes: Any) -> bool:
        with self._lock:
            if self._state is ControllerState.STOPPED:
                return False
            self._publish(self._snapshot.model_copy(update=changes))
            return True

    def _publish(self, snapshot: SnapshotT) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("%s: snapshot listener failed", self.stream_name)

    def _complete(self, request: RequestT, session: RefreshSession, outcome: Outcome[ValueT]) -> bool:
        with self._lock:
            self._in_flight.pop(session.request_id, None)
            if self._state is ControllerState.STOPPED or session.request_id != self._latest_request_id:
                logger.debug(
                    "%s: discarding stale result #%d (latest #%d)",
                    self.stream_name,
                    session.request_id,
                    self._latest_request_id,
                )
                return False

            if isinstance(outcome, Success):
                snapshot = self._apply_success(self._snapshot, request, outcome.value, session)
                self._state = ControllerState.READY
                self._has_succeeded = True
            else:
                logger.warning("%s: refresh #%d failed: %s", self.stream_name, session.request_id, outcome.message)
                snapshot = self._apply_failure(self._snapshot, request, outcome, session)
                self._state = ControllerState.READY_WITH_ERROR

            self._publish(snapshot.model_copy(update={"is_loading": False}))
            if isinstance(outcome, Success):
                self._arm_auto_refresh()
            return True

    def _arm_auto_refresh(self) -> None:
        if not self._has_succeeded or not self._snapshot.auto_refresh_enabled:
            return
        if self._auto_refresh is not None and self._auto_refresh.running:
            return
        self._auto_refresh = RepeatingTask(
            self._scheduler,
            self.refresh_interval,
            self._auto_tick,
            name=f"{self.stream_name}-auto-refresh",
        )
        self._auto_refresh.start()

    def _disarm_auto_refresh(self) -> None:
        if self._auto_refresh is not None:
            self._auto_refresh.stop()
            self._auto_refresh = None

    def _auto_tick(self) -> None:
        self.refresh(RefreshTrigger.AUTO)


__all__ = ["ControllerState", "RefreshController", "RefreshSession", "RefreshTrigger"]

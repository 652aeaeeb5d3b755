from __future__ import annotations

import threading

import pytest

from controllers.scheduling import CancellationToken, Debouncer, RepeatingTask, ThreadingScheduler
from tests.helpers.fake_scheduler import FakeScheduler


def test_debouncer_runs_only_last_submission(scheduler: FakeScheduler) -> None:
    calls: list[str] = []
    debouncer = Debouncer(scheduler, 0.3)

    debouncer.submit(lambda: calls.append("first"))
    scheduler.advance(0.2)
    debouncer.submit(lambda: calls.append("second"))
    scheduler.advance(0.2)
    assert calls == []
    assert debouncer.pending

    scheduler.advance(0.1)

    assert calls == ["second"]
    assert not debouncer.pending


def test_debouncer_cancel(scheduler: FakeScheduler) -> None:
    calls: list[str] = []
    debouncer = Debouncer(scheduler, 0.3)

    debouncer.submit(lambda: calls.append("x"))
    debouncer.cancel()
    scheduler.advance(1.0)

    assert calls == []


def test_repeating_task_ticks_until_stopped(scheduler: FakeScheduler) -> None:
    ticks: list[float] = []
    task = RepeatingTask(scheduler, 3.0, lambda: ticks.append(scheduler.elapsed), name="test")

    task.start()
    task.start()
    scheduler.advance(9.0)
    task.stop()
    scheduler.advance(9.0)

    assert ticks == pytest.approx([3.0, 6.0, 9.0])
    assert not task.running


def test_repeating_task_survives_failing_callback(scheduler: FakeScheduler) -> None:
    ticks: list[int] = []

    def tick() -> None:
        ticks.append(1)
        raise RuntimeError("boom")

    task = RepeatingTask(scheduler, 1.0, tick)
    task.start()
    scheduler.advance(3.0)

    assert len(ticks) == 3
    assert task.running


def test_stop_from_inside_callback_prevents_next_tick(scheduler: FakeScheduler) -> None:
    ticks: list[int] = []
    task: RepeatingTask

    def tick() -> None:
        ticks.append(1)
        task.stop()

    task = RepeatingTask(scheduler, 1.0, tick)
    task.start()
    scheduler.advance(5.0)

    assert ticks == [1]


def test_repeating_task_requires_positive_period(scheduler: FakeScheduler) -> None:
    with pytest.raises(ValueError):
        RepeatingTask(scheduler, 0, lambda: None)


def test_cancellation_token_wait() -> None:
    token = CancellationToken()

    assert token.wait(0) is False
    token.cancel()
    assert token.cancelled
    assert token.wait(5) is True


def test_threading_scheduler_runs_callback() -> None:
    done = threading.Event()

    ThreadingScheduler().call_later(0.01, done.set)

    assert done.wait(2)


def test_threading_scheduler_cancel() -> None:
    fired = threading.Event()

    handle = ThreadingScheduler().call_later(0.2, fired.set)
    handle.cancel()

    assert not fired.wait(0.4)

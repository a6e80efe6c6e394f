from __future__ import annotations

from dataclasses import dataclass

import pytest

from reflex_arena.timers import Scheduler


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_call_later_fires_once_when_due() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    fired: list[str] = []

    handle = sched.call_later(0.5, lambda: fired.append("x"))
    clock.advance(0.4)
    assert sched.run_due() == 0
    clock.advance(0.1)
    assert sched.run_due() == 1
    clock.advance(5.0)
    assert sched.run_due() == 0

    assert fired == ["x"]
    assert handle.active is False
    assert sched.pending_count() == 0


def test_cancelled_handle_never_fires() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    fired: list[int] = []

    handle = sched.call_later(0.2, lambda: fired.append(1))
    handle.cancel()
    clock.advance(1.0)
    sched.run_due()

    assert fired == []
    assert handle.cancelled is True


def test_repeating_timer_catches_up_one_interval_per_fire() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    ticks: list[float] = []

    sched.call_every(0.1, lambda: ticks.append(clock.now()))
    clock.advance(0.35)
    assert sched.run_due() == 3
    clock.advance(0.05)
    assert sched.run_due() == 1
    assert len(ticks) == 4


def test_due_callbacks_run_in_due_order_then_arming_order() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    order: list[str] = []

    sched.call_later(0.3, lambda: order.append("late"))
    sched.call_later(0.1, lambda: order.append("early-a"))
    sched.call_later(0.1, lambda: order.append("early-b"))
    clock.advance(1.0)
    sched.run_due()

    assert order == ["early-a", "early-b", "late"]


def test_cancel_from_inside_callback_suppresses_same_pass_timer() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    fired: list[str] = []

    second = sched.call_later(0.2, lambda: fired.append("second"))

    def first() -> None:
        fired.append("first")
        second.cancel()

    sched.call_later(0.1, first)
    clock.advance(0.5)
    sched.run_due()

    assert fired == ["first"]


def test_cancel_all_clears_pending() -> None:
    clock = FakeClock()
    sched = Scheduler(clock=clock)
    sched.call_every(0.1, lambda: None)
    sched.call_later(1.0, lambda: None)
    assert sched.pending_count() == 2

    sched.cancel_all()
    clock.advance(2.0)
    assert sched.run_due() == 0
    assert sched.pending_count() == 0


def test_non_positive_interval_is_rejected() -> None:
    sched = Scheduler(clock=FakeClock())
    with pytest.raises(ValueError):
        sched.call_every(0.0, lambda: None)

from __future__ import annotations

from collections.abc import Callable

from .clock import Clock

# Clock values accumulate float error when advanced in 0.1 s steps.
_DUE_EPSILON_S = 1e-9


class TimerHandle:
    """Cancellable handle for a pending one-shot or repeating timer."""

    __slots__ = ("_due_s", "_interval_s", "_callback", "_cancelled", "_fired", "_seq")

    def __init__(
        self,
        *,
        due_s: float,
        interval_s: float | None,
        callback: Callable[[], None],
        seq: int,
    ) -> None:
        self._due_s = float(due_s)
        self._interval_s = interval_s
        self._callback = callback
        self._cancelled = False
        self._fired = False
        self._seq = int(seq)

    @property
    def due_s(self) -> float:
        return self._due_s

    @property
    def repeating(self) -> bool:
        return self._interval_s is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._fired

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler:
    """Single-threaded timer queue pumped by the host loop.

    Nothing fires on its own: the host calls run_due() once per frame (the
    pygame loop) or after advancing a fake clock (tests). Callbacks run one
    at a time, so handlers never overlap.
    """

    def __init__(self, *, clock: Clock) -> None:
        self._clock = clock
        self._pending: list[TimerHandle] = []
        self._seq = 0

    def now(self) -> float:
        return self._clock.now()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        delay = max(0.0, float(delay_s))
        return self._arm(due_s=self._clock.now() + delay, interval_s=None, callback=callback)

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        interval = float(interval_s)
        if interval <= 0.0:
            raise ValueError("interval_s must be > 0")
        return self._arm(due_s=self._clock.now() + interval, interval_s=interval, callback=callback)

    def pending_count(self) -> int:
        return sum(1 for h in self._pending if h.active)

    def cancel_all(self) -> None:
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def run_due(self) -> int:
        """Fire every callback due at the current clock time.

        Repeating timers advance by exactly one interval per fire, so a late
        pump fires each missed interval in order.
        """

        now = self._clock.now()
        fired = 0
        while True:
            handle = self._next_due(now)
            if handle is None:
                break
            if handle._interval_s is None:
                handle._fired = True
                self._pending.remove(handle)
            else:
                handle._due_s += handle._interval_s
            handle._callback()
            fired += 1
        self._pending = [h for h in self._pending if h.active]
        return fired

    def _next_due(self, now: float) -> TimerHandle | None:
        best: TimerHandle | None = None
        for handle in self._pending:
            if not handle.active or handle._due_s > now + _DUE_EPSILON_S:
                continue
            if best is None or (handle._due_s, handle._seq) < (best._due_s, best._seq):
                best = handle
        return best

    def _arm(
        self,
        *,
        due_s: float,
        interval_s: float | None,
        callback: Callable[[], None],
    ) -> TimerHandle:
        self._seq += 1
        handle = TimerHandle(due_s=due_s, interval_s=interval_s, callback=callback, seq=self._seq)
        self._pending.append(handle)
        return handle

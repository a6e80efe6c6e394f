from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from .difficulty import DifficultyProfile, difficulty_window_ms, get_profile
from .scoring import RunStats, clamp, combo_label, score_gain, time_gain
from .targets import DEFAULT_MAX_ATTEMPTS, TargetSelector
from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunEngineConfig:
    tick_interval_s: float = 0.1
    tick_decrement_s: float = 0.1
    max_pick_attempts: int = DEFAULT_MAX_ATTEMPTS
    hazard_score_penalty: int = 10
    hazard_extra_penalty_s: float = 1.0
    cell_count: int = 25
    mode: str = "solo"


class RunStatus(StrEnum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    DONE = "done"


class TapOutcome(StrEnum):
    HIT = "hit"
    WRONG = "wrong"
    HAZARD = "hazard"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class TapFeedback:
    outcome: TapOutcome
    cell: int | None
    points: int = 0


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    """View model for the UI (pure data)."""

    status: RunStatus
    player_name: str
    difficulty: str
    cell_count: int
    time_left: float
    start_time: float
    time_reward_cap: float
    score: int
    streak: int
    active_cell: int | None
    hazard_cell: int | None
    hits: int
    misses: int
    accuracy: int | None
    reaction_window_ms: float
    time_banked: bool
    combo_label: str | None
    last_feedback: TapFeedback | None = None


@dataclass(frozen=True, slots=True)
class RunSummary:
    score: int
    hits: int
    misses: int
    accuracy: int | None
    fastest_reaction_ms: int | None
    avg_reaction_ms: int | None
    max_streak: int
    player_name: str
    mode: str
    difficulty: str


RunEvent = RunSnapshot | RunSummary
RunListener = Callable[[RunEvent], None]


@dataclass(slots=True)
class RunState:
    """Everything one run mutates. Replaced wholesale on start/reset."""

    status: RunStatus
    time_left: float
    score: int = 0
    streak: int = 0
    active_cell: int | None = None
    hazard_cell: int | None = None
    target_spawned_at_s: float = 0.0
    stats: RunStats = field(default_factory=RunStats)
    last_feedback: TapFeedback | None = None

    @classmethod
    def fresh(cls, profile: DifficultyProfile) -> "RunState":
        return cls(status=RunStatus.IDLE, time_left=float(profile.start_time))


class RunEngine:
    """Real-time state machine for one player's runs.

    idle -> playing <-> paused -> done, and done -> playing on the next start.

    Two timers drive a run: a repeating countdown tick and a one-shot
    reaction deadline re-armed on every spawn. Both live on the injected
    Scheduler and are cancelled on every transition that leaves `playing`
    or replaces the run, so a superseded timer can never touch the current
    RunState. Events outside the states that accept them are ignored.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        seed: int,
        difficulty: DifficultyProfile | str = "normal",
        config: RunEngineConfig | None = None,
    ) -> None:
        cfg = config or RunEngineConfig()
        if cfg.tick_interval_s <= 0.0:
            raise ValueError("tick_interval_s must be > 0")
        if cfg.tick_decrement_s <= 0.0:
            raise ValueError("tick_decrement_s must be > 0")
        if cfg.cell_count <= 0:
            raise ValueError("cell_count must be > 0")
        if cfg.hazard_score_penalty < 0 or cfg.hazard_extra_penalty_s < 0.0:
            raise ValueError("hazard penalties must be >= 0")

        self._scheduler = scheduler
        self._cfg = cfg
        self._selector = TargetSelector(seed=seed, max_attempts=cfg.max_pick_attempts)
        self._profile = _resolve(difficulty)
        self._cell_count = int(cfg.cell_count)

        self._state = RunState.fresh(self._profile)
        self._player_name = ""
        self._finished = False

        self._tick_handle: TimerHandle | None = None
        self._deadline_handle: TimerHandle | None = None
        self._listeners: list[RunListener] = []

    @property
    def status(self) -> RunStatus:
        return self._state.status

    @property
    def profile(self) -> DifficultyProfile:
        return self._profile

    @property
    def cell_count(self) -> int:
        return self._cell_count

    @property
    def mode(self) -> str:
        return self._cfg.mode

    def subscribe(self, listener: RunListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- transitions -------------------------------------------------------

    def start(self, player_name: str) -> bool:
        """Begin a run from idle or done. Returns False when ignored."""

        if self._state.status not in (RunStatus.IDLE, RunStatus.DONE):
            return False
        return self._begin_run(player_name)

    def restart(self, player_name: str) -> bool:
        """Abandon whatever is running (no summary) and begin a fresh run."""

        return self._begin_run(player_name)

    def pause(self) -> None:
        if self._state.status is not RunStatus.PLAYING:
            return
        self._cancel_timers()
        self._state.status = RunStatus.PAUSED
        logger.debug("run paused at %.2fs left", self._state.time_left)
        self._emit(self.snapshot())

    def resume(self) -> None:
        if self._state.status is not RunStatus.PAUSED:
            return
        self._state.status = RunStatus.PLAYING
        # The live target gets its full configured window again, not the remainder.
        self._state.target_spawned_at_s = self._scheduler.now()
        self._arm_deadline()
        self._arm_tick()
        logger.debug("run resumed")
        self._emit(self.snapshot())

    def toggle_pause(self) -> None:
        if self._state.status is RunStatus.PLAYING:
            self.pause()
        elif self._state.status is RunStatus.PAUSED:
            self.resume()

    def change_difficulty(self, difficulty: DifficultyProfile | str) -> None:
        """Switch profile; any run in progress is dropped and the engine goes idle."""

        self._profile = _resolve(difficulty)
        self._reset_to_idle()

    def resize_grid(self, cell_count: int) -> None:
        if cell_count <= 0:
            raise ValueError("cell_count must be > 0")
        if cell_count == self._cell_count:
            return
        self._cell_count = int(cell_count)
        self._reset_to_idle()

    def shutdown(self) -> None:
        self._cancel_timers()
        self._listeners.clear()

    # ---- event sources -----------------------------------------------------

    def on_input(self, cell_index: int) -> None:
        s = self._state
        if s.status is not RunStatus.PLAYING:
            return
        cell = int(cell_index)
        if s.hazard_cell is not None and cell == s.hazard_cell:
            self._register_hazard(cell)
        elif cell != s.active_cell:
            self._register_wrong(cell)
        else:
            self._register_hit(cell)

    def tick(self) -> None:
        s = self._state
        if s.status is not RunStatus.PLAYING:
            return
        s.time_left = round(s.time_left - self._cfg.tick_decrement_s, 2)
        if s.time_left <= 0.0:
            s.time_left = 0.0
            self._finish()
            return
        self._emit(self.snapshot())

    def expire_target(self) -> None:
        s = self._state
        if s.status is not RunStatus.PLAYING:
            return
        s.streak = 0
        s.stats.record_miss()
        s.last_feedback = TapFeedback(outcome=TapOutcome.TIMEOUT, cell=s.active_cell)
        self._settle(penalty_s=self._profile.miss_penalty, respawn=True)

    # ---- views -------------------------------------------------------------

    def snapshot(self) -> RunSnapshot:
        s = self._state
        return RunSnapshot(
            status=s.status,
            player_name=self._player_name,
            difficulty=self._profile.name,
            cell_count=self._cell_count,
            time_left=s.time_left,
            start_time=self._profile.start_time,
            time_reward_cap=self._profile.time_reward_cap,
            score=s.score,
            streak=s.streak,
            active_cell=s.active_cell,
            hazard_cell=s.hazard_cell,
            hits=s.stats.hits,
            misses=s.stats.misses,
            accuracy=s.stats.accuracy,
            reaction_window_ms=self.reaction_window_ms(),
            time_banked=s.time_left > self._profile.start_time,
            combo_label=combo_label(s.streak),
            last_feedback=s.last_feedback,
        )

    def reaction_window_ms(self) -> float:
        return difficulty_window_ms(self._state.score, self._state.streak, self._profile)

    # ---- internals ---------------------------------------------------------

    def _begin_run(self, player_name: str) -> bool:
        name = str(player_name or "").strip()
        if name == "":
            return False

        self._cancel_timers()
        self._player_name = name
        self._finished = False
        self._state = RunState.fresh(self._profile)
        self._state.status = RunStatus.PLAYING
        self._spawn_target(previous=-1)
        self._arm_tick()
        logger.debug(
            "run started: player=%s difficulty=%s cells=%d",
            name,
            self._profile.name,
            self._cell_count,
        )
        self._emit(self.snapshot())
        return True

    def _reset_to_idle(self) -> None:
        self._cancel_timers()
        self._finished = False
        self._state = RunState.fresh(self._profile)
        logger.debug("engine reset: difficulty=%s cells=%d", self._profile.name, self._cell_count)
        self._emit(self.snapshot())

    def _register_hit(self, cell: int) -> None:
        s = self._state
        reaction_ms = max(0.0, (self._scheduler.now() - s.target_spawned_at_s) * 1000.0)
        prior_streak = s.streak

        points = score_gain(reaction_ms, prior_streak)
        s.score = max(s.score + points, 0)
        s.streak = prior_streak + 1
        s.stats.record_hit(reaction_ms=reaction_ms, streak=s.streak)

        gain = time_gain(reaction_ms, prior_streak, self._profile)
        s.time_left = clamp(s.time_left + gain, 0.0, self._profile.time_reward_cap)

        s.last_feedback = TapFeedback(outcome=TapOutcome.HIT, cell=cell, points=points)
        self._settle(penalty_s=0.0, respawn=True)

    def _register_wrong(self, cell: int) -> None:
        s = self._state
        s.streak = 0
        s.stats.record_miss()
        s.last_feedback = TapFeedback(outcome=TapOutcome.WRONG, cell=cell)
        # The active target stays live and its deadline keeps running.
        self._settle(penalty_s=self._profile.wrong_click_penalty, respawn=False)

    def _register_hazard(self, cell: int) -> None:
        s = self._state
        s.score = max(s.score - self._cfg.hazard_score_penalty, 0)
        s.streak = 0
        s.stats.record_miss()
        s.hazard_cell = None
        s.last_feedback = TapFeedback(outcome=TapOutcome.HAZARD, cell=cell)
        penalty = self._profile.miss_penalty + self._cfg.hazard_extra_penalty_s
        self._settle(penalty_s=penalty, respawn=True)

    def _settle(self, *, penalty_s: float, respawn: bool) -> None:
        """Shared tail of every tap/timeout: penalty, exhaustion check, spawn."""

        if self._apply_time_penalty(penalty_s):
            return
        if respawn:
            self._spawn_target(previous=self._state.active_cell)
        self._emit(self.snapshot())

    def _apply_time_penalty(self, amount_s: float) -> bool:
        s = self._state
        if amount_s <= 0.0:
            return False
        s.time_left = max(0.0, s.time_left - amount_s)
        if s.time_left <= 0.0:
            self._finish()
            return True
        return False

    def _spawn_target(self, *, previous: int | None) -> None:
        s = self._state
        prev = -1 if previous is None else previous
        active, hazard = self._selector.spawn(prev, self._cell_count, self._profile.hazard_chance)
        s.active_cell = active
        s.hazard_cell = hazard
        s.target_spawned_at_s = self._scheduler.now()
        self._arm_deadline()

    def _arm_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
        self._tick_handle = self._scheduler.call_every(self._cfg.tick_interval_s, self.tick)

    def _arm_deadline(self) -> None:
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
        window_s = self.reaction_window_ms() / 1000.0
        self._deadline_handle = self._scheduler.call_later(window_s, self.expire_target)

    def _cancel_timers(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._cancel_timers()
        s = self._state
        s.status = RunStatus.DONE
        summary = RunSummary(
            score=s.score,
            hits=s.stats.hits,
            misses=s.stats.misses,
            accuracy=s.stats.accuracy,
            fastest_reaction_ms=s.stats.fastest_reaction_ms,
            avg_reaction_ms=s.stats.avg_reaction_ms,
            max_streak=s.stats.max_streak,
            player_name=self._player_name,
            mode=self._cfg.mode,
            difficulty=self._profile.name,
        )
        logger.debug("run finished: score=%d hits=%d misses=%d", summary.score, summary.hits, summary.misses)
        self._emit(self.snapshot())
        self._emit(summary)

    def _emit(self, event: RunEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


def _resolve(difficulty: DifficultyProfile | str) -> DifficultyProfile:
    if isinstance(difficulty, DifficultyProfile):
        return difficulty
    return get_profile(difficulty)

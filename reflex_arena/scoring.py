from __future__ import annotations

import math
from dataclasses import dataclass

from .difficulty import DifficultyProfile

BASE_POINTS = 15
MIN_SPEED_BONUS = 2
SPEED_BONUS_HORIZON_MS = 1200.0
SPEED_BONUS_DIVISOR_MS = 30.0
STREAK_BONUS_PER_STEP = 4
BASE_TIME_REWARD_S = 1.25

COMBO_LABELS: dict[int, str] = {
    5: "HOT",
    10: "ON FIRE",
    20: "UNSTOPPABLE",
    30: "GODLIKE",
    50: "LEGENDARY",
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def score_gain(reaction_ms: float, streak: int) -> int:
    """Points for a correct tap; `streak` is the count before this tap."""

    speed_bonus = max(MIN_SPEED_BONUS, round_half_up((SPEED_BONUS_HORIZON_MS - reaction_ms) / SPEED_BONUS_DIVISOR_MS))
    streak_bonus = max(0, streak - 1) * STREAK_BONUS_PER_STEP
    return BASE_POINTS + speed_bonus + streak_bonus


def time_gain(reaction_ms: float, streak: int, profile: DifficultyProfile) -> float:
    """Seconds banked for a correct tap; `streak` is the count before this tap."""

    reward = max(
        profile.reward_floor,
        BASE_TIME_REWARD_S - reaction_ms / profile.reward_slope - streak * profile.reward_streak_factor,
    )
    return max(profile.min_gain, reward + profile.reward_bonus)


def combo_label(streak: int) -> str | None:
    return COMBO_LABELS.get(int(streak))


def reaction_label(ms: float | None) -> str | None:
    if ms is None:
        return None
    if ms < 150:
        return "Elite"
    if ms < 250:
        return "Fast"
    if ms < 350:
        return "Good"
    if ms < 500:
        return "Average"
    return "Warming up"


def accuracy_pct(hits: int, misses: int) -> int | None:
    attempts = hits + misses
    if attempts <= 0:
        return None
    return round_half_up(100.0 * hits / attempts)


@dataclass(slots=True)
class RunStats:
    """Running totals for one run. Counters only grow until reset()."""

    hits: int = 0
    misses: int = 0
    fastest_reaction_ms: int | None = None
    total_reaction_ms: float = 0.0
    max_streak: int = 0

    def record_hit(self, *, reaction_ms: float, streak: int) -> None:
        rounded = round_half_up(reaction_ms)
        self.hits += 1
        self.total_reaction_ms += reaction_ms
        if self.fastest_reaction_ms is None or rounded < self.fastest_reaction_ms:
            self.fastest_reaction_ms = rounded
        if streak > self.max_streak:
            self.max_streak = streak

    def record_miss(self) -> None:
        self.misses += 1

    @property
    def accuracy(self) -> int | None:
        return accuracy_pct(self.hits, self.misses)

    @property
    def avg_reaction_ms(self) -> int | None:
        if self.hits <= 0:
            return None
        return round_half_up(self.total_reaction_ms / self.hits)

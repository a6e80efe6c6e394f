from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DifficultyProfile:
    """Immutable coefficient bundle for one difficulty.

    Times are seconds except the pacing terms, which are milliseconds.
    """

    name: str
    start_time: float
    miss_penalty: float
    wrong_click_penalty: float
    hazard_chance: float
    time_reward_cap: float

    pace_base: float
    pace_floor: float
    pace_score_factor: float
    pace_streak_factor: float

    reward_bonus: float
    reward_floor: float
    reward_slope: float
    reward_streak_factor: float
    min_gain: float


NORMAL = DifficultyProfile(
    name="normal",
    start_time=30.0,
    miss_penalty=4.0,
    wrong_click_penalty=1.4,
    hazard_chance=0.0,
    time_reward_cap=50.0,
    pace_base=1900.0,
    pace_floor=900.0,
    pace_score_factor=4.5,
    pace_streak_factor=9.0,
    reward_bonus=0.8,
    reward_floor=0.55,
    reward_slope=940.0,
    reward_streak_factor=0.012,
    min_gain=1.1,
)

HARD = DifficultyProfile(
    name="hard",
    start_time=25.0,
    miss_penalty=4.5,
    wrong_click_penalty=1.6,
    hazard_chance=0.08,
    time_reward_cap=40.0,
    pace_base=1500.0,
    pace_floor=700.0,
    pace_score_factor=6.5,
    pace_streak_factor=12.0,
    reward_bonus=0.65,
    reward_floor=0.38,
    reward_slope=900.0,
    reward_streak_factor=0.018,
    min_gain=0.85,
)

EXTREME = DifficultyProfile(
    name="extreme",
    start_time=20.0,
    miss_penalty=5.0,
    wrong_click_penalty=1.9,
    hazard_chance=0.14,
    time_reward_cap=34.0,
    pace_base=1250.0,
    pace_floor=550.0,
    pace_score_factor=8.5,
    pace_streak_factor=15.0,
    reward_bonus=0.55,
    reward_floor=0.32,
    reward_slope=860.0,
    reward_streak_factor=0.023,
    min_gain=0.75,
)

PROFILES: dict[str, DifficultyProfile] = {p.name: p for p in (NORMAL, HARD, EXTREME)}


def profile_names() -> tuple[str, ...]:
    return tuple(PROFILES)


def get_profile(name: str) -> DifficultyProfile:
    """Resolve a difficulty by name; unknown names fall back to normal."""

    key = str(name).strip().lower()
    found = PROFILES.get(key)
    if found is None:
        logger.warning("Unknown difficulty %r, using %r", name, NORMAL.name)
        return NORMAL
    return found


def difficulty_window_ms(score: int, streak: int, profile: DifficultyProfile) -> float:
    """Reaction window for the next target.

    Shrinks linearly with score and streak until it reaches the profile floor.
    """

    window = profile.pace_base - score * profile.pace_score_factor - streak * profile.pace_streak_factor
    return max(profile.pace_floor, window)

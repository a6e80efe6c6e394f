from __future__ import annotations

import pytest

from reflex_arena.difficulty import (
    EXTREME,
    HARD,
    NORMAL,
    difficulty_window_ms,
    get_profile,
    profile_names,
)


def test_profile_names_and_lookup() -> None:
    assert profile_names() == ("normal", "hard", "extreme")
    assert get_profile("hard") is HARD
    assert get_profile(" Extreme ") is EXTREME


def test_unknown_profile_falls_back_to_normal() -> None:
    assert get_profile("nightmare") is NORMAL


def test_start_time_never_exceeds_reward_cap() -> None:
    for name in profile_names():
        p = get_profile(name)
        assert 0 < p.start_time <= p.time_reward_cap


def test_window_shrinks_with_score_and_streak() -> None:
    assert difficulty_window_ms(0, 0, NORMAL) == pytest.approx(1900.0)
    assert difficulty_window_ms(100, 0, NORMAL) == pytest.approx(1450.0)
    assert difficulty_window_ms(100, 10, NORMAL) == pytest.approx(1360.0)


def test_window_is_floored() -> None:
    assert difficulty_window_ms(10_000, 50, NORMAL) == pytest.approx(900.0)
    assert difficulty_window_ms(10_000, 50, HARD) == pytest.approx(700.0)
    assert difficulty_window_ms(10_000, 50, EXTREME) == pytest.approx(550.0)

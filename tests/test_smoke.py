"""Smoke tests for the pygame UI.

These verify that the main loop can initialise and run a handful of frames
under SDL's dummy video driver. Player data is redirected to a temporary
directory so nothing is written to the real home directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

import pytest

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


@pytest.fixture
def isolated_data(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("REFLEX_ARENA_STATS_PATH", str(tmp_path / "stats.json"))
    monkeypatch.setenv("REFLEX_ARENA_SETTINGS_PATH", str(tmp_path / "settings.json"))
    monkeypatch.setenv("REFLEX_ARENA_DB_PATH", str(tmp_path / "scores.sqlite3"))
    return tmp_path


def test_app_runs_headless(isolated_data: Path) -> None:
    """Ensure the application can start and run a few frames headlessly."""
    from reflex_arena.app import run

    exit_code = run(max_frames=3)
    assert exit_code == 0


def test_ui_smoke_enter_tag_and_start_a_run(isolated_data: Path) -> None:
    import pygame

    from reflex_arena.app import run

    def key(k: int, ch: str = "") -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": k, "unicode": ch}))

    def inject(frame: int) -> None:
        # Main Menu -> Player Tag -> type "ace" -> Enter -> Play -> Space -> click a tile
        if frame == 1:
            key(pygame.K_DOWN)
        elif frame == 2:
            key(pygame.K_RETURN)
        elif frame == 3:
            key(pygame.K_a, "a")
            key(pygame.K_c, "c")
            key(pygame.K_e, "e")
        elif frame == 4:
            key(pygame.K_RETURN)
        elif frame == 5:
            key(pygame.K_UP)
        elif frame == 6:
            key(pygame.K_RETURN)
        elif frame == 8:
            key(pygame.K_SPACE)
        elif frame == 10:
            pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": (480, 300), "button": 1}))
        elif frame == 12:
            key(pygame.K_p)

    assert run(max_frames=20, event_injector=inject) == 0

    saved = (isolated_data / "settings.json").read_text(encoding="utf-8")
    assert '"player_name": "ace"' in saved


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _game_on_fake_clock(tmp_path: Path, start_time: float):
    import pygame

    from reflex_arena.app import WINDOW_SIZE, App, GameScreen
    from reflex_arena.difficulty import NORMAL
    from reflex_arena.run_engine import RunEngine
    from reflex_arena.session import ArcadeSession
    from reflex_arena.stats_store import StatsStore
    from reflex_arena.timers import Scheduler

    pygame.init()
    clock = FakeClock()
    scheduler = Scheduler(clock=clock)
    engine = RunEngine(scheduler=scheduler, seed=11, difficulty=replace(NORMAL, start_time=start_time))
    session = ArcadeSession(engine=engine, stats=StatsStore(tmp_path / "stats.json"), leaderboard=None)
    app = App(surface=pygame.Surface(WINDOW_SIZE))
    screen = GameScreen(app, engine=engine, scheduler=scheduler, session=session, player_name=lambda: "ace")
    app.push(screen)
    engine.start("ace")
    app.render()
    return app, screen, engine, clock


def _click_cell(app, screen, cell: int) -> None:
    import pygame

    pos = screen._tiles[cell].center
    app.handle_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": pos, "button": 1}))


def test_due_countdown_ends_run_before_click_in_same_frame(tmp_path: Path) -> None:
    from reflex_arena.run_engine import RunStatus

    app, screen, engine, clock = _game_on_fake_clock(tmp_path, start_time=0.1)
    active = engine.snapshot().active_cell
    assert active is not None

    clock.advance(0.1)
    _click_cell(app, screen, active)
    app.render()

    snap = engine.snapshot()
    assert snap.status is RunStatus.DONE
    assert snap.hits == 0
    assert snap.time_left == 0.0


def test_click_after_deadline_is_not_a_hit(tmp_path: Path) -> None:
    from reflex_arena.run_engine import RunStatus, TapOutcome

    app, screen, engine, clock = _game_on_fake_clock(tmp_path, start_time=30.0)
    stale = engine.snapshot().active_cell
    assert stale is not None

    clock.advance(engine.reaction_window_ms() / 1000.0 + 0.05)
    _click_cell(app, screen, stale)

    snap = engine.snapshot()
    assert snap.status is RunStatus.PLAYING
    assert snap.hits == 0
    assert snap.misses >= 1
    assert snap.active_cell != stale
    assert snap.last_feedback is not None
    assert snap.last_feedback.outcome is not TapOutcome.HIT


def test_stats_screen_draws_daily_chart(isolated_data: Path) -> None:
    import time

    import pygame

    from reflex_arena.app import run
    from reflex_arena.results import RunRecord
    from reflex_arena.stats_store import SECONDS_PER_DAY, StatsStore

    store = StatsStore(isolated_data / "stats.json")
    now = time.time()
    for days_ago, score in ((0, 140), (2, 90)):
        store.record_run(
            RunRecord(
                score=score,
                hits=5,
                misses=1,
                accuracy=83,
                fastest_reaction_ms=240,
                avg_reaction_ms=310,
                max_streak=4,
                difficulty="normal",
                mode="solo",
                player_name="ace",
                timestamp_s=now - days_ago * SECONDS_PER_DAY,
            )
        )

    def inject(frame: int) -> None:
        # Main Menu -> Stats
        if frame in (1, 2, 3):
            pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": pygame.K_DOWN, "unicode": ""}))
        elif frame == 4:
            pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": pygame.K_RETURN, "unicode": ""}))

    assert run(max_frames=8, event_injector=inject) == 0
    assert [d.score for d in StatsStore(isolated_data / "stats.json").chart_days()][-3:] == [90, None, 140]

"""Pygame UI shell for Reflex Arena.

Screens: main menu, player tag entry, difficulty picker, stats, and the
game board. Timing, scoring, target selection and run state all live in
reflex_arena/* core modules; this file only draws snapshots and forwards
input.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .difficulty import PROFILES, get_profile
from .persistence import Leaderboard, LeaderboardError, default_db_path
from .run_engine import RunEngine, RunEvent, RunSnapshot, RunStatus, TapFeedback, TapOutcome
from .scoring import reaction_label
from .session import ArcadeSession
from .settings import MAX_PLAYER_NAME_LEN, PlayerSettingsStore
from .stats_store import StatsStore
from .targets import grid_for_width
from .timers import Scheduler

WINDOW_SIZE = (960, 640)
TARGET_FPS = 60
FLASH_DURATION_S = 0.18
CHART_DAYS = 14

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
ACCENT = (124, 243, 197)
HAZARD = (236, 72, 92)
TILE = (14, 28, 120)
TILE_EDGE = (62, 84, 152)

FLASH_COLORS = {
    TapOutcome.HIT: (160, 255, 210),
    TapOutcome.WRONG: (255, 170, 80),
    TapOutcome.HAZARD: (255, 60, 60),
    TapOutcome.TIMEOUT: (120, 120, 150),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if event.type == pygame.VIDEORESIZE:
            self._surface = pygame.display.get_surface() or self._surface
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(
        self,
        app: App,
        title: str,
        items: list[MenuItem] | Callable[[], list[MenuItem]],
        *,
        is_root: bool = False,
    ) -> None:
        self._app = app
        self._title = title
        self._items_source = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def _items(self) -> list[MenuItem]:
        if callable(self._items_source):
            return self._items_source()
        return self._items_source

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            items = self._items()
            if items:
                items[self._selected % len(items)].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        items = self._items()
        if not items:
            return
        self._selected = (self._selected + delta) % len(items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(BG)

        frame = pygame.Rect(20, 20, max(260, w - 40), max(220, h - 40))
        pygame.draw.rect(surface, PANEL_BG, frame)
        pygame.draw.rect(surface, BORDER, frame, 2)

        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(midtop=(frame.centerx, frame.y + 18)))

        items = self._items()
        y = frame.y + 90
        for idx, item in enumerate(items):
            row = pygame.Rect(frame.x + 40, y, frame.w - 80, 40)
            selected = idx == self._selected % max(1, len(items))
            pygame.draw.rect(surface, (244, 248, 255) if selected else TILE, row)
            pygame.draw.rect(surface, TILE_EDGE, row, 1)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 12, row.y + (row.h - text.get_height()) // 2))
            y += 50

        foot = self._hint_font.render("Enter/Space: Select  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class NameEntryScreen:
    def __init__(self, app: App, *, settings: PlayerSettingsStore) -> None:
        self._app = app
        self._settings = settings
        self._text = settings.player_name
        self._font = pygame.font.Font(None, 40)
        self._hint_font = pygame.font.Font(None, 24)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._settings.set_player_name(self._text)
            self._app.pop()
        elif event.key == pygame.K_ESCAPE:
            self._text = self._settings.player_name
            self._app.pop()
        elif event.key == pygame.K_BACKSPACE:
            self._text = self._text[:-1]
        else:
            ch = getattr(event, "unicode", "")
            if ch and ch.isprintable() and len(self._text) < MAX_PLAYER_NAME_LEN:
                self._text += ch

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(BG)
        label = self._hint_font.render("Player tag (saved on this device)", True, TEXT_MUTED)
        surface.blit(label, label.get_rect(center=(w // 2, h // 2 - 50)))
        box = pygame.Rect(w // 2 - 220, h // 2 - 24, 440, 48)
        pygame.draw.rect(surface, PANEL_BG, box)
        pygame.draw.rect(surface, BORDER, box, 2)
        text = self._font.render(self._text + "_", True, TEXT_MAIN)
        surface.blit(text, (box.x + 10, box.y + (box.h - text.get_height()) // 2))
        hint = self._hint_font.render(
            f"Player ID: {self._settings.device_id}   Enter: Save  Esc: Cancel",
            True,
            TEXT_MUTED,
        )
        surface.blit(hint, hint.get_rect(center=(w // 2, h // 2 + 60)))


class StatsScreen:
    def __init__(self, app: App, *, stats: StatsStore, leaderboard: Leaderboard, mode: str) -> None:
        self._app = app
        self._stats = stats
        self._leaderboard = leaderboard
        self._mode = mode
        self._font = pygame.font.Font(None, 28)
        self._title_font = pygame.font.Font(None, 40)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._app.pop()

    def _lines(self) -> list[str]:
        ov = self._stats.overview()
        best_rt = "-" if ov.best_reaction_ms is None else f"{ov.best_reaction_ms} ms"
        avg_rt = "-" if ov.avg_reaction_ms is None else f"{ov.avg_reaction_ms} ms ({reaction_label(ov.avg_reaction_ms)})"
        lines = [
            f"Games played:   {ov.total_games}",
            f"Personal best:  {ov.personal_best}",
            f"7-day average:  {'-' if ov.avg_score_7d is None else ov.avg_score_7d}",
            f"Best reaction:  {best_rt}",
            f"Trend:          {ov.trend}",
            f"Avg accuracy:   {'-' if ov.avg_accuracy is None else f'{ov.avg_accuracy}%'}",
            f"Avg reaction:   {avg_rt}",
            "",
            "Leaderboard",
        ]
        try:
            entries = self._leaderboard.top_scores(self._mode)
        except LeaderboardError as exc:
            return [*lines, str(exc)]
        if not entries:
            lines.append("No scores yet.")
        for e in entries:
            lines.append(f"{e.rank:>2}. {e.player_name:<20} {e.score:>6}  {e.difficulty}")
        return lines

    def render(self, surface: pygame.Surface) -> None:
        surface.fill(BG)
        title = self._title_font.render("Stats", True, TEXT_MAIN)
        surface.blit(title, (40, 30))
        y = 90
        for line in self._lines():
            surface.blit(self._font.render(line, True, TEXT_MAIN), (40, y))
            y += 30
        w = surface.get_width()
        self._render_chart(surface, pygame.Rect(w // 2 + 20, 120, max(140, w // 2 - 60), 180))

    def _render_chart(self, surface: pygame.Surface, area: pygame.Rect) -> None:
        """Daily-best bars for the last CHART_DAYS days; empty days get a baseline stub."""

        days = self._stats.chart_days(CHART_DAYS)
        label = self._font.render(f"Daily best ({CHART_DAYS} days)", True, TEXT_MUTED)
        surface.blit(label, (area.x, area.y - 30))
        pygame.draw.rect(surface, PANEL_BG, area)
        pygame.draw.rect(surface, BORDER, area, 1)

        peak = max((d.score for d in days if d.score is not None), default=0)
        slot = area.w / max(1, len(days))
        for i, day in enumerate(days):
            x = int(area.x + i * slot + 2)
            bar_w = max(2, int(slot) - 4)
            if day.score is None or peak <= 0:
                pygame.draw.line(surface, TILE_EDGE, (x, area.bottom - 2), (x + bar_w, area.bottom - 2))
                continue
            bar_h = max(2, int((area.h - 8) * day.score / peak))
            pygame.draw.rect(surface, ACCENT, pygame.Rect(x, area.bottom - 2 - bar_h, bar_w, bar_h))


class GameScreen:
    def __init__(
        self,
        app: App,
        *,
        engine: RunEngine,
        scheduler: Scheduler,
        session: ArcadeSession,
        player_name: Callable[[], str],
    ) -> None:
        self._app = app
        self._engine = engine
        self._scheduler = scheduler
        self._session = session
        self._player_name = player_name
        self._flash: tuple[TapFeedback, float] | None = None
        self._tiles: list[pygame.Rect] = []
        self._font = pygame.font.Font(None, 32)
        self._big_font = pygame.font.Font(None, 56)
        self._small_font = pygame.font.Font(None, 24)
        self._engine.subscribe(self._on_event)

    def _on_event(self, event: RunEvent) -> None:
        if isinstance(event, RunSnapshot) and event.last_feedback is not None:
            if self._flash is None or self._flash[0] is not event.last_feedback:
                self._flash = (event.last_feedback, self._scheduler.now() + FLASH_DURATION_S)

    def close(self) -> None:
        self._engine.shutdown()
        self._scheduler.cancel_all()
        self._session.close()

    def handle_event(self, event: pygame.event.Event) -> None:
        # Timers already due win over this input.
        self._scheduler.run_due()
        status = self._engine.status
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            for idx, rect in enumerate(self._tiles):
                if rect.collidepoint(event.pos):
                    self._engine.on_input(idx)
                    return
            return
        if event.type == pygame.VIDEORESIZE:
            cols, rows = grid_for_width(int(event.w))
            self._engine.resize_grid(cols * rows)
            return
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_SPACE:
            if status in (RunStatus.IDLE, RunStatus.DONE):
                self._engine.start(self._player_name())
            elif status is RunStatus.PAUSED:
                self._engine.restart(self._player_name())
        elif event.key in (pygame.K_p, pygame.K_ESCAPE):
            if status in (RunStatus.PLAYING, RunStatus.PAUSED):
                self._engine.toggle_pause()
            elif event.key == pygame.K_ESCAPE:
                self.close()
                self._app.pop()

    def _layout(self, surface: pygame.Surface, cell_count: int) -> None:
        w, h = surface.get_size()
        cols = 4 if cell_count == 16 else 5
        rows = max(1, (cell_count + cols - 1) // cols)
        size = max(20, min((w - 80) // cols, (h - 160) // rows))
        x0 = (w - size * cols) // 2
        y0 = 120
        self._tiles = [
            pygame.Rect(x0 + (i % cols) * size + 3, y0 + (i // cols) * size + 3, size - 6, size - 6)
            for i in range(cell_count)
        ]

    def render(self, surface: pygame.Surface) -> None:
        self._scheduler.run_due()
        snap = self._engine.snapshot()
        now = self._scheduler.now()
        if self._flash is not None and now >= self._flash[1]:
            self._flash = None

        surface.fill(BG)
        self._layout(surface, snap.cell_count)
        self._render_hud(surface, snap)

        for idx, rect in enumerate(self._tiles):
            color = TILE
            if snap.status is not RunStatus.IDLE and idx == snap.active_cell:
                color = ACCENT
            elif idx == snap.hazard_cell:
                color = HAZARD
            if self._flash is not None and self._flash[0].cell == idx:
                color = FLASH_COLORS[self._flash[0].outcome]
            pygame.draw.rect(surface, color, rect, border_radius=8)
            pygame.draw.rect(surface, TILE_EDGE, rect, 1, border_radius=8)

        if snap.combo_label and snap.status is RunStatus.PLAYING:
            combo = self._big_font.render(snap.combo_label, True, ACCENT)
            surface.blit(combo, combo.get_rect(center=(surface.get_width() // 2, 95)))

        if snap.status is not RunStatus.PLAYING:
            self._render_overlay(surface, snap)

    def _render_hud(self, surface: pygame.Surface, snap: RunSnapshot) -> None:
        w = surface.get_width()
        player = self._small_font.render(f"Player: {snap.player_name or self._player_name() or '-'}", True, TEXT_MUTED)
        surface.blit(player, (30, 20))
        score = self._font.render(f"Score {snap.score}", True, TEXT_MAIN)
        surface.blit(score, (30, 45))
        if snap.streak >= 3 and snap.status is RunStatus.PLAYING:
            surface.blit(self._small_font.render(f"x{snap.streak}", True, ACCENT), (30, 75))

        bar = pygame.Rect(w - 330, 30, 300, 16)
        pygame.draw.rect(surface, PANEL_BG, bar)
        fill_ratio = min(1.0, snap.time_left / snap.start_time) if snap.start_time > 0 else 0.0
        fill = pygame.Rect(bar.x, bar.y, int(bar.w * fill_ratio), bar.h)
        pygame.draw.rect(surface, ACCENT if snap.time_banked else TEXT_MAIN, fill)
        pygame.draw.rect(surface, BORDER, bar, 1)
        secs = self._small_font.render(f"{snap.time_left:.1f}s", True, TEXT_MAIN)
        surface.blit(secs, (bar.x, bar.bottom + 6))

    def _render_overlay(self, surface: pygame.Surface, snap: RunSnapshot) -> None:
        w, h = surface.get_size()
        card = pygame.Rect(w // 2 - 240, h // 2 - 130, 480, 260)
        pygame.draw.rect(surface, PANEL_BG, card)
        pygame.draw.rect(surface, BORDER, card, 2)

        lines: list[str]
        if snap.status is RunStatus.PAUSED:
            lines = ["Paused", "P/Esc: continue   Space: restart"]
        elif snap.status is RunStatus.IDLE:
            hint = "Tap the glowing tile before it fades."
            if get_profile(snap.difficulty).hazard_chance > 0:
                hint += " Dodge red decoys."
            name_hint = "Space: start" if self._player_name() else "Set a player tag first"
            lines = ["Reflex Arena", hint, name_hint, "Esc: back"]
        else:
            lines = ["Run Complete", f"Score {snap.score}"]
            record = self._session.last_record
            if self._session.first_score:
                lines.append("FIRST SCORE SET")
            elif self._session.new_personal_best:
                lines.append("NEW PERSONAL BEST")
            if record is not None:
                if record.accuracy is not None:
                    lines.append(f"Accuracy {record.accuracy}%")
                if record.fastest_reaction_ms is not None:
                    lines.append(f"Best snap {record.fastest_reaction_ms} ms")
                if record.avg_reaction_ms is not None:
                    lines.append(f"Avg reaction {record.avg_reaction_ms} ms")
            if self._session.submission_error:
                lines.append(self._session.submission_error)
            lines.append("Space: play again   Esc: back")

        y = card.y + 20
        for i, line in enumerate(lines):
            font = self._big_font if i == 0 else self._small_font
            text = font.render(line, True, TEXT_MAIN if i == 0 else TEXT_MUTED)
            surface.blit(text, text.get_rect(midtop=(card.centerx, y)))
            y += text.get_height() + 10


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Reflex Arena")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)

    settings = PlayerSettingsStore(PlayerSettingsStore.default_path())
    stats = StatsStore(StatsStore.default_path())
    leaderboard = Leaderboard(default_db_path())
    real_clock = RealClock()

    def open_game() -> None:
        scheduler = Scheduler(clock=real_clock)
        engine = RunEngine(scheduler=scheduler, seed=_new_seed(), difficulty=settings.difficulty)
        cols, rows = grid_for_width(app_surface_width())
        engine.resize_grid(cols * rows)
        session = ArcadeSession(
            engine=engine,
            stats=stats,
            leaderboard=leaderboard,
            device_id=settings.device_id,
        )
        app.push(
            GameScreen(
                app,
                engine=engine,
                scheduler=scheduler,
                session=session,
                player_name=lambda: settings.player_name,
            )
        )

    def app_surface_width() -> int:
        current = pygame.display.get_surface()
        return current.get_width() if current is not None else WINDOW_SIZE[0]

    def choose_difficulty(name: str) -> None:
        settings.set_difficulty(name)
        app.pop()

    difficulty_menu = MenuScreen(
        app,
        "Difficulty",
        lambda: [
            MenuItem(
                f"{'> ' if name == settings.difficulty else ''}{name.title()}",
                lambda name=name: choose_difficulty(name),
            )
            for name in PROFILES
        ],
    )

    main_items = [
        MenuItem("Play", open_game),
        MenuItem("Player Tag", lambda: app.push(NameEntryScreen(app, settings=settings))),
        MenuItem("Difficulty", lambda: app.push(difficulty_menu)),
        MenuItem("Stats", lambda: app.push(StatsScreen(app, stats=stats, leaderboard=leaderboard, mode="solo"))),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Reflex Arena", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .results import RunRecord
from .scoring import round_half_up

logger = logging.getLogger(__name__)

STATS_STORE_ENV = "REFLEX_ARENA_STATS_PATH"

SECONDS_PER_DAY = 86_400
MAX_RECENT_RUNS = 30
MAX_HISTORY_DAYS = 90
TREND_MIN_RUNS = 4
TREND_THRESHOLD = 15.0
RECENT_AVERAGE_RUNS = 10


@dataclass(frozen=True, slots=True)
class DailyBest:
    key: str  # YYYY-MM-DD (UTC)
    score: int | None
    games: int


@dataclass(frozen=True, slots=True)
class StatsOverview:
    total_games: int
    personal_best: int
    avg_score_7d: int | None
    best_reaction_ms: int | None
    trend: str
    avg_accuracy: int | None
    avg_reaction_ms: int | None


def day_key(timestamp_s: float) -> str:
    return time.strftime("%Y-%m-%d", time.gmtime(timestamp_s))


class StatsStore:
    """Local run history kept in a single JSON file.

    Holds the all-time personal best, a per-day best/games table and a
    most-recent-first run log. Both collections are capped so the file
    stays small. A missing or unreadable file starts empty.
    """

    _version = 1

    def __init__(self, path: Path) -> None:
        self._path = path
        self._personal_best = 0
        self._history: dict[str, dict[str, int]] = {}
        self._runs: list[RunRecord] = []
        self._load()

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(STATS_STORE_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".reflex_arena_stats.json"

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable stats file %s: %s", self._path, exc)
            return
        if not isinstance(payload, dict):
            return

        try:
            self._personal_best = max(0, int(payload.get("personal_best", 0)))
        except (TypeError, ValueError):
            self._personal_best = 0

        raw_history = payload.get("history")
        if isinstance(raw_history, dict):
            for key, entry in raw_history.items():
                if not isinstance(entry, dict):
                    continue
                try:
                    self._history[str(key)] = {
                        "score": int(entry.get("score", 0)),
                        "games": int(entry.get("games", 0)),
                    }
                except (TypeError, ValueError):
                    continue

        raw_runs = payload.get("runs")
        if isinstance(raw_runs, list):
            for item in raw_runs:
                record = RunRecord.from_dict(item)
                if record is not None:
                    self._runs.append(record)
            del self._runs[MAX_RECENT_RUNS:]

    def save(self) -> None:
        payload: dict[str, Any] = {
            "version": self._version,
            "personal_best": int(self._personal_best),
            "history": self._history,
            "runs": [record.to_dict() for record in self._runs],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.warning("Could not save %s: %s", self._path, exc)

    def record_run(self, record: RunRecord) -> bool:
        """Add a finished run and persist. Returns True on a new personal best."""

        new_best = record.score > self._personal_best
        if new_best:
            self._personal_best = int(record.score)

        key = day_key(record.timestamp_s)
        entry = self._history.get(key)
        if entry is None:
            self._history[key] = {"score": int(record.score), "games": 1}
        else:
            entry["score"] = max(int(entry["score"]), int(record.score))
            entry["games"] = int(entry["games"]) + 1
        for stale in sorted(self._history, reverse=True)[MAX_HISTORY_DAYS:]:
            del self._history[stale]

        self._runs.insert(0, record)
        del self._runs[MAX_RECENT_RUNS:]

        self.save()
        return new_best

    def personal_best(self) -> int:
        return self._personal_best

    def recent_runs(self) -> list[RunRecord]:
        return list(self._runs)

    def chart_days(self, days: int = 14, *, now_s: float | None = None) -> list[DailyBest]:
        """Daily bests for the last `days` days, oldest first."""

        now = time.time() if now_s is None else float(now_s)
        out: list[DailyBest] = []
        for i in range(days - 1, -1, -1):
            key = day_key(now - i * SECONDS_PER_DAY)
            entry = self._history.get(key)
            if entry is None:
                out.append(DailyBest(key=key, score=None, games=0))
            else:
                out.append(DailyBest(key=key, score=int(entry["score"]), games=int(entry["games"])))
        return out

    def overview(self, *, now_s: float | None = None) -> StatsOverview:
        now = time.time() if now_s is None else float(now_s)
        runs = self._runs

        total_games = sum(int(e["games"]) for e in self._history.values())

        week = [r for r in runs if now - r.timestamp_s <= 7 * SECONDS_PER_DAY]
        avg_7d = _mean_rounded([r.score for r in week])

        fastest = [r.fastest_reaction_ms for r in runs if r.fastest_reaction_ms is not None]
        best_reaction = min(fastest) if fastest else None

        recent = runs[:RECENT_AVERAGE_RUNS]
        avg_accuracy = _mean_rounded([r.accuracy for r in recent if r.accuracy is not None])
        avg_reaction = _mean_rounded([r.avg_reaction_ms for r in recent if r.avg_reaction_ms is not None])

        return StatsOverview(
            total_games=total_games,
            personal_best=self._personal_best,
            avg_score_7d=avg_7d,
            best_reaction_ms=best_reaction,
            trend=score_trend(runs),
            avg_accuracy=avg_accuracy,
            avg_reaction_ms=avg_reaction,
        )


def score_trend(runs_newest_first: list[RunRecord]) -> str:
    """Compare the older half of the log against the newer half."""

    chrono = list(reversed(runs_newest_first))
    if len(chrono) < TREND_MIN_RUNS:
        return "Not enough data"
    half = len(chrono) // 2
    first = sum(r.score for r in chrono[:half]) / half
    second = sum(r.score for r in chrono[half:]) / (len(chrono) - half)
    delta = second - first
    if delta > TREND_THRESHOLD:
        return "Improving"
    if delta < -TREND_THRESHOLD:
        return "Declining"
    return "Consistent"


def _mean_rounded(values: list[int]) -> int | None:
    if not values:
        return None
    return round_half_up(sum(values) / len(values))

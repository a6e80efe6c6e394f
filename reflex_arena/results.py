from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from .run_engine import RunSummary


@dataclass(frozen=True, slots=True)
class RunRecord:
    """Persistable record of one finished run.

    This is what the local statistics store keeps; the leaderboard only
    receives score, player and mode.
    """

    score: int
    hits: int
    misses: int
    accuracy: int | None
    fastest_reaction_ms: int | None
    avg_reaction_ms: int | None
    max_streak: int
    difficulty: str
    mode: str
    player_name: str
    timestamp_s: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": int(self.score),
            "hits": int(self.hits),
            "misses": int(self.misses),
            "accuracy": self.accuracy,
            "fastest_reaction_ms": self.fastest_reaction_ms,
            "avg_reaction_ms": self.avg_reaction_ms,
            "max_streak": int(self.max_streak),
            "difficulty": self.difficulty,
            "mode": self.mode,
            "player_name": self.player_name,
            "timestamp_s": float(self.timestamp_s),
        }

    @classmethod
    def from_dict(cls, data: object) -> "RunRecord | None":
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                score=int(data["score"]),
                hits=int(data.get("hits", 0)),
                misses=int(data.get("misses", 0)),
                accuracy=_opt_int(data.get("accuracy")),
                fastest_reaction_ms=_opt_int(data.get("fastest_reaction_ms")),
                avg_reaction_ms=_opt_int(data.get("avg_reaction_ms")),
                max_streak=int(data.get("max_streak", 0)),
                difficulty=str(data.get("difficulty", "normal")),
                mode=str(data.get("mode", "solo")),
                player_name=str(data.get("player_name", "")),
                timestamp_s=float(data["timestamp_s"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


def run_record_from_summary(summary: RunSummary, *, timestamp_s: float | None = None) -> RunRecord:
    """Build a RunRecord from a RunSummary, stamped with wall-clock time."""

    stamp = time.time() if timestamp_s is None else float(timestamp_s)
    return RunRecord(
        score=int(summary.score),
        hits=int(summary.hits),
        misses=int(summary.misses),
        accuracy=summary.accuracy,
        fastest_reaction_ms=summary.fastest_reaction_ms,
        avg_reaction_ms=summary.avg_reaction_ms,
        max_streak=int(summary.max_streak),
        difficulty=str(summary.difficulty),
        mode=str(summary.mode),
        player_name=str(summary.player_name),
        timestamp_s=stamp,
    )


def _opt_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)  # type: ignore[call-overload]

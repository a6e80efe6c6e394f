from __future__ import annotations

import os
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

SCHEMA_VERSION = 1
LEADERBOARD_DB_ENV = "REFLEX_ARENA_DB_PATH"


class LeaderboardError(RuntimeError):
    """A score could not be stored or read back."""


@dataclass(frozen=True, slots=True)
class ScoreSubmission:
    score: int
    player_name: str
    mode: str
    device_id: str = ""
    difficulty: str = ""


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    player_name: str
    score: int
    difficulty: str
    submitted_at_utc: str


class ScoreSubmitter(Protocol):
    def submit(self, submission: ScoreSubmission) -> None: ...


def default_db_path() -> Path:
    explicit = os.environ.get(LEADERBOARD_DB_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".reflex_arena_scores.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS score (
                id INTEGER PRIMARY KEY,
                player_name TEXT NOT NULL,
                device_id TEXT NOT NULL,
                mode TEXT NOT NULL,
                difficulty TEXT NOT NULL,
                score INTEGER NOT NULL,
                submitted_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_score_mode_score ON score(mode, score DESC);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class Leaderboard:
    """Local sqlite leaderboard; one connection per call."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def submit(self, submission: ScoreSubmission) -> None:
        try:
            conn = open_db(self._path)
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO score(player_name, device_id, mode, difficulty, score, submitted_at_utc)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            str(submission.player_name),
                            str(submission.device_id),
                            str(submission.mode),
                            str(submission.difficulty),
                            int(submission.score),
                            _utc_now_iso(),
                        ),
                    )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise LeaderboardError(f"Could not save score: {exc}") from exc

    def top_scores(self, mode: str, *, limit: int = 10) -> list[LeaderboardEntry]:
        try:
            conn = open_db(self._path)
            try:
                rows = conn.execute(
                    """
                    SELECT player_name, score, difficulty, submitted_at_utc
                    FROM score
                    WHERE mode = ?
                    ORDER BY score DESC, id ASC
                    LIMIT ?
                    """,
                    (str(mode), int(limit)),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise LeaderboardError(f"Failed to load scores: {exc}") from exc

        return [
            LeaderboardEntry(
                rank=i + 1,
                player_name=str(name),
                score=int(score),
                difficulty=str(difficulty),
                submitted_at_utc=str(stamp),
            )
            for i, (name, score, difficulty, stamp) in enumerate(rows)
        ]

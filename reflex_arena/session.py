from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .persistence import LeaderboardError, ScoreSubmission, ScoreSubmitter
from .results import RunRecord, run_record_from_summary
from .run_engine import RunEngine, RunEvent, RunSummary
from .stats_store import StatsStore

logger = logging.getLogger(__name__)


class ArcadeSession:
    """Connects a RunEngine to the stats store and the leaderboard.

    On every finished run the local record is written first; the leaderboard
    submission happens after and its failure is only reported.
    """

    def __init__(
        self,
        *,
        engine: RunEngine,
        stats: StatsStore,
        leaderboard: ScoreSubmitter | None,
        device_id: str = "",
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = engine
        self._stats = stats
        self._leaderboard = leaderboard
        self._device_id = device_id
        self._wall_clock = wall_clock

        self._last_record: RunRecord | None = None
        self._new_personal_best = False
        self._first_score = False
        self._submission_error: str | None = None

        self._unsubscribe = engine.subscribe(self._on_event)

    @property
    def last_record(self) -> RunRecord | None:
        return self._last_record

    @property
    def new_personal_best(self) -> bool:
        return self._new_personal_best

    @property
    def first_score(self) -> bool:
        return self._first_score

    @property
    def submission_error(self) -> str | None:
        return self._submission_error

    def close(self) -> None:
        self._unsubscribe()

    def _on_event(self, event: RunEvent) -> None:
        if isinstance(event, RunSummary):
            self._on_finish(event)

    def _on_finish(self, summary: RunSummary) -> None:
        previous_best = self._stats.personal_best()
        record = run_record_from_summary(summary, timestamp_s=self._wall_clock())
        is_best = self._stats.record_run(record)

        self._last_record = record
        self._first_score = is_best and previous_best == 0
        self._new_personal_best = is_best and previous_best > 0
        self._submission_error = None

        if self._leaderboard is None:
            return
        try:
            self._leaderboard.submit(
                ScoreSubmission(
                    score=record.score,
                    player_name=record.player_name,
                    mode=record.mode,
                    device_id=self._device_id,
                    difficulty=record.difficulty,
                )
            )
        except LeaderboardError as exc:
            logger.warning("Score submission failed: %s", exc)
            self._submission_error = str(exc) or "Could not save score"

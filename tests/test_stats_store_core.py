from __future__ import annotations

from pathlib import Path

from reflex_arena.results import RunRecord
from reflex_arena.stats_store import (
    MAX_RECENT_RUNS,
    SECONDS_PER_DAY,
    StatsStore,
    day_key,
    score_trend,
)

# 2023-11-14T22:13:20Z
BASE_TS = 1_700_000_000.0


def make_record(score: int, *, ts: float = BASE_TS, fastest: int | None = 250, avg: int | None = 320) -> RunRecord:
    return RunRecord(
        score=score,
        hits=4,
        misses=1,
        accuracy=80,
        fastest_reaction_ms=fastest,
        avg_reaction_ms=avg,
        max_streak=3,
        difficulty="normal",
        mode="solo",
        player_name="ace",
        timestamp_s=ts,
    )


def test_empty_store_overview(tmp_path: Path) -> None:
    store = StatsStore(tmp_path / "stats.json")
    ov = store.overview(now_s=BASE_TS)
    assert ov.total_games == 0
    assert ov.personal_best == 0
    assert ov.avg_score_7d is None
    assert ov.best_reaction_ms is None
    assert ov.trend == "Not enough data"
    assert ov.avg_accuracy is None


def test_record_run_tracks_personal_best_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "stats.json"
    store = StatsStore(path)
    assert store.record_run(make_record(120)) is True
    assert store.record_run(make_record(90)) is False
    assert store.record_run(make_record(200, fastest=180)) is True

    reloaded = StatsStore(path)
    assert reloaded.personal_best() == 200
    assert [r.score for r in reloaded.recent_runs()] == [200, 90, 120]
    days = reloaded.chart_days(3, now_s=BASE_TS)
    assert [d.key for d in days] == ["2023-11-12", "2023-11-13", "2023-11-14"]
    assert days[-1].score == 200
    assert days[-1].games == 3
    assert days[0].score is None


def test_run_log_is_capped_most_recent_first(tmp_path: Path) -> None:
    store = StatsStore(tmp_path / "stats.json")
    for i in range(MAX_RECENT_RUNS + 5):
        store.record_run(make_record(i, ts=BASE_TS + i))
    runs = store.recent_runs()
    assert len(runs) == MAX_RECENT_RUNS
    assert runs[0].score == MAX_RECENT_RUNS + 4


def test_overview_windows_and_trend(tmp_path: Path) -> None:
    store = StatsStore(tmp_path / "stats.json")
    old = BASE_TS - 10 * SECONDS_PER_DAY
    store.record_run(make_record(10, ts=old, fastest=400))
    store.record_run(make_record(20, ts=old + 1))
    store.record_run(make_record(100, ts=BASE_TS - 60, fastest=150, avg=200))
    store.record_run(make_record(110, ts=BASE_TS))

    ov = store.overview(now_s=BASE_TS)
    assert ov.total_games == 4
    assert ov.personal_best == 110
    assert ov.avg_score_7d == 105
    assert ov.best_reaction_ms == 150
    assert ov.trend == "Improving"
    assert ov.avg_accuracy == 80
    assert ov.avg_reaction_ms == 290


def test_score_trend_labels() -> None:
    newest_first = [make_record(s) for s in (50, 50, 52, 49)]
    assert score_trend(newest_first) == "Consistent"
    assert score_trend([make_record(s) for s in (0, 0, 100, 100)]) == "Declining"
    assert score_trend([make_record(1)] * 3) == "Not enough data"


def test_corrupt_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "stats.json"
    path.write_text("{not json", encoding="utf-8")
    store = StatsStore(path)
    assert store.personal_best() == 0
    assert store.recent_runs() == []


def test_day_key_is_utc() -> None:
    assert day_key(BASE_TS) == "2023-11-14"


def test_unwritable_path_keeps_record_in_memory(tmp_path: Path) -> None:
    path = tmp_path / "stats.json"
    path.mkdir()
    store = StatsStore(path)

    assert store.record_run(make_record(120)) is True
    assert store.personal_best() == 120
    assert [r.score for r in store.recent_runs()] == [120]
    assert path.is_dir()

from __future__ import annotations

from pathlib import Path

from reflex_arena.settings import MAX_PLAYER_NAME_LEN, PlayerSettingsStore


def test_device_id_is_generated_once(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    first = PlayerSettingsStore(path)
    assert first.device_id != ""
    assert PlayerSettingsStore(path).device_id == first.device_id


def test_preferences_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    store = PlayerSettingsStore(path)
    store.set_player_name("  Ace  ")
    assert store.set_difficulty("Hard") is True
    assert store.set_difficulty("impossible") is False

    reloaded = PlayerSettingsStore(path)
    assert reloaded.player_name == "Ace"
    assert reloaded.difficulty == "hard"


def test_player_name_is_trimmed_and_capped(tmp_path: Path) -> None:
    store = PlayerSettingsStore(tmp_path / "settings.json")
    store.set_player_name("x" * 50)
    assert store.player_name == "x" * MAX_PLAYER_NAME_LEN


def test_unknown_saved_difficulty_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text('{"difficulty": "insane", "device_id": "abc"}', encoding="utf-8")
    store = PlayerSettingsStore(path)
    assert store.difficulty == "normal"
    assert store.device_id == "abc"


def test_unwritable_path_keeps_preferences_in_memory(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.mkdir()
    store = PlayerSettingsStore(path)
    assert store.device_id != ""

    store.set_player_name("ace")
    assert store.set_difficulty("extreme") is True
    assert store.player_name == "ace"
    assert store.difficulty == "extreme"

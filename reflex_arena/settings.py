from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from .difficulty import PROFILES

logger = logging.getLogger(__name__)

SETTINGS_STORE_ENV = "REFLEX_ARENA_SETTINGS_PATH"
MAX_PLAYER_NAME_LEN = 32


def _new_device_id() -> str:
    return str(uuid.uuid4())


class PlayerSettingsStore:
    """Player tag, device id and difficulty, saved as JSON."""

    _version = 1

    def __init__(self, path: Path) -> None:
        self._path = path
        self._player_name = ""
        self._device_id = ""
        self._difficulty = "normal"
        self._load()
        if self._device_id == "":
            self._device_id = _new_device_id()
            self.save()

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(SETTINGS_STORE_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".reflex_arena_settings.json"

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return
        if not isinstance(payload, dict):
            return

        self._player_name = _clean_name(payload.get("player_name", ""))
        self._device_id = str(payload.get("device_id", "")).strip()
        difficulty = str(payload.get("difficulty", "normal")).strip().lower()
        self._difficulty = difficulty if difficulty in PROFILES else "normal"

    def save(self) -> None:
        payload = {
            "version": self._version,
            "player_name": self._player_name,
            "device_id": self._device_id,
            "difficulty": self._difficulty,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.warning("Could not save %s: %s", self._path, exc)

    @property
    def player_name(self) -> str:
        return self._player_name

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def difficulty(self) -> str:
        return self._difficulty

    def set_player_name(self, name: str) -> None:
        self._player_name = _clean_name(name)
        self.save()

    def set_difficulty(self, name: str) -> bool:
        key = str(name).strip().lower()
        if key not in PROFILES:
            return False
        self._difficulty = key
        self.save()
        return True


def _clean_name(raw: object) -> str:
    return str(raw).strip()[:MAX_PLAYER_NAME_LEN]

# storage.py
# Persistence for the best score and the in-progress game.

from pathlib import Path
from typing import Dict, Optional, Protocol, Union
import json
import logging

from pydantic import ValidationError

from models import GameSnapshot

logger = logging.getLogger(__name__)

BEST_SCORE_KEY = "bestScore"
GAME_STATE_KEY = "gameState"


class StorageManager(Protocol):
    def get_best_score(self) -> int: ...

    def set_best_score(self, score: int) -> None: ...

    def get_game_state(self) -> Optional[GameSnapshot]: ...

    def set_game_state(self, state: GameSnapshot) -> None: ...

    def clear_game_state(self) -> None: ...


class MemoryStorage:
    """Keeps everything in a dict of JSON strings. Nothing survives the process."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def _get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def _remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def get_best_score(self) -> int:
        score = self._get_item(BEST_SCORE_KEY)
        if score is None:
            return 0
        try:
            return int(score)
        except ValueError:
            logger.warning("Ignoring unreadable best score %r", score)
            return 0

    def set_best_score(self, score: int) -> None:
        self._set_item(BEST_SCORE_KEY, str(score))

    def get_game_state(self) -> Optional[GameSnapshot]:
        """
        Loads the saved game.
        Returns:
            Optional[GameSnapshot]: The saved game, or None if there is none or it is unreadable.
        """
        raw = self._get_item(GAME_STATE_KEY)
        if raw is None:
            return None
        try:
            return GameSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable saved game: %s", e)
            return None

    def set_game_state(self, state: GameSnapshot) -> None:
        self._set_item(GAME_STATE_KEY, state.model_dump_json())

    def clear_game_state(self) -> None:
        self._remove_item(GAME_STATE_KEY)


class JsonFileStorage(MemoryStorage):
    """Same keys as MemoryStorage, written through to a JSON file on every change."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s, starting with empty storage: %s", self.path, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object.", self.path)
            return
        self._data = {str(key): str(value) for key, value in data.items()}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def _set_item(self, key: str, value: str) -> None:
        super()._set_item(key, value)
        self._flush()

    def _remove_item(self, key: str) -> None:
        super()._remove_item(key)
        self._flush()

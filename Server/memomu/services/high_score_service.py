"""
High Score Service

Keeps the top-10 list of every mode and persists it through a repository:
a JSON file by default, or a MongoDB collection when MONGO_URI is set.
Persistence failures are logged and never interrupt play.
"""

import datetime
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from ..models.game import GameMode, HighScoreEntry
from ..utils.game_logger import game_logger

MAX_HIGH_SCORES = 10


class HighScoreRepository:
    """Storage for the per-mode high score mapping."""

    def load_high_scores(self) -> Dict[str, List[Dict[str, Any]]]:
        raise NotImplementedError

    def save_high_scores(self, mapping: Dict[str, List[Dict[str, Any]]]) -> None:
        raise NotImplementedError


class JsonHighScoreRepository(HighScoreRepository):
    """High scores in a single JSON file keyed by mode."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load_high_scores(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"High score file {self.path} does not hold an object")
        return data

    def save_high_scores(self, mapping: Dict[str, List[Dict[str, Any]]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(mapping, f, indent=2)
        os.replace(tmp_path, self.path)


class MongoHighScoreRepository(HighScoreRepository):
    """High scores in MongoDB, one document per mode."""

    def __init__(self, mongo_uri: str, db_name: str = "memomu"):
        self.client = MongoClient(mongo_uri, server_api=ServerApi('1'))
        self.collection = self.client[db_name].high_scores

        # Test connection
        self.client.admin.command('ping')
        self.collection.create_index("mode", unique=True)

    def load_high_scores(self) -> Dict[str, List[Dict[str, Any]]]:
        return {doc["mode"]: doc.get("entries", []) for doc in self.collection.find({})}

    def save_high_scores(self, mapping: Dict[str, List[Dict[str, Any]]]) -> None:
        for mode, entries in mapping.items():
            self.collection.update_one(
                {"mode": mode},
                {"$set": {"entries": entries}},
                upsert=True
            )

    def close_connection(self):
        """Close the MongoDB connection."""
        if self.client:
            self.client.close()


class HighScoreBoard:
    """
    Top-10 high score lists, one per mode.

    Lists are always sorted by score, highest first, and never longer than
    MAX_HIGH_SCORES.
    """

    def __init__(self, repository: Optional[HighScoreRepository] = None,
                 now: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.repository = repository
        self.now = now
        self.scores: Dict[str, List[HighScoreEntry]] = {mode.value: [] for mode in GameMode}
        self.load()

    def load(self) -> bool:
        """Load stored lists. On failure every mode keeps an empty list."""
        if self.repository is None:
            return False
        try:
            raw = self.repository.load_high_scores() or {}
            loaded = {}
            for mode in GameMode:
                entries = [HighScoreEntry.from_dict(item) for item in raw.get(mode.value, [])]
                loaded[mode.value] = self._ranked(entries)
        except Exception as e:
            game_logger.log_error(None, e, 'load_high_scores')
            return False

        self.scores.update(loaded)
        return True

    def save(self) -> bool:
        if self.repository is None:
            return False
        try:
            self.repository.save_high_scores(self.to_dict())
            return True
        except Exception as e:
            game_logger.log_error(None, e, 'save_high_scores')
            return False

    def submit(self, mode, score: int) -> HighScoreEntry:
        """Append a score to the mode's list, re-rank, truncate and persist."""
        key = GameMode(mode).value
        entry = HighScoreEntry(score=int(score), timestamp=self.now().isoformat())
        self.scores[key] = self._ranked(self.scores.get(key, []) + [entry])
        self.save()
        return entry

    def get_high_scores(self, mode) -> List[HighScoreEntry]:
        return list(self.scores.get(GameMode(mode).value, []))

    def top_score(self, mode) -> int:
        entries = self.scores.get(GameMode(mode).value)
        return entries[0].score if entries else 0

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {mode: [entry.to_dict() for entry in entries] for mode, entries in self.scores.items()}

    @staticmethod
    def _ranked(entries: List[HighScoreEntry]) -> List[HighScoreEntry]:
        return sorted(entries, key=lambda e: e.score, reverse=True)[:MAX_HIGH_SCORES]


# Global service instance
_high_score_board = None


def get_high_score_board() -> Optional[HighScoreBoard]:
    """Get the global high score board."""
    return _high_score_board


def initialize_high_score_board(mongo_uri: Optional[str] = None, db_name: str = "memomu",
                                json_path: str = "data/memomu_highscores.json") -> HighScoreBoard:
    """
    Initialize the global high score board.

    Uses MongoDB when a URI is given and reachable, the JSON file otherwise.
    """
    global _high_score_board
    repository = None
    if mongo_uri:
        try:
            repository = MongoHighScoreRepository(mongo_uri, db_name)
        except Exception as e:
            game_logger.log_error(None, e, 'connect_high_scores')
            print(f"MongoDB high scores unavailable, using {json_path}: {e}")
    if repository is None:
        repository = JsonHighScoreRepository(json_path)

    _high_score_board = HighScoreBoard(repository)
    return _high_score_board

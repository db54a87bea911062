"""File-backed list of conversations that are never auto-processed."""

import json
from pathlib import Path
from typing import Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


class IExclusionList(Protocol):
    """Excluded conversation ids, re-read from the backing file on every call."""

    def load(self) -> list[str]:
        """Current ids in file order."""
        ...

    def contains(self, conversation_id: str) -> bool:
        ...

    def add(self, conversation_id: str) -> list[str]:
        ...

    def remove(self, conversation_id: str) -> list[str]:
        ...


class ExclusionList:
    """
    JSON array of excluded conversation ids.

    Nothing is cached so edits made by hand or through the API apply to the
    next inbound event. Writes replace the whole file without locking.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[str]:
        """Current ids. A missing or malformed file reads as empty."""
        if not self._path.exists():
            return []
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading exclusion list %s: %s", self._path, e)
            return []

        if not isinstance(data, list):
            logger.error("Exclusion list %s is not a JSON array", self._path)
            return []
        return [str(item) for item in data]

    def contains(self, conversation_id: str) -> bool:
        return conversation_id in self.load()

    def add(self, conversation_id: str) -> list[str]:
        """Add an id (blank or duplicate ids are ignored)."""
        conversation_id = conversation_id.strip()
        ids = self.load()
        if conversation_id and conversation_id not in ids:
            ids.append(conversation_id)
            self._save(ids)
            logger.info("Excluded %s from auto-processing", conversation_id)
        return ids

    def remove(self, conversation_id: str) -> list[str]:
        """Remove an id; removing an unknown id is a no-op."""
        ids = self.load()
        if conversation_id in ids:
            ids = [i for i in ids if i != conversation_id]
            self._save(ids)
            logger.info("Re-included %s for auto-processing", conversation_id)
        return ids

    def _save(self, ids: list[str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(ids, f, ensure_ascii=False, indent=2)

"""Shot journal: the ordered, newest-first list of logged shots.

The whole list is the unit of persistence. It is read once when the journal
is created and rewritten in full after every mutation.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

import config
from models import ShotRecord
from utils.file_utils import atomic_write_json
from logging_config import get_logger

logger = get_logger()


class JsonFilePersistence:
    """Stores the shot list as a single JSON array on disk."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else config.SHOTS_FILE

    def load(self) -> list[dict]:
        """Read the stored list; a missing file is an empty journal."""
        if not self.path.exists():
            logger.info("No shot journal found (first run)", extra={"path": str(self.path)})
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt shot journal, starting empty: {e}", extra={"path": str(self.path)})
            backup_file = self.path.with_suffix('.corrupt')
            try:
                self.path.replace(backup_file)
                logger.info(f"Backed up corrupt journal to {backup_file}")
            except OSError as backup_error:
                logger.warning(f"Could not back up corrupt journal: {backup_error}")
            return []
        if not isinstance(data, list):
            logger.warning("Shot journal is not a list, ignoring", extra={"path": str(self.path)})
            return []
        return data

    def save(self, entries: list[dict]) -> None:
        atomic_write_json(self.path, entries)


class ShotJournal:
    """Owns the in-memory shot list and mirrors it to a persistence port.

    The port needs two methods: ``load() -> list[dict]`` and
    ``save(list[dict])``.
    """

    def __init__(self, persistence):
        self._persistence = persistence
        self._shots: list[ShotRecord] = []
        for entry in persistence.load():
            try:
                self._shots.append(ShotRecord.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    "Skipping invalid shot entry",
                    extra={"entry_id": entry.get("id") if isinstance(entry, dict) else None,
                           "error_count": e.error_count()}
                )
        logger.info("Shot journal loaded", extra={"shot_count": len(self._shots)})

    def __len__(self) -> int:
        return len(self._shots)

    def _persist(self) -> None:
        self._persistence.save([shot.to_json() for shot in self._shots])

    def append(self, shot: ShotRecord) -> ShotRecord:
        """Add a shot at the front (newest first) and persist the list."""
        self._shots.insert(0, shot)
        self._persist()
        logger.info(
            f"Logged shot: {shot.bean_name}",
            extra={"shot_id": shot.id, "shot_count": len(self._shots)}
        )
        return shot

    def remove(self, shot_id: str) -> bool:
        """Delete a shot by id. Returns False if no such shot exists."""
        remaining = [shot for shot in self._shots if shot.id != shot_id]
        if len(remaining) == len(self._shots):
            return False
        self._shots = remaining
        self._persist()
        logger.info("Deleted shot", extra={"shot_id": shot_id, "shot_count": len(self._shots)})
        return True

    def get(self, shot_id: str) -> Optional[ShotRecord]:
        return next((shot for shot in self._shots if shot.id == shot_id), None)

    def all(self) -> list[ShotRecord]:
        return list(self._shots)

    def trend(self) -> list[dict]:
        """Extraction time and overall rating per shot, oldest first."""
        return [
            {"timestamp": shot.timestamp, "time": shot.time, "overall": shot.flavor.overall}
            for shot in reversed(self._shots)
        ]


# Loaded once per process
_journal: Optional[ShotJournal] = None


def get_journal() -> ShotJournal:
    global _journal
    if _journal is None:
        _journal = ShotJournal(JsonFilePersistence())
    return _journal


def reset_journal() -> None:
    global _journal
    _journal = None

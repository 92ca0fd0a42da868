from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from src.clinical_records.config import settings
from src.clinical_records.domain.models.app_state import AppState

logger = logging.getLogger(__name__)


class SnapshotStorageBackend(ABC):
    @abstractmethod
    def load(self) -> Optional[AppState]:
        """Return the persisted state, or None when absent or unreadable."""

    @abstractmethod
    def save(self, state: AppState) -> bool:
        """Overwrite the persisted snapshot. Returns False on failure."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted snapshot, if any."""


class JsonFileSnapshotStorage(SnapshotStorageBackend):
    """Keeps the snapshot under one key of a JSON object stored in a file.

    The file acts like a small key/value store, so other keys written by
    other tools survive a save. The state itself is always written in full.
    """

    def __init__(self, path: Optional[Path] = None, storage_key: Optional[str] = None) -> None:
        self._path = Path(path) if path is not None else settings.state_file_path
        self._key = storage_key or settings.state_storage_key

    def _read_entries(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        entries = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(entries, dict):
            raise ValueError("snapshot file does not contain a JSON object")
        return entries

    def load(self) -> Optional[AppState]:
        try:
            raw = self._read_entries().get(self._key)
            if raw is None:
                return None
            return AppState.model_validate(raw)
        except (OSError, ValueError, ValidationError):
            # ValueError covers json.JSONDecodeError.
            logger.exception("Failed to load state from %s", self._path)
            return None

    def save(self, state: AppState) -> bool:
        try:
            try:
                entries = self._read_entries()
            except ValueError:
                logger.warning("Overwriting unreadable snapshot file %s", self._path)
                entries = {}
            entries[self._key] = state.model_dump(mode="json", by_alias=True)

            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=self._path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(entries, fh, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            return True
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save state to %s", self._path)
            return False

    def clear(self) -> None:
        try:
            entries = self._read_entries()
        except (OSError, ValueError):
            entries = {}
        if self._key not in entries:
            return
        del entries[self._key]
        if entries:
            self._path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
        else:
            self._path.unlink(missing_ok=True)

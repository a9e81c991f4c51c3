"""Whole-file JSON persistence.

Each entity collection lives in its own JSON file holding a list of
objects. Every read loads the full file and every write replaces it, so the
file on disk is always the source of truth. Writes go to a temporary
sibling first and are moved into place with ``os.replace`` so a crash never
leaves a half-written file behind.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Union

from .errors import StorageFailure

logger = logging.getLogger(__name__)


class JsonFileStore:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def read(self) -> List[dict]:
        """Return all rows; a missing file reads as an empty collection."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise StorageFailure(f"Could not load data from {self.path}", path=str(self.path)) from exc
        if not isinstance(data, list):
            raise StorageFailure(f"Unexpected data layout in {self.path}", path=str(self.path))
        return data

    def write(self, rows: List[dict]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(rows, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            tmp_path.unlink(missing_ok=True)
            raise StorageFailure(f"Could not save data to {self.path}", path=str(self.path)) from exc

    def ensure_exists(self) -> bool:
        """Create an empty collection file if none exists. Returns True if created."""
        if self.path.exists():
            return False
        self.write([])
        return True

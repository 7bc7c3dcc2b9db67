"""JsonFileStore: the default review library: one JSON file on this machine.

Data format: a JSON array of review dicts (the persisted record layout, with
``correctedCode`` in camelCase), newest first. The whole file is rewritten on
every change through a temp file + rename so a crash mid-write never leaves a
truncated library behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from codepilot_store.base import BaseStore, ReviewNotFound, clean_title
from codepilot_store.models import ReviewRecord

logger = logging.getLogger(__name__)


class JsonFileStore(BaseStore):
    """Stores the review library as a JSON array in a single local file.

    list_reviews() reads the full array, which suits for the hundreds or low
    thousands of reviews one developer accumulates. For more, use SQLiteStore.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, record: ReviewRecord) -> None:
        """Prepend a review to the library."""
        records = self._read_records()
        records.insert(0, record.to_dict())
        self._write_records(records)

    def list_reviews(self) -> list[ReviewRecord]:
        results = []
        for d in self._read_records():
            try:
                results.append(ReviewRecord.from_dict(d))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed review entry in %s: %s", self._path, e)
        return results

    def rename_review(self, review_id: int, title: str) -> ReviewRecord:
        title = clean_title(title)
        records = self._read_records()
        for d in records:
            if d.get("id") == review_id:
                d["title"] = title
                self._write_records(records)
                return ReviewRecord.from_dict(d)
        raise ReviewNotFound(review_id)

    def delete_review(self, review_id: int) -> None:
        records = self._read_records()
        remaining = [d for d in records if d.get("id") != review_id]
        if len(remaining) == len(records):
            raise ReviewNotFound(review_id)
        self._write_records(remaining)

    def _read_records(self) -> list[dict]:
        """Read the current JSON array from disk, or return []."""
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8")) or []
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load review history from %s: %s", self._path, e)
            return []
        if not isinstance(data, list):
            logger.warning("Review history in %s is not a JSON array; ignoring it.", self._path)
            return []
        return [d for d in data if isinstance(d, dict)]

    def _write_records(self, records: list[dict]) -> None:
        """Write ``records`` atomically (temp file + rename)."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".history_", suffix=".tmp")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            Path(tmp_path).replace(self._path)
        except Exception:
            try:
                os.close(fd)
            except OSError:
                pass
            Path(tmp_path).unlink(missing_ok=True)
            raise

"""SQLiteStore: local database store for large review libraries.

Why SQLite as the alternative local store:
- Batteries included: ships with Python, no extra dependencies.
- Indexed reads: listing newest-first does not parse the whole library the
  way JsonFileStore does.

Schema:
  reviews one row per completed review, keyed by the review id (epoch ms).
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from codepilot_store.base import BaseStore, ReviewNotFound, clean_title
from codepilot_store.models import ReviewRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reviews (
    id              INTEGER PRIMARY KEY,
    timestamp       INTEGER NOT NULL,
    title           TEXT NOT NULL,
    code            TEXT NOT NULL,
    language        TEXT NOT NULL,
    strictness      TEXT NOT NULL,
    feedback        TEXT,
    corrected_code  TEXT
);
CREATE INDEX IF NOT EXISTS idx_reviews_timestamp ON reviews (timestamp);
"""


class SQLiteStore(BaseStore):
    """Stores the review library in a local SQLite database file.

    Configure via .codepilot.yml: `store: sqlite` and optionally
    `store_path: /path/to/history.db`.
    """

    def __init__(self, db_path: str | Path = "history.db"):
        path = Path(db_path)
        if str(db_path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, record: ReviewRecord) -> None:
        self._conn.execute(
            """
            INSERT OR REPLACE INTO reviews
              (id, timestamp, title, code, language, strictness, feedback, corrected_code)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.timestamp,
                record.title,
                record.code,
                record.language,
                record.strictness,
                record.feedback,
                record.corrected_code,
            ),
        )
        self._conn.commit()

    def list_reviews(self) -> list[ReviewRecord]:
        rows = self._conn.execute("SELECT * FROM reviews ORDER BY timestamp DESC, id DESC").fetchall()
        return [self._row_to_record(r) for r in rows]

    def get_review(self, review_id: int) -> ReviewRecord | None:
        row = self._conn.execute("SELECT * FROM reviews WHERE id=?", (review_id,)).fetchone()
        return self._row_to_record(row) if row is not None else None

    def rename_review(self, review_id: int, title: str) -> ReviewRecord:
        title = clean_title(title)
        cursor = self._conn.execute("UPDATE reviews SET title=? WHERE id=?", (title, review_id))
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ReviewNotFound(review_id)
        return self.get_review(review_id)

    def delete_review(self, review_id: int) -> None:
        cursor = self._conn.execute("DELETE FROM reviews WHERE id=?", (review_id,))
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ReviewNotFound(review_id)

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ReviewRecord:
        return ReviewRecord(
            id=row["id"],
            timestamp=row["timestamp"],
            title=row["title"],
            code=row["code"],
            language=row["language"],
            strictness=row["strictness"],
            feedback=row["feedback"],
            corrected_code=row["corrected_code"],
        )

"""No-op store, used when history is switched off (store: none, or --no-save).

Using a NoOpStore rather than None lets the CLI always call store.save()
without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from codepilot_store.base import BaseStore, ReviewNotFound

if TYPE_CHECKING:
    from codepilot_store.models import ReviewRecord


class NoOpStore(BaseStore):
    """Silently discards all records; zero configuration required."""

    def save(self, record: ReviewRecord) -> None:
        pass  # intentional no-op

    def list_reviews(self) -> list[ReviewRecord]:
        return []

    def rename_review(self, review_id: int, title: str) -> ReviewRecord:
        raise ReviewNotFound(review_id)

    def delete_review(self, review_id: int) -> None:
        raise ReviewNotFound(review_id)

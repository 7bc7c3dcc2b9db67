"""Abstract store interface.

Every storage backend for the review library implements this interface. The
CLI depends on BaseStore, not on a concrete backend, so backends are
swappable without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codepilot_store.models import ReviewRecord


class ReviewNotFound(KeyError):
    """No review with the requested id exists in the store."""

    def __init__(self, review_id: int):
        super().__init__(review_id)
        self.review_id = review_id

    def __str__(self) -> str:
        return f"No review with id {self.review_id}."


class BaseStore(ABC):
    """Pluggable persistence layer for the review library.

    The library is single-user and single-device: writes are appends of
    completed reviews plus explicit renames and deletes. No transactional
    guarantees are required.
    """

    @abstractmethod
    def save(self, record: ReviewRecord) -> None:
        """Persist a completed review record."""

    @abstractmethod
    def list_reviews(self) -> list[ReviewRecord]:
        """Return every review, newest first.

        Returns an empty list if no reviews exist; never raises.
        """

    @abstractmethod
    def rename_review(self, review_id: int, title: str) -> ReviewRecord:
        """Change a review's title. Raises ReviewNotFound for unknown ids."""

    @abstractmethod
    def delete_review(self, review_id: int) -> None:
        """Remove a review. Raises ReviewNotFound for unknown ids."""

    def get_review(self, review_id: int) -> ReviewRecord | None:
        for record in self.list_reviews():
            if record.id == review_id:
                return record
        return None

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional: subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """


def clean_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValueError("Title cannot be empty.")
    return cleaned

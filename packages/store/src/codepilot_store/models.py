"""Review history data models.

Decoupled from codepilot_core so the store layer can be used independently
and codepilot_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass

UNTITLED = "Untitled review"


@dataclass
class ReviewRecord:
    """A completed code review persisted to the library.

    Created by the CLI layer after review() hands over a ReviewSummary.
    Only ``title`` changes after creation (rename); everything else is fixed.
    """

    id: int
    timestamp: int  # epoch milliseconds
    title: str
    code: str
    language: str
    strictness: str  # "lenient" | "moderate" | "strict"
    feedback: str | None = None
    corrected_code: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "title": self.title,
            "code": self.code,
            "language": self.language,
            "strictness": self.strictness,
            "feedback": self.feedback,
            "correctedCode": self.corrected_code,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewRecord:
        language = d.get("language", "")
        return cls(
            id=int(d["id"]),
            timestamp=int(d.get("timestamp") or d["id"]),
            title=d.get("title") or UNTITLED,
            code=d.get("code", ""),
            language=language,
            strictness=d.get("strictness", "moderate"),
            feedback=d.get("feedback"),
            corrected_code=d.get("correctedCode"),
        )

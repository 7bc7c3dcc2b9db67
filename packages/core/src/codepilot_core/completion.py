"""Types exchanged between the review pipeline and the completion backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from codepilot_core import markers
from codepilot_core.errors import InvalidStrictness


class Strictness(str, Enum):
    LENIENT = "lenient"
    MODERATE = "moderate"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: str | Strictness) -> Strictness:
        try:
            return cls(value)
        except ValueError:
            raise InvalidStrictness(value) from None


@dataclass(frozen=True)
class ReviewRequest:
    """One user submission. Created once, never mutated."""

    code: str
    language: str
    strictness: Strictness = Strictness.MODERATE


@dataclass(frozen=True)
class CompletionResult:
    """A single response from the completion backend.

    ``continuation_requested`` is normalized once here: the backend asked for
    another call if it reported truncation out-of-band (``truncated``) or left a
    continuation marker anywhere in the raw code text. Nothing downstream
    re-derives it.
    """

    feedback_text: str | None = None
    code_text: str | None = None
    failed: Exception | None = None
    truncated: bool = False
    continuation_requested: bool = field(init=False)

    def __post_init__(self):
        requested = self.failed is None and (self.truncated or markers.detect(self.code_text))
        object.__setattr__(self, "continuation_requested", requested)

    @classmethod
    def failure(cls, error: Exception) -> CompletionResult:
        return cls(failed=error)


class CompletionClient(Protocol):
    """Anything that can produce one bounded code-review completion."""

    def complete(
        self,
        fragment: str,
        language: str,
        strictness: Strictness,
        is_continuation: bool = False,
        prior_output: str | None = None,
    ) -> CompletionResult: ...

"""Error taxonomy shared by the review pipeline and the one-shot assistant flows.

Backend SDK exceptions never leave codepilot_core unclassified: providers map
them onto BackendOverloaded or BackendFailure via classify_backend_error so the
CLI only has to know about the classes defined here.
"""

from __future__ import annotations

BUSY_MESSAGE = "The AI service is currently busy. Please wait a moment and try again."

# Substrings (lower-cased) that mark a failure as a transient capacity problem.
_OVERLOAD_SIGNATURES = ("503", "overloaded", "unavailable")
_OVERLOAD_STATUS_CODES = {503, 529}


class CodePilotError(Exception):
    """Base class for every error raised by codepilot."""


class ValidationError(CodePilotError):
    """Request rejected before any backend call was made."""


class EmptyCode(ValidationError):
    def __init__(self, message: str = "Code snippet cannot be empty."):
        super().__init__(message)


class MissingLanguage(ValidationError):
    def __init__(self, message: str = "Language must be selected."):
        super().__init__(message)


class InvalidStrictness(ValidationError):
    def __init__(self, value: object):
        super().__init__(f"Unknown strictness level: {value!r}. Choose 'lenient', 'moderate' or 'strict'.")
        self.value = value


class BackendError(CodePilotError):
    """The language-model backend could not produce a completion."""


class BackendOverloaded(BackendError):
    """The backend is busy; the caller may try again shortly."""

    def __init__(self, detail: str = ""):
        super().__init__(BUSY_MESSAGE)
        self.detail = detail


class BackendFailure(BackendError):
    """Any other backend failure. The message is the backend's own."""


class TruncationExceeded(CodePilotError):
    """The backend kept asking to continue past the configured continuation cap.

    ``partial_code`` holds what had been accumulated when the cap was hit so a
    caller can show it, clearly labelled as incomplete.
    """

    def __init__(self, max_continuations: int, partial_code: str = ""):
        super().__init__(
            f"The improved code is still incomplete after {max_continuations} continuation(s). "
            "Try again with a smaller snippet."
        )
        self.max_continuations = max_continuations
        self.partial_code = partial_code


class ReviewCancelled(CodePilotError):
    """The caller cancelled an in-flight review. Never shown to the user."""


def is_overload(exc: BaseException) -> bool:
    status = getattr(exc, "status_code", None)
    if status in _OVERLOAD_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(signature in message for signature in _OVERLOAD_SIGNATURES)


def classify_backend_error(exc: BaseException) -> BackendError:
    """Map an arbitrary exception raised while calling the backend to a BackendError."""
    if isinstance(exc, BackendError):
        return exc
    if is_overload(exc):
        return BackendOverloaded(detail=str(exc))
    message = str(exc) or "An unexpected error occurred during code review."
    return BackendFailure(message)

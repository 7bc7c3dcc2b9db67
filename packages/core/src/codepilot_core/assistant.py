"""One-shot assistant flows: search, explanation, language detection, style.

Unlike a review these are plain request/response calls with no continuation.
Each function validates its input, calls the reviewer once and applies the
flow's failure policy: search, explain and style surface backend errors;
language detection and the language check never fail the caller.
"""

from __future__ import annotations

import logging

from codepilot_core.completion import Strictness
from codepilot_core.errors import BackendError, EmptyCode, MissingLanguage, ValidationError
from codepilot_core.utils.code import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

# Below this many non-blank characters a snippet is too ambiguous to classify.
MIN_DETECTABLE_CHARS = 20

_SEARCH_FIELDS = ("id", "timestamp", "code", "language", "strictness", "feedback", "correctedCode")


def search_reviews(reviewer, query: str, reviews: list[dict]) -> list[int]:
    """Return ids of ``reviews`` relevant to ``query``, most relevant first.

    ``reviews`` use the persisted record layout. Ids the backend invents are
    dropped, and so are duplicates.
    """
    if not query or not query.strip():
        raise ValidationError("Search query cannot be empty.")
    if not reviews:
        return []

    payload = [{k: r.get(k) for k in _SEARCH_FIELDS} for r in reviews]
    ranked = reviewer.rank_reviews(query.strip(), payload)

    known = {r.get("id") for r in reviews}
    results: list[int] = []
    for review_id in ranked:
        if review_id in known and review_id not in results:
            results.append(review_id)
    logger.debug("Search %r matched %d of %d review(s)", query, len(results), len(reviews))
    return results


def explain_feedback(reviewer, code: str, feedback: str, language: str) -> str:
    if not feedback or not feedback.strip():
        raise ValidationError("There is no feedback to explain.")
    if not code or not code.strip():
        raise EmptyCode()
    if not language:
        raise MissingLanguage()
    return reviewer.explain(code, feedback.strip(), language)


def detect_language(reviewer, code: str, supported_languages: list[str] | None = None) -> str | None:
    """Best-effort language detection; None when unsure or on any failure."""
    supported = list(supported_languages or SUPPORTED_LANGUAGES)
    if len(code.strip()) < MIN_DETECTABLE_CHARS:
        return None
    try:
        language = reviewer.detect_language(code, supported)
    except BackendError as e:
        logger.warning("Language detection failed: %s", e)
        return None
    if language is None:
        return None
    language = language.strip().lower()
    if language not in supported:
        logger.debug("Detected language %r is not supported; ignoring.", language)
        return None
    return language


def check_language(reviewer, code: str, language: str) -> bool:
    """Return False only when the backend is confident ``code`` is not ``language``.

    Fails open: if the check itself errors the review proceeds.
    """
    try:
        return reviewer.matches_language(code, language)
    except BackendError as e:
        logger.warning("Language check failed, allowing review: %s", e)
        return True


def suggest_style(reviewer, code: str, language: str, strictness: str | Strictness) -> list[str]:
    if not code or not code.strip():
        raise EmptyCode()
    if not language:
        raise MissingLanguage()
    return reviewer.style_suggestions(code, language, Strictness.parse(strictness))

"""Core review orchestration: drive every chunk of a submission through the backend."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass
from enum import Enum

from codepilot_core.chunker import DEFAULT_MAX_LINES_PER_CHUNK, split_into_chunks
from codepilot_core.completion import CompletionClient, ReviewRequest, Strictness
from codepilot_core.continuation import DEFAULT_MAX_CONTINUATIONS, ContinuationDriver, DriveResult
from codepilot_core.errors import CodePilotError, EmptyCode, MissingLanguage, ReviewCancelled
from codepilot_core.utils.code import language_label

logger = logging.getLogger(__name__)


class ProgressKind(str, Enum):
    LOADING_FIRST = "loading-first"
    LOADING_CONTINUATION = "loading-continuation"
    PARTIAL = "partial"
    SAVED = "saved"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ReviewSummary:
    """A completed review, carrying enough data for the CLI to persist it.

    Decoupled from codepilot_store so codepilot_core has no dependency on the
    store layer. The CLI converts this to a ReviewRecord before persisting.
    """

    id: int
    timestamp: int  # epoch milliseconds
    title: str
    code: str
    language: str
    strictness: str
    feedback: str | None
    corrected_code: str | None
    chunk_count: int = 1


@dataclass(frozen=True)
class ReviewProgress:
    kind: ProgressKind
    chunk_index: int = 0
    chunk_count: int = 0
    feedback: str | None = None
    code: str | None = None
    message: str | None = None
    error: CodePilotError | None = None
    summary: ReviewSummary | None = None


def get_reviewer(config: dict):
    model = config["model"]
    timeout = config.get("request_timeout", 120)
    if model == "anthropic":
        from codepilot_core.providers.anthropic import AnthropicReviewer

        return AnthropicReviewer(api_key=config["anthropic_api_key"], timeout=timeout)
    if model == "openai":
        from codepilot_core.providers.openai import OpenAIReviewer

        return OpenAIReviewer(api_key=config["openai_api_key"], timeout=timeout)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")


def default_title(language: str) -> str:
    return f"{language_label(language)} Review Snippet"


def validate_request(request: ReviewRequest) -> ReviewRequest:
    """Reject requests that must never reach the backend."""
    if not request.code or not request.code.strip():
        raise EmptyCode()
    if not request.language or not request.language.strip():
        raise MissingLanguage()
    strictness = Strictness.parse(request.strictness)
    if strictness is not request.strictness:
        request = ReviewRequest(code=request.code, language=request.language, strictness=strictness)
    return request


def review(
    request: ReviewRequest,
    client: CompletionClient,
    on_complete: Callable[[ReviewSummary], object] | None = None,
    max_lines_per_chunk: int = DEFAULT_MAX_LINES_PER_CHUNK,
    max_continuations: int = DEFAULT_MAX_CONTINUATIONS,
    cancel_event: threading.Event | None = None,
) -> Iterator[ReviewProgress]:
    """Review ``request`` and return a lazy sequence of progress states.

    Validation runs immediately, so an invalid request raises ValidationError
    before any backend call. Everything else happens as the returned iterator
    is consumed:

        loading-first, partial…, [loading-continuation, partial…]…, [saved], done
        … or a single trailing ``error`` state.

    ``on_complete`` receives the ReviewSummary only after every chunk finished
    successfully with non-empty code and captured feedback; ``saved`` is
    yielded once it returns. If it raises, ``saved`` is skipped and ``done``
    carries the reason in ``message``. Failures persist nothing. A set
    ``cancel_event`` ends the sequence silently.
    """
    request = validate_request(request)
    driver = ContinuationDriver(client, max_continuations=max_continuations)
    return _run(request, driver, on_complete, max_lines_per_chunk, cancel_event)


def _as_partials(
    gen: Generator[str, None, DriveResult], chunk_index: int, chunk_count: int
) -> Generator[ReviewProgress, None, DriveResult]:
    """Re-emit a drive() generator's partial code as PARTIAL states, keeping its result."""
    while True:
        try:
            partial = next(gen)
        except StopIteration as stop:
            return stop.value
        yield ReviewProgress(kind=ProgressKind.PARTIAL, chunk_index=chunk_index, chunk_count=chunk_count, code=partial)


def _run(
    request: ReviewRequest,
    driver: ContinuationDriver,
    on_complete: Callable[[ReviewSummary], object] | None,
    max_lines_per_chunk: int,
    cancel_event: threading.Event | None,
) -> Generator[ReviewProgress, None, None]:
    chunks = split_into_chunks(request.code, max_lines_per_chunk)
    total = len(chunks)
    accumulated = ""
    saved_feedback: str | None = None
    logger.debug("Reviewing %d line(s) of %s in %d chunk(s)", request.code.count("\n") + 1, request.language, total)

    for chunk in chunks:
        kind = ProgressKind.LOADING_FIRST if chunk.index == 0 else ProgressKind.LOADING_CONTINUATION
        yield ReviewProgress(kind=kind, chunk_index=chunk.index, chunk_count=total, code=accumulated or None)

        gen = driver.drive(
            chunk,
            accumulated,
            is_first_chunk_of_request=chunk.index == 0,
            language=request.language,
            strictness=request.strictness,
            cancel_event=cancel_event,
        )
        try:
            result = yield from _as_partials(gen, chunk.index, total)
        except ReviewCancelled:
            logger.debug("Review cancelled during chunk %d/%d; discarding progress.", chunk.index + 1, total)
            return
        except CodePilotError as e:
            logger.error("Review failed on chunk %d/%d: %s", chunk.index + 1, total, e)
            yield ReviewProgress(
                kind=ProgressKind.ERROR, chunk_index=chunk.index, chunk_count=total, message=str(e), error=e
            )
            return

        accumulated = result.accumulated_code
        if chunk.index == 0:
            saved_feedback = result.feedback_text

    save_error: str | None = None
    if accumulated and saved_feedback is not None:
        now_ms = int(time.time() * 1000)
        summary = ReviewSummary(
            id=now_ms,
            timestamp=now_ms,
            title=default_title(request.language),
            code=request.code,
            language=request.language,
            strictness=request.strictness.value,
            feedback=saved_feedback,
            corrected_code=accumulated,
            chunk_count=total,
        )
        if on_complete is not None:
            try:
                on_complete(summary)
            except Exception as e:
                # The review itself succeeded; still hand it back.
                logger.error("Could not save review %d: %s", summary.id, e)
                save_error = f"The review could not be saved to your library: {e}"
            else:
                yield ReviewProgress(
                    kind=ProgressKind.SAVED, chunk_index=total - 1, chunk_count=total, summary=summary
                )

    yield ReviewProgress(
        kind=ProgressKind.DONE,
        chunk_index=total - 1,
        chunk_count=total,
        feedback=saved_feedback,
        code=accumulated,
        message=save_error,
    )

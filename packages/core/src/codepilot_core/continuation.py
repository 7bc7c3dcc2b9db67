"""Continuation driver: reassemble one chunk's improved code across bounded completions.

For a single chunk the backend may need several calls before the improved code
is complete. The driver walks a small state machine:

    FIRST_CALL → DONE                  (short output)
    FIRST_CALL → CONTINUING … → DONE   (truncated output, continued until complete)
    any state  → FAILED                (backend failure, cap exceeded, cancellation)

Each continuation call carries the accumulated, marker-free text so far as
context. The driver is a generator so callers can stream the partial text: it
yields the accumulated code after every fragment and returns a DriveResult.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum

from codepilot_core import markers
from codepilot_core.chunker import Chunk
from codepilot_core.completion import CompletionClient, Strictness
from codepilot_core.errors import ReviewCancelled, TruncationExceeded, classify_backend_error

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTINUATIONS = 50


class DriverState(str, Enum):
    FIRST_CALL = "first_call"
    CONTINUING = "continuing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class DriveResult:
    feedback_text: str | None
    accumulated_code: str
    calls: int


def check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ReviewCancelled()


class ContinuationDriver:
    def __init__(self, client: CompletionClient, max_continuations: int = DEFAULT_MAX_CONTINUATIONS):
        if max_continuations < 0:
            raise ValueError(f"max_continuations must be >= 0, got {max_continuations}")
        self.client = client
        self.max_continuations = max_continuations

    def drive(
        self,
        chunk: Chunk,
        initial_accumulated: str,
        is_first_chunk_of_request: bool,
        language: str,
        strictness: Strictness,
        cancel_event: threading.Event | None = None,
    ) -> Generator[str, None, DriveResult]:
        """Run one chunk to completion, yielding the accumulated code after each call.

        Feedback is captured only from the first call of the first chunk of a
        request. A failed completion, returned or raised by the client, surfaces
        as a BackendError; nothing partial is returned.
        """
        accumulated = initial_accumulated
        captured_feedback: str | None = None
        state = DriverState.FIRST_CALL
        calls = 0

        while True:
            is_first_call = state is DriverState.FIRST_CALL
            if not is_first_call and calls > self.max_continuations:
                logger.warning(
                    "Chunk %d still incomplete after %d continuation(s); giving up.",
                    chunk.index,
                    self.max_continuations,
                )
                raise TruncationExceeded(self.max_continuations, partial_code=accumulated)

            # A continuation always carries the accumulation; a chunk's first call
            # carries it only when earlier chunks produced something.
            prior_output = accumulated if (accumulated or not is_first_call) else None

            check_cancelled(cancel_event)
            try:
                result = self.client.complete(
                    chunk.text,
                    language,
                    strictness,
                    is_continuation=not is_first_call,
                    prior_output=prior_output,
                )
            except Exception as e:
                logger.debug("Chunk %d: %s → %s (%s)", chunk.index, state.value, DriverState.FAILED.value, e)
                raise classify_backend_error(e) from e
            calls += 1
            check_cancelled(cancel_event)

            if result.failed is not None:
                logger.debug("Chunk %d: %s → %s (%s)", chunk.index, state.value, DriverState.FAILED.value, result.failed)
                error = classify_backend_error(result.failed)
                if error is result.failed:
                    raise error
                raise error from result.failed

            if is_first_call and is_first_chunk_of_request:
                captured_feedback = result.feedback_text

            accumulated += markers.strip(result.code_text)
            yield accumulated

            if result.continuation_requested:
                if is_first_call:
                    logger.debug("Chunk %d: %s → %s", chunk.index, state.value, DriverState.CONTINUING.value)
                state = DriverState.CONTINUING
                continue

            logger.debug("Chunk %d: %s → %s after %d call(s)", chunk.index, state.value, DriverState.DONE.value, calls)
            return DriveResult(feedback_text=captured_feedback, accumulated_code=accumulated, calls=calls)


def run_to_completion(gen: Generator[object, None, DriveResult]) -> DriveResult:
    """Exhaust a drive() generator and return its DriveResult."""
    while True:
        try:
            next(gen)
        except StopIteration as stop:
            return stop.value

"""Base reviewer implementing the Template Method pattern.

All providers share the same request algorithm:
    complete() → _build_system_prompt() + _build_user_prompt()
               → _call_with_retry() → _call_api()   ← only this differs per provider
               → _parse_review()

The one-shot flows (explain, search, detect, style, language check) reuse the
same _call_with_retry → _call_api path with their own prompts and JSON parsing.

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return (text, truncated)

Prompt construction, parsing, retry and error classification all
live here so every provider behaves identically.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod

from codepilot_core.completion import CompletionResult, Strictness
from codepilot_core.errors import BackendFailure, classify_backend_error

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 4096

TRUNCATED_FEEDBACK_MESSAGE = "The review was cut off before the improved code. Try again with a smaller snippet."

_CODE_HEADER_RE = re.compile(r"^#{1,3}\s*Corrected Code\s*:?\s*$", re.IGNORECASE | re.MULTILINE)
_FEEDBACK_HEADER_RE = re.compile(r"^\s*#{1,3}\s*Feedback\s*:?\s*\n", re.IGNORECASE)
_OPEN_FENCE_RE = re.compile(r"^\s*```[^\n`]*\n")
# The closing fence may be followed by a continuation marker; keep the marker.
_CLOSE_FENCE_RE = re.compile(r"(?:(?<=\n)|^)```\s*(?=(?:\s*\[\s*CONTINUE\s*\])?\s*$)", re.IGNORECASE)

_STRICTNESS_GUIDE = {
    Strictness.LENIENT: "Only flag real bugs and serious problems; ignore matters of taste.",
    Strictness.MODERATE: "Flag bugs, risky patterns and clear readability problems.",
    Strictness.STRICT: "Be thorough: flag every deviation from idiomatic, secure, efficient code.",
}


def strip_code_fence(text: str) -> str:
    """Remove the outer ```lang ... ``` fence, keeping the code's own line endings."""
    text = _OPEN_FENCE_RE.sub("", text, count=1)
    return _CLOSE_FENCE_RE.sub("", text, count=1)


class BaseReviewer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    # Exception types worth retrying (connection resets, timeouts). Anything
    # else, overload included, is surfaced to the caller on the first failure.
    TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def complete(
        self,
        fragment: str,
        language: str,
        strictness: Strictness,
        is_continuation: bool = False,
        prior_output: str | None = None,
    ) -> CompletionResult:
        """Request one bounded review completion.

        Never raises for backend problems: failures come back as
        ``CompletionResult.failed``, already classified.
        """
        system = self._build_system_prompt(language, strictness)
        user = self._build_user_prompt(fragment, language, is_continuation, prior_output)
        try:
            raw, truncated = self._call_with_retry(system, user)
        except Exception as e:
            error = classify_backend_error(e)
            logger.error("%s completion failed: %s", self.__class__.__name__, e)
            return CompletionResult.failure(error)
        feedback, code = self._parse_review(raw, is_continuation)
        if truncated and not is_continuation and code is None:
            # Cut off inside the feedback: there is no code to continue from.
            logger.warning("%s: response truncated before the corrected code section", self.__class__.__name__)
            return CompletionResult.failure(BackendFailure(TRUNCATED_FEEDBACK_MESSAGE))
        return CompletionResult(feedback_text=feedback, code_text=code, truncated=truncated)

    def explain(self, code: str, feedback: str, language: str) -> str:
        raw = self._one_shot(
            "You are an expert software engineer and a patient teacher explaining code review feedback "
            "to a junior developer.",
            f"""Explain *why* the feedback below matters and how to address it. Reference the original
code where it helps. Keep it concise, friendly and educational; markdown is allowed.

Language: {language}

Original Code:
```{language}
{code}
```

Feedback to Explain:
"{feedback}"
""",
        )
        return raw.strip()

    def rank_reviews(self, query: str, reviews: list[dict]) -> list[int]:
        raw = self._one_shot(
            "You are an intelligent search engine for a developer's code review history.",
            f"""Find the reviews most relevant to the user's query. Each review has the original code,
the review feedback and the corrected code.

User Query:
"{query}"

Review History (JSON format):
```json
{json.dumps(reviews, indent=2)}
```

Respond with **only** a JSON object: {{"relevantReviewIds": [<id>, ...]}}
ordered from most to least relevant. Use an empty list if nothing is relevant.""",
        )
        data = self._parse_json(raw)
        ids = data.get("relevantReviewIds", []) if isinstance(data, dict) else data
        if not isinstance(ids, list):
            return []
        return [i for i in ids if isinstance(i, int) and not isinstance(i, bool)]

    def detect_language(self, code: str, supported_languages: list[str]) -> str | None:
        raw = self._one_shot(
            "You identify the programming language of code snippets.",
            f"""Identify the programming language of the code below.
Answer with one of these values: {json.dumps(supported_languages)}

Respond with **only** a JSON object: {{"language": "<value>"}}
If the code is too short, ambiguous, or not one of the listed languages, respond with {{"language": null}}.

Code:
```
{code}
```""",
        )
        data = self._parse_json(raw)
        language = data.get("language") if isinstance(data, dict) else None
        return language if isinstance(language, str) else None

    def matches_language(self, code: str, language: str) -> bool:
        raw = self._one_shot(
            "You identify the programming language of code snippets.",
            f"""Does the following code snippet appear to be written in the '{language}' language?
Respond with **only** a JSON object: {{"isMatch": true}} or {{"isMatch": false}}.

Code:
```
{code}
```""",
        )
        data = self._parse_json(raw)
        if not isinstance(data, dict) or "isMatch" not in data:
            return True
        return bool(data["isMatch"])

    def style_suggestions(self, code: str, language: str, strictness: Strictness) -> list[str]:
        raw = self._one_shot(
            "You are a senior software engineer reviewing code for style and best practices.",
            f"""Language: {language}
Strictness: {strictness.value}. {_STRICTNESS_GUIDE[strictness]}

Respond with **only** a JSON list of short style suggestions (strings).

Code:
```{language}
{code}
```""",
        )
        data = self._parse_json(raw)
        if not isinstance(data, list):
            return []
        return [str(s) for s in data if s]

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> tuple[str, bool]:
        """Make a single API call and return (text, truncated).

        ``truncated`` is True when the backend stopped because it hit its
        output limit. This is the only method subclasses must implement. It
        should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> tuple[str, bool]:
        """Retry _call_api on transient transport errors with exponential backoff.

        Only TRANSIENT_ERRORS are retried; any other exception (overload,
        auth, bad request) propagates immediately so the caller can surface it.
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except self.TRANSIENT_ERRORS as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise RuntimeError("MAX_RETRIES must be at least 1")

    def _one_shot(self, system_prompt: str, user_prompt: str) -> str:
        """Single request/response call; backend errors are raised classified."""
        try:
            raw, _ = self._call_with_retry(system_prompt, user_prompt)
        except Exception as e:
            logger.error("%s request failed: %s", self.__class__.__name__, e)
            raise classify_backend_error(e) from e
        return raw

    def _build_system_prompt(self, language: str, strictness: Strictness) -> str:
        """Reviewer persona and output rules, shared by first and continuation calls."""
        return f"""You are a senior software engineer reviewing {language} code.
Strictness level for review: {strictness.value}. {_STRICTNESS_GUIDE[strictness]}

When you output improved code:
- Output the ENTIRE, FULL and COMPLETE code, not just the parts that changed.
- If the code does not fit in one response, stop at a line boundary and end your
  response with [CONTINUE] on a line by itself. You will be asked to continue.
- Never omit [CONTINUE] while the improved code is unfinished. Never write it
  once the code is complete."""

    def _build_user_prompt(
        self,
        fragment: str,
        language: str,
        is_continuation: bool,
        prior_output: str | None = None,
    ) -> str:
        """Build the per-call prompt.

        A continuation call only needs the improved code produced so far; the
        original fragment was already reviewed by the first call.
        """
        if is_continuation:
            return f"""You are continuing the improved code. Here is the improved code so far:
{prior_output or ""}

Output ONLY the next part of the improved code, picking up exactly where you left off.
No headings, no commentary. If the code is still not finished, end with [CONTINUE]."""

        context = ""
        if prior_output:
            context = f"""
The earlier part of this file has already been reviewed. Its improved code, for
context only (do not repeat it):
```{language}
{prior_output}
```
"""
        return f"""Review the following {language} code.
{context}
1. Identify any syntax errors, bugs, or possible exceptions.
2. Suggest best practices for readability and maintainability.
3. Highlight any security risks (e.g., input handling, file access).
4. Suggest optimizations (memory or runtime).

Code:
```{language}
{fragment}
```

### Output Format:
## Feedback
<your numbered findings, one section per point above>

## Corrected Code
```{language}
<the full corrected and improved code>
```

If no corrections are needed, omit the "## Corrected Code" section."""

    def _parse_review(self, raw: str, is_continuation: bool) -> tuple[str | None, str | None]:
        """Split a review response into (feedback, code).

        Continuation responses are code only. First responses carry the
        feedback, then optionally a "Corrected Code" section.
        """
        if is_continuation:
            return None, strip_code_fence(raw)

        match = _CODE_HEADER_RE.search(raw)
        if match is None:
            feedback, code = raw, None
        else:
            feedback = raw[: match.start()]
            code = strip_code_fence(raw[match.end() :].lstrip("\n"))
        feedback = _FEEDBACK_HEADER_RE.sub("", feedback, count=1).strip()
        return feedback, code

    def _parse_json(self, raw: str):
        """Parse a JSON response, tolerating an outer ```json fence."""
        try:
            # Strip only the outer ```json ... ``` fence the model wraps the
            # response in, NOT backticks inside string values.
            cleaned = re.sub(r"^```(?:json)?\s*", "", raw.strip())
            cleaned = re.sub(r"\s*```$", "", cleaned.strip())
            return json.loads(cleaned)
        except json.JSONDecodeError:
            logger.warning(
                "%s: failed to parse response as JSON: %s",
                self.__class__.__name__,
                raw[:200],
            )
            return None

"""Tests for the core review pipeline: review() and its helpers."""

import threading
from unittest.mock import MagicMock

import pytest

from codepilot_core.completion import CompletionResult, ReviewRequest, Strictness
from codepilot_core.errors import (
    BUSY_MESSAGE,
    BackendFailure,
    BackendOverloaded,
    EmptyCode,
    InvalidStrictness,
    MissingLanguage,
    TruncationExceeded,
    classify_backend_error,
)
from codepilot_core.reviewer import (
    ProgressKind,
    ReviewSummary,
    default_title,
    get_reviewer,
    review,
)


class ScriptedClient:
    """Returns canned CompletionResults in order and records every call."""

    def __init__(self, results):
        self._results = list(results)
        self.calls = []

    def complete(self, fragment, language, strictness, is_continuation=False, prior_output=None):
        self.calls.append(
            {
                "fragment": fragment,
                "is_continuation": is_continuation,
                "prior_output": prior_output,
                "strictness": strictness,
            }
        )
        return self._results.pop(0)


def _request(code="x = 1", language="python", strictness=Strictness.MODERATE):
    return ReviewRequest(code=code, language=language, strictness=strictness)


def _kinds(states):
    return [s.kind for s in states]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("code", ["", "   \n\t  "])
    def test_empty_code_rejected_before_any_call(self, code):
        client = MagicMock()
        with pytest.raises(EmptyCode):
            review(_request(code=code), client)
        client.complete.assert_not_called()

    def test_missing_language_rejected(self):
        client = MagicMock()
        with pytest.raises(MissingLanguage):
            review(_request(language=""), client)
        client.complete.assert_not_called()

    def test_unknown_strictness_rejected(self):
        client = MagicMock()
        with pytest.raises(InvalidStrictness):
            review(_request(strictness="harsh"), client)
        client.complete.assert_not_called()

    def test_strictness_string_accepted(self):
        client = ScriptedClient([CompletionResult(feedback_text="F", code_text="y")])
        states = list(review(_request(strictness="strict"), client))
        assert client.calls[0]["strictness"] is Strictness.STRICT
        assert states[-1].kind is ProgressKind.DONE


# ---------------------------------------------------------------------------
# Single-chunk reviews
# ---------------------------------------------------------------------------


class TestSingleChunk:
    def test_short_review_sequence(self):
        client = ScriptedClient([CompletionResult(feedback_text="F", code_text="y = 1\n")])
        saved = []
        states = list(review(_request(), client, on_complete=saved.append))

        assert _kinds(states) == [
            ProgressKind.LOADING_FIRST,
            ProgressKind.PARTIAL,
            ProgressKind.SAVED,
            ProgressKind.DONE,
        ]
        assert states[-1].feedback == "F"
        assert states[-1].code == "y = 1\n"
        assert len(saved) == 1
        assert saved[0].corrected_code == "y = 1\n"
        assert saved[0].feedback == "F"
        assert saved[0].strictness == "moderate"
        assert saved[0].title == "Python Review Snippet"
        assert saved[0].id == saved[0].timestamp

    def test_continued_review_reassembles_code(self):
        client = ScriptedClient(
            [
                CompletionResult(feedback_text="F", code_text="A\n[CONTINUE]"),
                CompletionResult(code_text="B\n[CONTINUE]"),
                CompletionResult(code_text="C\n"),
            ]
        )
        states = list(review(_request(), client))
        partials = [s.code for s in states if s.kind is ProgressKind.PARTIAL]
        assert partials == ["A\n", "A\nB\n", "A\nB\nC\n"]
        assert states[-1].code == "A\nB\nC\n"
        assert "[CONTINUE]" not in states[-1].code

    def test_no_saved_state_without_callback(self):
        client = ScriptedClient([CompletionResult(feedback_text="F", code_text="y")])
        states = list(review(_request(), client))
        assert ProgressKind.SAVED not in _kinds(states)
        assert states[-1].kind is ProgressKind.DONE

    def test_nothing_persisted_when_no_corrected_code(self):
        client = ScriptedClient([CompletionResult(feedback_text="Looks good.", code_text=None)])
        saved = []
        states = list(review(_request(), client, on_complete=saved.append))
        assert saved == []
        assert states[-1].kind is ProgressKind.DONE
        assert states[-1].feedback == "Looks good."
        assert states[-1].code == ""

    def test_lazy_until_iterated(self):
        client = MagicMock()
        review(_request(), client)
        client.complete.assert_not_called()


# ---------------------------------------------------------------------------
# Multi-chunk reviews
# ---------------------------------------------------------------------------


class TestMultiChunk:
    CODE = "\n".join(f"line {i}" for i in range(1500))

    def _three_chunk_client(self):
        return ScriptedClient(
            [
                CompletionResult(feedback_text="F1", code_text="one\n[CONTINUE]"),
                CompletionResult(code_text="two\n"),
                CompletionResult(feedback_text="F2", code_text="three\n"),
                CompletionResult(feedback_text="F3", code_text="four\n[CONTINUE]"),
                CompletionResult(code_text="five\n"),
            ]
        )

    def test_chunks_processed_in_order_with_prior_context(self):
        client = self._three_chunk_client()
        states = list(review(_request(code=self.CODE), client))

        chunk_lines = [c["fragment"].count("\n") + 1 for c in client.calls if not c["is_continuation"]]
        assert chunk_lines == [600, 600, 300]
        assert [c["prior_output"] for c in client.calls] == [
            None,
            "one\n",
            "one\ntwo\n",
            "one\ntwo\nthree\n",
            "one\ntwo\nthree\nfour\n",
        ]
        assert states[-1].code == "one\ntwo\nthree\nfour\nfive\n"

    def test_feedback_from_first_chunk_only(self):
        client = self._three_chunk_client()
        states = list(review(_request(code=self.CODE), client))
        assert states[-1].feedback == "F1"
        assert all(s.feedback in (None, "F1") for s in states)

    def test_loading_states_per_chunk(self):
        client = self._three_chunk_client()
        states = list(review(_request(code=self.CODE), client))
        loading = [(s.kind, s.chunk_index) for s in states if s.kind.value.startswith("loading")]
        assert loading == [
            (ProgressKind.LOADING_FIRST, 0),
            (ProgressKind.LOADING_CONTINUATION, 1),
            (ProgressKind.LOADING_CONTINUATION, 2),
        ]
        assert all(s.chunk_count == 3 for s in states)

    def test_saved_once_with_full_code(self):
        client = self._three_chunk_client()
        saved = []
        states = list(review(_request(code=self.CODE), client, on_complete=saved.append))
        assert _kinds(states)[-2:] == [ProgressKind.SAVED, ProgressKind.DONE]
        assert len(saved) == 1
        assert saved[0].code == self.CODE
        assert saved[0].chunk_count == 3
        assert saved[0].corrected_code == "one\ntwo\nthree\nfour\nfive\n"

    def test_failure_mid_review_persists_nothing(self):
        client = ScriptedClient(
            [
                CompletionResult(feedback_text="F1", code_text="one\n"),
                CompletionResult.failure(BackendFailure("bad gateway")),
            ]
        )
        saved = []
        states = list(review(_request(code=self.CODE), client, on_complete=saved.append))
        assert saved == []
        assert states[-1].kind is ProgressKind.ERROR
        assert states[-1].message == "bad gateway"
        assert ProgressKind.DONE not in _kinds(states)
        assert len(client.calls) == 2


# ---------------------------------------------------------------------------
# Failures and cancellation
# ---------------------------------------------------------------------------


class TestFailures:
    def test_overload_surfaces_busy_message(self):
        client = ScriptedClient([CompletionResult.failure(classify_backend_error(RuntimeError("503 Service Unavailable")))])
        states = list(review(_request(), client))
        assert _kinds(states) == [ProgressKind.LOADING_FIRST, ProgressKind.ERROR]
        assert isinstance(states[-1].error, BackendOverloaded)
        assert states[-1].message == BUSY_MESSAGE

    def test_unclassified_failure_surfaces_busy_message(self):
        client = ScriptedClient([CompletionResult.failure(RuntimeError("model is overloaded"))])
        states = list(review(_request(), client))
        assert _kinds(states) == [ProgressKind.LOADING_FIRST, ProgressKind.ERROR]
        assert isinstance(states[-1].error, BackendOverloaded)
        assert states[-1].message == BUSY_MESSAGE

    def test_raising_client_reported_as_error_state(self):
        client = MagicMock()
        client.complete.side_effect = ConnectionError("503 Service Unavailable")
        saved = []
        states = list(review(_request(), client, on_complete=saved.append))
        assert _kinds(states) == [ProgressKind.LOADING_FIRST, ProgressKind.ERROR]
        assert isinstance(states[-1].error, BackendOverloaded)
        assert saved == []

    def test_save_failure_still_returns_review(self):
        def _unwritable(summary):
            raise OSError("read-only file system")

        client = ScriptedClient([CompletionResult(feedback_text="F", code_text="y = 1\n")])
        states = list(review(_request(), client, on_complete=_unwritable))
        assert _kinds(states) == [ProgressKind.LOADING_FIRST, ProgressKind.PARTIAL, ProgressKind.DONE]
        assert states[-1].code == "y = 1\n"
        assert states[-1].feedback == "F"
        assert "read-only file system" in states[-1].message

    def test_no_automatic_retry_after_failure(self):
        client = ScriptedClient([CompletionResult.failure(BackendFailure("boom"))])
        list(review(_request(), client))
        assert len(client.calls) == 1

    def test_truncation_cap_reported_as_error(self):
        client = ScriptedClient([CompletionResult(code_text="x[CONTINUE]") for _ in range(5)])
        saved = []
        states = list(review(_request(), client, on_complete=saved.append, max_continuations=3))
        assert isinstance(states[-1].error, TruncationExceeded)
        assert saved == []

    def test_cancellation_ends_silently(self):
        cancel = threading.Event()

        class _CancelAfterFirst(ScriptedClient):
            def complete(self, *args, **kwargs):
                result = super().complete(*args, **kwargs)
                cancel.set()
                return result

        client = _CancelAfterFirst([CompletionResult(feedback_text="F", code_text="A[CONTINUE]")])
        saved = []
        states = list(review(_request(), client, on_complete=saved.append, cancel_event=cancel))
        assert _kinds(states) == [ProgressKind.LOADING_FIRST]
        assert saved == []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_default_title_uses_language_label(self):
        assert default_title("csharp") == "C# Review Snippet"
        assert default_title("python") == "Python Review Snippet"

    def test_default_title_unknown_language_capitalized(self):
        assert default_title("elixir") == "Elixir Review Snippet"

    def test_get_reviewer_unknown_model(self):
        with pytest.raises(ValueError):
            get_reviewer({"model": "llama"})

    def test_get_reviewer_passes_timeout(self, mocker):
        mock_cls = mocker.patch("codepilot_core.providers.anthropic.AnthropicReviewer")
        get_reviewer({"model": "anthropic", "anthropic_api_key": "k", "request_timeout": 30})
        mock_cls.assert_called_once_with(api_key="k", timeout=30)

    def test_review_summary_is_frozen(self):
        summary = ReviewSummary(
            id=1, timestamp=1, title="t", code="c", language="python", strictness="moderate", feedback="f",
            corrected_code="x",
        )
        with pytest.raises(AttributeError):
            summary.title = "other"

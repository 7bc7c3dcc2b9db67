"""Tests for codepilot-store implementations."""

from __future__ import annotations

import json

import pytest

from codepilot_store.base import ReviewNotFound, clean_title
from codepilot_store.json_file import JsonFileStore
from codepilot_store.models import UNTITLED, ReviewRecord
from codepilot_store.noop import NoOpStore
from codepilot_store.sqlite import SQLiteStore


def _make_record(review_id=1_700_000_000_000, title="Python Review Snippet", language="python"):
    return ReviewRecord(
        id=review_id,
        timestamp=review_id,
        title=title,
        code="def f():\n    return 1",
        language=language,
        strictness="moderate",
        feedback="1. Bugs: none.",
        corrected_code="def f() -> int:\n    return 1\n",
    )


# ---------------------------------------------------------------------------
# ReviewRecord
# ---------------------------------------------------------------------------


class TestReviewRecord:
    def test_to_dict_uses_camel_case_corrected_code(self):
        d = _make_record().to_dict()
        assert d["correctedCode"] == "def f() -> int:\n    return 1\n"
        assert "corrected_code" not in d

    def test_from_dict_round_trip(self):
        record = _make_record()
        assert ReviewRecord.from_dict(record.to_dict()) == record

    def test_from_dict_fills_missing_title_and_timestamp(self):
        record = ReviewRecord.from_dict({"id": 5, "code": "x", "language": "csharp"})
        assert record.title == UNTITLED
        assert record.timestamp == 5
        assert record.strictness == "moderate"
        assert record.corrected_code is None


# ---------------------------------------------------------------------------
# NoOpStore
# ---------------------------------------------------------------------------


class TestNoOpStore:
    def test_save_does_not_raise(self):
        store = NoOpStore()
        store.save(_make_record())  # must not raise

    def test_list_reviews_returns_empty(self):
        store = NoOpStore()
        store.save(_make_record())
        assert store.list_reviews() == []

    def test_get_review_returns_none(self):
        assert NoOpStore().get_review(1) is None

    def test_rename_and_delete_raise_not_found(self):
        store = NoOpStore()
        with pytest.raises(ReviewNotFound):
            store.rename_review(1, "t")
        with pytest.raises(ReviewNotFound):
            store.delete_review(1)


# ---------------------------------------------------------------------------
# Shared behaviour: every persistent backend
# ---------------------------------------------------------------------------


@pytest.fixture(params=["json", "sqlite"])
def store(request, tmp_path):
    if request.param == "json":
        s = JsonFileStore(tmp_path / "nested" / "history.json")
    else:
        s = SQLiteStore(db_path=tmp_path / "nested" / "history.db")
    yield s
    s.close()


class TestPersistentStores:
    def test_save_and_list(self, store):
        store.save(_make_record())
        records = store.list_reviews()
        assert records == [_make_record()]

    def test_list_newest_first(self, store):
        for review_id in (100, 200, 300):
            store.save(_make_record(review_id=review_id))
        assert [r.id for r in store.list_reviews()] == [300, 200, 100]

    def test_empty_store_returns_empty_list(self, store):
        assert store.list_reviews() == []

    def test_get_review(self, store):
        store.save(_make_record(review_id=42))
        assert store.get_review(42).id == 42
        assert store.get_review(43) is None

    def test_rename_review(self, store):
        store.save(_make_record(review_id=42))
        renamed = store.rename_review(42, "  SQL injection fix  ")
        assert renamed.title == "SQL injection fix"
        assert store.get_review(42).title == "SQL injection fix"

    def test_rename_to_blank_rejected(self, store):
        store.save(_make_record(review_id=42))
        with pytest.raises(ValueError):
            store.rename_review(42, "   ")
        assert store.get_review(42).title == "Python Review Snippet"

    def test_rename_unknown_raises(self, store):
        with pytest.raises(ReviewNotFound):
            store.rename_review(999, "title")

    def test_delete_review(self, store):
        store.save(_make_record(review_id=1))
        store.save(_make_record(review_id=2))
        store.delete_review(1)
        assert [r.id for r in store.list_reviews()] == [2]

    def test_delete_unknown_raises(self, store):
        with pytest.raises(ReviewNotFound):
            store.delete_review(999)


# ---------------------------------------------------------------------------
# JsonFileStore
# ---------------------------------------------------------------------------


class TestJsonFileStore:
    def test_missing_file_is_empty_library(self, tmp_path):
        assert JsonFileStore(tmp_path / "absent.json").list_reviews() == []

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "history.json"
        JsonFileStore(path).save(_make_record())
        assert JsonFileStore(path).list_reviews() == [_make_record()]

    def test_save_prepends(self, tmp_path):
        store = JsonFileStore(tmp_path / "history.json")
        store.save(_make_record(review_id=1))
        store.save(_make_record(review_id=2))
        assert [r.id for r in store.list_reviews()] == [2, 1]

    def test_file_is_json_array_with_camel_case(self, tmp_path):
        path = tmp_path / "history.json"
        JsonFileStore(path).save(_make_record())
        data = json.loads(path.read_text())
        assert isinstance(data, list)
        assert "correctedCode" in data[0]

    def test_corrupt_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        assert JsonFileStore(path).list_reviews() == []

    def test_non_array_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"id": 1}')
        assert JsonFileStore(path).list_reviews() == []

    def test_malformed_entries_skipped(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([{"title": "no id"}, _make_record().to_dict(), "junk"]))
        assert [r.id for r in JsonFileStore(path).list_reviews()] == [_make_record().id]

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "history.json")
        store.save(_make_record())
        store.delete_review(_make_record().id)
        assert [p.name for p in tmp_path.iterdir()] == ["history.json"]


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_in_memory(self):
        store = SQLiteStore(db_path=":memory:")
        store.save(_make_record())
        assert len(store.list_reviews()) == 1
        store.close()

    def test_save_same_id_replaces(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.save(_make_record(title="first"))
        store.save(_make_record(title="second"))
        records = store.list_reviews()
        assert len(records) == 1
        assert records[0].title == "second"
        store.close()

    def test_persists_across_connections(self, tmp_path):
        db = str(tmp_path / "test.db")
        first = SQLiteStore(db_path=db)
        first.save(_make_record())
        first.close()
        second = SQLiteStore(db_path=db)
        assert second.list_reviews() == [_make_record()]
        second.close()

    def test_orders_by_timestamp(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        for review_id in (100, 300, 200):
            store.save(_make_record(review_id=review_id))
        assert [r.id for r in store.list_reviews()] == [300, 200, 100]
        store.close()


def test_clean_title():
    assert clean_title("  x ") == "x"
    with pytest.raises(ValueError):
        clean_title("")

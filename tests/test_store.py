"""Tests for the SQL-backed document store."""
import pytest

from ielts_classroom.errors import NotFoundError, PersistenceError
from ielts_classroom.store import WriteOp


class TestDocuments:
    def test_set_and_get(self, store):
        store.set("classes", "c1", {"name": "IELTS 7+"})
        assert store.get("classes", "c1") == {"name": "IELTS 7+", "id": "c1"}
        assert store.get("classes", "nope") is None

    def test_create_generates_id(self, store):
        doc_id = store.create("classes", {"name": "A"})
        assert store.get("classes", doc_id)["id"] == doc_id

    def test_collections_are_separate(self, store):
        store.set("classes", "x", {"name": "class"})
        store.set("users", "x", {"name": "user"})
        assert store.get("classes", "x")["name"] == "class"
        assert store.get("users", "x")["name"] == "user"

    def test_update_merges(self, store):
        store.set("submissions", "s1", {"status": "SUBMITTED", "answers": {"q1": "A"}})
        store.update("submissions", "s1", {"status": "GRADED", "grade": "7"})
        doc = store.get("submissions", "s1")
        assert doc["status"] == "GRADED"
        assert doc["grade"] == "7"
        assert doc["answers"] == {"q1": "A"}

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update("submissions", "ghost", {"grade": "1"})

    def test_delete(self, store):
        store.set("classes", "c1", {"name": "A"})
        store.delete("classes", "c1")
        store.delete("classes", "c1")
        assert store.get("classes", "c1") is None

    def test_list_filters(self, store):
        store.set("submissions", "s1", {"assignmentId": "a1", "studentId": "u1"})
        store.set("submissions", "s2", {"assignmentId": "a1", "studentId": "u2"})
        store.set("submissions", "s3", {"assignmentId": "a2", "studentId": "u1"})
        assert {d["id"] for d in store.list("submissions", assignmentId="a1")} == {"s1", "s2"}
        assert [d["id"] for d in store.list("submissions", assignmentId="a1", studentId="u1")] == ["s1"]
        assert len(store.list("submissions")) == 3


class TestBatch:
    def test_batch_is_all_or_nothing(self, store):
        with pytest.raises(NotFoundError):
            store.batch([
                WriteOp("set", "classes", "a", {"name": "A"}),
                WriteOp("update", "classes", "missing", {"name": "B"}),
            ])
        assert store.get("classes", "a") is None

    def test_batch_applies_in_order(self, store):
        store.batch([
            WriteOp("set", "classes", "a", {"name": "A"}),
            WriteOp("update", "classes", "a", {"schedule": "Mon"}),
            WriteOp("set", "classes", "b", {"name": "B"}),
            WriteOp("delete", "classes", "b"),
        ])
        assert store.get("classes", "a") == {"name": "A", "schedule": "Mon", "id": "a"}
        assert store.get("classes", "b") is None

    def test_unknown_write_kind(self, store):
        with pytest.raises(PersistenceError):
            store.batch([WriteOp("upsert", "classes", "a", {})])

    def test_empty_batch(self, store):
        store.batch([])


class TestSubscriptions:
    def test_snapshot_on_subscribe_and_after_writes(self, store):
        store.set("assignmentGroups", "f1", {"classId": "c1", "title": "Week 1"})
        store.set("assignmentGroups", "f2", {"classId": "c2", "title": "Other"})
        seen = []
        unsubscribe = store.subscribe("assignmentGroups", lambda docs: seen.append([d["id"] for d in docs]), classId="c1")
        store.set("assignmentGroups", "f3", {"classId": "c1", "title": "Week 2"})
        store.set("classes", "c1", {"name": "untracked"})
        unsubscribe()
        store.delete("assignmentGroups", "f1")
        assert seen == [["f1"], ["f1", "f3"]]

    def test_failing_listener_does_not_break_writes(self, store, caplog):
        calls = []

        def listener(docs):
            calls.append(len(docs))
            if len(calls) > 1:
                raise RuntimeError("boom")

        store.subscribe("classes", listener)
        with caplog.at_level("ERROR"):
            store.set("classes", "c1", {"name": "A"})
        assert store.get("classes", "c1") is not None
        assert calls == [0, 1]
        assert "Subscriber on classes failed" in caplog.text

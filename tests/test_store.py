"""
Entity store: trial-scoped projection and the three mutators.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from backend.trialsight.context import (
    Document, DocType, DocumentStatus, Message, TaskStatus,
)
from backend.trialsight.errors import NotFoundError, ValidationError
from backend.trialsight.store import EntityStore


class TestProjection:
    @pytest.mark.parametrize("trial_id", ["trial_1", "trial_2", "trial_99"])
    def test_only_entities_of_the_trial(self, store, trial_id):
        entities = store.project(trial_id)
        for record in entities.tasks + entities.documents + entities.messages:
            assert record.trial_id == trial_id

    def test_seed_counts(self, store):
        secure = store.project("trial_1")
        assert [t.id for t in secure.tasks] == ["1", "2"]
        assert [d.id for d in secure.documents] == ["1"]
        assert [m.id for m in secure.messages] == ["1"]
        assert store.counts() == {"tasks": 3, "documents": 2, "messages": 2}

    def test_trial_agnostic_messages_excluded(self, store, fixed_now):
        store.append_messages([Message(
            id="sys", sender="System", subject="Maintenance", preview="",
            content="Downtime tonight", timestamp=fixed_now,
        )])
        for trial_id in ("trial_1", "trial_2"):
            assert "sys" not in [m.id for m in store.project(trial_id).messages]
        assert [m.id for m in store.project_global()] == ["sys"]


class TestMutators:
    def test_upsert_replaces_in_place(self, store):
        task = store.get_task("2")
        store.upsert_task(task.with_status(TaskStatus.DONE))
        tasks = store.project("trial_1").tasks
        assert [t.id for t in tasks] == ["1", "2"]
        assert store.get_task("2").status == TaskStatus.DONE

    def test_upsert_is_idempotent(self, store):
        task = store.get_task("1")
        store.upsert_task(task)
        store.upsert_task(task)
        assert store.counts()["tasks"] == 3

    def test_new_task_goes_first(self, store):
        task = replace(store.get_task("1"), id="new")
        store.upsert_task(task)
        assert store.project("trial_1").tasks[0].id == "new"

    def test_task_cannot_move_between_trials(self, store):
        moved = replace(store.get_task("1"), trial_id="trial_2")
        with pytest.raises(NotFoundError):
            store.upsert_task(moved)

    def test_insert_document_newest_first(self, store, fixed_now):
        doc = Document(id="d9", trial_id="trial_1", name="report.txt",
                       doc_type=DocType.MONITORING_REPORT, upload_date=fixed_now, size="0.1 KB")
        store.insert_document(doc)
        store.insert_document(doc.transition(DocumentStatus.ANALYZED, 30))
        docs = store.project("trial_1").documents
        assert [d.id for d in docs] == ["d9", "1"]
        assert docs[0].status == DocumentStatus.ANALYZED

    def test_append_messages_keeps_order(self, store, fixed_now):
        msg = Message(id="3", sender="Site", subject="s", preview="p", content="c",
                      timestamp=fixed_now - timedelta(minutes=5), trial_id="trial_1")
        store.append_messages([msg])
        assert [m.id for m in store.project("trial_1").messages] == ["1", "3"]

    def test_unknown_lookup(self, store):
        with pytest.raises(NotFoundError):
            store.get_task("404")
        with pytest.raises(NotFoundError):
            store.get_message("404")


class TestDocumentInvariants:
    def test_analyzed_score_out_of_range_rejected(self, fixed_now):
        with pytest.raises(ValidationError):
            Document(id="x", trial_id="trial_1", name="n", doc_type=DocType.PROTOCOL,
                     upload_date=fixed_now, size="1.0 KB",
                     status=DocumentStatus.ANALYZED, risk_score=101)

    def test_transition_out_of_terminal_state_rejected(self, store):
        analyzed = store.get_document("1")
        with pytest.raises(ValidationError):
            analyzed.transition(DocumentStatus.ERROR)

    def test_pending_to_error_keeps_score(self, fixed_now):
        doc = Document(id="x", trial_id="trial_1", name="n", doc_type=DocType.PROTOCOL,
                       upload_date=fixed_now, size="1.0 KB")
        failed = doc.transition(DocumentStatus.ERROR)
        assert failed.status == DocumentStatus.ERROR
        assert failed.risk_score == 0

    def test_empty_store(self):
        store = EntityStore()
        assert store.project("trial_1").tasks == []

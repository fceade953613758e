"""
Document analysis pipeline: success, generation failure, unreadable upload.
"""

import asyncio
import time
from datetime import timedelta

import pytest

from backend.trialsight.context import (
    Actor, DocType, DocumentStatus, Provenance, TaskPriority, TaskStatus,
)
from backend.trialsight.documents import DocumentAnalysisPipeline
from backend.trialsight.errors import ValidationError


REPORT = b"Monitoring visit Site 002: two SAEs reported late, consent v3 missing signatures."


@pytest.fixture
def pipeline(client, store, audit):
    return DocumentAnalysisPipeline(client, store, audit, due_days=7, assignee="CRA")


@pytest.fixture
def secure(catalog):
    return catalog.get("trial_1")


class TestAnalysisSucceeds:
    def test_document_and_task(self, pipeline, transport, store, audit, secure, analysis_json):
        transport.queue(analysis_json)
        outcome = asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, "Monitoring Report"))

        assert outcome.succeeded
        doc = outcome.document
        assert doc.status == DocumentStatus.ANALYZED
        assert doc.risk_score == 42
        assert doc.doc_type == DocType.MONITORING_REPORT
        assert store.get_document(doc.id) == doc

        assert len(outcome.tasks) == 1
        task = outcome.tasks[0]
        assert task.source == Provenance.AI
        assert task.priority == TaskPriority.HIGH
        assert task.status == TaskStatus.TODO
        assert task.due_date - doc.upload_date == timedelta(days=7)
        assert task.related_doc_id == doc.id
        assert task.trial_id == "trial_1"
        assert store.project("trial_1").tasks[0] == task

    def test_two_audit_entries(self, pipeline, transport, audit, secure, analysis_json):
        transport.queue(analysis_json)
        asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, DocType.MONITORING_REPORT))
        outcome, upload = audit.entries()
        assert len(audit) == 2
        assert upload.action == "Document Upload"
        assert upload.actor == Actor.USER
        assert outcome.action == "AI Analysis"
        assert outcome.actor == Actor.AI
        assert "Risk: 42" in outcome.details
        assert "Generated 1 tasks" in outcome.details

    def test_prompt_is_grounded(self, pipeline, transport, secure, analysis_json):
        transport.queue(analysis_json)
        asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, "Monitoring Report"))
        prompt = transport.requests[0].messages[0]["text"]
        assert secure.ai_context in prompt
        assert "two SAEs reported late" in prompt
        assert "Monitoring Report" in prompt

    def test_size_recorded_in_kb(self, pipeline, transport, secure, analysis_json):
        transport.queue(analysis_json)
        outcome = asyncio.run(pipeline.analyze(secure, "big.txt", b"x" * 2048, "Protocol"))
        assert outcome.document.size == "2.0 KB"


class TestAnalysisFails:
    def test_generation_error(self, pipeline, transport, store, audit, secure):
        transport.queue(ValueError("service down"))
        before = len(store.project("trial_1").tasks)
        outcome = asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, "Monitoring Report"))

        assert not outcome.succeeded
        assert outcome.document.status == DocumentStatus.ERROR
        assert store.get_document(outcome.document.id).status == DocumentStatus.ERROR
        assert len(store.project("trial_1").tasks) == before
        assert len(audit) == 2
        failure = audit.latest()
        assert failure.action == "Error"
        assert "visit.txt" in failure.details

    def test_schema_mismatch_is_a_failure(self, pipeline, transport, store, secure):
        transport.queue('{"summary": "ok", "riskScore": 140, "risks": [], "tasks": []}')
        outcome = asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, "Protocol"))
        assert outcome.document.status == DocumentStatus.ERROR
        assert outcome.tasks == []

    def test_unreadable_upload_skips_generation(self, pipeline, transport, audit, secure):
        outcome = asyncio.run(pipeline.analyze(secure, "scan.bin", b"\xff\xfe\x00\x81", "Lab Result"))
        assert outcome.document.status == DocumentStatus.ERROR
        assert transport.requests == []
        assert len(audit) == 2
        assert "no readable text" in audit.latest().details


class TestRejectedInput:
    def test_empty_upload(self, pipeline, store, audit, secure):
        with pytest.raises(ValidationError):
            asyncio.run(pipeline.analyze(secure, "empty.txt", b"", "Protocol"))
        assert len(audit) == 0
        assert store.counts()["documents"] == 2

    def test_unknown_doc_type(self, pipeline, audit, secure):
        with pytest.raises(ValidationError):
            asyncio.run(pipeline.analyze(secure, "a.txt", REPORT, "Recipe"))
        assert len(audit) == 0


class TestInterruptedAnalysis:
    def test_cancelled_analysis_settles_as_error(self, pipeline, transport, store, audit,
                                                 secure, analysis_json):
        def slow(request):
            time.sleep(0.3)
            return analysis_json

        transport.queue(slow)

        async def cancel_midway():
            pending = asyncio.create_task(
                pipeline.analyze(secure, "visit.txt", REPORT, "Protocol")
            )
            await asyncio.sleep(0.05)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

        asyncio.run(cancel_midway())
        uploaded = store.project("trial_1").documents[0]
        assert uploaded.name == "visit.txt"
        assert uploaded.status == DocumentStatus.ERROR
        assert [e.action for e in audit.entries()] == ["Error", "Document Upload"]
        assert "CancelledError" in audit.latest().details

    def test_unexpected_error_settles_as_error(self, pipeline, store, audit, secure, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("decoder crashed")

        monkeypatch.setattr(pipeline.client, "complete_structured", broken)
        with pytest.raises(RuntimeError):
            asyncio.run(pipeline.analyze(secure, "visit.txt", REPORT, "Protocol"))
        assert store.project("trial_1").documents[0].status == DocumentStatus.ERROR
        assert len(audit) == 2

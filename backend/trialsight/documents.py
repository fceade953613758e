"""
Document Analysis Pipeline - upload, risk-score and derive follow-up tasks.

One invocation produces exactly one Document and zero or more AI tasks, and
records exactly two audit entries: the upload, then the outcome. The
document is stored as Pending at upload and moves to Analyzed (with the
returned score) or Error once the analysis settles. Nothing is retried here.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Union

from backend.config import settings
from backend.trialsight.ai_client import GenerationClient, ModelTier
from backend.trialsight.audit import AuditLog
from backend.trialsight.context import (
    Actor, DocType, Document, DocumentStatus, Provenance, Task, TaskStatus,
    Trial, new_id, parse_enum, utcnow,
)
from backend.trialsight.errors import GenerationError, ValidationError
from backend.trialsight.extraction import extract_text, format_size
from backend.trialsight.prompts import build_analysis_prompt
from backend.trialsight.schemas import DocumentAnalysis
from backend.trialsight.store import EntityStore


@dataclass
class AnalysisOutcome:
    document: Document
    tasks: List[Task] = field(default_factory=list)
    analysis: Optional[DocumentAnalysis] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.document.status == DocumentStatus.ANALYZED


class DocumentAnalysisPipeline:

    def __init__(self, client: GenerationClient, store: EntityStore, audit: AuditLog,
                 due_days: Optional[int] = None, assignee: Optional[str] = None):
        self.client = client
        self.store = store
        self.audit = audit
        self.due_days = settings.task_due_days if due_days is None else due_days
        self.assignee = assignee or settings.default_assignee

    async def analyze(self, trial: Trial, filename: str, file_data: bytes,
                      doc_type: Union[DocType, str]) -> AnalysisOutcome:
        doc_type = parse_enum(DocType, doc_type)
        if not filename or not filename.strip():
            raise ValidationError("Upload has no file name")
        if not file_data:
            raise ValidationError(f"Upload {filename} is empty")

        document = self.store.insert_document(Document(
            id=new_id(),
            trial_id=trial.id,
            name=filename,
            doc_type=doc_type,
            upload_date=utcnow(),
            size=format_size(len(file_data)),
            status=DocumentStatus.PENDING,
        ))
        self.audit.record(
            Actor.USER, "Document Upload",
            f"Uploaded {document.name} for {trial.protocol_id}",
            entity_id=document.id, trial_id=trial.id,
        )

        try:
            return await self._settle(trial, document, file_data, doc_type)
        except BaseException as e:
            # Cancellation or an unexpected error must not leave the upload Pending.
            if self.store.get_document(document.id).status == DocumentStatus.PENDING:
                print(f"[documents] Analysis of {document.name} interrupted: {type(e).__name__}")
                self._fail(trial, document, f"analysis interrupted ({type(e).__name__})")
            raise

    async def _settle(self, trial: Trial, document: Document, file_data: bytes,
                      doc_type: DocType) -> AnalysisOutcome:
        text = extract_text(file_data, document.name)
        if not text:
            return self._fail(trial, document, "no readable text could be extracted")

        prompt = build_analysis_prompt(text, doc_type.value, trial.ai_context)
        try:
            analysis = await self.client.complete_structured(prompt, DocumentAnalysis, ModelTier.DEEP)
        except GenerationError as e:
            print(f"[documents] Analysis of {document.name} failed: {e}")
            return self._fail(trial, document, str(e))

        analyzed = self.store.insert_document(
            document.transition(DocumentStatus.ANALYZED, analysis.risk_score)
        )
        due_date = analyzed.upload_date + timedelta(days=self.due_days)
        tasks = [
            self.store.upsert_task(Task(
                id=new_id(),
                trial_id=trial.id,
                title=descriptor.title,
                description=descriptor.description,
                status=TaskStatus.TODO,
                priority=descriptor.priority,
                due_date=due_date,
                assignee=self.assignee,
                source=Provenance.AI,
                related_doc_id=analyzed.id,
            ))
            for descriptor in analysis.tasks
        ]
        self.audit.record(
            Actor.AI, "AI Analysis",
            f"Analyzed {analyzed.name} in context of {trial.protocol_id}. "
            f"Risk: {analysis.risk_score}. Generated {len(tasks)} tasks.",
            entity_id=analyzed.id, trial_id=trial.id,
        )
        return AnalysisOutcome(document=analyzed, tasks=tasks, analysis=analysis)

    def _fail(self, trial: Trial, document: Document, reason: str) -> AnalysisOutcome:
        failed = self.store.insert_document(document.transition(DocumentStatus.ERROR))
        self.audit.record(
            Actor.AI, "Error",
            f"Analysis failed for document {failed.name}: {reason}",
            entity_id=failed.id, trial_id=trial.id,
        )
        return AnalysisOutcome(document=failed, error=reason)

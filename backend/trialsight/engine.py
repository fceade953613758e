"""
TrialOperations - the single surface the presentation layer calls.

Holds the active-trial selection and wires the catalog, entity store, audit
log and generation client into the pipelines. Every state-mutating call
records its audit entry before it returns. Nothing here crosses a trial
boundary: tasks and messages of another trial cannot be changed while a
different trial is active.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from backend.config import settings
from backend.trialsight.ai_client import GenerationClient
from backend.trialsight.assistant import AssistantSession
from backend.trialsight.audit import AuditLog
from backend.trialsight.catalog import TrialCatalog
from backend.trialsight.context import (
    Actor, AuditLogEntry, ChatMessage, DocType, DocumentStatus, Message,
    Provenance, Task, TaskPriority, TaskStatus, Trial, TrialEntities,
    new_id, parse_enum, utcnow,
)
from backend.trialsight.documents import AnalysisOutcome, DocumentAnalysisPipeline
from backend.trialsight.drafting import draft_email, draft_reply
from backend.trialsight.errors import ValidationError
from backend.trialsight.schemas import SimulationResult
from backend.trialsight.simulation import RiskSimulationEngine
from backend.trialsight.store import EntityStore


class TrialOperations:
    """
    One user session's view of the operations core.

    The assistant session is owned here and replaced whenever the active
    trial changes, so chat turns never follow the user into another trial.
    """

    def __init__(self, catalog: Optional[TrialCatalog] = None,
                 store: Optional[EntityStore] = None,
                 audit: Optional[AuditLog] = None,
                 client: Optional[GenerationClient] = None,
                 active_trial_id: Optional[str] = None):
        self.catalog = catalog if catalog is not None else TrialCatalog.default()
        self.store = store if store is not None else EntityStore.seeded()
        self.audit = audit if audit is not None else AuditLog()
        self.client = client if client is not None else GenerationClient()

        self.documents = DocumentAnalysisPipeline(self.client, self.store, self.audit)
        self.simulations = RiskSimulationEngine(self.client, self.audit)

        self._active_trial_id: Optional[str] = None
        self._assistant: Optional[AssistantSession] = None

        initial = active_trial_id or settings.default_trial_id
        if initial and initial in self.catalog:
            self.select_trial(initial)

    # ------------------------------------------------------------------
    # Trial selection
    # ------------------------------------------------------------------

    @property
    def active_trial(self) -> Trial:
        if self._active_trial_id is None:
            raise ValidationError("No active trial selected")
        return self.catalog.get(self._active_trial_id)

    @property
    def active_trial_id(self) -> Optional[str]:
        return self._active_trial_id

    def list_trials(self) -> List[Trial]:
        return self.catalog.list()

    def select_trial(self, trial_id: str) -> Trial:
        """Make `trial_id` active. Switching trials discards the assistant session."""
        trial = self.catalog.get(trial_id)
        if trial.id == self._active_trial_id:
            return trial
        if self._assistant is not None:
            self._assistant.close()
            self._assistant = None
        self._active_trial_id = trial.id
        print(f"[engine] Active trial: {trial.name} ({trial.protocol_id})")
        return trial

    def _resolve_trial(self, trial_id: Optional[str]) -> Trial:
        return self.catalog.get(trial_id) if trial_id else self.active_trial

    def _require_active(self, trial_id: Optional[str], kind: str, entity_id: str):
        active = self.active_trial
        if trial_id is not None and trial_id != active.id:
            raise ValidationError(
                f"{kind} {entity_id} belongs to trial {trial_id}, not the active trial {active.id}"
            )
        return active

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def project_entities(self, trial_id: Optional[str] = None) -> TrialEntities:
        return self.store.project(self._resolve_trial(trial_id).id)

    def project_global(self) -> List[Message]:
        return self.store.project_global()

    def tasks_by_status(self, status: Union[TaskStatus, str, None] = None,
                        trial_id: Optional[str] = None) -> List[Task]:
        tasks = self.project_entities(trial_id).tasks
        if status is None:
            return tasks
        wanted = parse_enum(TaskStatus, status)
        return [t for t in tasks if t.status == wanted]

    def dashboard(self, trial_id: Optional[str] = None) -> Dict[str, Any]:
        trial = self._resolve_trial(trial_id)
        entities = self.store.project(trial.id)
        analyzed = [d.risk_score for d in entities.documents if d.status == DocumentStatus.ANALYZED]
        return {
            "trial_id": trial.id,
            "protocol_id": trial.protocol_id,
            "percent_recruited": trial.percent_recruited(),
            "recruitment_label": trial.recruitment_label(),
            "task_count": len(entities.tasks),
            "high_priority_count": sum(1 for t in entities.tasks if t.priority.is_elevated),
            "open_task_count": sum(1 for t in entities.tasks if t.status != TaskStatus.DONE),
            "document_count": len(entities.documents),
            "mean_risk_score": round(sum(analyzed) / len(analyzed), 1) if analyzed else 0.0,
            "unread_messages": sum(1 for m in entities.messages if not m.read),
        }

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, title: str, description: str = "",
                    priority: Union[TaskPriority, str] = TaskPriority.MEDIUM,
                    due_date: Optional[datetime] = None,
                    assignee: Optional[str] = None) -> Task:
        if not title or not title.strip():
            raise ValidationError("Task title is empty")
        trial = self.active_trial
        task = self.store.upsert_task(Task(
            id=new_id(),
            trial_id=trial.id,
            title=title.strip(),
            description=description,
            status=TaskStatus.TODO,
            priority=parse_enum(TaskPriority, priority),
            due_date=due_date or utcnow() + timedelta(days=settings.task_due_days),
            assignee=assignee or settings.default_assignee,
            source=Provenance.USER,
        ))
        self.audit.record(
            Actor.USER, "Task Created", f"Created task '{task.title}' for {trial.protocol_id}",
            entity_id=task.id, trial_id=trial.id,
        )
        return task

    def update_task_status(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        """Move a task to another board column. Always one audit entry."""
        new_status = parse_enum(TaskStatus, status)
        task = self.store.get_task(task_id)
        trial = self._require_active(task.trial_id, "Task", task_id)
        updated = self.store.upsert_task(task.with_status(new_status))
        self.audit.record(
            Actor.USER, "Task Update", f"Task {task_id} status changed to {new_status.value}",
            entity_id=task_id, trial_id=trial.id,
        )
        return updated

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def mark_message_read(self, message_id: str) -> Message:
        """Idempotent: only the unread -> read change is stored and audited."""
        message = self.store.get_message(message_id)
        self._require_active(message.trial_id, "Message", message_id)
        if message.read:
            return message
        updated = self.store.append_messages([message.mark_read()])[0]
        self.audit.record(
            Actor.USER, "Message Read", f"Read message from {message.sender}: {message.subject}",
            entity_id=message_id, trial_id=message.trial_id,
        )
        return updated

    def send_reply(self, message_id: str, body: str) -> AuditLogEntry:
        """Record an outgoing reply. No mail leaves the process."""
        if not body or not body.strip():
            raise ValidationError("Reply body is empty")
        message = self.store.get_message(message_id)
        self._require_active(message.trial_id, "Message", message_id)
        return self.audit.record(
            Actor.USER, "Communication", f"Sent reply to {message.sender}",
            entity_id=message_id, trial_id=message.trial_id,
        )

    async def draft_reply(self, message_id: str) -> str:
        message = self.store.get_message(message_id)
        trial = self._require_active(message.trial_id, "Message", message_id)
        draft = await draft_reply(self.client, message, trial)
        if draft.generated:
            self.audit.record(
                Actor.AI, "AI Assistance", f"Generated smart reply for message from {message.sender}",
                entity_id=message_id, trial_id=trial.id,
            )
        return draft.text

    async def draft_email(self, task_id: str) -> str:
        task = self.store.get_task(task_id)
        trial = self._require_active(task.trial_id, "Task", task_id)
        draft = await draft_email(self.client, task, trial)
        if draft.generated:
            self.audit.record(
                Actor.USER, "Integration", f"Drafted Gmail for task: {task.title}",
                entity_id=task_id, trial_id=trial.id,
            )
        return draft.text

    # ------------------------------------------------------------------
    # Documents and simulations
    # ------------------------------------------------------------------

    async def analyze_document(self, filename: str, file_data: bytes,
                               doc_type: Union[DocType, str]) -> AnalysisOutcome:
        return await self.documents.analyze(self.active_trial, filename, file_data, doc_type)

    async def run_simulation(self, scenario: str) -> Optional[SimulationResult]:
        return await self.simulations.run(self.active_trial, scenario)

    def latest_simulation(self, trial_id: Optional[str] = None) -> Optional[SimulationResult]:
        return self.simulations.latest(self._resolve_trial(trial_id).id)

    # ------------------------------------------------------------------
    # Assistant
    # ------------------------------------------------------------------

    @property
    def assistant(self) -> Optional[AssistantSession]:
        return self._assistant

    def _current_assistant(self) -> AssistantSession:
        trial = self.active_trial
        if self._assistant is None:
            self._assistant = AssistantSession(
                self.client, trial, self.store.project(trial.id).tasks, self.audit,
            )
        return self._assistant

    async def activate_assistant(self) -> ChatMessage:
        return await self._current_assistant().activate()

    async def send_chat_message(self, text: str) -> ChatMessage:
        """Send on the active trial's session, activating it first if needed."""
        if not text or not text.strip():
            raise ValidationError("Chat message is empty")
        session = self._current_assistant()
        if not session.messages:
            await session.activate()
        return await session.send(text)

    def chat_history(self) -> List[ChatMessage]:
        return self._assistant.messages if self._assistant is not None else []

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit_entries(self, trial_id: Optional[str] = None,
                      limit: Optional[int] = None) -> List[AuditLogEntry]:
        return self.audit.entries(trial_id=trial_id, limit=limit)

"""
Entity Store - in-memory tasks, documents and messages, partitioned by trial.

The three mutators (`upsert_task`, `insert_document`, `append_messages`) are
the only way records change. Each replaces an existing record with the same
id in place and adds unknown ids, so repeating a call is harmless. Reads are
trial-scoped through `project`; trial-agnostic messages are only visible
through `project_global`.
"""

from datetime import datetime
from typing import Dict, Generic, Iterable, List, Optional, TypeVar

from backend.trialsight.context import Task, Document, Message, TrialEntities
from backend.trialsight.errors import NotFoundError
from backend.trialsight.fixtures import seed_tasks, seed_documents, seed_messages


R = TypeVar("R", Task, Document, Message)


class _Collection(Generic[R]):
    """Id-keyed records with a stable display order."""

    def __init__(self, kind: str):
        self.kind = kind
        self._items: Dict[str, R] = {}
        self._order: List[str] = []

    def put(self, record: R, newest_first: bool) -> bool:
        """Store a record; returns True when the id was new."""
        created = record.id not in self._items
        self._items[record.id] = record
        if created:
            if newest_first:
                self._order.insert(0, record.id)
            else:
                self._order.append(record.id)
        return created

    def get(self, record_id: str) -> R:
        record = self._items.get(record_id)
        if record is None:
            raise NotFoundError(f"Unknown {self.kind}: {record_id}")
        return record

    def find(self, record_id: str) -> Optional[R]:
        return self._items.get(record_id)

    def values(self) -> List[R]:
        return [self._items[i] for i in self._order]

    def __len__(self) -> int:
        return len(self._items)


class EntityStore:
    """Owns every task, document and message for the lifetime of the process."""

    def __init__(self, tasks: Iterable[Task] = (), documents: Iterable[Document] = (),
                 messages: Iterable[Message] = ()):
        self._tasks: _Collection[Task] = _Collection("task")
        self._documents: _Collection[Document] = _Collection("document")
        self._messages: _Collection[Message] = _Collection("message")
        for task in tasks:
            self._tasks.put(task, newest_first=False)
        for doc in documents:
            self._documents.put(doc, newest_first=False)
        for msg in messages:
            self._messages.put(msg, newest_first=False)

    @classmethod
    def seeded(cls, now: Optional[datetime] = None) -> "EntityStore":
        return cls(seed_tasks(now), seed_documents(now), seed_messages(now))

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def project(self, trial_id: str) -> TrialEntities:
        """Entities whose trial id equals `trial_id`; system-wide messages are excluded."""
        return TrialEntities(
            trial_id=trial_id,
            tasks=[t for t in self._tasks.values() if t.trial_id == trial_id],
            documents=[d for d in self._documents.values() if d.trial_id == trial_id],
            messages=[m for m in self._messages.values()
                      if m.trial_id is not None and m.trial_id == trial_id],
        )

    def project_global(self) -> List[Message]:
        """Messages not tied to any trial."""
        return [m for m in self._messages.values() if m.trial_id is None]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        return self._tasks.get(task_id)

    def get_document(self, document_id: str) -> Document:
        return self._documents.get(document_id)

    def get_message(self, message_id: str) -> Message:
        return self._messages.get(message_id)

    def counts(self) -> Dict[str, int]:
        return {
            "tasks": len(self._tasks),
            "documents": len(self._documents),
            "messages": len(self._messages),
        }

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def upsert_task(self, task: Task) -> Task:
        existing = self._tasks.find(task.id)
        if existing is not None and existing.trial_id != task.trial_id:
            raise NotFoundError(f"Task {task.id} does not belong to trial {task.trial_id}")
        self._tasks.put(task, newest_first=True)
        return task

    def insert_document(self, document: Document) -> Document:
        existing = self._documents.find(document.id)
        if existing is not None and existing.trial_id != document.trial_id:
            raise NotFoundError(f"Document {document.id} does not belong to trial {document.trial_id}")
        self._documents.put(document, newest_first=True)
        return document

    def append_messages(self, messages: Iterable[Message]) -> List[Message]:
        stored = []
        for msg in messages:
            existing = self._messages.find(msg.id)
            if existing is not None and existing.trial_id != msg.trial_id:
                raise NotFoundError(f"Message {msg.id} does not belong to trial {msg.trial_id}")
            self._messages.put(msg, newest_first=False)
            stored.append(msg)
        return stored

"""
Domain records for the trial operations core.

Trials, tasks, documents, messages, audit entries and chat turns. Every
enumerated string field is a closed Enum; records are frozen dataclasses and
change only by producing a new value via `dataclasses.replace`.
"""

import math
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple, Type, TypeVar

from backend.trialsight.errors import ValidationError


E = TypeVar("E", bound=Enum)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_enum(enum_cls: Type[E], value: Any) -> E:
    """Resolve a member from itself, its display value or its name.

    Matching ignores case, spaces and underscores, so "In Progress",
    "IN_PROGRESS" and "InProgress" all resolve to the same member.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        wanted = value.replace("_", "").replace(" ", "").lower()
        for member in enum_cls:
            if wanted in (
                member.name.replace("_", "").lower(),
                str(member.value).replace(" ", "").lower(),
            ):
                return member
    raise ValidationError(f"Invalid {enum_cls.__name__}: {value!r}")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class TrialStatus(str, Enum):
    RECRUITING = "Recruiting"
    ACTIVE = "Active"
    ANALYSIS = "Analysis"


class TaskStatus(str, Enum):
    """Board columns. Any column may move to any other."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    REVIEW = "In Review"
    DONE = "Completed"


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def is_elevated(self) -> bool:
        return self in (TaskPriority.HIGH, TaskPriority.CRITICAL)


class Provenance(str, Enum):
    USER = "User"
    AI = "AI"
    SYSTEM = "System"


class DocType(str, Enum):
    PROTOCOL = "Protocol"
    MONITORING_REPORT = "Monitoring Report"
    CONSENT_FORM = "Informed Consent"
    LAB_RESULT = "Lab Result"
    REGULATORY = "Regulatory"


class DocumentStatus(str, Enum):
    PENDING = "Pending"
    ANALYZED = "Analyzed"
    ERROR = "Error"


class MessageType(str, Enum):
    EMAIL = "Email"
    SYSTEM = "System"


class Actor(str, Enum):
    USER = "User"
    AI = "AI"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


# Allowed document transitions; Analyzed and Error are terminal.
DOCUMENT_TRANSITIONS: Dict[DocumentStatus, tuple] = {
    DocumentStatus.PENDING: (DocumentStatus.ANALYZED, DocumentStatus.ERROR),
    DocumentStatus.ANALYZED: (),
    DocumentStatus.ERROR: (),
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Trial:
    """
    A clinical study. Read-only for the lifetime of a session; `ai_context`
    is passed verbatim as grounding to every generation request.
    """

    # === IDENTITY ===
    id: str
    protocol_id: str
    name: str
    phase: str
    description: str = ""
    investigator: str = ""
    status: TrialStatus = TrialStatus.RECRUITING

    # === RECRUITMENT ===
    target_recruitment: int = 0
    current_recruitment: int = 0
    recruitment_data: Tuple[Dict[str, Any], ...] = field(default=(), hash=False)

    # === OUTCOMES ===
    endpoint_data: Tuple[Dict[str, Any], ...] = field(default=(), hash=False)
    adherence_data: Tuple[Dict[str, Any], ...] = field(default=(), hash=False)

    # === AI GROUNDING ===
    ai_context: str = ""

    def __post_init__(self):
        # Chart series are stored as tuples; hashing uses the scalar fields only.
        for name in ("recruitment_data", "endpoint_data", "adherence_data"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def percent_recruited(self) -> int:
        """Current over target as a whole percentage, rounded half up."""
        if self.target_recruitment <= 0:
            return 0
        return int(math.floor(self.current_recruitment / self.target_recruitment * 100 + 0.5))

    def recruitment_label(self) -> str:
        return "lagging" if self.percent_recruited() < 50 else "on track"

    def reply_context(self) -> str:
        """Short grounding line used for message drafting."""
        return f"Trial: {self.name}. Protocol ID: {self.protocol_id}. Description: {self.description}"


@dataclass(frozen=True)
class Task:
    id: str
    trial_id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    assignee: str
    source: Provenance
    related_doc_id: Optional[str] = None

    def with_status(self, status: TaskStatus) -> "Task":
        return replace(self, status=status)


@dataclass(frozen=True)
class Document:
    id: str
    trial_id: str
    name: str
    doc_type: DocType
    upload_date: datetime
    size: str
    status: DocumentStatus = DocumentStatus.PENDING
    risk_score: int = 0

    def __post_init__(self):
        if self.status == DocumentStatus.ANALYZED and not 0 <= self.risk_score <= 100:
            raise ValidationError(
                f"Analyzed document {self.id} has risk score {self.risk_score} outside 0-100"
            )

    def transition(self, status: DocumentStatus, risk_score: Optional[int] = None) -> "Document":
        """Move forward from Pending; never backward, never out of a terminal state."""
        if status not in DOCUMENT_TRANSITIONS[self.status]:
            raise ValidationError(
                f"Document {self.id} cannot move from {self.status.value} to {status.value}"
            )
        return replace(
            self, status=status,
            risk_score=self.risk_score if risk_score is None else risk_score,
        )


@dataclass(frozen=True)
class Message:
    id: str
    sender: str
    subject: str
    preview: str
    content: str
    timestamp: datetime
    trial_id: Optional[str] = None  # None = system wide
    read: bool = False
    type: MessageType = MessageType.EMAIL

    def mark_read(self) -> "Message":
        return self if self.read else replace(self, read=True)


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    timestamp: datetime
    actor: Actor
    action: str
    details: str
    entity_id: Optional[str] = None
    trial_id: Optional[str] = None


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: ChatRole
    text: str
    timestamp: datetime


@dataclass
class TrialEntities:
    """Trial-scoped projection of the entity store."""
    trial_id: str
    tasks: List[Task] = field(default_factory=list)
    documents: List[Document] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_dict(record: Any) -> Any:
    """Convert a record (or list of records) to JSON-friendly primitives."""
    if isinstance(record, (list, tuple)):
        return [to_dict(r) for r in record]
    if isinstance(record, Enum):
        return record.value
    if isinstance(record, datetime):
        return record.isoformat()
    if isinstance(record, dict):
        return {k: to_dict(v) for k, v in record.items()}
    if hasattr(record, "__dataclass_fields__"):
        return {f.name: to_dict(getattr(record, f.name)) for f in fields(record)}
    return record

"""
TrialSight - AI-assisted clinical trial operations core

Modules:
    context     - Trial, Task, Document, Message records and closed enums
    catalog     - Fixed trial catalog loaded at startup
    fixtures    - Seed tasks, documents and messages
    store       - Trial-partitioned in-memory entity store
    audit       - Append-only audit log
    schemas     - Pydantic shapes for schema-constrained generation
    ai_client   - Fast / deep tier generation client with fallback, timeout and retry
    extraction  - Upload text extraction (TXT, DOCX, PDF)
    prompts     - Prompt builders
    documents   - Document analysis pipeline
    simulation  - Risk simulation engine
    assistant   - Conversational assistant session
    drafting    - Smart reply and email drafts
    engine      - TrialOperations, the consumer surface
"""

from backend.trialsight.errors import (
    TrialSightError, GenerationError, ValidationError, NotFoundError, SessionBusyError,
)
from backend.trialsight.context import (
    Trial, Task, Document, Message, AuditLogEntry, ChatMessage, TrialEntities,
    TaskStatus, TaskPriority, Provenance, DocType, DocumentStatus, MessageType,
    Actor, ChatRole, TrialStatus, to_dict,
)
from backend.trialsight.catalog import TrialCatalog, TRIALS
from backend.trialsight.store import EntityStore
from backend.trialsight.audit import AuditLog
from backend.trialsight.ai_client import GenerationClient, ModelTier
from backend.trialsight.engine import TrialOperations

"""Seed tasks, documents and messages for the bundled trials."""

from datetime import datetime, timedelta
from typing import List, Optional

from backend.trialsight.context import (
    Task, Document, Message, TaskStatus, TaskPriority, Provenance,
    DocType, DocumentStatus, MessageType, utcnow,
)


def seed_tasks(now: Optional[datetime] = None) -> List[Task]:
    now = now or utcnow()
    return [
        # SECURE
        Task(
            id="1", trial_id="trial_1",
            title="Verify Ramipril Titration - Site 002",
            description="Subject 1002-004 blood pressure drop noted. Confirm down-titration to 2.5mg.",
            status=TaskStatus.IN_PROGRESS, priority=TaskPriority.HIGH,
            due_date=now, assignee="CRA", source=Provenance.USER,
        ),
        Task(
            id="2", trial_id="trial_1",
            title="Polypill Supply Reshipment",
            description="Batch 445 expiring at German depot.",
            status=TaskStatus.TODO, priority=TaskPriority.MEDIUM,
            due_date=now, assignee="Logistics", source=Provenance.SYSTEM,
        ),
        # AF-PREVENT
        Task(
            id="3", trial_id="trial_2",
            title="Collect Ablation Procedure Reports",
            description="Site Madrid-01 missing 3 procedure logs.",
            status=TaskStatus.TODO, priority=TaskPriority.HIGH,
            due_date=now, assignee="CRA", source=Provenance.SYSTEM,
        ),
    ]


def seed_documents(now: Optional[datetime] = None) -> List[Document]:
    now = now or utcnow()
    return [
        Document(
            id="1", trial_id="trial_1", name="SECURE_Protocol_v5.0.pdf",
            doc_type=DocType.PROTOCOL, upload_date=now, size="2.4 MB",
            status=DocumentStatus.ANALYZED, risk_score=0,
        ),
        Document(
            id="2", trial_id="trial_2", name="AF_Informed_Consent_ES.pdf",
            doc_type=DocType.CONSENT_FORM, upload_date=now, size="0.8 MB",
            status=DocumentStatus.ANALYZED, risk_score=15,
        ),
    ]


def seed_messages(now: Optional[datetime] = None) -> List[Message]:
    now = now or utcnow()
    return [
        Message(
            id="1", trial_id="trial_1",
            sender="Dr. Valentin Fuster",
            subject="Recruitment lag in Germany",
            preview="We need to discuss the recruitment numbers...",
            content="Dear Team, recruitment in Berlin is lagging.",
            timestamp=now - timedelta(hours=2),
            read=False, type=MessageType.EMAIL,
        ),
        Message(
            id="2", trial_id="trial_2",
            sender="Dr. Maria Gonzalez",
            subject="New Site Activation",
            preview="Valencia site is ready to recruit...",
            content="Good news, the Valencia site has passed SIV and is ready to screen.",
            timestamp=now - timedelta(hours=24),
            read=True, type=MessageType.EMAIL,
        ),
    ]

"""
Audit Log - append-only record of every state-mutating operation.

Entries are immutable and prepended, so iteration is newest first. Recording
cannot fail at runtime; callers record in the same call that performed the
mutation.
"""

from typing import Iterator, List, Optional

from backend.trialsight.context import Actor, AuditLogEntry, new_id, utcnow


class AuditLog:

    def __init__(self):
        self._entries: List[AuditLogEntry] = []

    def record(self, actor: Actor, action: str, details: str,
               entity_id: Optional[str] = None,
               trial_id: Optional[str] = None) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=new_id(),
            timestamp=utcnow(),
            actor=actor,
            action=action,
            details=details,
            entity_id=entity_id,
            trial_id=trial_id,
        )
        self._entries.insert(0, entry)
        return entry

    def entries(self, trial_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        """Newest-first snapshot, optionally narrowed to one trial."""
        selected = [e for e in self._entries if trial_id is None or e.trial_id == trial_id]
        return selected[:limit] if limit is not None else selected

    def latest(self) -> Optional[AuditLogEntry]:
        return self._entries[0] if self._entries else None

    def __iter__(self) -> Iterator[AuditLogEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

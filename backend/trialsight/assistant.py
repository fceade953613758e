"""
Conversational Assistant Session - one long-lived chat per active trial.

Lifecycle:

    UNINITIALIZED -> GREETING -> READY <-> SENDING
                                   |
                                 CLOSED   (trial switch)

Activation builds the trial context once, opens a deep-tier chat seeded with
it, and asks the fast tier for a short greeting. The greeting has its own
failure path (a static greeting naming the trial) and never keeps the
session from becoming ready. Sends are serialized: a send is refused unless
the session is READY. History is append-only and belongs to this session
object alone, so a replaced session cannot leak turns into its successor.
"""

from enum import Enum
from typing import Iterable, List, Optional

from backend.config import settings
from backend.trialsight.ai_client import ChatSession, GenerationClient, ModelTier
from backend.trialsight.audit import AuditLog
from backend.trialsight.context import (
    Actor, ChatMessage, ChatRole, Task, Trial, new_id, utcnow,
)
from backend.trialsight.errors import GenerationError, SessionBusyError, ValidationError
from backend.trialsight.prompts import (
    build_assistant_context, build_assistant_instruction, build_greeting_prompt,
)


NETWORK_APOLOGY = "I'm having trouble connecting to the network right now. Please try again."
EMPTY_REPLY = "I didn't catch that, could you rephrase?"


def static_greeting(trial: Trial) -> str:
    return f"Hello! I'm your TrialSight assistant for {trial.name}. How can I help you today?"


class AssistantState(Enum):
    UNINITIALIZED = "uninitialized"
    GREETING = "greeting"
    READY = "ready"
    SENDING = "sending"
    CLOSED = "closed"


class AssistantSession:

    def __init__(self, client: GenerationClient, trial: Trial, tasks: Iterable[Task],
                 audit: AuditLog, greeting_task_limit: Optional[int] = None):
        self.client = client
        self.trial = trial
        self.audit = audit
        self._tasks = list(tasks)
        self.greeting_task_limit = (
            settings.greeting_task_limit if greeting_task_limit is None else greeting_task_limit
        )
        self.state = AssistantState.UNINITIALIZED
        self.context: Optional[str] = None
        self._chat: Optional[ChatSession] = None
        self._messages: List[ChatMessage] = []

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @property
    def is_ready(self) -> bool:
        return self.state == AssistantState.READY

    def _append(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(id=new_id(), role=role, text=text, timestamp=utcnow())
        self._messages.append(message)
        return message

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def activate(self) -> ChatMessage:
        """Open the chat and produce the greeting. Returns the greeting message."""
        if self.state != AssistantState.UNINITIALIZED:
            if self._messages:
                return self._messages[0]
            raise SessionBusyError(f"Assistant for {self.trial.name} is {self.state.value}")

        self.state = AssistantState.GREETING
        self.context = build_assistant_context(self.trial, self._tasks)
        self._chat = self.client.open_session(build_assistant_instruction(self.context))
        self.audit.record(
            Actor.USER, "Assistant Session",
            f"Opened assistant session for {self.trial.protocol_id}",
            entity_id=self.trial.protocol_id, trial_id=self.trial.id,
        )

        titles = [t.title for t in self._tasks[:self.greeting_task_limit]]
        greeting = self._append(ChatRole.MODEL, await self._greeting(titles))
        if self.state == AssistantState.GREETING:
            self.state = AssistantState.READY
        return greeting

    async def _greeting(self, task_titles: List[str]) -> str:
        try:
            text = await self.client.complete(
                build_greeting_prompt(self.context or "", task_titles), ModelTier.FAST,
            )
        except GenerationError as e:
            print(f"[assistant] Fast greeting failed for {self.trial.name}: {e}")
            text = ""
        return text.strip() or static_greeting(self.trial)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send(self, text: str) -> ChatMessage:
        """Append the user's turn, ask the deep tier, append and return the reply."""
        if not text or not text.strip():
            raise ValidationError("Chat message is empty")
        if self.state != AssistantState.READY or self._chat is None:
            raise SessionBusyError(f"Assistant for {self.trial.name} is {self.state.value}")

        self._append(ChatRole.USER, text)
        self.state = AssistantState.SENDING
        try:
            reply = await self._chat.send(text)
            reply = reply if reply.strip() else EMPTY_REPLY
        except GenerationError as e:
            print(f"[assistant] Chat send failed for {self.trial.name}: {e}")
            reply = NETWORK_APOLOGY
        finally:
            if self.state == AssistantState.SENDING:
                self.state = AssistantState.READY

        self.audit.record(
            Actor.USER, "Assistant Chat",
            f"Asked the assistant about {self.trial.protocol_id}",
            entity_id=self.trial.protocol_id, trial_id=self.trial.id,
        )
        return self._append(ChatRole.MODEL, reply)

    def close(self):
        """Invalidate the session; late replies land only in this object's history."""
        self.state = AssistantState.CLOSED
        if self._chat is not None:
            self._chat.close()

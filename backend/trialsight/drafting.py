"""
Smart Reply / Email Draft - short advisory text on the fast tier.

Neither helper raises on a service failure; it substitutes a fixed fallback
string and reports `generated=False` so the caller knows not to audit.
"""

from dataclasses import dataclass

from backend.trialsight.ai_client import GenerationClient, ModelTier
from backend.trialsight.context import Message, Task, Trial
from backend.trialsight.errors import GenerationError
from backend.trialsight.prompts import build_email_draft_prompt, build_smart_reply_prompt


REPLY_ERROR_TEXT = "Unable to generate draft reply."
EMAIL_EMPTY_TEXT = "Could not generate draft."
EMAIL_ERROR_TEXT = "Error generating draft."


@dataclass(frozen=True)
class Draft:
    text: str
    generated: bool


async def draft_reply(client: GenerationClient, message: Message, trial: Trial) -> Draft:
    """Reply to `message`; an empty service answer is passed through as ""."""
    prompt = build_smart_reply_prompt(
        message.sender, message.subject, message.content, trial.reply_context(),
    )
    try:
        text = await client.complete(prompt, ModelTier.FAST)
    except GenerationError as e:
        print(f"[drafting] Smart reply for message {message.id} failed: {e}")
        return Draft(REPLY_ERROR_TEXT, generated=False)
    return Draft(text, generated=True)


async def draft_email(client: GenerationClient, task: Task, trial: Trial) -> Draft:
    prompt = build_email_draft_prompt(task.title, task.description, trial.name)
    try:
        text = await client.complete(prompt, ModelTier.FAST)
    except GenerationError as e:
        print(f"[drafting] Email draft for task {task.id} failed: {e}")
        return Draft(EMAIL_ERROR_TEXT, generated=False)
    if not text:
        return Draft(EMAIL_EMPTY_TEXT, generated=False)
    return Draft(text, generated=True)

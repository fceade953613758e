"""
Prompt Builders - every prompt sent to the generation service.

Each builder embeds the active trial's grounding text verbatim.
"""

from typing import Iterable, List

from backend.trialsight.context import Trial, Task


# ---------------------------------------------------------------------------
# Document analysis
# ---------------------------------------------------------------------------

def build_analysis_prompt(document_text: str, doc_type: str, trial_context: str) -> str:
    return f"""You are an expert Clinical Trial Assistant.

CURRENT TRIAL PROTOCOL CONTEXT:
{trial_context}

TASK:
Analyze the following {doc_type} content for compliance with the protocol above, safety risks, and operational bottlenecks.

DOCUMENT CONTENT:
{document_text}

Extract specific risks and generate actionable tasks."""


# ---------------------------------------------------------------------------
# Risk simulation
# ---------------------------------------------------------------------------

def build_simulation_prompt(scenario: str, trial_context: str) -> str:
    return f"""You are a Clinical Risk Simulator Engine.

Based on the following Clinical Trial Context:
{trial_context}

And these specific additional details/parameters provided by the user:
{scenario}

Perform a rigorous simulation analysis.
1. Predict the impact on recruitment, safety, and data integrity.
2. Assign risk levels (Low, Medium, High, Critical).
3. Provide concrete mitigation strategies."""


# ---------------------------------------------------------------------------
# Assistant
# ---------------------------------------------------------------------------

def build_assistant_context(trial: Trial, tasks: Iterable[Task]) -> str:
    """Trial identity, recruitment, investigator, elevated tasks and grounding text."""
    elevated = [t for t in tasks if t.priority.is_elevated]
    task_lines = "\n".join(f"- {t.title} ({t.status.value})" for t in elevated)
    return f"""Active Protocol: {trial.name} ({trial.protocol_id})
Phase: {trial.phase}
Status: {trial.status.value}
Recruitment: {trial.current_recruitment} / {trial.target_recruitment}
Investigator: {trial.investigator}

Current High Priority Tasks ({len(elevated)}):
{task_lines}

General Context:
{trial.ai_context}"""


def build_assistant_instruction(context: str) -> str:
    return f"""You are an intelligent, competent Clinical Trial Assistant (like a high-level secretary or trial manager).

Your Goal: Assist the user in managing the clinical trial efficiently.

Behavior:
- Be friendly but professional.
- Be proactive: suggest actions based on risks or deadlines.
- Be context-aware: You know the current protocol status, recruitment numbers, and active tasks.

Context:
{context}

If asked about tasks, deadlines, or risks, refer to the provided context."""


def build_greeting_prompt(context: str, task_titles: List[str]) -> str:
    return f"""You are an efficient, friendly clinical trial secretary.

Context:
{context}

Current Tasks:
{', '.join(task_titles)}

Provide a very short, friendly greeting and list 3 bullet points of high-priority focus items for the trial manager right now.
Be concise."""


# ---------------------------------------------------------------------------
# Drafting
# ---------------------------------------------------------------------------

def build_smart_reply_prompt(sender: str, subject: str, content: str, trial_context: str) -> str:
    return f"""You are the Clinical Trial Manager.

TRIAL CONTEXT:
{trial_context}

Draft a reply to:
Sender: {sender}
Subject: {subject}
Message Content: {content}

If this is an SAE (Serious Adverse Event), reference the specific protocol safety reporting guidelines."""


def build_email_draft_prompt(task_title: str, task_description: str, trial_name: str) -> str:
    return f"""Draft a professional email to the site coordinator regarding the clinical trial: {trial_name}.
Task: {task_title}
Details: {task_description}

Tone should be collaborative but firm on GCP compliance."""

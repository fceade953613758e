"""
Smart reply and email drafts never raise.
"""

import asyncio

import pytest

from backend.trialsight.drafting import (
    EMAIL_EMPTY_TEXT, EMAIL_ERROR_TEXT, REPLY_ERROR_TEXT, draft_email, draft_reply,
)


@pytest.fixture
def secure(catalog):
    return catalog.get("trial_1")


class TestDraftReply:
    def test_generated(self, client, transport, store, secure):
        transport.queue("Dear Dr. Fuster, thank you.")
        draft = asyncio.run(draft_reply(client, store.get_message("1"), secure))
        assert draft.generated
        assert draft.text == "Dear Dr. Fuster, thank you."
        prompt = transport.requests[0].messages[0]["text"]
        assert "Sender: Dr. Valentin Fuster" in prompt
        assert "Trial: SECURE. Protocol ID: 633765." in prompt

    def test_failure_fallback(self, client, transport, store, secure):
        transport.queue(ValueError("down"))
        draft = asyncio.run(draft_reply(client, store.get_message("1"), secure))
        assert not draft.generated
        assert draft.text == REPLY_ERROR_TEXT

    def test_empty_answer_passes_through(self, client, transport, store, secure):
        transport.queue("")
        draft = asyncio.run(draft_reply(client, store.get_message("1"), secure))
        assert draft.generated
        assert draft.text == ""


class TestDraftEmail:
    def test_generated(self, client, transport, store, secure):
        transport.queue("Subject: Ramipril titration")
        draft = asyncio.run(draft_email(client, store.get_task("1"), secure))
        assert draft.text == "Subject: Ramipril titration"
        assert "clinical trial: SECURE" in transport.requests[0].messages[0]["text"]

    def test_empty_answer(self, client, transport, store, secure):
        transport.queue(None)
        draft = asyncio.run(draft_email(client, store.get_task("1"), secure))
        assert draft.text == EMAIL_EMPTY_TEXT
        assert not draft.generated

    def test_failure_fallback(self, client, transport, store, secure):
        transport.queue(ValueError("down"))
        draft = asyncio.run(draft_email(client, store.get_task("1"), secure))
        assert not draft.generated
        assert draft.text == EMAIL_ERROR_TEXT

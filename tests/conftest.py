"""
Shared fixtures: scripted generation transport, fresh store / audit log, engine.
"""

import json
from datetime import datetime, timezone

import pytest

from backend.trialsight.ai_client import GenerationClient
from backend.trialsight.audit import AuditLog
from backend.trialsight.catalog import TrialCatalog
from backend.trialsight.engine import TrialOperations
from backend.trialsight.store import EntityStore


ANALYSIS_PAYLOAD = {
    "summary": "ok",
    "riskScore": 42,
    "risks": ["a"],
    "tasks": [{"title": "T", "description": "D", "priority": "High"}],
}

SIMULATION_PAYLOAD = {
    "executiveSummary": "Recruitment slows in Germany.",
    "overallRiskScore": 68,
    "scenarios": [
        {
            "category": "Recruitment",
            "riskLevel": "High",
            "description": "Berlin site enrolment falls further behind.",
            "mitigationStrategy": "Open a backup site in Munich.",
        },
        {
            "category": "Safety",
            "riskLevel": "Low",
            "description": "No additional safety signal expected.",
            "mitigationStrategy": "Continue routine monitoring.",
        },
    ],
}


class ScriptedTransport:
    """Stands in for the provider call: replies are consumed in order.

    A reply may be a string, None, an exception instance (raised) or a
    callable taking the request. Once the script is exhausted every call
    returns an empty string.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def __call__(self, request):
        self.requests.append(request)
        if not self.replies:
            return ""
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(request)
        return reply


def as_json(payload) -> str:
    return json.dumps(payload)


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def client(transport):
    return GenerationClient(transport=transport, timeout=5.0, retry_backoff=0.0)


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def catalog():
    return TrialCatalog.default()


@pytest.fixture
def store(fixed_now):
    return EntityStore.seeded(fixed_now)


@pytest.fixture
def audit():
    return AuditLog()


@pytest.fixture
def ops(catalog, store, audit, client):
    return TrialOperations(catalog, store, audit, client, active_trial_id="trial_1")


@pytest.fixture
def analysis_json():
    return as_json(ANALYSIS_PAYLOAD)


@pytest.fixture
def simulation_json():
    return as_json(SIMULATION_PAYLOAD)

"""Shared fixtures for call analytics tests."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routers import analytics, calls, vapi_metric


@pytest.fixture
def scenario_records():
    """The two-call scenario used throughout the dashboard."""
    return [
        {"id": "call-1", "cost": 10, "durationSeconds": 60, "status": "completed", "startedAt": "2024-01-01"},
        {"id": "call-2", "cost": 20, "durationSeconds": 120, "status": "failed", "startedAt": "2024-01-02"},
    ]


@pytest.fixture
def vapi_calls():
    """Call objects shaped like the provider's /call response."""
    return [
        {
            "id": "c1",
            "type": "inboundPhoneCall",
            "status": "ended",
            "endedReason": "customer-ended-call",
            "startedAt": "2024-03-05T10:00:00.000Z",
            "endedAt": "2024-03-05T10:02:30.000Z",
            "cost": 0.15,
            "costBreakdown": {
                "transport": 0.01,
                "stt": 0.02,
                "llm": 0.07,
                "tts": 0.03,
                "vapi": 0.02,
                "total": 0.15,
                "llmPromptTokens": 1200,
                "llmCompletionTokens": 150,
                "ttsCharacters": 480,
            },
        },
        {
            "id": "c2",
            "type": "outboundPhoneCall",
            "status": "ended",
            "startedAt": "2024-03-20T09:00:00.000Z",
            "endedAt": "2024-03-20T09:01:00.000Z",
            "cost": 0.05,
            "costBreakdown": {"transport": 0.01, "llm": 0.04},
        },
        {
            "id": "c0",
            "type": "inboundPhoneCall",
            "status": "ended",
            "startedAt": "2024-02-10T09:00:00.000Z",
            "endedAt": "2024-02-10T09:00:30.000Z",
            "cost": 0.1,
        },
    ]


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, field, direction):
        present = [d for d in self.docs if d.get(field) is not None]
        missing = [d for d in self.docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=direction < 0)
        self.docs = present + missing
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length=None):
        return list(self.docs[:length])


def _matches(doc, query):
    if not query:
        return True
    if "$or" in query:
        return any(_matches(doc, q) for q in query["$or"])
    for field, condition in query.items():
        value = doc.get(field)
        if isinstance(condition, dict):
            if value is None:
                return False
            if "$gte" in condition and value < condition["$gte"]:
                return False
            if "$lte" in condition and value > condition["$lte"]:
                return False
        elif value != condition:
            return False
    return True


class FakeCollection:
    """Just enough of a motor collection for the call store."""

    def __init__(self):
        self.docs = []

    async def insert_one(self, doc):
        self.docs.append(dict(doc))

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update["$set"])
                return
        if upsert:
            self.docs.append({**query, **update["$set"]})

    def find(self, query, projection=None):
        return FakeCursor([dict(d) for d in self.docs if _matches(d, query)])


class FakeDatabase(dict):
    def __missing__(self, name):
        self[name] = FakeCollection()
        return self[name]


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def app(fake_db):
    app = FastAPI()
    app.include_router(analytics.router)
    app.include_router(vapi_metric.router)
    app.include_router(calls.router)
    app.mongodb = fake_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)

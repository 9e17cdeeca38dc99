"""Shared fixtures: in-memory database, scripted LLM, mocked Google/Supabase HTTP."""
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnpath.agents.llm.base import LLMClient
from learnpath.db.session import create_tables
from learnpath.deps import get_calendar, get_db, get_llm
from learnpath.main import app
from learnpath.scheduling.google import GoogleCalendarClient
from learnpath.validation.service import get_volatile_cache


VALID_ORDER = json.dumps({"isValid": True, "reason": "Fundamentals come first"})
NOT_DUPLICATE = json.dumps({"isDuplicate": False, "reason": "This node is unique"})
NO_ESTIMATES = json.dumps({"nodes": [], "suggestedDailyHours": 2, "summary": "Plan"})
CONVERSION = json.dumps(
    {
        "nodes": [
            {"title": "Variables", "description": "Names and values", "icon": "🔤", "color": "#111111", "order": 0},
            {"title": "Functions", "description": "Reusable code", "icon": "🧩", "color": "#222222", "order": 1},
            {"title": "Classes", "description": "Objects", "icon": "🏛️", "color": "#333333", "order": 2},
        ],
        "edges": [{"from": 0, "to": 1}, {"from": 1, "to": 2}],
        "summary": "From basics to objects",
    }
)
QUIZ = json.dumps(
    {
        "question": "What does a variable hold?",
        "options": ["A value", "A loop", "A file", "A thread"],
        "correct_answer": 0,
    }
)

# markers found in each agent's system prompt
PROMPT_KINDS = {
    "pedagogy": "validate",
    "EXACT duplicates": "duplicate",
    "study time estimates": "estimate",
    "learning designer": "convert",
    "quiz questions": "quiz",
}


def prompt_kind(system: str) -> str:
    for marker, kind in PROMPT_KINDS.items():
        if marker in system:
            return kind
    return "unknown"


class FakeLLM(LLMClient):
    """Replies per agent kind; a reply may be a string, a callable or an exception."""

    def __init__(self, **replies):
        self.replies = {
            "validate": VALID_ORDER,
            "duplicate": NOT_DUPLICATE,
            "estimate": NO_ESTIMATES,
            "convert": CONVERSION,
            "quiz": QUIZ,
        }
        self.replies.update(replies)
        self.calls: list[dict] = []

    def generate_text(self, *, system, user, temperature=0.2, max_tokens=None):
        kind = prompt_kind(system)
        self.calls.append({"kind": kind, "system": system, "user": user,
            "temperature": temperature, "max_tokens": max_tokens})
        reply = self.replies.get(kind, "")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(system, user)
        return reply

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c["kind"] == kind)


class CalendarStub:
    """Collects outbound Google/Supabase requests; `handler` decides the response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = self.default_handler
        self._next_id = 0

    def default_handler(self, request: httpx.Request) -> httpx.Response:
        self._next_id += 1
        return httpx.Response(200, json={"id": f"evt-{self._next_id}"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> GoogleCalendarClient:
        return GoogleCalendarClient(
            client_id="client-id",
            client_secret="client-secret",
            redirect_uri="http://localhost:3000/callback",
            timezone_name="Asia/Jakarta",
            supabase_url="https://project.supabase.co",
            supabase_key="service-key",
            http_client=httpx.Client(transport=httpx.MockTransport(self)),
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def calendar_stub():
    return CalendarStub()


@pytest.fixture(autouse=True)
def _clear_volatile_cache():
    get_volatile_cache().clear()
    yield
    get_volatile_cache().clear()


@pytest.fixture
def client(session_factory, llm, calendar_stub):
    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_calendar():
        calendar = calendar_stub.client()
        try:
            yield calendar
        finally:
            calendar.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_llm] = lambda: llm
    app.dependency_overrides[get_calendar] = override_calendar
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

"""Shared test fixtures for the classroom backend."""

import pytest
from fastapi.testclient import TestClient

from ielts_classroom.core.builder import AssignmentDraft
from ielts_classroom.core.entities import AssignmentType
from ielts_classroom.core.questions import QuestionType
from ielts_classroom.db import Base, make_engine, make_session_factory
from ielts_classroom.main import app
from ielts_classroom.services.ai import AIService, get_ai_service
from ielts_classroom.store import DocumentStore, get_store


class FakeGeminiClient:
    """Stands in for GeminiClient; replies with canned text and records calls."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.closed = False

    async def generate(self, prompt, *, response_mime_type=None):
        self.calls.append(("text", prompt, response_mime_type))
        if self.error:
            raise self.error
        return self.reply

    async def generate_multimodal(self, parts, *, role="user", response_mime_type=None):
        self.calls.append(("multimodal", parts, response_mime_type))
        if self.error:
            raise self.error
        return self.reply

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeGeminiClient()


@pytest.fixture
def ai_service(fake_client):
    return AIService(client_factory=lambda: fake_client)


@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield DocumentStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def client(store, ai_service):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def reading_draft():
    """Reading draft with one group of every auto-graded flavour."""
    draft = AssignmentDraft(AssignmentType.READING, class_id="cls_1", title="Week 1", due_date="2030-01-10")
    draft.set_fields(passage_content="<p>The water cycle.</p>")

    mcq = draft.add_group(QuestionType.MCQ)
    draft.add_question(mcq, "What heats the ocean?", "B", options=["Wind", "Sun", "Moon"])
    draft.add_question(mcq, "Which TWO are gases?", "A,C", options=["Vapour", "Ice", "Steam", "Rock"], max_selection=2)

    notes = draft.add_group(QuestionType.NOTES_COMPLETION)
    draft.set_group_content(notes, "The [sun] rises in the [east].")

    tfng = draft.add_group(QuestionType.TRUE_FALSE_NG)
    draft.add_question(tfng, "Rain is salty.", "NOT GIVEN")
    return draft

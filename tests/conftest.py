"""
Test fixtures for the study aid companion.

Provides app, client, auth_client and db fixtures with file-based SQLite.
A FakeStudyAI is injected into create_app so no test talks to Gemini.
"""

from __future__ import annotations

import pytest
from datetime import datetime

import sys
import threading
import time
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import Flashcard, QuizQuestion, StudyAids, StudyMaterialInput  # noqa: E402
from study_ai import StudyAIError  # noqa: E402

TEST_PASSWORD = "testpass123"


def build_aids(difficulty: str = "Medium", cards: int = 10) -> StudyAids:
    return StudyAids(
        summary="* Plants convert light into chemical energy\n\n* **Chlorophyll** absorbs light\nOxygen is released",
        quiz=[
            QuizQuestion("What do plants produce?", ["Oxygen", "Nitrogen", "Helium", "Neon"], "Oxygen"),
            QuizQuestion("Where does photosynthesis happen?", ["Root", "Chloroplast", "Stem", "Seed"], "Chloroplast"),
            QuizQuestion("What pigment absorbs light?", ["Melanin", "Keratin", "Chlorophyll", "Heme"], "Chlorophyll"),
        ],
        flashcards=[Flashcard(f"Question {i}", f"Answer {i}") for i in range(1, cards + 1)],
        difficulty=difficulty,
    )


class FakeStudyAI:
    """Stands in for StudyAI; records calls and fails on request."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.last_material: StudyMaterialInput | None = None
        self.last_tutor: tuple | None = None

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise StudyAIError(f"{name} failed")

    def generate_study_aids(self, material, difficulty):
        self._call("generate_study_aids")
        self.last_material = material
        return build_aids(difficulty)

    def tutor_reply(self, study_material, history, message):
        self._call("tutor_reply")
        self.last_tutor = (study_material, list(history), message)
        return f"You asked: {message}"

    def translate_text(self, text, language):
        self._call("translate_text")
        return f"[{language}] {text}"

    def translate_flashcards(self, cards, language):
        self._call("translate_flashcards")
        return [Flashcard(f"[{language}] {c.question}", f"[{language}] {c.answer}") for c in cards]


@pytest.fixture
def fake_ai():
    return FakeStudyAI()


@pytest.fixture
def app(tmp_path, fake_ai):
    """Create app with file-based SQLite for testing."""
    from app import create_app
    from werkzeug.security import generate_password_hash

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
    }, study_ai=fake_ai)

    with app.app_context():
        from database import init_db, run_migrations, get_db

        init_db()
        run_migrations()

        db = get_db()
        pw_hash = generate_password_hash(TEST_PASSWORD)
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, created_at) "
            "VALUES (1, 'Test Student', 'test@example.com', ?, ?)",
            (pw_hash, datetime.now().isoformat()),
        )
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, created_at) "
            "VALUES (2, 'Other Student', 'other@example.com', ?, ?)",
            (pw_hash, datetime.now().isoformat()),
        )
        db.commit()

    yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def auth_client(app):
    """Test client logged in as user 1."""
    client = app.test_client()
    resp = client.post("/api/auth/login", json={
        "email": "test@example.com",
        "password": TEST_PASSWORD,
    })
    assert resp.status_code == 200
    return client


@pytest.fixture
def other_client(app):
    """Test client logged in as user 2."""
    client = app.test_client()
    resp = client.post("/api/auth/login", json={
        "email": "other@example.com",
        "password": TEST_PASSWORD,
    })
    assert resp.status_code == 200
    return client


@pytest.fixture
def db(app):
    """Database connection inside an app context."""
    with app.app_context():
        from database import get_db
        yield get_db()


@pytest.fixture
def study_session(app):
    """A stored session for user 1 with 3 quiz questions and 10 flashcards."""
    from db_stores import StudySessionStoreDB

    with app.app_context():
        return StudySessionStoreDB(1).create(
            "Photosynthesis Chapter 3",
            StudyMaterialInput(text="Plants use sunlight to make sugar."),
            build_aids(),
        )


@pytest.fixture
def make_aids():
    """Factory for StudyAids with a configurable deck size."""
    return build_aids


class RecordingStore:
    """In-memory ToolStateStore that records every call in order."""

    def __init__(self, user_id=1):
        self.user_id = user_id
        self.data: dict[tuple, dict] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self.on_get = None

    def get(self, session_id, tool):
        self.calls.append(("get", session_id, tool))
        if self.on_get:
            self.on_get()
        if "get" in self.fail_on:
            raise ConnectionError("store unreachable")
        return self.data.get((session_id, tool))

    def save(self, session_id, tool, state):
        self.calls.append(("save", session_id, tool, state))
        if "save" in self.fail_on:
            raise ConnectionError("store unreachable")
        self.data[(session_id, tool)] = state

    def clear(self, session_id, tool):
        self.calls.append(("clear", session_id, tool))
        if "clear" in self.fail_on:
            raise ConnectionError("store unreachable")
        self.data.pop((session_id, tool), None)

    def saves(self):
        return [c for c in self.calls if c[0] == "save"]


@pytest.fixture
def store():
    """Fresh in-memory tool-state store for user 1."""
    return RecordingStore()


class BlockingStore(RecordingStore):
    """RecordingStore whose saves hang until ``release`` is set.

    ``started`` is set when the first save reaches the store. Calls are
    recorded when they complete.
    """

    def __init__(self, user_id=1):
        super().__init__(user_id)
        self.started = threading.Event()
        self.release = threading.Event()

    def save(self, session_id, tool, state):
        self.started.set()
        self.release.wait(5)
        super().save(session_id, tool, state)


@pytest.fixture
def blocking_store():
    slow = BlockingStore()
    yield slow
    slow.release.set()


def wait_until(predicate, timeout=3.0):
    """Poll ``predicate`` until it is true or ``timeout`` runs out."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def wait_for():
    return wait_until

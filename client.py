"""
HTTP client for the study aid JSON API.

``StudyAidClient`` wraps a ``requests.Session`` (the login cookie lives
there). ``ApiToolStateStore`` exposes the remote tool-state endpoints as a
``ToolStateStore``, so the debounced quiz and flashcard tools can run in
another process and persist through the server.
"""

from __future__ import annotations

import logging

import requests

from models import StudyAids
from scheduling import TaskScheduler
from study_tools import FlashcardsTool, QuizTool
from tool_state import ToolStateSync

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    """The server answered with an error status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class StudyAidClient:
    def __init__(self, base_url: str, session: requests.Session | None = None,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()
        self.timeout = timeout
        self.user: dict | None = None

    def _request(self, method: str, path: str, **kwargs):
        response = self.http.request(method, self.base_url + path, timeout=self.timeout, **kwargs)
        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not response.ok:
            try:
                message = response.json().get("error", response.reason)
            except ValueError:
                message = response.reason
            raise ApiError(response.status_code, message)
        return response.json() if response.content else None

    # ── Auth ──────────────────────────────────────────────

    def register(self, name: str, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/register",
                             json={"name": name, "email": email, "password": password})
        self.user = data["user"]
        return self.user

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.user = data["user"]
        return self.user

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")
        self.user = None

    # ── Sessions ──────────────────────────────────────────

    def create_session(self, text: str = "", title: str = "", difficulty: str = "Medium",
                       files: list[dict] | None = None, screenshot: str | None = None) -> dict:
        body: dict = {"text": text, "title": title, "difficulty": difficulty}
        if files:
            body["files"] = files
        if screenshot:
            body["screenshot"] = screenshot
        return self._request("POST", "/api/sessions", json=body)

    def list_sessions(self, page: int = 1, limit: int = 20) -> dict:
        return self._request("GET", "/api/sessions", params={"page": page, "limit": limit})

    def get_session(self, session_id) -> dict:
        return self._request("GET", f"/api/sessions/{session_id}")

    def dashboard(self) -> dict:
        return self._request("GET", "/api/dashboard")

    def translate(self, text: str, language: str) -> str:
        return self._request("POST", "/api/translate", json={"text": text, "language": language})["text"]

    def submit_quiz(self, session_id, selected_answers: dict) -> dict:
        return self._request("POST", f"/api/sessions/{session_id}/quiz/submit",
                             json={"selectedAnswers": selected_answers})

    # ── Tool state ────────────────────────────────────────

    def get_tool_state(self, session_id, tool: str) -> dict | None:
        return self._request("GET", f"/api/sessions/{session_id}/state/{tool}")["state"]

    def save_tool_state(self, session_id, tool: str, state: dict) -> None:
        self._request("PUT", f"/api/sessions/{session_id}/state/{tool}", json={"state": state})

    def clear_tool_state(self, session_id, tool: str) -> None:
        self._request("DELETE", f"/api/sessions/{session_id}/state/{tool}")


class ApiToolStateStore:
    """Tool-state store backed by the server's state endpoints."""

    def __init__(self, client: StudyAidClient) -> None:
        if client.user is None:
            raise ValueError("Log in before using the tool-state store")
        self.client = client
        self.user_id = client.user["id"]

    def get(self, session_id: str, tool: str) -> dict | None:
        return self.client.get_tool_state(session_id, tool)

    def save(self, session_id: str, tool: str, state: dict) -> None:
        self.client.save_tool_state(session_id, tool, state)

    def clear(self, session_id: str, tool: str) -> None:
        self.client.clear_tool_state(session_id, tool)


def _study_aids(client: StudyAidClient, session_id) -> StudyAids:
    return StudyAids.from_dict(client.get_session(session_id)["studyAids"])


def open_quiz_tool(client: StudyAidClient, session_id, scheduler: TaskScheduler,
                   debounce_seconds: float = 1.0) -> QuizTool:
    """A mounted quiz whose progress is saved (debounced) to the server.

    Submitting records the attempt server-side, which scores it again and
    clears the saved progress.
    """
    aids = _study_aids(client, session_id)
    sync = ToolStateSync(ApiToolStateStore(client), session_id, "quiz", scheduler, debounce_seconds)
    tool = QuizTool(aids.quiz, sync)
    tool.on_result = lambda result: client.submit_quiz(
        session_id, tool.quiz.to_state()["selectedAnswers"],
    )
    tool.mount()
    return tool


def open_flashcards_tool(client: StudyAidClient, session_id, scheduler: TaskScheduler,
                         debounce_seconds: float = 1.0, phase_seconds: float = 0.3) -> FlashcardsTool:
    aids = _study_aids(client, session_id)
    sync = ToolStateSync(ApiToolStateStore(client), session_id, "flashcards", scheduler, debounce_seconds)
    tool = FlashcardsTool(aids.flashcards, sync, scheduler, phase_seconds)
    tool.mount()
    return tool

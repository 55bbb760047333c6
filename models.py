"""
Domain dataclasses for study sessions and their generated study aids.

Stored blobs use the camelCase keys the browser client reads and writes
(``correctAnswer``, ``studyMaterial`` ...). ``from_dict`` validates shape and
raises ``ValueError`` on anything malformed, so a half-formed AI response is
never accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any

DIFFICULTIES = ("Easy", "Medium", "Hard")
TOOLS = ("quiz", "flashcards", "tutor")
SENDERS = ("user", "ai")


def _require_str(data: dict, key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where}: '{key}' must be a non-empty string")
    return value


def _require_list(data: dict, key: str, where: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise ValueError(f"{where}: '{key}' must be a list")
    return value


@dataclass
class QuizQuestion:
    question: str
    options: list[str]
    correct_answer: str

    @classmethod
    def from_dict(cls, data: Any) -> QuizQuestion:
        if not isinstance(data, dict):
            raise ValueError("quiz question must be an object")
        options = _require_list(data, "options", "quiz question")
        if not all(isinstance(o, str) for o in options):
            raise ValueError("quiz question: options must be strings")
        return cls(
            question=_require_str(data, "question", "quiz question"),
            options=list(options),
            correct_answer=_require_str(data, "correctAnswer", "quiz question"),
        )

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }


@dataclass
class Flashcard:
    question: str
    answer: str

    @classmethod
    def from_dict(cls, data: Any) -> Flashcard:
        if not isinstance(data, dict):
            raise ValueError("flashcard must be an object")
        return cls(
            question=_require_str(data, "question", "flashcard"),
            answer=_require_str(data, "answer", "flashcard"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StudyAids:
    summary: str
    quiz: list[QuizQuestion]
    flashcards: list[Flashcard]
    difficulty: str = "Medium"

    @classmethod
    def from_dict(cls, data: Any, default_difficulty: str = "Medium") -> StudyAids:
        """Build from a generated payload. Missing difficulty falls back to the requested one."""
        if not isinstance(data, dict):
            raise ValueError("study aids must be an object")
        difficulty = data.get("difficulty") or default_difficulty
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"study aids: unknown difficulty {difficulty!r}")
        return cls(
            summary=_require_str(data, "summary", "study aids"),
            quiz=[QuizQuestion.from_dict(q) for q in _require_list(data, "quiz", "study aids")],
            flashcards=[Flashcard.from_dict(c) for c in _require_list(data, "flashcards", "study aids")],
            difficulty=difficulty,
        )

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "quiz": [q.to_dict() for q in self.quiz],
            "flashcards": [c.to_dict() for c in self.flashcards],
            "difficulty": self.difficulty,
        }


@dataclass
class QuizResult:
    score: int
    total: int
    date: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def fraction(self) -> float:
        return self.score / self.total if self.total else 0.0


@dataclass
class Message:
    sender: str
    text: str

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        if not isinstance(data, dict) or data.get("sender") not in SENDERS:
            raise ValueError("message must have sender 'user' or 'ai'")
        text = data.get("text")
        if not isinstance(text, str):
            raise ValueError("message text must be a string")
        return cls(sender=data["sender"], text=text)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FilePart:
    mime_type: str
    data: str  # base64, no data: prefix

    def to_dict(self) -> dict:
        return {"mimeType": self.mime_type, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict) -> FilePart:
        return cls(
            mime_type=data.get("mimeType") or data.get("mime_type", ""),
            data=data.get("data", ""),
        )


@dataclass
class StudyMaterialInput:
    text: str = ""
    files: list[FilePart] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.text.strip() and not self.files

    def to_dict(self) -> dict:
        return {"text": self.text, "files": [f.to_dict() for f in self.files]}

    @classmethod
    def from_dict(cls, data: dict | None) -> StudyMaterialInput:
        data = data or {}
        return cls(
            text=data.get("text", "") or "",
            files=[FilePart.from_dict(f) for f in data.get("files") or []],
        )


@dataclass
class StudySession:
    id: str
    title: str
    date: str
    study_material: StudyMaterialInput
    study_aids: StudyAids
    quiz_results: list[QuizResult] = field(default_factory=list)

    @property
    def tutor_context(self) -> str:
        """Material the tutor is grounded in: the pasted text, else the summary."""
        return self.study_material.text or self.study_aids.summary

    def best_score_percent(self) -> int | None:
        if not self.quiz_results:
            return None
        return round(max(r.fraction for r in self.quiz_results) * 100)

    def to_dict(self, include_files: bool = True) -> dict:
        material = self.study_material.to_dict()
        if not include_files:
            material["files"] = [{"mimeType": f.mime_type} for f in self.study_material.files]
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "studyMaterial": material,
            "studyAids": self.study_aids.to_dict(),
            "quizResults": [r.to_dict() for r in self.quiz_results],
        }

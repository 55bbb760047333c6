"""
Quiz runner state machine.

IN_PROGRESS -> (submit) -> SUBMITTED -> (restart) -> IN_PROGRESS

One selection per question; navigation clamps to the question range and
"next" is gated on the current question having an answer.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from models import QuizQuestion, QuizResult


class QuizStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class QuizStateError(Exception):
    """An operation was attempted in a state that does not allow it."""


class QuizSession:
    def __init__(
        self,
        questions: list[QuizQuestion],
        current_index: int = 0,
        selected_answers: dict[int, str] | None = None,
    ) -> None:
        self.questions = list(questions)
        self.status = QuizStatus.IN_PROGRESS
        self.current_index = 0
        self.selected_answers: dict[int, str] = {}
        self.result: QuizResult | None = None
        self.restore(current_index, selected_answers or {})

    # ── Derived state ─────────────────────────────────────────

    @property
    def last_index(self) -> int:
        return max(0, len(self.questions) - 1)

    @property
    def current_question(self) -> QuizQuestion | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_submitted(self) -> bool:
        return self.status is QuizStatus.SUBMITTED

    @property
    def can_advance(self) -> bool:
        return (
            not self.is_submitted
            and self.current_index < self.last_index
            and self.current_index in self.selected_answers
        )

    @property
    def can_retreat(self) -> bool:
        return not self.is_submitted and self.current_index > 0

    @property
    def shows_submit(self) -> bool:
        return bool(self.questions) and self.current_index == self.last_index

    @property
    def can_submit(self) -> bool:
        return (
            not self.is_submitted
            and bool(self.questions)
            and len(self.selected_answers) == len(self.questions)
        )

    @property
    def score(self) -> int:
        return sum(
            1
            for i, q in enumerate(self.questions)
            if self.selected_answers.get(i) == q.correct_answer
        )

    # ── Transitions ───────────────────────────────────────────

    def select_answer(self, question_index: int, option: str) -> bool:
        """Record ``option`` for a question, replacing any earlier choice."""
        if self.is_submitted:
            return False
        if not 0 <= question_index < len(self.questions):
            raise ValueError(f"No question at index {question_index}")
        if option not in self.questions[question_index].options:
            raise ValueError(f"{option!r} is not an option for question {question_index}")
        self.selected_answers[question_index] = option
        return True

    def advance(self) -> bool:
        if not self.can_advance:
            return False
        self.current_index = min(self.last_index, self.current_index + 1)
        return True

    def retreat(self) -> bool:
        if not self.can_retreat:
            return False
        self.current_index = max(0, self.current_index - 1)
        return True

    def grade(self, now: datetime | None = None) -> QuizResult:
        """Score the answers without ending the quiz."""
        if self.is_submitted:
            raise QuizStateError("Quiz already submitted")
        if not self.questions:
            raise QuizStateError("Quiz has no questions")
        if not self.can_submit:
            raise QuizStateError("Every question must be answered before submitting")
        return QuizResult(
            score=self.score,
            total=len(self.questions),
            date=(now or datetime.now()).isoformat(),
        )

    def finish(self, result: QuizResult) -> QuizResult:
        """Move to SUBMITTED with a result from ``grade``."""
        if self.is_submitted:
            raise QuizStateError("Quiz already submitted")
        self.status = QuizStatus.SUBMITTED
        self.result = result
        return result

    def submit(self, now: datetime | None = None) -> QuizResult:
        return self.finish(self.grade(now))

    def restart(self) -> None:
        self.status = QuizStatus.IN_PROGRESS
        self.current_index = 0
        self.selected_answers = {}
        self.result = None

    # ── Persistence shape ─────────────────────────────────────

    def restore(self, current_index: int, selected_answers: dict) -> None:
        """Apply a saved position, ignoring entries that no longer fit the quiz."""
        answers = {}
        for key, option in selected_answers.items():
            try:
                idx = int(key)
            except (TypeError, ValueError):
                continue
            if 0 <= idx < len(self.questions) and isinstance(option, str):
                answers[idx] = option
        self.selected_answers = answers
        self.current_index = min(max(0, int(current_index)), self.last_index)

    def to_state(self) -> dict:
        return {
            "currentQuestionIndex": self.current_index,
            "selectedAnswers": {str(k): v for k, v in sorted(self.selected_answers.items())},
        }

    def review(self) -> list[dict]:
        """Per-question breakdown shown after submission."""
        return [
            {
                "question": q.question,
                "options": list(q.options),
                "correctAnswer": q.correct_answer,
                "selected": self.selected_answers.get(i),
                "isCorrect": self.selected_answers.get(i) == q.correct_answer,
            }
            for i, q in enumerate(self.questions)
        ]

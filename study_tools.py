"""
The three resumable study tools, each wired to its own ``ToolStateSync``.

Save policy differs per tool:
- QuizTool: debounced; nothing saved once submitted; cleared on submit/restart.
- FlashcardsTool: debounced; only the settled index is saved, never one
  reached mid-slide.
- TutorTool: saved immediately on every message-list change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from carousel import DEFAULT_PHASE_SECONDS, CarouselController
from models import Flashcard, Message, QuizQuestion, QuizResult
from pagination import paginate
from quiz_session import QuizSession
from scheduling import TaskScheduler
from tool_state import ToolStateSync

logger = logging.getLogger(__name__)

TUTOR_GREETING = "Hello! Ask me anything about your study material."
TUTOR_ERROR_REPLY = "Sorry, I encountered an error. Please try again."


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class QuizTool:
    def __init__(
        self,
        questions: list[QuizQuestion],
        sync: ToolStateSync,
        on_result: Callable[[QuizResult], None] | None = None,
    ) -> None:
        self.quiz = QuizSession(questions)
        self.sync = sync
        self.on_result = on_result

    @property
    def loading(self) -> bool:
        return not self.sync.state_loaded

    def mount(self) -> None:
        saved = self.sync.load()
        if isinstance(saved, dict) and _is_int(saved.get("currentQuestionIndex")):
            self.quiz.restore(saved["currentQuestionIndex"], saved.get("selectedAnswers") or {})

    def select_answer(self, option: str, question_index: int | None = None) -> bool:
        index = self.quiz.current_index if question_index is None else question_index
        changed = self.quiz.select_answer(index, option)
        if changed:
            self._persist()
        return changed

    def next(self) -> bool:
        moved = self.quiz.advance()
        if moved:
            self._persist()
        return moved

    def prev(self) -> bool:
        moved = self.quiz.retreat()
        if moved:
            self._persist()
        return moved

    def submit(self, now: datetime | None = None) -> QuizResult:
        """Record the attempt, then end the quiz and clear saved progress.

        If recording fails the quiz stays in progress with its answers, so the
        submit can be retried.
        """
        result = self.quiz.grade(now)
        if self.on_result:
            self.on_result(result)
        self.quiz.finish(result)
        self.sync.clear()
        logger.info("Quiz submitted for session %s: %d/%d",
                    self.sync.session_id, result.score, result.total)
        return result

    def restart(self) -> None:
        self.quiz.restart()
        self.sync.clear()

    def unmount(self) -> None:
        if not self.quiz.is_submitted:
            self.sync.flush()

    def _persist(self) -> None:
        if not self.quiz.is_submitted:
            self.sync.save(self.quiz.to_state())


class FlashcardsTool:
    def __init__(
        self,
        cards: list[Flashcard],
        sync: ToolStateSync,
        scheduler: TaskScheduler,
        phase_seconds: float = DEFAULT_PHASE_SECONDS,
    ) -> None:
        self.cards = list(cards)
        self.sync = sync
        self.carousel = CarouselController(
            len(self.cards), scheduler, phase_seconds, on_idle=self._on_settled,
        )
        self.translated_cards: list[Flashcard] | None = None
        self.language = ""

    @property
    def loading(self) -> bool:
        return not self.sync.state_loaded

    @property
    def current_index(self) -> int:
        return self.carousel.current_index

    @property
    def current_card(self) -> Flashcard | None:
        deck = self.translated_cards or self.cards
        if not deck:
            return None
        return deck[self.carousel.current_index]

    @property
    def pages(self) -> list:
        return paginate(len(self.cards), self.carousel.current_index + 1)

    def mount(self) -> None:
        if not self.cards:
            self.sync.mark_loaded()
            return
        saved = self.sync.load()
        if isinstance(saved, dict):
            index = saved.get("currentIndex")
            if _is_int(index) and 0 <= index < len(self.cards):
                self.carousel.current_index = index

    def next(self) -> bool:
        return self.carousel.next()

    def prev(self) -> bool:
        return self.carousel.prev()

    def jump(self, index: int) -> bool:
        return self.carousel.jump(index)

    def flip(self) -> bool:
        return self.carousel.flip()

    def translate(self, language: str, translator: Callable[[list[Flashcard], str], list[Flashcard]]) -> None:
        """Swap in a translated deck; an empty language restores the original."""
        if not language:
            self.show_original()
            return
        self.carousel.set_busy(True)
        try:
            self.translated_cards = translator(self.cards, language)
            self.language = language
        except Exception:
            self.show_original()
            raise
        finally:
            self.carousel.set_busy(False)

    def show_original(self) -> None:
        self.translated_cards = None
        self.language = ""

    def unmount(self) -> None:
        self.sync.flush()

    def _on_settled(self, index: int) -> None:
        self.sync.save({"currentIndex": index})


class TutorTool:
    def __init__(self, sync: ToolStateSync, reply: Callable[[list[Message], str], str]) -> None:
        self.sync = sync
        self.reply = reply
        self.messages: list[Message] = []
        self.waiting = False

    @property
    def loading(self) -> bool:
        return not self.sync.state_loaded

    def mount(self) -> None:
        saved = self.sync.load()
        messages = None
        if isinstance(saved, dict) and isinstance(saved.get("messages"), list):
            try:
                messages = [Message.from_dict(m) for m in saved["messages"]]
            except ValueError:
                logger.warning("Discarding malformed tutor history for session %s", self.sync.session_id)
        self.messages = messages if messages is not None else [Message("ai", TUTOR_GREETING)]

    def send(self, text: str) -> Message:
        if not text.strip():
            raise ValueError("Message must not be empty")
        if self.waiting:
            raise RuntimeError("A tutor reply is already pending")
        history = list(self.messages)
        self.messages.append(Message("user", text))
        self._persist()

        self.waiting = True
        try:
            answer = self.reply(history, text)
        except Exception:
            logger.exception("Tutor chat failed for session %s", self.sync.session_id)
            answer = TUTOR_ERROR_REPLY
        finally:
            self.waiting = False

        message = Message("ai", answer)
        self.messages.append(message)
        self._persist()
        return message

    def _persist(self) -> None:
        self.sync.save({"messages": [m.to_dict() for m in self.messages]})

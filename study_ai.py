"""Study AI — Gemini-backed generation of study aids, tutoring and translation.

One ``StudyAI`` instance is built by ``create_app`` and shared through
``app.extensions["study_ai"]``. Every failure (transport, malformed JSON,
missing fields) is raised as ``StudyAIError``; callers never see partial
results.
"""

from __future__ import annotations

import base64
import json
import logging

import google.generativeai as genai

from models import Flashcard, Message, StudyAids, StudyMaterialInput

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class StudyAIError(Exception):
    """The generative model call failed or returned unusable output."""


FLASHCARDS_SCHEMA = {
    "type": "ARRAY",
    "description": "A set of 15 flashcards with a question and a concise answer.",
    "items": {
        "type": "OBJECT",
        "properties": {
            "question": {"type": "STRING", "description": "The question for the front of the flashcard."},
            "answer": {"type": "STRING", "description": "The answer for the back of the flashcard."},
        },
        "required": ["question", "answer"],
    },
}

STUDY_AIDS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "STRING",
            "description": (
                "A detailed, point-wise summary of the provided text, formatted using "
                "markdown bullet points (e.g., '* Point 1'). Do not use bold formatting."
            ),
        },
        "quiz": {
            "type": "ARRAY",
            "description": "A multiple-choice quiz with 10 questions based on the text.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "question": {"type": "STRING", "description": "The quiz question."},
                    "options": {
                        "type": "ARRAY",
                        "description": "An array of 4 possible answers.",
                        "items": {"type": "STRING"},
                    },
                    "correctAnswer": {
                        "type": "STRING",
                        "description": "The correct answer, copied exactly from the options array.",
                    },
                },
                "required": ["question", "options", "correctAnswer"],
            },
        },
        "flashcards": FLASHCARDS_SCHEMA,
        "difficulty": {
            "type": "STRING",
            "description": "The difficulty of the generated quiz: Easy, Medium or Hard.",
        },
    },
    "required": ["summary", "quiz", "flashcards", "difficulty"],
}

GENERATE_PROMPT = """Based on the following study material (which may include text and/or files like PDFs and images), generate:
1. A detailed, comprehensive summary presented in a point-wise format using markdown bullet points. Do not use any bold formatting in the summary.
2. A 10-question multiple-choice quiz with a difficulty level of: {difficulty}.
3. 15 flashcards.

Text Material (if any):
---
{text}
---

Analyze all provided content to create the study aids. Return the specified JSON format, with '{difficulty}' as the value of the 'difficulty' field."""

TUTOR_SYSTEM = """You are a helpful and encouraging AI tutor. Your knowledge is strictly limited to the following study material. Do not answer questions outside of this context. Be concise and clear in your explanations.

--- STUDY MATERIAL ---
{material}
--- END STUDY MATERIAL ---"""

TRANSLATE_PROMPT = """Translate the following text to {language}. Return ONLY the translated text, without any introductory phrases, explanations, or markdown formatting.

Text to translate:
---
{text}
---"""

TRANSLATE_CARDS_PROMPT = """Translate the 'question' and 'answer' values for each object in the following JSON array to {language}. Return the translated array in the exact same JSON structure. Do not add any extra commentary or text.

JSON to translate:
---
{cards}
---"""


def _history_for_chat(history: list[Message]) -> list[dict]:
    """Convert tutor messages to Gemini chat turns.

    A chat must open with a user turn, so AI messages before the first user
    message (the greeting) are left out.
    """
    turns: list[dict] = []
    for msg in history:
        if not turns and msg.sender != "user":
            continue
        role = "user" if msg.sender == "user" else "model"
        turns.append({"role": role, "parts": [msg.text]})
    return turns


class StudyAI:
    """Thin wrapper over ``google.generativeai`` for the four study calls."""

    def __init__(self, api_key: str, model_name: str = DEFAULT_MODEL) -> None:
        if not api_key:
            raise ValueError("A Google API key is required")
        # Process-wide in the SDK; one key serves every app in the process.
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)

    def _generate_json(self, contents, schema: dict, what: str):
        try:
            response = self.model.generate_content(
                contents,
                generation_config=genai.GenerationConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
            )
            return json.loads(response.text)
        except Exception as e:
            logger.exception("Gemini %s call failed", what)
            raise StudyAIError(f"Failed to {what}.") from e

    def generate_study_aids(self, material: StudyMaterialInput, difficulty: str) -> StudyAids:
        """Summary, 10-question quiz and 15 flashcards for ``material``."""
        parts: list = [GENERATE_PROMPT.format(difficulty=difficulty, text=material.text)]
        for f in material.files:
            parts.append({"mime_type": f.mime_type, "data": base64.b64decode(f.data)})

        parsed = self._generate_json(parts, STUDY_AIDS_SCHEMA, "generate study aids")
        try:
            aids = StudyAids.from_dict(parsed, default_difficulty=difficulty)
        except ValueError as e:
            logger.error("Gemini returned malformed study aids: %s", e)
            raise StudyAIError("Failed to generate study aids.") from e
        logger.info("Generated study aids: %d questions, %d flashcards",
                    len(aids.quiz), len(aids.flashcards))
        return aids

    def tutor_reply(self, study_material: str, history: list[Message], message: str) -> str:
        """Answer ``message`` as a tutor grounded in ``study_material``."""
        try:
            model = genai.GenerativeModel(
                self.model_name,
                system_instruction=TUTOR_SYSTEM.format(material=study_material),
            )
            chat = model.start_chat(history=_history_for_chat(history))
            response = chat.send_message(message)
            return response.text
        except Exception as e:
            logger.exception("Gemini tutor call failed")
            raise StudyAIError("Failed to get a tutor reply.") from e

    def translate_text(self, text: str, language: str) -> str:
        try:
            response = self.model.generate_content(
                TRANSLATE_PROMPT.format(language=language, text=text)
            )
            return response.text.strip()
        except Exception as e:
            logger.exception("Gemini translation failed")
            raise StudyAIError("Failed to translate text.") from e

    def translate_flashcards(self, cards: list[Flashcard], language: str) -> list[Flashcard]:
        """Translate a deck; the result has the same length and order."""
        prompt = TRANSLATE_CARDS_PROMPT.format(
            language=language, cards=json.dumps([c.to_dict() for c in cards]),
        )
        parsed = self._generate_json(prompt, FLASHCARDS_SCHEMA, "translate flashcards")
        try:
            if not isinstance(parsed, list):
                raise ValueError("expected a JSON array")
            translated = [Flashcard.from_dict(c) for c in parsed]
        except ValueError as e:
            logger.error("Gemini returned malformed flashcards: %s", e)
            raise StudyAIError("Failed to translate flashcards.") from e
        if len(translated) != len(cards):
            logger.error("Translated deck has %d cards, expected %d", len(translated), len(cards))
            raise StudyAIError("Failed to translate flashcards.")
        return translated

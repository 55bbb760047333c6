"""Per-session study tool routes: saved tool state, quiz, flashcards, tutor."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from db_stores import StudySessionStoreDB, ToolStateStoreDB
from extensions import get_study_ai
from helpers import current_user_id, language_name, owned_session
from models import TOOLS
from pagination import paginate
from quiz_session import QuizStateError
from scheduling import ManualScheduler
from study_ai import StudyAIError
from study_tools import FlashcardsTool, QuizTool, TutorTool
from tool_state import ToolStateSync

bp = Blueprint("tools", __name__)


def _not_found():
    return jsonify({"error": "Session not found."}), 404


def _sync(session_id, tool: str) -> ToolStateSync:
    return ToolStateSync(ToolStateStoreDB(current_user_id()), session_id, tool)


# ── Raw tool state ──────────────────────────────────────────

@bp.route("/api/sessions/<session_id>/state/<tool>", methods=["GET", "PUT", "DELETE"])
@login_required
def tool_state(session_id, tool):
    if tool not in TOOLS:
        return jsonify({"error": f"Unknown tool: {tool}"}), 400
    if owned_session(session_id) is None:
        return _not_found()

    store = ToolStateStoreDB(current_user_id())
    if request.method == "GET":
        return jsonify({"state": store.get(session_id, tool)})

    if request.method == "PUT":
        data = request.get_json(silent=True) or {}
        state = data.get("state")
        if not isinstance(state, dict):
            return jsonify({"error": "state must be a JSON object"}), 400
        store.save(session_id, tool, state)
        return jsonify({"success": True})

    store.clear(session_id, tool)
    return jsonify({"success": True})


# ── Quiz ────────────────────────────────────────────────────

@bp.route("/api/sessions/<session_id>/quiz/submit", methods=["POST"])
@login_required
def quiz_submit(session_id):
    session = owned_session(session_id)
    if session is None:
        return _not_found()

    store = StudySessionStoreDB(current_user_id())
    tool = QuizTool(
        session.study_aids.quiz,
        _sync(session_id, "quiz"),
        on_result=lambda result: store.add_quiz_result(session_id, result),
    )
    tool.mount()

    data = request.get_json(silent=True) or {}
    answers = data.get("selectedAnswers") or {}
    if not isinstance(answers, dict):
        return jsonify({"error": "selectedAnswers must be an object"}), 400
    try:
        for key, option in answers.items():
            tool.select_answer(option, int(key))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = tool.submit()
    except QuizStateError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "score": result.score,
        "total": result.total,
        "date": result.date,
        "review": tool.quiz.review(),
    })


@bp.route("/api/sessions/<session_id>/quiz/restart", methods=["POST"])
@login_required
def quiz_restart(session_id):
    session = owned_session(session_id)
    if session is None:
        return _not_found()
    QuizTool(session.study_aids.quiz, _sync(session_id, "quiz")).restart()
    return jsonify({"success": True})


# ── Flashcards ──────────────────────────────────────────────

def _flashcards_tool(session) -> FlashcardsTool:
    return FlashcardsTool(
        session.study_aids.flashcards,
        _sync(session.id, "flashcards"),
        ManualScheduler(),
        current_app.config.get("CAROUSEL_PHASE_SECONDS", 0.3),
    )


@bp.route("/api/sessions/<session_id>/flashcards")
@login_required
def flashcards(session_id):
    session = owned_session(session_id)
    if session is None:
        return _not_found()

    tool = _flashcards_tool(session)
    tool.mount()
    total = len(tool.cards)
    try:
        page = int(request.args.get("page", tool.current_index + 1))
    except (TypeError, ValueError):
        page = tool.current_index + 1
    page = min(max(1, page), max(1, total))

    return jsonify({
        "cards": [c.to_dict() for c in tool.cards],
        "currentIndex": tool.current_index,
        "total": total,
        "pages": paginate(total, page),
    })


@bp.route("/api/sessions/<session_id>/flashcards/translate", methods=["POST"])
@login_required
def flashcards_translate(session_id):
    data = request.get_json(silent=True) or {}
    language = data.get("language", "")
    name = language_name(language)
    if language and name is None:
        return jsonify({"error": f"Unsupported language: {language}"}), 400

    session = owned_session(session_id)
    if session is None:
        return _not_found()

    tool = _flashcards_tool(session)
    if name:
        ai = get_study_ai()
        if ai is None:
            return jsonify({"error": "Translation is not configured on this server."}), 503
        try:
            tool.translate(name, ai.translate_flashcards)
        except StudyAIError:
            return jsonify({"error": "Failed to translate flashcards."}), 502

    deck = tool.translated_cards or tool.cards
    return jsonify({"language": language, "cards": [c.to_dict() for c in deck]})


# ── Tutor ───────────────────────────────────────────────────

def _tutor_tool(session) -> TutorTool:
    def reply(history, message):
        ai = get_study_ai()
        return ai.tutor_reply(session.tutor_context, history, message)

    return TutorTool(_sync(session.id, "tutor"), reply)


@bp.route("/api/sessions/<session_id>/tutor")
@login_required
def tutor_history(session_id):
    session = owned_session(session_id)
    if session is None:
        return _not_found()
    tool = _tutor_tool(session)
    tool.mount()
    return jsonify({"messages": [m.to_dict() for m in tool.messages]})


@bp.route("/api/sessions/<session_id>/tutor/message", methods=["POST"])
@login_required
def tutor_message(session_id):
    data = request.get_json(silent=True) or {}
    text = str(data.get("message") or "")
    if not text.strip():
        return jsonify({"error": "message is required"}), 400

    session = owned_session(session_id)
    if session is None:
        return _not_found()
    if get_study_ai() is None:
        return jsonify({"error": "The tutor is not configured on this server."}), 503

    tool = _tutor_tool(session)
    tool.mount()
    reply = tool.send(text)
    return jsonify({
        "reply": reply.to_dict(),
        "messages": [m.to_dict() for m in tool.messages],
    })

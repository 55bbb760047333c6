"""Study session routes: generate, history, summary and translation."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required

from db_stores import StudySessionStoreDB
from extensions import get_study_ai, limiter
from helpers import (
    EMPTY_MATERIAL_ERROR,
    UploadError,
    current_user_id,
    default_title,
    file_part_from_base64,
    file_part_from_bytes,
    file_part_from_data_url,
    language_name,
    owned_session,
    paginate_args,
    paginated_response,
    summary_points,
)
from models import DIFFICULTIES, StudyMaterialInput
from study_ai import StudyAIError

logger = logging.getLogger(__name__)

bp = Blueprint("sessions", __name__)

AI_UNAVAILABLE = "Study aid generation is not configured on this server."


def _material_from_request() -> tuple[str, str, StudyMaterialInput]:
    """Read (title, difficulty, material) from a JSON or multipart body."""
    files = []
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise UploadError("Request body must be a JSON object")
        for f in data.get("files") or []:
            if not isinstance(f, dict):
                raise UploadError("Each file must be an object with mime_type and data")
            mime_type = f.get("mime_type") or f.get("mimeType") or ""
            files.append(file_part_from_base64(mime_type, str(f.get("data", ""))))
    else:
        data = request.form
        for upload in request.files.getlist("file"):
            if upload and upload.filename:
                files.append(file_part_from_bytes(upload.mimetype, upload.read()))

    screenshot = data.get("screenshot")
    if screenshot:
        files.append(file_part_from_data_url(str(screenshot)))

    title = str(data.get("title") or "").strip()
    difficulty = str(data.get("difficulty") or "Medium")
    text = str(data.get("text") or "")
    return title, difficulty, StudyMaterialInput(text=text, files=files)


@bp.route("/api/sessions", methods=["POST"])
@login_required
@limiter.limit("20 per hour")
def create_session():
    try:
        title, difficulty, material = _material_from_request()
    except UploadError as e:
        return jsonify({"error": str(e)}), 400

    if difficulty not in DIFFICULTIES:
        return jsonify({"error": f"difficulty must be one of {', '.join(DIFFICULTIES)}"}), 400
    if material.is_empty():
        return jsonify({"error": EMPTY_MATERIAL_ERROR}), 400

    ai = get_study_ai()
    if ai is None:
        return jsonify({"error": AI_UNAVAILABLE}), 503

    try:
        aids = ai.generate_study_aids(material, difficulty)
    except StudyAIError:
        return jsonify({"error": "Failed to generate study aids. Please try again."}), 502

    session = StudySessionStoreDB(current_user_id()).create(
        title or default_title(), material, aids,
    )
    logger.info("Created study session %s (%s, %d files)",
                session.id, difficulty, len(material.files))
    return jsonify(session.to_dict(include_files=False)), 201


@bp.route("/api/sessions")
@login_required
def list_sessions():
    page, limit = paginate_args()
    store = StudySessionStoreDB(current_user_id())
    sessions = store.list_sessions(limit=limit, offset=(page - 1) * limit)
    return jsonify(paginated_response(
        [s.to_dict(include_files=False) for s in sessions], store.count(), page, limit,
    ))


@bp.route("/api/sessions/<session_id>")
@login_required
def get_session(session_id):
    session = owned_session(session_id)
    if session is None:
        return jsonify({"error": "Session not found."}), 404
    return jsonify(session.to_dict())


@bp.route("/api/sessions/<session_id>/summary")
@login_required
def get_summary(session_id):
    session = owned_session(session_id)
    if session is None:
        return jsonify({"error": "Session not found."}), 404
    summary = session.study_aids.summary
    return jsonify({"summary": summary, "points": summary_points(summary)})


@bp.route("/api/sessions/<session_id>/summary/translate", methods=["POST"])
@login_required
def translate_summary(session_id):
    data = request.get_json(silent=True) or {}
    language = data.get("language", "")
    name = language_name(language)
    if name is None:
        return jsonify({"error": f"Unsupported language: {language}"}), 400

    session = owned_session(session_id)
    if session is None:
        return jsonify({"error": "Session not found."}), 404

    ai = get_study_ai()
    if ai is None:
        return jsonify({"error": AI_UNAVAILABLE}), 503
    try:
        translated = ai.translate_text(session.study_aids.summary, name)
    except StudyAIError:
        return jsonify({"error": "Translation failed. Please try again."}), 502
    return jsonify({
        "language": language,
        "summary": translated,
        "points": summary_points(translated),
    })


@bp.route("/api/translate", methods=["POST"])
@login_required
def translate():
    data = request.get_json(silent=True) or {}
    text = str(data.get("text") or "")
    language = data.get("language", "")
    if not text.strip():
        return jsonify({"error": "text is required"}), 400
    name = language_name(language)
    if name is None:
        return jsonify({"error": f"Unsupported language: {language}"}), 400

    ai = get_study_ai()
    if ai is None:
        return jsonify({"error": AI_UNAVAILABLE}), 503
    try:
        translated = ai.translate_text(text, name)
    except StudyAIError:
        return jsonify({"error": "Translation failed. Please try again."}), 502
    return jsonify({"language": language, "text": translated})

"""Dashboard route: streak, top subjects and quiz analytics."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from analytics import dashboard_summary
from db_stores import StudySessionStoreDB
from helpers import current_user_id

bp = Blueprint("dashboard", __name__)


@bp.route("/api/dashboard")
@login_required
def dashboard():
    sessions = StudySessionStoreDB(current_user_id()).list_sessions()
    return jsonify(dashboard_summary(sessions))

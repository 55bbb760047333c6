"""
User Authentication — Flask-Login blueprint.

JSON endpoints for sign up, sign in, sign out, the current user and their
recent account activity.
Passwords are hashed with werkzeug.security.
"""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import LoginManager, UserMixin, current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from audit import events_for_user, log_event
from database import get_db
from extensions import limiter

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str):
        self.id = id
        self.name = name
        self.email = email

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute("SELECT id, name, email FROM users WHERE id = ?", (user_id,)).fetchone()
        if row:
            return User(row["id"], row["name"], row["email"])
        return None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash FROM users WHERE email = ?", (email,),
        ).fetchone()


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required."}), 401


def _validate_password(password: str) -> str | None:
    """Return an error message if password is too short, else None."""
    min_len = current_app.config.get("MIN_PASSWORD_LENGTH", 6)
    if len(password) < min_len:
        return f"Password should be at least {min_len} characters."
    return None


def _credentials() -> tuple[str, str]:
    data = request.get_json(silent=True) or {}
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))
    return email, password


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    email, password = _credentials()

    if not name or not email or not password:
        return jsonify({"error": "Name, email and password are required."}), 400

    pw_error = _validate_password(password)
    if pw_error:
        return jsonify({"error": pw_error}), 400

    if User.get_by_email(email):
        return jsonify({"error": "An account with this email already exists."}), 409

    db = get_db()
    cur = db.execute(
        "INSERT INTO users (name, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
        (name, email, generate_password_hash(password), datetime.now().isoformat()),
    )
    db.commit()
    user_id = cur.lastrowid

    log_event("register", user_id, f"email={email}")
    user = User(user_id, name, email)
    login_user(user, remember=True)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
def login():
    email, password = _credentials()
    if not email or not password:
        return jsonify({"error": "Email and password are required."}), 400

    row = User.get_by_email(email)
    if not row or not check_password_hash(row["password_hash"], password):
        log_event("login_failed", row["id"] if row else None, f"email={email}")
        return jsonify({"error": "Invalid email or password."}), 401

    user = User(row["id"], row["name"], row["email"])
    login_user(user, remember=True)
    log_event("login_success", row["id"])
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    log_event("logout", uid)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/activity")
@login_required
def activity():
    """Recent sign-in and account events for the current user, newest first."""
    limit = min(max(request.args.get("limit", 20, type=int), 1), 100)
    return jsonify({"events": events_for_user(current_user.id, limit)})

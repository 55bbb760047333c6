"""
Shared extension objects: the rate limiter and the injected AI client.
"""

from __future__ import annotations

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["200 per hour"])


def get_study_ai():
    """Return the StudyAI client registered on the current app, or None."""
    return current_app.extensions.get("study_ai")

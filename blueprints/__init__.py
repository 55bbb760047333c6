"""
Blueprint registration for the study aid companion.

Every API route carries its full /api/... path, so no URL prefixes are set here.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.sessions import bp as sessions_bp
    from blueprints.tools import bp as tools_bp
    from blueprints.dashboard import bp as dashboard_bp

    app.register_blueprint(sessions_bp)
    app.register_blueprint(tools_bp)
    app.register_blueprint(dashboard_bp)

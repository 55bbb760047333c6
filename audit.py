"""
Audit trail for account security events (register, login, logout).

Each event is stored in the audit_log table and echoed to the logger.
A failed insert is logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from flask import has_request_context, request

from database import get_db

logger = logging.getLogger(__name__)


def log_event(action: str, user_id: int | None = None, detail: str = "") -> None:
    """Record one security event for ``user_id``."""
    ip = (request.remote_addr or "") if has_request_context() else ""
    ua = request.headers.get("User-Agent", "") if has_request_context() else ""

    try:
        db = get_db()
        db.execute(
            "INSERT INTO audit_log (user_id, action, detail, ip_address, user_agent, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, action, detail, ip, ua, datetime.now().isoformat()),
        )
        db.commit()
    except sqlite3.Error:
        logger.warning("Could not write audit event %s for user %s", action, user_id, exc_info=True)

    logger.info("audit: %s user_id=%s detail=%s ip=%s", action, user_id, detail, ip)


def events_for_user(user_id: int, limit: int = 50) -> list[dict]:
    """Most recent audit events for one user, newest first."""
    rows = get_db().execute(
        "SELECT action, detail, ip_address, created_at FROM audit_log "
        "WHERE user_id = ? ORDER BY id DESC LIMIT ?",
        (user_id, limit),
    ).fetchall()
    return [dict(r) for r in rows]

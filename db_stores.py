"""
DB-backed store classes for the study aid companion.

Each store is scoped to one user and reads/writes SQLite through
``database.get_db``. JSON payloads (study material, study aids, tool state)
are stored as TEXT columns.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime

from database import get_db
from models import TOOLS, QuizResult, StudyAids, StudyMaterialInput, StudySession


class StoreError(Exception):
    """A read or write against the relational store failed."""


def _session_pk(session_id) -> int | None:
    try:
        return int(session_id)
    except (TypeError, ValueError):
        return None


# ── Study Sessions ───────────────────────────────────────────────────


class StudySessionStoreDB:
    """Study sessions and their quiz history for one user."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def _row_to_session(self, row: sqlite3.Row, results: list[QuizResult]) -> StudySession:
        return StudySession(
            id=str(row["id"]),
            title=row["title"],
            date=row["created_at"],
            study_material=StudyMaterialInput.from_dict(json.loads(row["study_material"] or "{}")),
            study_aids=StudyAids.from_dict(json.loads(row["study_aids"] or "{}")),
            quiz_results=results,
        )

    def _results_for(self, session_ids: list[int]) -> dict[int, list[QuizResult]]:
        if not session_ids:
            return {}
        db = get_db()
        placeholders = ",".join("?" for _ in session_ids)
        rows = db.execute(
            f"SELECT session_id, score, total, created_at FROM quiz_results "
            f"WHERE session_id IN ({placeholders}) ORDER BY created_at DESC, id DESC",
            session_ids,
        ).fetchall()
        grouped: dict[int, list[QuizResult]] = {sid: [] for sid in session_ids}
        for r in rows:
            grouped[r["session_id"]].append(
                QuizResult(score=r["score"], total=r["total"], date=r["created_at"])
            )
        return grouped

    def count(self) -> int:
        db = get_db()
        try:
            row = db.execute(
                "SELECT COUNT(*) AS n FROM study_sessions WHERE user_id = ?", (self.user_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Counting study sessions failed: {e}") from e
        return row["n"]

    def list_sessions(self, limit: int | None = None, offset: int = 0) -> list[StudySession]:
        """Sessions newest first, each with its quiz results newest first."""
        db = get_db()
        sql = "SELECT * FROM study_sessions WHERE user_id = ? ORDER BY created_at DESC, id DESC"
        params: list = [self.user_id]
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params += [limit, offset]
        try:
            rows = db.execute(sql, params).fetchall()
            results = self._results_for([r["id"] for r in rows])
            return [self._row_to_session(r, results.get(r["id"], [])) for r in rows]
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(f"Fetching study history failed: {e}") from e

    def get(self, session_id) -> StudySession | None:
        pk = _session_pk(session_id)
        if pk is None:
            return None
        db = get_db()
        try:
            row = db.execute(
                "SELECT * FROM study_sessions WHERE id = ? AND user_id = ?",
                (pk, self.user_id),
            ).fetchone()
            if not row:
                return None
            return self._row_to_session(row, self._results_for([pk]).get(pk, []))
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(f"Fetching study session {session_id} failed: {e}") from e

    def create(self, title: str, material: StudyMaterialInput, aids: StudyAids) -> StudySession:
        db = get_db()
        now = datetime.now().isoformat()
        try:
            cur = db.execute(
                "INSERT INTO study_sessions (user_id, title, study_material, study_aids, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (self.user_id, title, json.dumps(material.to_dict()),
                 json.dumps(aids.to_dict()), now),
            )
            db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Saving study session failed: {e}") from e
        return StudySession(
            id=str(cur.lastrowid),
            title=title,
            date=now,
            study_material=material,
            study_aids=aids,
            quiz_results=[],
        )

    def add_quiz_result(self, session_id, result: QuizResult) -> QuizResult | None:
        """Append a quiz attempt. Returns None if the session is not this user's."""
        pk = _session_pk(session_id)
        if pk is None:
            return None
        db = get_db()
        try:
            owned = db.execute(
                "SELECT 1 FROM study_sessions WHERE id = ? AND user_id = ?", (pk, self.user_id),
            ).fetchone()
            if not owned:
                return None
            date = result.date or datetime.now().isoformat()
            db.execute(
                "INSERT INTO quiz_results (session_id, score, total, created_at) VALUES (?, ?, ?, ?)",
                (pk, result.score, result.total, date),
            )
            db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Saving quiz result failed: {e}") from e
        return QuizResult(score=result.score, total=result.total, date=date)


# ── Tool State ───────────────────────────────────────────────────────


class ToolStateStoreDB:
    """Keyed upsert/delete of per-(user, session, tool) JSON state."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    @staticmethod
    def _check_tool(tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool}")

    def get(self, session_id, tool: str) -> dict | None:
        self._check_tool(tool)
        pk = _session_pk(session_id)
        if pk is None:
            return None
        db = get_db()
        row = db.execute(
            "SELECT state FROM tool_states WHERE user_id = ? AND session_id = ? AND tool = ?",
            (self.user_id, pk, tool),
        ).fetchone()
        return json.loads(row["state"]) if row else None

    def save(self, session_id, tool: str, state: dict) -> None:
        self._check_tool(tool)
        pk = _session_pk(session_id)
        if pk is None:
            raise ValueError(f"Invalid session id: {session_id!r}")
        db = get_db()
        db.execute(
            "INSERT INTO tool_states (user_id, session_id, tool, state, updated_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id, session_id, tool) DO UPDATE SET "
            "state = excluded.state, updated_at = excluded.updated_at",
            (self.user_id, pk, tool, json.dumps(state), datetime.now().isoformat()),
        )
        db.commit()

    def clear(self, session_id, tool: str) -> None:
        self._check_tool(tool)
        pk = _session_pk(session_id)
        if pk is None:
            return
        db = get_db()
        db.execute(
            "DELETE FROM tool_states WHERE user_id = ? AND session_id = ? AND tool = ?",
            (self.user_id, pk, tool),
        )
        db.commit()

"""Tests for database.py — schema creation, foreign keys, migrations."""

import sqlite3

import pytest

from database import get_db, init_db, run_migrations


class TestSchema:
    """Verify all tables are created correctly."""

    def test_tables_exist(self, app):
        with app.app_context():
            db = get_db()
            tables = [r["name"] for r in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()]
            for t in ["audit_log", "quiz_results", "schema_version",
                      "study_sessions", "tool_states", "users"]:
                assert t in tables, f"Table {t} not found"

    def test_wal_mode(self, app):
        with app.app_context():
            mode = get_db().execute("PRAGMA journal_mode").fetchone()[0]
            assert mode == "wal"

    def test_foreign_keys_enabled(self, app):
        with app.app_context():
            fk = get_db().execute("PRAGMA foreign_keys").fetchone()[0]
            assert fk == 1

    def test_seed_users_exist(self, db):
        rows = db.execute("SELECT id, name FROM users ORDER BY id").fetchall()
        assert [r["name"] for r in rows] == ["Test Student", "Other Student"]


class TestMigrations:
    def test_all_versions_recorded(self, db):
        versions = {r["version"] for r in db.execute("SELECT version FROM schema_version")}
        assert versions == {1, 2, 3}

    def test_rerun_is_idempotent(self, app):
        with app.app_context():
            init_db()
            run_migrations()
            db = get_db()
            count = db.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
            assert count == 3


class TestConstraints:
    def test_deleting_session_cascades(self, app, study_session):
        with app.app_context():
            db = get_db()
            db.execute(
                "INSERT INTO quiz_results (session_id, score, total, created_at) VALUES (?, 1, 3, '')",
                (int(study_session.id),),
            )
            db.execute(
                "INSERT INTO tool_states (user_id, session_id, tool, state) VALUES (1, ?, 'quiz', '{}')",
                (int(study_session.id),),
            )
            db.commit()

            db.execute("DELETE FROM study_sessions WHERE id = ?", (int(study_session.id),))
            db.commit()
            assert db.execute("SELECT COUNT(*) FROM quiz_results").fetchone()[0] == 0
            assert db.execute("SELECT COUNT(*) FROM tool_states").fetchone()[0] == 0

    def test_unknown_tool_rejected(self, app, study_session):
        with app.app_context():
            db = get_db()
            with pytest.raises(sqlite3.IntegrityError):
                db.execute(
                    "INSERT INTO tool_states (user_id, session_id, tool) VALUES (1, ?, 'notes')",
                    (int(study_session.id),),
                )

    def test_quiz_total_must_be_positive(self, app, study_session):
        with app.app_context():
            db = get_db()
            with pytest.raises(sqlite3.IntegrityError):
                db.execute(
                    "INSERT INTO quiz_results (session_id, score, total) VALUES (?, 0, 0)",
                    (int(study_session.id),),
                )

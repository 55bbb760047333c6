"""Tests for db_stores.py — user-scoped session history and tool state."""

import sqlite3
from unittest.mock import patch

import pytest

from db_stores import StoreError, StudySessionStoreDB, ToolStateStoreDB
from models import QuizResult, StudyMaterialInput


class TestStudySessionStore:
    def test_create_and_get(self, app, make_aids):
        with app.app_context():
            store = StudySessionStoreDB(1)
            created = store.create("Cells", StudyMaterialInput(text="Cell walls"), make_aids("Hard"))
            loaded = store.get(created.id)
            assert loaded.title == "Cells"
            assert loaded.study_material.text == "Cell walls"
            assert loaded.study_aids.difficulty == "Hard"
            assert loaded.quiz_results == []

    def test_other_users_cannot_read(self, app, study_session):
        with app.app_context():
            assert StudySessionStoreDB(2).get(study_session.id) is None
            assert StudySessionStoreDB(2).list_sessions() == []

    @pytest.mark.parametrize("bad_id", ["abc", None, "999"])
    def test_get_unknown_returns_none(self, app, bad_id):
        with app.app_context():
            assert StudySessionStoreDB(1).get(bad_id) is None

    def test_list_is_newest_first_and_paged(self, app, make_aids):
        with app.app_context():
            store = StudySessionStoreDB(1)
            for title in ["First", "Second", "Third"]:
                store.create(title, StudyMaterialInput(text=title), make_aids())
            assert [s.title for s in store.list_sessions()] == ["Third", "Second", "First"]
            assert [s.title for s in store.list_sessions(limit=2, offset=1)] == ["Second", "First"]
            assert store.count() == 3

    def test_quiz_results_newest_first(self, app, study_session):
        with app.app_context():
            store = StudySessionStoreDB(1)
            store.add_quiz_result(study_session.id, QuizResult(1, 3, "2026-03-01T09:00:00"))
            store.add_quiz_result(study_session.id, QuizResult(3, 3, "2026-03-02T09:00:00"))
            results = store.get(study_session.id).quiz_results
            assert [(r.score, r.total) for r in results] == [(3, 3), (1, 3)]

    def test_add_result_to_foreign_session_is_refused(self, app, study_session):
        with app.app_context():
            assert StudySessionStoreDB(2).add_quiz_result(study_session.id, QuizResult(3, 3)) is None
            assert StudySessionStoreDB(1).get(study_session.id).quiz_results == []

    def test_add_result_fills_in_date(self, app, study_session):
        with app.app_context():
            saved = StudySessionStoreDB(1).add_quiz_result(study_session.id, QuizResult(2, 3))
            assert saved.date

    def test_corrupt_row_raises_store_error(self, app, study_session):
        with app.app_context():
            from database import get_db
            db = get_db()
            db.execute("UPDATE study_sessions SET study_aids = '{\"summary\": \"\"}'")
            db.commit()
            with pytest.raises(StoreError):
                StudySessionStoreDB(1).list_sessions()

    def test_database_failure_raises_store_error(self, app):
        with app.app_context():
            store = StudySessionStoreDB(1)
            with patch("db_stores.get_db") as get_db:
                get_db.return_value.execute.side_effect = sqlite3.OperationalError("disk I/O error")
                with pytest.raises(StoreError):
                    store.list_sessions()


class TestToolStateStore:
    def test_save_get_upsert_clear(self, app, study_session):
        with app.app_context():
            store = ToolStateStoreDB(1)
            assert store.get(study_session.id, "quiz") is None
            store.save(study_session.id, "quiz", {"currentQuestionIndex": 0, "selectedAnswers": {}})
            store.save(study_session.id, "quiz", {"currentQuestionIndex": 2, "selectedAnswers": {"0": "A"}})
            assert store.get(study_session.id, "quiz") == {
                "currentQuestionIndex": 2, "selectedAnswers": {"0": "A"},
            }
            store.clear(study_session.id, "quiz")
            assert store.get(study_session.id, "quiz") is None

    def test_state_is_per_tool_and_user(self, app, study_session):
        with app.app_context():
            ToolStateStoreDB(1).save(study_session.id, "flashcards", {"currentIndex": 4})
            assert ToolStateStoreDB(1).get(study_session.id, "quiz") is None
            assert ToolStateStoreDB(2).get(study_session.id, "flashcards") is None

    def test_unknown_tool(self, app, study_session):
        with app.app_context():
            with pytest.raises(ValueError):
                ToolStateStoreDB(1).get(study_session.id, "notes")

    def test_invalid_session_id(self, app):
        with app.app_context():
            store = ToolStateStoreDB(1)
            assert store.get("abc", "quiz") is None
            with pytest.raises(ValueError):
                store.save("abc", "quiz", {})

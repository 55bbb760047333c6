"""
Dashboard analytics computed from a user's study history.

All functions are pure over a list of ``StudySession`` (newest first, as
returned by the store), so they are tested without a database.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date, datetime, timedelta

from models import QuizResult, StudySession

STOP_WORDS = frozenset({
    "a", "an", "the", "in", "on", "of", "for", "with", "and", "chapter", "session",
})
TOP_SUBJECT_LIMIT = 5

_WORD_RE = re.compile(r"\b(\w+)\b", re.ASCII)

PERFORMANCE_BUCKETS = (
    ("Excellent (90-100%)", 0.9, None),
    ("Good (70-89%)", 0.7, 0.9),
    ("Needs Improvement (<70%)", None, 0.7),
)


def _session_day(session: StudySession) -> date | None:
    try:
        return datetime.fromisoformat(session.date).date()
    except (TypeError, ValueError):
        return None


def study_streak(sessions: list[StudySession], today: date | None = None) -> int:
    """Consecutive calendar days with a session, ending today or yesterday."""
    today = today or date.today()
    days = {d for d in (_session_day(s) for s in sessions) if d is not None}
    if not days:
        return 0

    latest = max(days)
    if latest not in (today, today - timedelta(days=1)):
        return 0

    streak = 0
    day = latest
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def top_subjects(sessions: list[StudySession], limit: int = TOP_SUBJECT_LIMIT) -> list[tuple[str, int]]:
    """Most frequent meaningful words across session titles."""
    counts: Counter[str] = Counter()
    for session in sessions:
        for word in _WORD_RE.findall(session.title.lower()):
            if word in STOP_WORDS or word[0].isdigit():
                continue
            counts[word] += 1
    return counts.most_common(limit)


def all_quiz_results(sessions: list[StudySession]) -> list[QuizResult]:
    return [r for s in sessions for r in s.quiz_results]


def quiz_analytics(results: list[QuizResult]) -> dict:
    """Average/best score, chronological history and performance buckets."""
    if not results:
        return {"total_quizzes": 0, "average_score": None, "best_score": None,
                "history": [], "performance": []}

    fractions = [r.fraction for r in results]
    chronological = sorted(results, key=lambda r: r.date)

    performance = []
    for name, low, high in PERFORMANCE_BUCKETS:
        count = sum(
            1 for f in fractions
            if (low is None or f >= low) and (high is None or f < high)
        )
        if count:
            performance.append({"name": name, "value": count})

    return {
        "total_quizzes": len(results),
        "average_score": round(sum(fractions) / len(fractions) * 100, 1),
        "best_score": round(max(fractions) * 100, 1),
        "history": [
            {"name": f"Quiz {i}", "score": round(r.fraction * 100, 2), "date": r.date}
            for i, r in enumerate(chronological, start=1)
        ],
        "performance": performance,
    }


def dashboard_summary(sessions: list[StudySession], today: date | None = None) -> dict:
    results = all_quiz_results(sessions)
    return {
        "study_streak": study_streak(sessions, today),
        "total_sessions": len(sessions),
        "quizzes_taken": len(results),
        "top_subjects": [{"subject": w, "count": n} for w, n in top_subjects(sessions)],
        "quiz_analytics": quiz_analytics(results),
        "sessions": [
            {"id": s.id, "title": s.title, "date": s.date, "best_score": s.best_score_percent()}
            for s in sessions
        ],
    }

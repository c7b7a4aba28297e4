"""
Tests for the pure metrics scoring rules.
"""

import pytest

from lms.metrics import scoring


def test_attendance_rate_weights_statuses():
    rate = scoring.attendance_rate(["PRESENT", "LATE", "EXCUSED", "ABSENT", None])
    assert rate == pytest.approx((1 + 0.75 + 0.6) / 5)


def test_attendance_rate_without_sessions():
    assert scoring.attendance_rate([]) == 0.0


def test_module_weights_renormalize():
    assert scoring.module_weights(True, True, True) == pytest.approx(
        {"attendance": 0.3, "assignments": 0.4, "exams": 0.3}
    )
    weights = scoring.module_weights(True, False, True)
    assert weights == pytest.approx({"attendance": 0.5, "assignments": 0.0, "exams": 0.5})
    assert scoring.module_weights(False, False, False) == {"attendance": 0.0, "assignments": 0.0, "exams": 0.0}


def test_overall_score_blends_completion_and_quality():
    weights = scoring.module_weights(True, True, True)
    score = scoring.overall_score(weights, attendance=1.0, completion=1.0, quality=0.5, exams=0.8)
    assert score == pytest.approx(100 * (0.3 + 0.4 * 0.75 + 0.3 * 0.8))


def test_assessment_average_normalizes_quizzes_and_exams():
    average, count = scoring.assessment_average([(80.0, 10), (50.0, 0)], [6.0])
    assert count == 2
    assert average == pytest.approx((0.8 + 0.6) / 2)
    assert scoring.assessment_average([], []) == (0.0, 0)


def test_alerts():
    alerts = scoring.build_alerts(
        session_count=4, attendance=0.5,
        assignments_missing=True, completion=0.5,
        has_exams=True, exams=0.4,
        recently_active=False,
    )
    assert alerts == [
        scoring.HIGH_ABSENCE, scoring.MISSING_ASSIGNMENTS, scoring.LOW_EXAMS, scoring.NO_ACTIVITY_14_DAYS
    ]


def test_no_alerts_for_modules_without_data():
    alerts = scoring.build_alerts(
        session_count=0, attendance=0.0,
        assignments_missing=False, completion=0.0,
        has_exams=False, exams=0.0,
        recently_active=True,
    )
    assert alerts == []


def test_recommendations_use_weak_tags_and_failed_titles():
    recommendations = scoring.build_recommendations(
        [scoring.HIGH_ABSENCE, scoring.LOW_EXAMS],
        weak_tags=["css", "html", "css", "js", "dom"],
        failed_titles=["React Todo App", "REST API design"],
    )
    assert recommendations == [
        "Schedule reminder and attend next sessions",
        "Review topics: css, html, js",
        "Practice React fundamentals and hooks",
        "Practice API development and database queries",
    ]


def test_recommendations_fall_back_to_review_plan():
    assert scoring.build_recommendations([scoring.LOW_EXAMS], [], []) == ["Create a review plan for exam topics"]

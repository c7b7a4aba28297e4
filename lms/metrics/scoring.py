"""
Pure scoring rules behind per-course student metrics.

Rates are fractions in [0, 1]; the overall score is 0-100.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lms.common.utils import unique

ATTENDANCE_WEIGHTS = {
    "PRESENT": 1.0,
    "LATE": 0.75,
    "EXCUSED": 0.6,
    "ABSENT": 0.0,
}

MODULE_WEIGHTS = {"attendance": 0.3, "assignments": 0.4, "exams": 0.3}

FAILING_RATIO = 0.6
MAX_RECOMMENDATIONS = 6

FRONTEND_KEYWORDS = ("Frontend", "React", "Vue", "Angular", "UI", "CSS")
BACKEND_KEYWORDS = ("Backend", "API", "Database", "Server", "Node", "Express")

HIGH_ABSENCE = "HIGH_ABSENCE"
MISSING_ASSIGNMENTS = "MISSING_ASSIGNMENTS"
LOW_EXAMS = "LOW_EXAMS"
NO_ACTIVITY_14_DAYS = "NO_ACTIVITY_14_DAYS"


def attendance_rate(statuses: Iterable[Optional[str]]) -> float:
    """
    Weighted attendance over a course's sessions.

    Args:
        statuses: One entry per session, None where no attendance was taken

    Returns:
        Rate in [0, 1], 0 for a course without sessions
    """
    statuses = list(statuses)
    if not statuses:
        return 0.0
    earned = sum(ATTENDANCE_WEIGHTS.get(status, 0.0) if status else 0.0 for status in statuses)
    return earned / len(statuses)


def score_ratio(score: Optional[float], max_score: Optional[float]) -> float:
    if score is None or not max_score or max_score <= 0:
        return 0.0
    return score / max_score


def module_weights(has_attendance: bool, has_assignments: bool, has_exams: bool) -> Dict[str, float]:
    """Default weights renormalized over the modules that have data."""
    present = {
        "attendance": has_attendance,
        "assignments": has_assignments,
        "exams": has_exams,
    }
    total = sum(MODULE_WEIGHTS[name] for name, has_data in present.items() if has_data)
    if total <= 0:
        return {name: 0.0 for name in MODULE_WEIGHTS}
    return {
        name: (MODULE_WEIGHTS[name] / total if present[name] else 0.0)
        for name in MODULE_WEIGHTS
    }


def overall_score(
    weights: Dict[str, float],
    attendance: float,
    completion: float,
    quality: float,
    exams: float
) -> float:
    return 100 * (
        weights["attendance"] * attendance
        + weights["assignments"] * (0.5 * completion + 0.5 * quality)
        + weights["exams"] * exams
    )


def build_alerts(
    session_count: int,
    attendance: float,
    assignments_missing: bool,
    completion: float,
    has_exams: bool,
    exams: float,
    recently_active: bool
) -> List[str]:
    alerts = []
    if session_count > 0 and attendance < 0.75:
        alerts.append(HIGH_ABSENCE)
    if assignments_missing and completion < 0.7:
        alerts.append(MISSING_ASSIGNMENTS)
    if has_exams and exams < 0.6:
        alerts.append(LOW_EXAMS)
    if not recently_active:
        alerts.append(NO_ACTIVITY_14_DAYS)
    return alerts


def _mentions(title: str, keywords: Sequence[str]) -> bool:
    lowered = title.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def build_recommendations(
    alerts: Sequence[str],
    weak_tags: Sequence[str],
    failed_titles: Sequence[str]
) -> List[str]:
    """
    Turn alerts and weak spots into study advice.

    Args:
        alerts: Alerts raised for the student
        weak_tags: Tags of incorrectly answered quiz questions, in order
        failed_titles: Titles of assignments scored below the failing ratio

    Returns:
        At most six recommendations
    """
    recommendations = []
    if HIGH_ABSENCE in alerts:
        recommendations.append("Schedule reminder and attend next sessions")
    if MISSING_ASSIGNMENTS in alerts:
        recommendations.append("Focus on next assignment and create a checklist")
    if LOW_EXAMS in alerts:
        topics = unique(weak_tags)[:3]
        if topics:
            recommendations.append(f"Review topics: {', '.join(topics)}")
        else:
            recommendations.append("Create a review plan for exam topics")
    if any(_mentions(title, FRONTEND_KEYWORDS) for title in failed_titles):
        recommendations.append("Practice React fundamentals and hooks")
    if any(_mentions(title, BACKEND_KEYWORDS) for title in failed_titles):
        recommendations.append("Practice API development and database queries")
    return recommendations[:MAX_RECOMMENDATIONS]


def assessment_average(
    quiz_results: Iterable[Tuple[float, float]],
    exam_scores: Iterable[float]
) -> Tuple[float, int]:
    """
    Mean of quiz and exam results normalized to [0, 1].

    Args:
        quiz_results: (percentage 0-100, max_score) per submitted quiz attempt
        exam_scores: final score out of ten per submitted exam attempt

    Returns:
        Tuple of (average, number of results counted)
    """
    values = [pct / 100 for pct, max_score in quiz_results if max_score and max_score > 0]
    values.extend(score / 10 for score in exam_scores)
    if not values:
        return 0.0, 0
    return sum(values) / len(values), len(values)

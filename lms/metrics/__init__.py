"""
Metrics Module

Per-course performance snapshots of students: attendance, assignments,
assessments, alerts and recommendations.
"""

from .models import StudentCourseMetrics
from .service import compute_student_course_metrics, has_recent_activity

__all__ = [
    "StudentCourseMetrics",
    "compute_student_course_metrics",
    "has_recent_activity",
]

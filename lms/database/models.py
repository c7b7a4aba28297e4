"""
Import every model module so their tables are registered on Base.metadata.

Used by table creation at startup and by the Alembic environment.
"""

from lms.accounts.models import User  # noqa: F401
from lms.courses.models import Attendance, Course, CourseInstructor, Enrollment, Session  # noqa: F401
from lms.assignments.models import (  # noqa: F401
    Assignment, AssignmentResource, Review, Submission, SubmissionAsset
)
from lms.assessments.quizzes.models import Quiz, QuizAnswer, QuizAttempt, QuizQuestion  # noqa: F401
from lms.assessments.exams.models import Exam, ExamAnswer, ExamAttempt, ExamQuestion  # noqa: F401
from lms.evaluations.models import StudentEvaluation  # noqa: F401
from lms.metrics.models import StudentCourseMetrics  # noqa: F401
from lms.profiles.models import Profile, SuggestionValue  # noqa: F401

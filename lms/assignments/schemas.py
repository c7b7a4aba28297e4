"""
Request bodies for assignments, submissions and reviews.

Multipart endpoints (resources and submissions) read form fields
directly and do not have a body model.
"""

from typing import Any, Optional

from lms.common.schemas import CamelModel


class AssignmentCreateRequest(CamelModel):
    course_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = None
    max_score: Optional[Any] = None
    rubric: Optional[Any] = None
    is_published: Optional[Any] = None


class AssignmentUpdateRequest(AssignmentCreateRequest):
    pass


class PublishRequest(CamelModel):
    is_published: Optional[Any] = None


class SubmissionStatusRequest(CamelModel):
    status: Optional[str] = None
    note: Optional[str] = None


class ReviewRequest(CamelModel):
    submission_id: Optional[str] = None
    score: Optional[Any] = None
    rubric_result: Optional[Any] = None
    feedback: Optional[Any] = None

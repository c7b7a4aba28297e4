"""
Request bodies for exam endpoints.
"""

from typing import Any, Optional

from lms.common.schemas import CamelModel


class ExamCreateRequest(CamelModel):
    type: Optional[str] = None
    title: Optional[Any] = None
    description: Optional[Any] = None
    exam_question_count: Optional[Any] = None
    time_limit_minutes: Optional[Any] = None
    attempts_allowed: Optional[Any] = None
    available_from: Optional[str] = None
    available_to: Optional[str] = None
    show_solutions_after_submit: Optional[Any] = None


class ExamUpdateRequest(ExamCreateRequest):
    pass


class ExamQuestionRequest(CamelModel):
    question_type: Optional[str] = None
    prompt: Optional[Any] = None
    choices: Optional[Any] = None
    correct_answer: Optional[Any] = None
    points: Optional[Any] = None
    explanation: Optional[Any] = None


class BulkQuestionItem(ExamQuestionRequest):
    id: Optional[str] = None
    order_index: Optional[Any] = None


class BulkQuestionsRequest(CamelModel):
    questions: Optional[Any] = None


class ExamReorderRequest(CamelModel):
    ordered_ids: Optional[Any] = None


class ExamAnswerRequest(CamelModel):
    question_id: Optional[str] = None
    answer: Optional[Any] = None

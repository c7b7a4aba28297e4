"""
Request bodies for quiz endpoints.
"""

from typing import Any, Optional

from lms.common.schemas import CamelModel


class QuizCreateRequest(CamelModel):
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[Any] = None
    time_limit_minutes: Optional[Any] = None
    attempts_allowed: Optional[Any] = None
    available_from: Optional[str] = None
    available_to: Optional[str] = None


class QuizUpdateRequest(QuizCreateRequest):
    pass


class StatusRequest(CamelModel):
    status: Optional[str] = None


class QuestionRequest(CamelModel):
    type: Optional[str] = None
    prompt: Optional[Any] = None
    choices: Optional[Any] = None
    correct_answer: Optional[Any] = None
    points: Optional[Any] = None
    tags: Optional[Any] = None
    order_index: Optional[Any] = None


class ReorderRequest(CamelModel):
    question_ids: Optional[Any] = None


class AnswerRequest(CamelModel):
    question_id: Optional[str] = None
    answer: Optional[Any] = None

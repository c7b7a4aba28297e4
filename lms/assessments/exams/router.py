"""
Exam endpoints.

Static paths come first so that ``/my``, ``/questions/...`` and
``/attempts/...`` are never captured by ``/{exam_id}``.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assessments.exams.schemas import (
    BulkQuestionsRequest, ExamAnswerRequest, ExamCreateRequest, ExamQuestionRequest,
    ExamReorderRequest, ExamUpdateRequest
)
from lms.assessments.exams.service import ExamService
from lms.assessments.quizzes.schemas import StatusRequest
from lms.common.auth.dependencies import get_current_user, require_admin, require_staff, require_student
from lms.common.db.session import get_session

router = APIRouter()


@router.post("/sessions/{session_id}", status_code=status.HTTP_201_CREATED)
async def create_exam(
    session_id: str,
    body: ExamCreateRequest,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return {"exam": await ExamService(session).create_exam(session_id, body, user)}


@router.get("/sessions/{session_id}", dependencies=[Depends(get_current_user)])
async def list_session_exams(session_id: str, session: AsyncSession = Depends(get_session)):
    return {"exams": await ExamService(session).list_for_session(session_id)}


@router.get("/sessions/{session_id}/analytics", dependencies=[Depends(require_staff)])
async def session_analytics(session_id: str, session: AsyncSession = Depends(get_session)):
    return {"analytics": await ExamService(session).session_analytics(session_id)}


@router.get("/courses/{course_id}/analytics", dependencies=[Depends(require_staff)])
async def course_analytics(course_id: str, session: AsyncSession = Depends(get_session)):
    return {"exams": await ExamService(session).course_analytics(course_id)}


@router.get("/my")
async def my_exams(user: User = Depends(require_student), session: AsyncSession = Depends(get_session)):
    return {"exams": await ExamService(session).my_exams(user)}


@router.get("/my/{exam_id}/result")
async def my_exam_result(
    exam_id: str,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"attempt": await ExamService(session).latest_result(exam_id, user)}


@router.put("/questions/{question_id}", dependencies=[Depends(require_admin)])
async def update_question(
    question_id: str, body: ExamQuestionRequest, session: AsyncSession = Depends(get_session)
):
    return {"question": await ExamService(session).update_question(question_id, body)}


@router.delete("/questions/{question_id}", dependencies=[Depends(require_admin)])
async def delete_question(question_id: str, session: AsyncSession = Depends(get_session)):
    await ExamService(session).delete_question(question_id)
    return {"message": "Question deleted successfully"}


@router.post(
    "/questions/{question_id}/duplicate",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def duplicate_question(question_id: str, session: AsyncSession = Depends(get_session)):
    return {"question": await ExamService(session).duplicate_question(question_id)}


@router.post("/attempts/{attempt_id}/answer")
async def save_answer(
    attempt_id: str,
    body: ExamAnswerRequest,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"answer": await ExamService(session).save_answer(attempt_id, body, user)}


@router.post("/attempts/{attempt_id}/submit")
async def submit_attempt(
    attempt_id: str,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"attempt": await ExamService(session).submit_attempt(attempt_id, user)}


@router.get("/attempts/{attempt_id}/result")
async def attempt_result(
    attempt_id: str,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"attempt": await ExamService(session).attempt_result(attempt_id, user)}


@router.get("/{exam_id}")
async def get_exam(
    exam_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"exam": await ExamService(session).get_detail(exam_id, user)}


@router.put("/{exam_id}", dependencies=[Depends(require_admin)])
async def update_exam(exam_id: str, body: ExamUpdateRequest, session: AsyncSession = Depends(get_session)):
    return {"exam": await ExamService(session).update_exam(exam_id, body)}


@router.put("/{exam_id}/status", dependencies=[Depends(require_admin)])
async def update_exam_status(exam_id: str, body: StatusRequest, session: AsyncSession = Depends(get_session)):
    return {"exam": await ExamService(session).set_status(exam_id, body.status)}


@router.get("/{exam_id}/questions", dependencies=[Depends(require_admin)])
async def list_questions(exam_id: str, session: AsyncSession = Depends(get_session)):
    return {"questions": await ExamService(session).list_questions(exam_id)}


@router.post("/{exam_id}/questions", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def add_question(exam_id: str, body: ExamQuestionRequest, session: AsyncSession = Depends(get_session)):
    return {"question": await ExamService(session).add_question(exam_id, body)}


@router.put("/{exam_id}/questions/reorder", dependencies=[Depends(require_admin)])
async def reorder_questions(exam_id: str, body: ExamReorderRequest, session: AsyncSession = Depends(get_session)):
    await ExamService(session).reorder_questions(exam_id, body.ordered_ids)
    return {"message": "Questions reordered successfully"}


@router.put("/{exam_id}/questions/bulk", dependencies=[Depends(require_admin)])
async def bulk_update_questions(
    exam_id: str, body: BulkQuestionsRequest, session: AsyncSession = Depends(get_session)
):
    return {"questions": await ExamService(session).bulk_update_questions(exam_id, body.questions)}


@router.post("/{exam_id}/attempts/start")
async def start_attempt(
    exam_id: str,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"attempt": await ExamService(session).start_attempt(exam_id, user)}

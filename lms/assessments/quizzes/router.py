"""
Quiz endpoints.

Static paths (``/my``, ``/results/all``, ``/questions/...``,
``/attempts/...``) are declared before the ``/{quiz_id}`` routes.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assessments.quizzes.schemas import (
    AnswerRequest, QuestionRequest, QuizCreateRequest, QuizUpdateRequest, ReorderRequest, StatusRequest
)
from lms.assessments.quizzes.service import QuizService
from lms.common.auth.dependencies import get_current_user, require_admin, require_staff, require_student
from lms.common.db.session import get_session

router = APIRouter()


@router.post(
    "/courses/{course_id}/sessions/{session_id}",
    status_code=status.HTTP_201_CREATED,
)
async def create_quiz(
    course_id: str,
    session_id: str,
    body: QuizCreateRequest,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return {"quiz": await QuizService(session).create_quiz(course_id, session_id, body, user)}


@router.get("/sessions/{session_id}")
async def list_session_quizzes(
    session_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"quizzes": await QuizService(session).list_for_session(session_id, user)}


@router.get("/my")
async def my_quizzes(user: User = Depends(require_student), session: AsyncSession = Depends(get_session)):
    return {"quizzes": await QuizService(session).my_quizzes(user)}


@router.get("/results/all", dependencies=[Depends(require_staff)])
async def all_quiz_results(session: AsyncSession = Depends(get_session)):
    return await QuizService(session).all_results()


@router.put("/questions/{question_id}", dependencies=[Depends(require_admin)])
async def update_question(question_id: str, body: QuestionRequest, session: AsyncSession = Depends(get_session)):
    return {"question": await QuizService(session).update_question(question_id, body)}


@router.delete("/questions/{question_id}", dependencies=[Depends(require_admin)])
async def delete_question(question_id: str, session: AsyncSession = Depends(get_session)):
    await QuizService(session).delete_question(question_id)
    return {"message": "Question deleted successfully"}


@router.post("/attempts/{attempt_id}/answer")
async def save_answer(
    attempt_id: str,
    body: AnswerRequest,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    await QuizService(session).save_answer(attempt_id, body, user)
    return {"message": "Answer saved"}


@router.post("/attempts/{attempt_id}/submit")
async def submit_attempt(
    attempt_id: str,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    return {"attempt": await QuizService(session).submit_attempt(attempt_id, user)}


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"quiz": await QuizService(session).get_detail(quiz_id, user)}


@router.put("/{quiz_id}", dependencies=[Depends(require_admin)])
async def update_quiz(quiz_id: str, body: QuizUpdateRequest, session: AsyncSession = Depends(get_session)):
    return {"quiz": await QuizService(session).update_quiz(quiz_id, body)}


@router.put("/{quiz_id}/status", dependencies=[Depends(require_admin)])
async def update_quiz_status(quiz_id: str, body: StatusRequest, session: AsyncSession = Depends(get_session)):
    return {"quiz": await QuizService(session).set_status(quiz_id, body.status)}


@router.delete("/{quiz_id}", dependencies=[Depends(require_admin)])
async def delete_quiz(quiz_id: str, session: AsyncSession = Depends(get_session)):
    await QuizService(session).delete_quiz(quiz_id)
    return {"message": "Quiz deleted successfully"}


@router.get("/{quiz_id}/questions", dependencies=[Depends(require_staff)])
async def list_questions(quiz_id: str, session: AsyncSession = Depends(get_session)):
    return {"questions": await QuizService(session).list_questions(quiz_id)}


@router.post("/{quiz_id}/questions", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def add_question(quiz_id: str, body: QuestionRequest, session: AsyncSession = Depends(get_session)):
    return {"question": await QuizService(session).add_question(quiz_id, body)}


@router.put("/{quiz_id}/questions/reorder", dependencies=[Depends(require_admin)])
async def reorder_questions(quiz_id: str, body: ReorderRequest, session: AsyncSession = Depends(get_session)):
    await QuizService(session).reorder_questions(quiz_id, body.question_ids)
    return {"message": "Questions reordered successfully"}


@router.post("/{quiz_id}/attempts/start", status_code=status.HTTP_201_CREATED)
async def start_attempt(
    quiz_id: str,
    response: Response,
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    attempt, created = await QuizService(session).start_attempt(quiz_id, user)
    if not created:
        response.status_code = status.HTTP_200_OK
    return {"attempt": attempt}


@router.get("/{quiz_id}/attempts", dependencies=[Depends(require_staff)])
async def quiz_attempts(quiz_id: str, session: AsyncSession = Depends(get_session)):
    return await QuizService(session).quiz_attempts(quiz_id)

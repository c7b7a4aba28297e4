"""
Evaluation endpoints, including CSV exports.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.common.auth.dependencies import require_admin, require_student
from lms.common.db.session import get_session
from lms.evaluations.service import EvaluationService

router = APIRouter()


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/my")
async def my_evaluations(user: User = Depends(require_student), session: AsyncSession = Depends(get_session)):
    return {"evaluations": await EvaluationService(session).for_student(user.id)}


@router.get("/sessions/{session_id}", dependencies=[Depends(require_admin)])
async def session_evaluations(session_id: str, session: AsyncSession = Depends(get_session)):
    return {"evaluations": await EvaluationService(session).for_session(session_id)}


@router.get("/courses/{course_id}", dependencies=[Depends(require_admin)])
async def course_evaluations(course_id: str, session: AsyncSession = Depends(get_session)):
    return {"evaluations": await EvaluationService(session).for_course(course_id)}


@router.get("/students/{student_id}", dependencies=[Depends(require_admin)])
async def student_evaluations(student_id: str, session: AsyncSession = Depends(get_session)):
    return {"evaluations": await EvaluationService(session).for_student(student_id, by_session_date=True)}


@router.get("/sessions/{session_id}/export", dependencies=[Depends(require_admin)])
async def export_session_evaluations(session_id: str, session: AsyncSession = Depends(get_session)):
    content = await EvaluationService(session).export_session_csv(session_id)
    return _csv_response(content, f"evaluations-{session_id}.csv")


@router.get("/courses/{course_id}/export", dependencies=[Depends(require_admin)])
async def export_course_evaluations(course_id: str, session: AsyncSession = Depends(get_session)):
    content = await EvaluationService(session).export_course_csv(course_id)
    return _csv_response(content, f"evaluations-course-{course_id}.csv")

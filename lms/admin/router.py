"""
Administrator endpoints: students directory, student report, subscribers,
and their PDF downloads.
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lms.admin.service import DEFAULT_PAGE_SIZE, AdminService, DirectoryFilters
from lms.common.auth.dependencies import require_admin
from lms.common.db.session import get_session

router = APIRouter(dependencies=[Depends(require_admin)])


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/students")
async def students_directory(
    search: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    is_student: Optional[str] = Query(None, alias="isStudent"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    alert_type: Optional[str] = Query(None, alias="alertType"),
    low_performance: Optional[str] = Query(None, alias="lowPerformance"),
    page: Optional[str] = Query("1"),
    limit: Optional[str] = Query(str(DEFAULT_PAGE_SIZE)),
    session: AsyncSession = Depends(get_session),
):
    filters = DirectoryFilters(
        search=search,
        city=city,
        country=country,
        is_student=is_student,
        course_id=course_id,
        alert_type=alert_type,
        low_performance=low_performance,
        page=page,
        limit=limit,
    )
    return await AdminService(session).students_directory(filters)


@router.get("/students/{student_id}/report")
async def student_report(student_id: str, session: AsyncSession = Depends(get_session)):
    return {"data": await AdminService(session).student_report(student_id)}


@router.get("/students/{student_id}/report.pdf")
async def student_report_pdf(student_id: str, session: AsyncSession = Depends(get_session)):
    content = await AdminService(session).student_report_pdf(student_id)
    return _pdf_response(content, f"student-report-{student_id}.pdf")


@router.get("/subscribers")
async def subscribers(
    search: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    is_student: Optional[str] = Query(None, alias="isStudent"),
    page: Optional[str] = Query("1"),
    limit: Optional[str] = Query(str(DEFAULT_PAGE_SIZE)),
    session: AsyncSession = Depends(get_session),
):
    filters = DirectoryFilters(
        search=search, city=city, country=country, is_student=is_student, page=page, limit=limit
    )
    return await AdminService(session).subscribers(filters)


@router.get("/subscribers/pdf")
async def subscribers_pdf(
    search: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    is_student: Optional[str] = Query(None, alias="isStudent"),
    session: AsyncSession = Depends(get_session),
):
    filters = DirectoryFilters(search=search, city=city, country=country, is_student=is_student)
    content = await AdminService(session).subscribers_pdf(filters)
    return _pdf_response(content, f"subscribers-{int(time.time() * 1000)}.pdf")

"""
Assignment resource endpoints (multipart uploads and downloads).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assignments.resources_service import ResourceService
from lms.common.auth.dependencies import get_current_user, require_staff
from lms.common.db.session import get_session

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/assignment/{assignment_id}")
async def list_resources(assignment_id: str, session: AsyncSession = Depends(get_session)):
    return {"resources": await ResourceService(session).list_for_assignment(assignment_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_resource(
    assignment_id: Optional[str] = Form(None, alias="assignmentId"),
    type: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    resource = await ResourceService(session).create(user, assignment_id, type, name, url, file)
    return {"resource": resource}


@router.get("/{resource_id}/download")
async def download_resource(resource_id: str, session: AsyncSession = Depends(get_session)):
    path, download_name = await ResourceService(session).download_target(resource_id)
    return FileResponse(
        path,
        media_type="application/octet-stream",
        filename=download_name,
        headers={"Access-Control-Expose-Headers": "Content-Disposition, Content-Type, Content-Length"},
    )


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    await ResourceService(session).delete(resource_id, user)
    return {"message": "Resource deleted successfully"}

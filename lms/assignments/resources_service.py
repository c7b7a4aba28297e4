"""
Assignment resources: uploaded files and links attached by staff.
"""

import os
from typing import Any, Dict, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.assignments.models import AssetType, Assignment, AssignmentResource
from lms.assignments.storage import filename_from_url, get_file_path, remove_file, save_upload
from lms.common.auth.roles import UserRole
from lms.common.error_handling import AuthorizationError, NotFoundError, ValidationError
from lms.common.logger import get_logger
from lms.common.validation import parse_enum, require

logger = get_logger(__name__)


class ResourceService:
    """Business logic behind /assignment-resources."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_resource(self, resource_id: str) -> AssignmentResource:
        resource = await self.session.get(AssignmentResource, resource_id)
        if resource is None:
            raise NotFoundError("Resource not found")
        return resource

    async def _with_creators(self, resources: List[AssignmentResource]) -> List[Dict[str, Any]]:
        creators = await users_by_id(self.session, (r.created_by for r in resources))
        return [
            {
                **r.to_dict(),
                "creator": creators[r.created_by].brief() if r.created_by in creators else None,
            }
            for r in resources
        ]

    async def list_for_assignment(self, assignment_id: str) -> List[Dict[str, Any]]:
        resources = (await self.session.execute(
            select(AssignmentResource)
            .where(AssignmentResource.assignment_id == assignment_id)
            .order_by(AssignmentResource.created_at.desc())
        )).scalars().all()
        return await self._with_creators(list(resources))

    async def create(
        self,
        user: User,
        assignment_id: Optional[str],
        resource_type: Optional[str],
        name: Optional[str],
        url: Optional[str],
        upload: Optional[UploadFile],
    ) -> Dict[str, Any]:
        """
        Attach a file or link to an assignment.

        A FILE resource stores the upload and points at its public URL;
        a LINK resource keeps the given URL. The name defaults to the
        uploaded file name or the URL itself.
        """
        require(assignment_id, "Assignment ID is required")
        kind = parse_enum(AssetType, resource_type, "Invalid resource type")
        has_file = upload is not None and bool(upload.filename)
        if kind == AssetType.FILE and not has_file:
            raise ValidationError("File is required for FILE type")
        if kind == AssetType.LINK and not url:
            raise ValidationError("URL is required for LINK type")
        if await self.session.get(Assignment, assignment_id) is None:
            raise NotFoundError("Assignment not found")

        if kind == AssetType.FILE:
            stored = await save_upload(upload)
            url = stored.url
            name = name or stored.original_name

        resource = AssignmentResource(
            assignment_id=assignment_id,
            type=kind,
            name=name or url,
            url=url,
            created_by=user.id,
        )
        self.session.add(resource)
        await self.session.commit()
        logger.info(f"Resource {resource.id} ({kind.value}) added to assignment {assignment_id}")
        return (await self._with_creators([resource]))[0]

    async def download_target(self, resource_id: str) -> Tuple[str, str]:
        """
        Resolve a FILE resource to its path on disk and download name.

        Returns:
            ``(path, download_name)``; the name keeps the stored extension
        """
        resource = await self.get_resource(resource_id)
        if resource.type != AssetType.FILE:
            raise ValidationError("This resource is not a file")

        filename = filename_from_url(resource.url)
        path = get_file_path(filename)
        if not os.path.isfile(path):
            raise NotFoundError("File not found")

        extension = os.path.splitext(filename)[1]
        download_name = resource.name
        if extension and not download_name.endswith(extension):
            download_name = f"{download_name}{extension}"
        return path, download_name

    async def delete(self, resource_id: str, user: User) -> None:
        resource = await self.get_resource(resource_id)
        if resource.created_by != user.id and user.role != UserRole.ADMIN:
            raise AuthorizationError("Not authorized to delete this resource")

        await self.session.delete(resource)
        await self.session.commit()
        if resource.type == AssetType.FILE:
            remove_file(filename_from_url(resource.url))

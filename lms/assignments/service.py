"""
Assignment service.

Also holds the loaders that attach assets and reviews to submissions,
shared with the submissions endpoints.
"""

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.assignments.models import Assignment, AssignmentResource, Review, Submission, SubmissionAsset
from lms.assignments.schemas import AssignmentCreateRequest, AssignmentUpdateRequest
from lms.common.auth.roles import UserRole
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import AuthorizationError, NotFoundError
from lms.common.validation import parse_iso_datetime, parse_optional_int, require
from lms.courses.models import Course

DEFAULT_MAX_SCORE = 100


def _reviewer_brief(user: Optional[User]) -> Optional[Dict[str, Any]]:
    return {"id": user.id, "name": user.name} if user else None


async def load_submission_details(
    session: AsyncSession,
    submissions: Sequence[Submission],
    include_student: bool = True,
) -> List[Dict[str, Any]]:
    """
    Serialize submissions with their assets and reviews (and reviewers).

    Args:
        session: Database session
        submissions: The submissions to serialize
        include_student: Attach the student ``{id, name, email}``

    Returns:
        One dict per submission, in the given order
    """
    ids = [s.id for s in submissions]
    assets: Dict[str, List[Dict[str, Any]]] = {i: [] for i in ids}
    reviews: Dict[str, List[Review]] = {i: [] for i in ids}

    if ids:
        for asset in (await session.execute(
            select(SubmissionAsset)
            .where(SubmissionAsset.submission_id.in_(ids))
            .order_by(SubmissionAsset.created_at.asc())
        )).scalars().all():
            assets[asset.submission_id].append(asset.to_dict())

        for review in (await session.execute(
            select(Review).where(Review.submission_id.in_(ids)).order_by(Review.created_at.desc())
        )).scalars().all():
            reviews[review.submission_id].append(review)

    people = await users_by_id(
        session,
        [s.student_id for s in submissions] + [r.reviewer_id for rs in reviews.values() for r in rs],
    )

    items = []
    for submission in submissions:
        data = submission.to_dict()
        if include_student:
            student = people.get(submission.student_id)
            data["student"] = student.brief() if student else None
        data["assets"] = assets[submission.id]
        data["reviews"] = [
            {**r.to_dict(), "reviewer": _reviewer_brief(people.get(r.reviewer_id))}
            for r in reviews[submission.id]
        ]
        items.append(data)
    return items


async def latest_submission(session: AsyncSession, assignment_id: str, student_id: str) -> Optional[Submission]:
    result = await session.execute(
        select(Submission)
        .where(Submission.assignment_id == assignment_id, Submission.student_id == student_id)
        .order_by(Submission.submitted_at.desc())
        .limit(1)
    )
    return result.scalars().first()


def parse_max_score(value: Any) -> int:
    """Max score must be a positive integer; missing or 0 falls back to 100."""
    score = parse_optional_int(value, "Max score must be a positive integer", minimum=0)
    return score or DEFAULT_MAX_SCORE


class AssignmentService:
    """Business logic behind /assignments."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.assignments = SQLAlchemyRepository(session, Assignment, "Assignment")

    async def get_assignment(self, assignment_id: str) -> Assignment:
        assignment = await self.assignments.get_or_none(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    async def _course_brief(self, course_id: str) -> Optional[Dict[str, Any]]:
        course = await self.session.get(Course, course_id)
        return {"id": course.id, "title": course.title} if course else None

    async def list_for_course(self, course_id: str, user: User) -> List[Dict[str, Any]]:
        stmt = select(Assignment).where(Assignment.course_id == course_id)
        if user.role == UserRole.STUDENT:
            stmt = stmt.where(Assignment.is_published.is_(True))
        assignments = list((await self.session.execute(stmt.order_by(Assignment.due_date.asc()))).scalars().all())
        ids = [a.id for a in assignments]

        submission_counts: Dict[str, int] = {}
        resources: Dict[str, List[Dict[str, Any]]] = {i: [] for i in ids}
        if ids:
            submission_counts = dict((await self.session.execute(
                select(Submission.assignment_id, func.count())
                .where(Submission.assignment_id.in_(ids))
                .group_by(Submission.assignment_id)
            )).all())
            for resource in (await self.session.execute(
                select(AssignmentResource).where(AssignmentResource.assignment_id.in_(ids))
            )).scalars().all():
                resources[resource.assignment_id].append({
                    "id": resource.id,
                    "type": resource.type.value,
                    "name": resource.name,
                    "url": resource.url,
                })

        items = []
        for assignment in assignments:
            data = assignment.to_dict()
            data["_count"] = {"submissions": submission_counts.get(assignment.id, 0)}
            data["resources"] = resources[assignment.id]
            if user.role == UserRole.STUDENT:
                mine = await latest_submission(self.session, assignment.id, user.id)
                data["mySubmission"] = (
                    {"id": mine.id, "status": mine.status.value, "submittedAt": mine.submitted_at.isoformat()}
                    if mine else None
                )
            items.append(data)
        return items

    async def get_detail(self, assignment_id: str, user: User) -> Dict[str, Any]:
        assignment = await self.get_assignment(assignment_id)
        if user.role == UserRole.STUDENT and not assignment.is_published:
            raise AuthorizationError("Assignment not published yet")

        data = assignment.to_dict()
        data["course"] = await self._course_brief(assignment.course_id)

        resources = (await self.session.execute(
            select(AssignmentResource).where(AssignmentResource.assignment_id == assignment_id)
        )).scalars().all()
        creators = await users_by_id(self.session, (r.created_by for r in resources))
        data["resources"] = [
            {**r.to_dict(), "creator": _reviewer_brief(creators.get(r.created_by))}
            for r in resources
        ]

        if user.role == UserRole.STUDENT:
            mine = await latest_submission(self.session, assignment_id, user.id)
            data["mySubmission"] = (
                (await load_submission_details(self.session, [mine], include_student=False))[0]
                if mine else None
            )
        else:
            submissions = (await self.session.execute(
                select(Submission)
                .where(Submission.assignment_id == assignment_id)
                .order_by(Submission.submitted_at.desc())
            )).scalars().all()
            data["submissions"] = await load_submission_details(self.session, submissions)
        return data

    async def create(self, body: AssignmentCreateRequest) -> Dict[str, Any]:
        require(body.course_id, "Course ID is required")
        require(body.title and body.title.strip(), "Title is required")
        due_date = parse_iso_datetime(body.due_date, "Valid due date is required")
        max_score = parse_max_score(body.max_score)
        if await self.session.get(Course, body.course_id) is None:
            raise NotFoundError("Course not found")

        assignment = await self.assignments.create({
            "course_id": body.course_id,
            "title": body.title.strip(),
            "description": body.description,
            "due_date": due_date,
            "max_score": max_score,
            "rubric": body.rubric or None,
            "is_published": body.is_published is True,
        })
        await self.session.commit()
        return {**assignment.to_dict(), "course": await self._course_brief(assignment.course_id)}

    async def update(self, assignment_id: str, body: AssignmentUpdateRequest) -> Dict[str, Any]:
        assignment = await self.get_assignment(assignment_id)
        changes = body.provided()

        if "title" in changes:
            require(body.title and body.title.strip(), "Title is required")
            assignment.title = body.title.strip()
        if "description" in changes:
            assignment.description = body.description
        if "due_date" in changes:
            assignment.due_date = parse_iso_datetime(body.due_date, "Valid due date is required")
        if "max_score" in changes:
            assignment.max_score = parse_max_score(body.max_score)
        if "rubric" in changes:
            assignment.rubric = body.rubric
        if "is_published" in changes and body.is_published is not None:
            assignment.is_published = body.is_published is True

        await self.session.commit()
        return {**assignment.to_dict(), "course": await self._course_brief(assignment.course_id)}

    async def set_published(self, assignment_id: str, is_published: Any) -> Dict[str, Any]:
        assignment = await self.get_assignment(assignment_id)
        assignment.is_published = is_published is True
        await self.session.commit()
        return {**assignment.to_dict(), "course": await self._course_brief(assignment.course_id)}

    async def delete(self, assignment_id: str) -> None:
        assignment = await self.get_assignment(assignment_id)
        await self.session.delete(assignment)
        await self.session.commit()

"""
Student submissions and instructor reviews.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.assignments.models import AssetType, Assignment, Review, Submission, SubmissionAsset, SubmissionStatus
from lms.assignments.schemas import ReviewRequest, SubmissionStatusRequest
from lms.assignments.service import load_submission_details
from lms.assignments.storage import remove_file, save_uploads
from lms.common.auth.roles import UserRole
from lms.common.error_handling import AuthorizationError, NotFoundError, ValidationError
from lms.common.logger import get_logger
from lms.common.validation import parse_enum, require

logger = get_logger(__name__)

MIN_REVIEW_SCORE = 0
MAX_REVIEW_SCORE = 100


def parse_assets(raw: Any) -> List[Dict[str, Any]]:
    """
    Parse the ``assets`` form field: a JSON array of ``{type, url, name?}``.

    Raises:
        ValidationError: If the field is not a list of valid assets
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("Invalid assets")
    if not isinstance(raw, list):
        raise ValidationError("Invalid assets")

    assets = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("url"):
            raise ValidationError("Invalid assets")
        kind = parse_enum(AssetType, item.get("type"), "Invalid assets")
        assets.append({"type": kind, "url": item["url"], "name": item.get("name") or item["url"]})
    return assets


def parse_review_score(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValidationError("Invalid request data", details={"score": "must be an integer"})
    if not MIN_REVIEW_SCORE <= value <= MAX_REVIEW_SCORE:
        raise ValidationError(
            "Invalid request data",
            details={"score": f"must be between {MIN_REVIEW_SCORE} and {MAX_REVIEW_SCORE}"},
        )
    return int(value)


class SubmissionService:
    """Business logic behind /submissions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_submission(self, submission_id: str) -> Submission:
        submission = await self.session.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    async def list_for_assignment(self, assignment_id: str) -> List[Dict[str, Any]]:
        submissions = (await self.session.execute(
            select(Submission)
            .where(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.desc())
        )).scalars().all()
        return await load_submission_details(self.session, submissions)

    async def get_detail(self, submission_id: str, user: User) -> Dict[str, Any]:
        submission = await self.get_submission(submission_id)
        if user.role == UserRole.STUDENT and submission.student_id != user.id:
            raise AuthorizationError("Not authorized to view this submission")

        data = (await load_submission_details(self.session, [submission]))[0]
        assignment = await self.session.get(Assignment, submission.assignment_id)
        data["assignment"] = assignment.to_dict() if assignment else None
        return data

    async def create(
        self,
        user: User,
        assignment_id: Optional[str],
        note: Optional[str],
        assets: Any,
        uploads: Sequence[UploadFile],
    ) -> Dict[str, Any]:
        """
        Record a new submission with its link assets and uploaded files.

        Each call creates a new submission; the latest one is what the
        student sees as theirs.
        """
        require(assignment_id, "Assignment ID is required")
        parsed = parse_assets(assets)
        assignment = await self.session.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")

        stored = await save_uploads([u for u in uploads if u.filename])
        parsed.extend({"type": AssetType.FILE, "url": f.url, "name": f.original_name} for f in stored)

        submission = Submission(assignment_id=assignment_id, student_id=user.id, note=note)
        self.session.add(submission)
        try:
            await self.session.flush()
            for asset in parsed:
                self.session.add(SubmissionAsset(submission_id=submission.id, **asset))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            for f in stored:
                remove_file(f.filename)
            raise

        logger.info(f"Submission {submission.id} by {user.id} with {len(parsed)} asset(s)")
        data = (await load_submission_details(self.session, [submission], include_student=False))[0]
        data["assignment"] = {"id": assignment.id, "title": assignment.title}
        return data

    async def update_status(self, submission_id: str, body: SubmissionStatusRequest) -> Dict[str, Any]:
        new_status = parse_enum(SubmissionStatus, body.status, "Invalid status")
        submission = await self.get_submission(submission_id)
        submission.status = new_status
        submission.note = body.note
        await self.session.commit()
        return (await load_submission_details(self.session, [submission]))[0]


class ReviewService:
    """Business logic behind /reviews."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(self, reviewer: User, body: ReviewRequest) -> Dict[str, Any]:
        """Create or replace the reviewer's review of a submission."""
        score = parse_review_score(body.score)
        require(body.submission_id, "Submission ID is required")
        if body.feedback is not None and not isinstance(body.feedback, str):
            raise ValidationError("Invalid request data", details={"feedback": "must be a string"})

        submission = await self.session.get(Submission, body.submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")

        review = (await self.session.execute(
            select(Review).where(
                Review.submission_id == submission.id,
                Review.reviewer_id == reviewer.id,
            )
        )).scalars().first()
        if review is None:
            review = Review(submission_id=submission.id, reviewer_id=reviewer.id)
            self.session.add(review)
        review.score = score
        review.rubric_result = body.rubric_result
        review.feedback = body.feedback
        await self.session.commit()

        student = await self.session.get(User, submission.student_id)
        assignment = await self.session.get(Assignment, submission.assignment_id)
        return {
            **review.to_dict(),
            "reviewer": {"id": reviewer.id, "name": reviewer.name},
            "submission": {
                **submission.to_dict(),
                "student": student.brief() if student else None,
                "assignment": {
                    "id": assignment.id,
                    "title": assignment.title,
                    "maxScore": assignment.max_score,
                } if assignment else None,
            },
        }

    async def list_for_submission(self, submission_id: str) -> List[Dict[str, Any]]:
        reviews = (await self.session.execute(
            select(Review)
            .where(Review.submission_id == submission_id)
            .order_by(Review.created_at.desc())
        )).scalars().all()
        reviewers = await users_by_id(self.session, (r.reviewer_id for r in reviews))
        return [
            {
                **r.to_dict(),
                "reviewer": reviewers[r.reviewer_id].brief() if r.reviewer_id in reviewers else None,
            }
            for r in reviews
        ]

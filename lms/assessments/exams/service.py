"""
Exam Service

Pre/post session exams. Each attempt is served a random sample of the
exam's question bank, graded per answer, and scored out of ten on submit.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assessments.exams.models import Exam, ExamAnswer, ExamAttempt, ExamQuestion
from lms.assessments.exams.schemas import (
    BulkQuestionItem, ExamAnswerRequest, ExamCreateRequest, ExamQuestionRequest, ExamUpdateRequest
)
from lms.assessments.grading import (
    coerce_true_false, grade_exam_answer, is_true_false_value, is_valid_choice_index,
    parse_choice_index, percentage, sample_questions, score_out_of_ten
)
from lms.assessments.quizzes.models import AssessmentStatus, AssessmentType, AttemptStatus, QuestionType
from lms.assessments.quizzes.service import window_state
from lms.common.auth.roles import STAFF_ROLES, UserRole
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import AuthorizationError, NotFoundError, ValidationError
from lms.common.logger import get_logger
from lms.common.utils import round_half_up, utcnow
from lms.common.validation import (
    parse_enum, parse_int, parse_optional_datetime, parse_optional_int, require, require_list
)
from lms.courses.models import Course, Session
from lms.courses.service import active_course_ids, get_active_enrollment

logger = get_logger(__name__)

EXAM_QUESTION_TYPES = (QuestionType.MCQ, QuestionType.TRUE_FALSE)


def _trimmed(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) else None


def _parse_show_solutions(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise ValidationError("showSolutionsAfterSubmit must be a boolean")


def _parse_correct_index(value: Any, choices: Any) -> int:
    if not is_valid_choice_index(value, choices):
        raise ValidationError("Correct answer must be a valid choice index")
    return int(parse_choice_index(value))


def apply_question_changes(question: ExamQuestion, body: ExamQuestionRequest) -> None:
    """
    Apply a partial update to an exam question.

    The question type is fixed once created; choices and correct answer
    are checked against it.

    Raises:
        ValidationError: On an empty prompt, bad points, fewer than two
            MCQ choices or an unusable correct answer
    """
    changes = body.provided()

    if isinstance(body.prompt, str) and body.prompt:
        prompt = body.prompt.strip()
        require(prompt, "Prompt cannot be empty")
        question.prompt = prompt
    if "points" in changes:
        question.points = parse_int(body.points, "Points must be a positive integer", minimum=1)
    if "explanation" in changes:
        question.explanation = _trimmed(body.explanation) or None
    if "order_index" in changes and getattr(body, "order_index", None) is not None:
        question.order_index = parse_int(body.order_index, "Order index must be a non-negative integer", minimum=0)

    if question.question_type == QuestionType.MCQ:
        if "choices" in changes:
            if not isinstance(body.choices, list) or len(body.choices) < 2:
                raise ValidationError("MCQ questions must have at least 2 choices")
            question.choices = body.choices
        if "correct_answer" in changes:
            if body.correct_answer is None or body.correct_answer == "":
                raise ValidationError("Correct answer cannot be empty")
            question.correct_answer = _parse_correct_index(body.correct_answer, question.choices)
    elif question.question_type == QuestionType.TRUE_FALSE and "correct_answer" in changes:
        if body.correct_answer is None or body.correct_answer == "":
            raise ValidationError("Correct answer cannot be empty")
        question.correct_answer = coerce_true_false(body.correct_answer)


class ExamService:
    """Business logic behind /exams."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.exams = SQLAlchemyRepository(session, Exam, "Exam")
        self.questions = SQLAlchemyRepository(session, ExamQuestion, "Question")

    # ---- helpers ---------------------------------------------------------

    async def get_exam(self, exam_id: str) -> Exam:
        return await self.exams.get(exam_id)

    async def _question_count(self, exam_id: str) -> int:
        return await self.questions.count({"exam_id": exam_id})

    async def _ordered_questions(self, exam_id: str, ids: Optional[List[str]] = None) -> List[ExamQuestion]:
        stmt = select(ExamQuestion).where(ExamQuestion.exam_id == exam_id)
        if ids is not None:
            if not ids:
                return []
            stmt = stmt.where(ExamQuestion.id.in_(ids))
        return list((await self.session.execute(stmt.order_by(ExamQuestion.order_index.asc()))).scalars().all())

    async def _serialize(self, exam: Exam, session_date: bool = False, counts: bool = True) -> Dict[str, Any]:
        course = await self.session.get(Course, exam.course_id)
        class_session = await self.session.get(Session, exam.session_id)
        creator = await self.session.get(User, exam.created_by)

        data = exam.to_dict()
        data["course"] = {"id": course.id, "title": course.title} if course else None
        data["session"] = {"id": class_session.id, "topic": class_session.topic} if class_session else None
        if session_date and class_session:
            data["session"]["date"] = class_session.date.isoformat()
        data["creator"] = {"id": creator.id, "name": creator.name} if creator else None
        if counts:
            attempts = (await self.session.execute(
                select(func.count()).select_from(ExamAttempt).where(ExamAttempt.exam_id == exam.id)
            )).scalar_one()
            data["_count"] = {"questions": await self._question_count(exam.id), "attempts": attempts}
        return data

    # ---- exams -----------------------------------------------------------

    async def create_exam(self, session_id: str, body: ExamCreateRequest, user: User) -> Dict[str, Any]:
        exam_type = parse_enum(AssessmentType, body.type, "Type must be PRE or POST")
        title = _trimmed(body.title)
        require(title, "Title is required")
        question_count = parse_int(
            body.exam_question_count, "Exam question count must be at least 1", minimum=1
        )
        time_limit = parse_optional_int(
            body.time_limit_minutes, "Time limit must be a positive integer", minimum=1
        )
        attempts_allowed = parse_optional_int(
            body.attempts_allowed, "Attempts allowed must be a positive integer", minimum=1
        )
        available_from = parse_optional_datetime(body.available_from, "Valid available from date is required")
        available_to = parse_optional_datetime(body.available_to, "Valid available to date is required")
        show_solutions = (
            _parse_show_solutions(body.show_solutions_after_submit)
            if body.show_solutions_after_submit is not None else False
        )

        if await self.exams.find_one(session_id=session_id, type=exam_type):
            raise ValidationError(f"A {exam_type.value} exam already exists for this session")

        class_session = await self.session.get(Session, session_id)
        if class_session is None:
            raise NotFoundError("Session not found")

        exam = await self.exams.create({
            "course_id": class_session.course_id,
            "session_id": session_id,
            "type": exam_type,
            "title": title,
            "description": _trimmed(body.description) or None,
            "exam_question_count": question_count,
            "time_limit_minutes": time_limit,
            "attempts_allowed": attempts_allowed or 1,
            "available_from": available_from,
            "available_to": available_to,
            "show_solutions_after_submit": show_solutions,
            "created_by": user.id,
        })
        await self.session.commit()
        logger.info(f"Created {exam_type.value} exam {exam.id} for session {session_id}")
        return await self._serialize(exam)

    async def list_for_session(self, session_id: str) -> List[Dict[str, Any]]:
        exams = await self.exams.list({"session_id": session_id}, order_by=[Exam.created_at.desc()])
        return [await self._serialize(exam) for exam in exams]

    async def get_detail(self, exam_id: str, user: User) -> Dict[str, Any]:
        exam = await self.get_exam(exam_id)
        if user.role == UserRole.STUDENT:
            enrollment = await get_active_enrollment(self.session, user.id, exam.course_id)
            if enrollment is None or exam.status != AssessmentStatus.PUBLISHED:
                raise AuthorizationError("Access denied")

        data = await self._serialize(exam, session_date=True)
        data["questions"] = [
            q.to_dict() if user.role in STAFF_ROLES else q.public_dict()
            for q in await self._ordered_questions(exam_id)
        ]
        return data

    async def update_exam(self, exam_id: str, body: ExamUpdateRequest) -> Dict[str, Any]:
        changes = body.provided()
        exam = await self.get_exam(exam_id)

        if isinstance(body.title, str) and body.title:
            title = body.title.strip()
            require(title, "Title cannot be empty")
            exam.title = title
        if "description" in changes and isinstance(body.description, str):
            exam.description = body.description.strip() or None
        if "exam_question_count" in changes:
            count = parse_int(body.exam_question_count, "Exam question count must be at least 1", minimum=1)
            available = await self._question_count(exam_id)
            if count > available:
                raise ValidationError(
                    f"examQuestionCount ({count}) cannot exceed number of questions ({available})"
                )
            exam.exam_question_count = count
        if "time_limit_minutes" in changes:
            exam.time_limit_minutes = parse_optional_int(
                body.time_limit_minutes, "Time limit must be a positive integer", minimum=1
            )
        if "attempts_allowed" in changes:
            exam.attempts_allowed = parse_optional_int(
                body.attempts_allowed, "Attempts allowed must be a positive integer", minimum=1
            ) or 1
        if "available_from" in changes:
            exam.available_from = parse_optional_datetime(
                body.available_from, "Valid available from date is required"
            )
        if "available_to" in changes:
            exam.available_to = parse_optional_datetime(body.available_to, "Valid available to date is required")
        if "show_solutions_after_submit" in changes:
            exam.show_solutions_after_submit = _parse_show_solutions(body.show_solutions_after_submit)

        await self.session.commit()
        return await self._serialize(exam)

    async def set_status(self, exam_id: str, status: Any) -> Dict[str, Any]:
        new_status = parse_enum(AssessmentStatus, status, "Status must be DRAFT, PUBLISHED, or LOCKED")
        exam = await self.get_exam(exam_id)
        exam.status = new_status
        await self.session.commit()
        logger.info(f"Exam {exam_id} is now {new_status.value}")
        return await self._serialize(exam, counts=False)

    # ---- questions -------------------------------------------------------

    async def list_questions(self, exam_id: str) -> List[Dict[str, Any]]:
        await self.get_exam(exam_id)
        return [q.to_dict() for q in await self._ordered_questions(exam_id)]

    def _question_payload(self, question: ExamQuestion, exam: Exam) -> Dict[str, Any]:
        return {**question.to_dict(), "exam": {"id": exam.id, "title": exam.title}}

    async def add_question(self, exam_id: str, body: ExamQuestionRequest) -> Dict[str, Any]:
        question_type = parse_enum(QuestionType, body.question_type, "Question type must be MCQ or TRUE_FALSE")
        if question_type not in EXAM_QUESTION_TYPES:
            raise ValidationError("Question type must be MCQ or TRUE_FALSE")
        prompt = _trimmed(body.prompt)
        require(prompt, "Prompt is required")
        if body.choices is not None and not isinstance(body.choices, list):
            raise ValidationError("Choices must be an array")
        if body.correct_answer is None or body.correct_answer == "":
            raise ValidationError("Correct answer is required")
        points = parse_optional_int(body.points, "Points must be a positive integer", minimum=1)

        exam = await self.get_exam(exam_id)

        if question_type == QuestionType.MCQ:
            if not isinstance(body.choices, list) or len(body.choices) < 2:
                raise ValidationError("MCQ questions must have at least 2 choices")
            correct_answer = _parse_correct_index(body.correct_answer, body.choices)
        else:
            if not is_true_false_value(body.correct_answer):
                raise ValidationError("TRUE_FALSE correct answer must be a boolean")
            correct_answer = coerce_true_false(body.correct_answer)

        question = await self.questions.create({
            "exam_id": exam_id,
            "question_type": question_type,
            "prompt": prompt,
            "choices": body.choices if question_type == QuestionType.MCQ else None,
            "correct_answer": correct_answer,
            "points": points or 1,
            "explanation": _trimmed(body.explanation) or None,
            "order_index": await self._question_count(exam_id),
        })
        await self.session.commit()
        return self._question_payload(question, exam)

    async def update_question(self, question_id: str, body: ExamQuestionRequest) -> Dict[str, Any]:
        question = await self.questions.get(question_id)
        apply_question_changes(question, body)
        await self.session.commit()
        return self._question_payload(question, await self.get_exam(question.exam_id))

    async def _shift_questions(self, exam_id: str, from_index: int, delta: int, inclusive: bool) -> None:
        position = ExamQuestion.order_index >= from_index if inclusive else ExamQuestion.order_index > from_index
        await self.session.execute(
            update(ExamQuestion)
            .where(ExamQuestion.exam_id == exam_id, position)
            .values(order_index=ExamQuestion.order_index + delta)
            .execution_options(synchronize_session="fetch")
        )

    async def delete_question(self, question_id: str) -> None:
        """Delete a question and close the gap it leaves in the ordering."""
        question = await self.questions.get(question_id)
        exam_id, order_index = question.exam_id, question.order_index
        await self.session.delete(question)
        await self.session.flush()
        await self._shift_questions(exam_id, order_index, -1, inclusive=False)
        await self.session.commit()

    async def reorder_questions(self, exam_id: str, ordered_ids: Any) -> None:
        ordered_ids = require_list(ordered_ids, "orderedIds must be an array", allow_empty=True)
        if not all(isinstance(i, str) for i in ordered_ids):
            raise ValidationError("Each ID must be a string")
        await self.get_exam(exam_id)

        questions = {q.id: q for q in await self._ordered_questions(exam_id, ordered_ids)}
        if len(questions) != len(ordered_ids):
            raise ValidationError("Some questions do not belong to this exam")
        for index, question_id in enumerate(ordered_ids):
            questions[question_id].order_index = index
        await self.session.commit()

    async def duplicate_question(self, question_id: str) -> Dict[str, Any]:
        """Insert a copy of a question directly after the original."""
        original = await self.questions.get(question_id)
        next_index = original.order_index + 1
        await self._shift_questions(original.exam_id, next_index, 1, inclusive=True)

        duplicate = await self.questions.create({
            "exam_id": original.exam_id,
            "question_type": original.question_type,
            "prompt": f"{original.prompt} (Copy)",
            "choices": original.choices,
            "correct_answer": original.correct_answer,
            "points": original.points,
            "explanation": original.explanation,
            "order_index": next_index,
        })
        await self.session.commit()
        return self._question_payload(duplicate, await self.get_exam(original.exam_id))

    async def bulk_update_questions(self, exam_id: str, items: Any) -> List[Dict[str, Any]]:
        """
        Apply several question updates at once (editor autosave).

        Nothing is stored unless every item is valid.
        """
        items = require_list(items, "Questions must be an array", allow_empty=True)
        await self.get_exam(exam_id)

        updated = []
        for raw in items:
            try:
                item = BulkQuestionItem.model_validate(raw)
            except SchemaError:
                raise ValidationError("Invalid question data")
            question = await self.questions.find_one(id=item.id, exam_id=exam_id)
            if question is None:
                raise ValidationError(f"Question {item.id} does not belong to this exam")
            apply_question_changes(question, item)
            updated.append(question)

        await self.session.commit()
        return [q.to_dict() for q in updated]

    # ---- student attempts ------------------------------------------------

    async def _attempts_of(self, exam_id: str, student_id: str) -> List[ExamAttempt]:
        result = await self.session.execute(
            select(ExamAttempt)
            .where(ExamAttempt.exam_id == exam_id, ExamAttempt.student_id == student_id)
            .order_by(ExamAttempt.attempt_number.desc())
        )
        return list(result.scalars().all())

    async def my_exams(self, student: User) -> List[Dict[str, Any]]:
        course_ids = await active_course_ids(self.session, student.id)
        if not course_ids:
            return []

        rows = (await self.session.execute(
            select(Exam, Course, Session)
            .join(Course, Course.id == Exam.course_id)
            .join(Session, Session.id == Exam.session_id)
            .where(Exam.course_id.in_(course_ids), Exam.status == AssessmentStatus.PUBLISHED)
            .order_by(Session.date.asc(), Exam.created_at.asc())
        )).all()

        now = utcnow()
        items = []
        for exam, course, class_session in rows:
            if window_state(exam.available_from, exam.available_to, now) != "open":
                continue
            attempts = await self._attempts_of(exam.id, student.id)
            last = attempts[0] if attempts else None
            can_take = last is None or (
                last.status == AttemptStatus.SUBMITTED and len(attempts) < exam.attempts_allowed
            )
            items.append({
                **exam.to_dict(),
                "course": {"id": course.id, "title": course.title},
                "session": {"id": class_session.id, "topic": class_session.topic, "date": class_session.date.isoformat()},
                "_count": {"questions": await self._question_count(exam.id)},
                "canTake": can_take,
                "lastAttempt": last.to_dict() if last else None,
            })
        return items

    async def _attempt_payload(
        self, attempt: ExamAttempt, exam: Exam, with_solutions: bool = False
    ) -> Dict[str, Any]:
        questions = await self._ordered_questions(exam.id, attempt.served_question_ids or [])
        return {
            **attempt.to_dict(),
            "exam": {
                **exam.to_dict(),
                "questions": [q.to_dict() if with_solutions else q.public_dict() for q in questions],
            },
        }

    async def start_attempt(self, exam_id: str, student: User) -> Dict[str, Any]:
        """
        Start a new attempt with a fresh random sample of questions.

        Once the attempt limit is reached, an in-progress attempt is
        resumed instead.
        """
        exam = await self.get_exam(exam_id)
        if await get_active_enrollment(self.session, student.id, exam.course_id) is None:
            raise AuthorizationError("You are not enrolled in this course")
        if exam.status != AssessmentStatus.PUBLISHED:
            raise AuthorizationError("Exam is not available")
        window = window_state(exam.available_from, exam.available_to)
        if window == "early":
            raise AuthorizationError("Exam is not yet available")
        if window == "late":
            raise AuthorizationError("Exam is no longer available")

        attempts = await self._attempts_of(exam_id, student.id)
        if len(attempts) >= exam.attempts_allowed:
            in_progress = next((a for a in attempts if a.status == AttemptStatus.IN_PROGRESS), None)
            if in_progress is None:
                raise AuthorizationError("Maximum attempts reached")
            return await self._attempt_payload(in_progress, exam)

        bank = await self._ordered_questions(exam_id)
        if exam.exam_question_count > len(bank):
            raise ValidationError(
                f"Exam requires {exam.exam_question_count} questions but only {len(bank)} available"
            )
        served = sample_questions(bank, exam.exam_question_count)

        attempt = ExamAttempt(
            exam_id=exam_id,
            student_id=student.id,
            attempt_number=len(attempts) + 1,
            served_question_ids=[q.id for q in served],
            max_raw_score=sum(q.points for q in served),
        )
        self.session.add(attempt)
        await self.session.commit()
        logger.info(f"Student {student.id} started exam {exam_id} attempt {attempt.attempt_number}")
        return await self._attempt_payload(attempt, exam)

    async def _open_attempt(self, attempt_id: str, student: User) -> ExamAttempt:
        attempt = await self.session.get(ExamAttempt, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        if attempt.student_id != student.id:
            raise AuthorizationError("Access denied")
        if attempt.status == AttemptStatus.SUBMITTED:
            raise ValidationError("Attempt already submitted")
        return attempt

    async def save_answer(self, attempt_id: str, body: ExamAnswerRequest, student: User) -> Dict[str, Any]:
        require(body.question_id, "Question ID is required")
        if body.answer is None or body.answer == "":
            raise ValidationError("Answer is required")

        attempt = await self._open_attempt(attempt_id, student)
        if body.question_id not in (attempt.served_question_ids or []):
            raise ValidationError("Question not part of this attempt")
        question = await self.questions.find_one(id=body.question_id, exam_id=attempt.exam_id)
        if question is None:
            raise NotFoundError("Question not found")

        is_correct, earned = grade_exam_answer(
            question.question_type.value, question.correct_answer, body.answer, question.points
        )
        answer = (await self.session.execute(
            select(ExamAnswer).where(ExamAnswer.attempt_id == attempt_id, ExamAnswer.question_id == question.id)
        )).scalars().first()
        if answer is None:
            answer = ExamAnswer(attempt_id=attempt_id, question_id=question.id)
            self.session.add(answer)
        answer.answer = body.answer
        answer.is_correct = is_correct
        answer.earned_points = earned
        await self.session.commit()
        return answer.to_dict()

    async def _answers_with_questions(self, attempt_id: str, with_solutions: bool) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            select(ExamAnswer, ExamQuestion)
            .join(ExamQuestion, ExamQuestion.id == ExamAnswer.question_id)
            .where(ExamAnswer.attempt_id == attempt_id)
            .order_by(ExamQuestion.order_index.asc())
        )).all()
        return [
            {**answer.to_dict(), "question": question.to_dict() if with_solutions else question.public_dict()}
            for answer, question in rows
        ]

    async def submit_attempt(self, attempt_id: str, student: User) -> Dict[str, Any]:
        """
        Score an attempt: raw points, a 0-10 score with one decimal, and a
        percentage. Correct answers are only revealed when the exam allows it.
        """
        attempt = await self._open_attempt(attempt_id, student)
        exam = await self.get_exam(attempt.exam_id)

        now = utcnow()
        if exam.time_limit_minutes:
            elapsed_minutes = (now - attempt.started_at).total_seconds() / 60
            if elapsed_minutes > exam.time_limit_minutes:
                raise ValidationError("Time limit exceeded")

        raw_score = (await self.session.execute(
            select(func.coalesce(func.sum(ExamAnswer.earned_points), 0)).where(ExamAnswer.attempt_id == attempt_id)
        )).scalar_one()
        max_raw = attempt.max_raw_score
        if not max_raw:
            max_raw = sum(q.points for q in await self._ordered_questions(exam.id, attempt.served_question_ids or []))

        attempt.status = AttemptStatus.SUBMITTED
        attempt.submitted_at = now
        attempt.raw_score = raw_score
        attempt.max_raw_score = max_raw
        attempt.final_score10 = score_out_of_ten(raw_score, max_raw)
        attempt.percentage = percentage(raw_score, max_raw)
        await self.session.commit()
        logger.info(f"Exam attempt {attempt_id} submitted: {attempt.final_score10}/10")

        with_solutions = exam.show_solutions_after_submit
        data = await self._attempt_payload(attempt, exam, with_solutions=with_solutions)
        data["answers"] = await self._answers_with_questions(attempt_id, with_solutions)
        return data

    async def _result_payload(self, attempt: ExamAttempt) -> Dict[str, Any]:
        exam = await self.get_exam(attempt.exam_id)
        with_solutions = exam.show_solutions_after_submit and attempt.status == AttemptStatus.SUBMITTED
        data = await self._attempt_payload(attempt, exam, with_solutions=with_solutions)
        context = await self._serialize(exam, counts=False)
        data["exam"]["course"] = context["course"]
        data["exam"]["session"] = context["session"]
        data["answers"] = await self._answers_with_questions(attempt.id, with_solutions)
        return data

    async def attempt_result(self, attempt_id: str, student: User) -> Dict[str, Any]:
        attempt = await self.session.get(ExamAttempt, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        if attempt.student_id != student.id:
            raise AuthorizationError("Access denied")
        return await self._result_payload(attempt)

    async def latest_result(self, exam_id: str, student: User) -> Dict[str, Any]:
        attempt = (await self.session.execute(
            select(ExamAttempt)
            .where(
                ExamAttempt.exam_id == exam_id,
                ExamAttempt.student_id == student.id,
                ExamAttempt.status == AttemptStatus.SUBMITTED,
            )
            .order_by(ExamAttempt.submitted_at.desc())
            .limit(1)
        )).scalars().first()
        if attempt is None:
            raise NotFoundError("No submitted attempt found")
        return await self._result_payload(attempt)

    # ---- analytics -------------------------------------------------------

    async def _submitted_attempts(self, exam_ids: List[str]):
        if not exam_ids:
            return []
        return (await self.session.execute(
            select(ExamAttempt, User)
            .join(User, User.id == ExamAttempt.student_id)
            .where(ExamAttempt.exam_id.in_(exam_ids), ExamAttempt.status == AttemptStatus.SUBMITTED)
            .order_by(ExamAttempt.submitted_at.asc())
        )).all()

    async def session_analytics(self, session_id: str) -> List[Dict[str, Any]]:
        """
        Pre/post scores out of ten per student for a session, with the
        improvement when both are present. Later submissions win.
        """
        exams = {e.id: e for e in await self.exams.list({"session_id": session_id})}
        by_student: Dict[str, Dict[str, Any]] = {}
        for attempt, student in await self._submitted_attempts(list(exams)):
            entry = by_student.setdefault(student.id, {
                "student": student.brief(),
                "preScore": None,
                "postScore": None,
                "preAttemptId": None,
                "postAttemptId": None,
            })
            prefix = "pre" if exams[attempt.exam_id].type == AssessmentType.PRE else "post"
            entry[f"{prefix}Score"] = attempt.final_score10
            entry[f"{prefix}AttemptId"] = attempt.id

        analytics = []
        for entry in by_student.values():
            both = entry["preScore"] is not None and entry["postScore"] is not None
            entry["improvement"] = round_half_up(entry["postScore"] - entry["preScore"], 1) if both else None
            analytics.append(entry)
        return analytics

    async def course_analytics(self, course_id: str) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            select(Exam, Session)
            .join(Session, Session.id == Exam.session_id)
            .where(Exam.course_id == course_id)
            .order_by(Session.date.asc())
        )).all()
        attempts: Dict[str, List[Dict[str, Any]]] = {exam.id: [] for exam, _ in rows}
        for attempt, student in await self._submitted_attempts(list(attempts)):
            attempts[attempt.exam_id].append({**attempt.to_dict(), "student": student.brief()})

        return [
            {
                **exam.to_dict(),
                "session": {"id": class_session.id, "topic": class_session.topic, "date": class_session.date.isoformat()},
                "attempts": attempts[exam.id],
            }
            for exam, class_session in rows
        ]

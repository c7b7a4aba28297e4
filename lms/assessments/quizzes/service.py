"""
Quiz Service

Pre/post session quizzes: authoring (quizzes and questions), student
attempts with auto-graded answers, and result views for staff.
"""

import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assessments.grading import (
    coerce_true_false, grade_quiz_answer, is_true_false_value, is_valid_choice_index,
    parse_choice_index, percentage
)
from lms.assessments.quizzes.models import (
    AssessmentStatus, AssessmentType, AttemptStatus, QuestionType, Quiz, QuizAnswer, QuizAttempt,
    QuizQuestion
)
from lms.assessments.quizzes.schemas import (
    AnswerRequest, QuestionRequest, QuizCreateRequest, QuizUpdateRequest
)
from lms.common.auth.roles import UserRole
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import AuthorizationError, NotFoundError, ValidationError
from lms.common.logger import get_logger, with_context
from lms.common.utils import utcnow
from lms.common.validation import (
    parse_enum, parse_int, parse_optional_datetime, parse_optional_int, require, require_list
)
from lms.courses.models import Course, Enrollment, EnrollmentStatus, Session
from lms.courses.service import get_active_enrollment
from lms.evaluations.service import refresh_session_evaluations, refresh_student_evaluation

logger = get_logger(__name__)

UNTITLED_QUESTION = "Untitled Question"
VISIBLE_TO_STUDENTS = (AssessmentStatus.PUBLISHED, AssessmentStatus.LOCKED)
# PRE before POST; the type column is stored as a plain string
PRE_FIRST = case((Quiz.type == AssessmentType.PRE, 0), else_=1)

DEFAULT_CORRECT_ANSWERS = {
    QuestionType.MCQ: 0,
    QuestionType.TRUE_FALSE: True,
    QuestionType.SHORT_TEXT: "",
}


def _trimmed(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) else None


def window_state(
    available_from: Optional[datetime.datetime],
    available_to: Optional[datetime.datetime],
    now: Optional[datetime.datetime] = None
) -> str:
    """``"early"``, ``"late"`` or ``"open"`` for an availability window."""
    now = now or utcnow()
    if available_from and available_from > now:
        return "early"
    if available_to and available_to < now:
        return "late"
    return "open"


def validate_question_answer(question_type: QuestionType, choices: Any, correct_answer: Any) -> None:
    """
    Check the choices and correct answer of a new question.

    Raises:
        ValidationError: On fewer than two MCQ choices or an unusable answer
    """
    if question_type == QuestionType.MCQ:
        if not isinstance(choices, list) or len(choices) < 2:
            raise ValidationError("MCQ questions must have at least 2 choices")
        if correct_answer not in (None, "") and not is_valid_choice_index(correct_answer, choices):
            raise ValidationError("Correct answer must be a valid choice index")
    elif question_type == QuestionType.TRUE_FALSE:
        if correct_answer not in (None, "") and not is_true_false_value(correct_answer):
            raise ValidationError("TRUE_FALSE correct answer must be a boolean")


def normalize_correct_answer(question_type: QuestionType, correct_answer: Any) -> Any:
    """Stored form of a validated correct answer, with per-type defaults."""
    if correct_answer is None or correct_answer == "":
        return DEFAULT_CORRECT_ANSWERS[question_type]
    if question_type == QuestionType.MCQ:
        return int(parse_choice_index(correct_answer))
    if question_type == QuestionType.TRUE_FALSE:
        return coerce_true_false(correct_answer)
    return ""


class QuizService:
    """Business logic behind /quizzes."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.quizzes = SQLAlchemyRepository(session, Quiz, "Quiz")
        self.questions = SQLAlchemyRepository(session, QuizQuestion, "Question")

    # ---- helpers ---------------------------------------------------------

    async def get_quiz(self, quiz_id: str) -> Quiz:
        return await self.quizzes.get(quiz_id)

    async def get_question(self, question_id: str) -> QuizQuestion:
        return await self.questions.get(question_id)

    async def _ordered_questions(self, quiz_id: str) -> List[QuizQuestion]:
        return await self.questions.list({"quiz_id": quiz_id}, order_by=[QuizQuestion.order_index.asc()])

    async def _context(self, quiz: Quiz, session_date: bool = False) -> Dict[str, Any]:
        course = await self.session.get(Course, quiz.course_id)
        class_session = await self.session.get(Session, quiz.session_id)
        session_brief = {"id": class_session.id, "topic": class_session.topic} if class_session else None
        if session_brief and session_date:
            session_brief["date"] = class_session.date.isoformat()
        return {
            "course": {"id": course.id, "title": course.title} if course else None,
            "session": session_brief,
        }

    async def _serialize(self, quiz: Quiz, session_date: bool = False) -> Dict[str, Any]:
        return {**quiz.to_dict(), **await self._context(quiz, session_date)}

    async def _max_score(self, quiz_id: str) -> float:
        total = (await self.session.execute(
            select(func.coalesce(func.sum(QuizQuestion.points), 0)).where(QuizQuestion.quiz_id == quiz_id)
        )).scalar_one()
        return float(total)

    # ---- quizzes ---------------------------------------------------------

    async def create_quiz(
        self, course_id: str, session_id: str, body: QuizCreateRequest, user: User
    ) -> Dict[str, Any]:
        quiz_type = parse_enum(AssessmentType, body.type, "Type must be PRE or POST")
        title = _trimmed(body.title)
        require(title, "Title is required")
        time_limit = parse_optional_int(
            body.time_limit_minutes, "Time limit must be a positive integer", minimum=1
        )
        attempts_allowed = parse_optional_int(
            body.attempts_allowed, "Attempts allowed must be a positive integer", minimum=1
        )
        available_from = parse_optional_datetime(body.available_from, "Valid available from date is required")
        available_to = parse_optional_datetime(body.available_to, "Valid available to date is required")

        if await self.quizzes.find_one(session_id=session_id, type=quiz_type):
            raise ValidationError(f"A {quiz_type.value} quiz already exists for this session")

        class_session = await self.session.get(Session, session_id)
        if class_session is None or class_session.course_id != course_id:
            raise NotFoundError("Session not found in this course")

        quiz = await self.quizzes.create({
            "course_id": course_id,
            "session_id": session_id,
            "type": quiz_type,
            "title": title,
            "description": _trimmed(body.description) or None,
            "time_limit_minutes": time_limit,
            "attempts_allowed": attempts_allowed or 1,
            "available_from": available_from,
            "available_to": available_to,
            "created_by": user.id,
        })
        await self.session.commit()
        logger.info(f"Created {quiz_type.value} quiz {quiz.id} for session {session_id}")
        return {**await self._serialize(quiz), "creator": {"id": user.id, "name": user.name}}

    async def list_for_session(self, session_id: str, user: User) -> List[Dict[str, Any]]:
        stmt = select(Quiz).where(Quiz.session_id == session_id).order_by(PRE_FIRST)
        if user.role == UserRole.STUDENT:
            stmt = stmt.where(Quiz.status == AssessmentStatus.PUBLISHED)
        quizzes = (await self.session.execute(stmt)).scalars().all()

        items = []
        for quiz in quizzes:
            question_count = await self.questions.count({"quiz_id": quiz.id})
            attempt_count = (await self.session.execute(
                select(func.count()).select_from(QuizAttempt).where(QuizAttempt.quiz_id == quiz.id)
            )).scalar_one()
            items.append({
                **await self._serialize(quiz),
                "_count": {"questions": question_count, "attempts": attempt_count},
            })
        return items

    async def get_detail(self, quiz_id: str, user: User) -> Dict[str, Any]:
        quiz = await self.get_quiz(quiz_id)
        if user.role == UserRole.STUDENT and quiz.status != AssessmentStatus.PUBLISHED:
            raise AuthorizationError("Quiz not published yet")

        creator = await self.session.get(User, quiz.created_by)
        questions = await self._ordered_questions(quiz_id)
        data = {
            **await self._serialize(quiz, session_date=True),
            "creator": {"id": creator.id, "name": creator.name} if creator else None,
            "questions": [
                q.to_dict() if user.role == UserRole.ADMIN else q.public_dict()
                for q in questions
            ],
        }

        if user.role == UserRole.STUDENT:
            attempts = (await self.session.execute(
                select(QuizAttempt)
                .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.student_id == user.id)
                .order_by(QuizAttempt.attempt_number.desc())
            )).scalars().all()
            data["myAttempts"] = [a.to_dict() for a in attempts]
        return data

    async def update_quiz(self, quiz_id: str, body: QuizUpdateRequest) -> Dict[str, Any]:
        title = _trimmed(body.title)
        require(title, "Title is required")
        time_limit = parse_optional_int(
            body.time_limit_minutes, "Time limit must be a positive integer", minimum=1
        )
        attempts_allowed = parse_optional_int(
            body.attempts_allowed, "Attempts allowed must be a positive integer", minimum=1
        )
        available_from = parse_optional_datetime(body.available_from, "Valid available from date is required")
        available_to = parse_optional_datetime(body.available_to, "Valid available to date is required")

        quiz = await self.get_quiz(quiz_id)
        quiz.title = title
        quiz.description = body.description
        quiz.time_limit_minutes = time_limit
        quiz.attempts_allowed = attempts_allowed or 1
        quiz.available_from = available_from
        quiz.available_to = available_to
        await self.session.commit()
        return await self._serialize(quiz)

    async def set_status(self, quiz_id: str, status: Any) -> Dict[str, Any]:
        new_status = parse_enum(AssessmentStatus, status, "Invalid status")
        quiz = await self.get_quiz(quiz_id)
        quiz.status = new_status
        await self.session.commit()
        logger.info(f"Quiz {quiz_id} is now {new_status.value}")
        return await self._serialize(quiz)

    async def delete_quiz(self, quiz_id: str) -> None:
        quiz = await self.get_quiz(quiz_id)
        await self.session.delete(quiz)
        await self.session.commit()

    # ---- questions -------------------------------------------------------

    async def list_questions(self, quiz_id: str) -> List[Dict[str, Any]]:
        await self.get_quiz(quiz_id)
        return [q.to_dict() for q in await self._ordered_questions(quiz_id)]

    async def add_question(self, quiz_id: str, body: QuestionRequest) -> Dict[str, Any]:
        """
        Append a question to a quiz.

        An empty prompt is stored as a placeholder so that authors can
        create a question first and fill it in later. A missing correct
        answer gets the per-type default.
        """
        question_type = parse_enum(QuestionType, body.type, "Type must be MCQ, TRUE_FALSE, or SHORT_TEXT")
        prompt = _trimmed(body.prompt) or UNTITLED_QUESTION
        await self.get_quiz(quiz_id)
        validate_question_answer(question_type, body.choices, body.correct_answer)

        if body.order_index is not None:
            order_index = parse_int(body.order_index, "Order index must be a non-negative integer", minimum=0)
        else:
            highest = (await self.session.execute(
                select(func.max(QuizQuestion.order_index)).where(QuizQuestion.quiz_id == quiz_id)
            )).scalar_one()
            order_index = -1 if highest is None else highest
            order_index += 1

        points = parse_optional_int(body.points, "Points must be a positive integer", minimum=1)
        question = await self.questions.create({
            "quiz_id": quiz_id,
            "type": question_type,
            "prompt": prompt,
            "choices": body.choices if isinstance(body.choices, list) and body.choices else None,
            "correct_answer": normalize_correct_answer(question_type, body.correct_answer),
            "points": points or 1,
            "tags": body.tags if isinstance(body.tags, list) else [],
            "order_index": order_index,
        })
        await self.session.commit()
        return question.to_dict()

    async def update_question(self, question_id: str, body: QuestionRequest) -> Dict[str, Any]:
        """
        Partially update a question, then recompute the session's evaluations.

        For MCQ an invalid correct answer leaves the stored one untouched,
        while null or an empty string clears it.
        """
        changes = body.provided()
        question_type = (
            parse_enum(QuestionType, body.type, "Type must be MCQ, TRUE_FALSE, or SHORT_TEXT")
            if body.type is not None else None
        )
        prompt = body.prompt
        if isinstance(prompt, str) and prompt:
            prompt = prompt.strip()
            require(prompt, "Prompt cannot be empty")
        if "choices" in changes and body.choices is not None and not isinstance(body.choices, list):
            raise ValidationError("Choices must be an array")
        if "tags" in changes and not isinstance(body.tags, list):
            raise ValidationError("Tags must be an array")

        question = await self.get_question(question_id)

        if question_type is not None:
            question.type = question_type
        if prompt:
            question.prompt = prompt
        if "choices" in changes:
            question.choices = body.choices or None
        if "points" in changes:
            question.points = parse_int(body.points, "Points must be a positive integer", minimum=1)
        if "tags" in changes:
            question.tags = body.tags
        if "order_index" in changes:
            question.order_index = parse_int(
                body.order_index, "Order index must be a non-negative integer", minimum=0
            )

        if "correct_answer" in changes:
            answer = body.correct_answer
            if question.type == QuestionType.MCQ:
                if is_valid_choice_index(answer, question.choices):
                    question.correct_answer = int(parse_choice_index(answer))
                elif answer is None or answer == "":
                    question.correct_answer = None
            elif question.type == QuestionType.TRUE_FALSE:
                question.correct_answer = None if answer in (None, "") else coerce_true_false(answer)
            else:
                question.correct_answer = answer

        await self.session.commit()
        data = question.to_dict()

        quiz = await self.quizzes.get_or_none(question.quiz_id)
        if quiz is not None:
            await refresh_session_evaluations(self.session, quiz.session_id)
        return data

    async def delete_question(self, question_id: str) -> None:
        question = await self.get_question(question_id)
        await self.session.delete(question)
        await self.session.commit()

    async def reorder_questions(self, quiz_id: str, question_ids: Any) -> None:
        question_ids = require_list(question_ids, "questionIds must be an array", allow_empty=True)
        if not all(isinstance(i, str) for i in question_ids):
            raise ValidationError("Each ID must be a string")
        await self.get_quiz(quiz_id)

        questions = {q.id: q for q in await self._ordered_questions(quiz_id)}
        if any(question_id not in questions for question_id in question_ids):
            raise ValidationError("Some questions do not belong to this quiz")
        for index, question_id in enumerate(question_ids):
            questions[question_id].order_index = index
        await self.session.commit()

    # ---- student attempts ------------------------------------------------

    async def my_quizzes(self, student: User) -> List[Dict[str, Any]]:
        """
        Quizzes of the student's active courses that can be taken now or
        that already have attempts to look back at.
        """
        rows = (await self.session.execute(
            select(Quiz, Course, Session)
            .join(Session, Session.id == Quiz.session_id)
            .join(Course, Course.id == Quiz.course_id)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .where(
                Enrollment.user_id == student.id,
                Enrollment.status == EnrollmentStatus.ACTIVE,
                Quiz.status.in_(VISIBLE_TO_STUDENTS),
            )
            .order_by(Session.date.asc(), PRE_FIRST)
        )).all()

        now = utcnow()
        items = []
        for quiz, course, class_session in rows:
            attempts = (await self.session.execute(
                select(QuizAttempt).where(QuizAttempt.quiz_id == quiz.id, QuizAttempt.student_id == student.id)
            )).scalars().all()

            can_take = (
                quiz.status == AssessmentStatus.PUBLISHED
                and len(attempts) < quiz.attempts_allowed
                and window_state(quiz.available_from, quiz.available_to, now) == "open"
            )
            if not (can_take or attempts):
                continue

            # In-progress attempts (no submitted_at) sort first, then newest submission.
            last = min(
                attempts,
                key=lambda a: (a.submitted_at is not None, -(a.submitted_at or now).timestamp()),
                default=None,
            )
            items.append({
                **quiz.to_dict(),
                "course": {"id": course.id, "title": course.title},
                "session": {"id": class_session.id, "topic": class_session.topic, "date": class_session.date.isoformat()},
                "_count": {"attempts": len(attempts)},
                "canTake": can_take,
                "lastAttempt": {
                    "id": last.id,
                    "status": last.status.value,
                    "totalScore": last.total_score,
                    "maxScore": last.max_score,
                    "percentage": last.percentage,
                    "submittedAt": last.submitted_at.isoformat() if last.submitted_at else None,
                } if last else None,
            })
        return items

    async def _attempt_payload(self, attempt: QuizAttempt, quiz: Quiz) -> Dict[str, Any]:
        questions = await self._ordered_questions(quiz.id)
        return {
            **attempt.to_dict(),
            "quiz": {**quiz.to_dict(), "questions": [q.public_dict() for q in questions]},
        }

    async def start_attempt(self, quiz_id: str, student: User) -> Tuple[Dict[str, Any], bool]:
        """
        Start, or resume, the student's attempt at a quiz.

        Returns:
            ``(attempt, created)``; created is False when an in-progress
            attempt was resumed
        """
        quiz = await self.get_quiz(quiz_id)
        if await get_active_enrollment(self.session, student.id, quiz.course_id) is None:
            raise AuthorizationError("Not enrolled in this course")
        if quiz.status != AssessmentStatus.PUBLISHED:
            raise AuthorizationError("Quiz not available")
        window = window_state(quiz.available_from, quiz.available_to)
        if window == "early":
            raise AuthorizationError("Quiz not available yet")
        if window == "late":
            raise AuthorizationError("Quiz expired")

        attempts = (await self.session.execute(
            select(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.student_id == student.id)
        )).scalars().all()

        in_progress = next((a for a in attempts if a.status == AttemptStatus.IN_PROGRESS), None)
        if in_progress is not None:
            return await self._attempt_payload(in_progress, quiz), False
        if len(attempts) >= quiz.attempts_allowed:
            raise AuthorizationError("Maximum attempts reached")

        attempt = QuizAttempt(
            quiz_id=quiz_id,
            student_id=student.id,
            attempt_number=len(attempts) + 1,
            max_score=await self._max_score(quiz_id),
        )
        self.session.add(attempt)
        await self.session.commit()
        logger.info(f"Student {student.id} started attempt {attempt.attempt_number} of quiz {quiz_id}")
        return await self._attempt_payload(attempt, quiz), True

    async def _open_attempt(self, attempt_id: str, student: User) -> QuizAttempt:
        attempt = await self.session.get(QuizAttempt, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        if attempt.student_id != student.id:
            raise AuthorizationError("Not your attempt")
        if attempt.status == AttemptStatus.SUBMITTED:
            raise ValidationError("Attempt already submitted")
        return attempt

    async def save_answer(self, attempt_id: str, body: AnswerRequest, student: User) -> None:
        """Grade and store (or overwrite) the answer to one question."""
        attempt = await self._open_attempt(attempt_id, student)
        question = await self.questions.find_one(id=body.question_id, quiz_id=attempt.quiz_id)
        if question is None:
            raise NotFoundError("Question not found")

        is_correct, earned = grade_quiz_answer(
            question.type.value, question.correct_answer, question.choices, body.answer, question.points
        )
        answer = (await self.session.execute(
            select(QuizAnswer).where(QuizAnswer.attempt_id == attempt_id, QuizAnswer.question_id == question.id)
        )).scalars().first()
        if answer is None:
            answer = QuizAnswer(attempt_id=attempt_id, question_id=question.id)
            self.session.add(answer)
        answer.answer = body.answer
        answer.is_correct = is_correct
        answer.earned_points = earned
        await self.session.commit()

    async def submit_attempt(self, attempt_id: str, student: User) -> Dict[str, Any]:
        """
        Score and close an attempt, then refresh the student's evaluation
        for the quiz's session.

        Raises:
            ValidationError: If the attempt ran past the quiz time limit
        """
        attempt = await self._open_attempt(attempt_id, student)
        quiz = await self.get_quiz(attempt.quiz_id)

        if quiz.time_limit_minutes:
            elapsed_minutes = (utcnow() - attempt.started_at).total_seconds() / 60
            if elapsed_minutes > quiz.time_limit_minutes:
                raise ValidationError("Time limit exceeded")

        rows = (await self.session.execute(
            select(QuizAnswer, QuizQuestion)
            .join(QuizQuestion, QuizQuestion.id == QuizAnswer.question_id)
            .where(QuizAnswer.attempt_id == attempt_id)
        )).all()

        total_score = sum(answer.earned_points for answer, _ in rows)
        max_score = attempt.max_score or await self._max_score(quiz.id)
        attempt.status = AttemptStatus.SUBMITTED
        attempt.submitted_at = utcnow()
        attempt.total_score = total_score
        attempt.max_score = max_score
        attempt.percentage = percentage(total_score, max_score)
        await self.session.commit()
        with_context(__name__, student_id=student.id, quiz_id=quiz.id).info(
            f"Attempt {attempt_id} submitted: {total_score}/{max_score}"
        )

        data = {
            **attempt.to_dict(),
            "answers": [{**answer.to_dict(), "question": question.to_dict()} for answer, question in rows],
        }
        await refresh_student_evaluation(self.session, quiz.session_id, student.id)
        return data

    # ---- staff results ---------------------------------------------------

    async def quiz_attempts(self, quiz_id: str) -> Dict[str, Any]:
        quiz = await self.get_quiz(quiz_id)
        attempts = (await self.session.execute(
            select(QuizAttempt, User)
            .join(User, User.id == QuizAttempt.student_id)
            .where(QuizAttempt.quiz_id == quiz_id)
            .order_by(User.name.asc(), QuizAttempt.submitted_at.desc())
        )).all()

        attempt_ids = [a.id for a, _ in attempts]
        answers: Dict[str, List[Dict[str, Any]]] = {i: [] for i in attempt_ids}
        if attempt_ids:
            for answer, question in (await self.session.execute(
                select(QuizAnswer, QuizQuestion)
                .join(QuizQuestion, QuizQuestion.id == QuizAnswer.question_id)
                .where(QuizAnswer.attempt_id.in_(attempt_ids))
            )).all():
                answers[answer.attempt_id].append({
                    **answer.to_dict(),
                    "question": {"id": question.id, "prompt": question.prompt, "points": question.points},
                })

        return {
            "quiz": await self._serialize(quiz, session_date=True),
            "attempts": [
                {**attempt.to_dict(), "student": student.brief(), "answers": answers[attempt.id]}
                for attempt, student in attempts
            ],
        }

    async def all_results(self) -> Dict[str, Any]:
        """
        Every student's best result per quiz over submitted attempts of
        published or locked quizzes.
        """
        students = (await self.session.execute(
            select(User).where(User.role == UserRole.STUDENT).order_by(User.name.asc())
        )).scalars().all()

        quiz_rows = (await self.session.execute(
            select(Quiz, Course, Session)
            .join(Course, Course.id == Quiz.course_id)
            .join(Session, Session.id == Quiz.session_id)
            .where(Quiz.status.in_(VISIBLE_TO_STUDENTS))
            .order_by(Session.date.desc(), Quiz.created_at.desc())
        )).all()
        quiz_summaries = {
            quiz.id: {
                "id": quiz.id,
                "title": quiz.title,
                "type": quiz.type.value,
                "course": {"title": course.title},
                "session": {"topic": class_session.topic, "date": class_session.date.isoformat()},
            }
            for quiz, course, class_session in quiz_rows
        }

        attempts: List[QuizAttempt] = []
        if quiz_summaries:
            attempts = list((await self.session.execute(
                select(QuizAttempt)
                .where(
                    QuizAttempt.status == AttemptStatus.SUBMITTED,
                    QuizAttempt.quiz_id.in_(list(quiz_summaries)),
                )
                .order_by(QuizAttempt.submitted_at.desc())
            )).scalars().all())

        results = []
        for student in students:
            own = [a for a in attempts if a.student_id == student.id]
            by_quiz: Dict[str, Dict[str, Any]] = {}
            for attempt in own:
                entry = by_quiz.setdefault(attempt.quiz_id, {
                    "quiz": quiz_summaries[attempt.quiz_id],
                    "attempts": [],
                    "bestScore": 0,
                    "bestPercentage": 0,
                })
                entry["attempts"].append({
                    **attempt.to_dict(),
                    "quiz": quiz_summaries[attempt.quiz_id],
                    "student": student.brief(),
                })
                if attempt.percentage > entry["bestPercentage"]:
                    entry["bestPercentage"] = attempt.percentage
                    entry["bestScore"] = attempt.total_score

            quiz_results = list(by_quiz.values())
            results.append({
                "student": student.brief(),
                "quizResults": quiz_results,
                "totalQuizzes": len(quiz_results),
                "averagePercentage": (
                    sum(r["bestPercentage"] for r in quiz_results) / len(quiz_results)
                    if quiz_results else 0
                ),
                "totalAttempts": len(own),
            })

        quizzes = [
            {
                **quiz.to_dict(),
                "course": {"id": course.id, "title": course.title},
                "session": {"id": class_session.id, "topic": class_session.topic, "date": class_session.date.isoformat()},
            }
            for quiz, course, class_session in quiz_rows
        ]
        return {"students": results, "quizzes": quizzes}

"""
Grading Utilities

Pure functions shared by quizzes, exams and evaluations:
1. Auto-grading of answers per question type
2. Random question sampling for exam attempts
3. Score normalization (percentages and scores out of ten)
4. Per-tag performance aggregation into strengths and weaknesses
"""

import random
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from lms.common.utils import round_half_up

Number = Union[int, float]
T = TypeVar('T')

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

TRUE_VALUES = (True, "true", 1)


def parse_choice_index(value: Any) -> Optional[Number]:
    """
    Interpret a value as a choice index the way browsers send them.

    Numbers are kept as they are; strings yield their leading integer
    (``"2"`` and ``"2nd"`` both give 2). Anything else gives None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def is_valid_choice_index(value: Any, choices: Optional[Sequence[Any]]) -> bool:
    index = parse_choice_index(value)
    if index is None or not choices:
        return False
    return float(index).is_integer() and 0 <= index < len(choices)


def _truthy(value: Any) -> bool:
    # 1 == True in Python, so compare against the bool explicitly
    if isinstance(value, bool):
        return value
    return value == "true" or (isinstance(value, (int, float)) and value == 1)


def grade_quiz_answer(
    question_type: str,
    correct_answer: Any,
    choices: Optional[Sequence[Any]],
    answer: Any,
    points: Number
) -> Tuple[bool, Number]:
    """
    Grade a quiz answer.

    Args:
        question_type: MCQ, TRUE_FALSE or SHORT_TEXT
        correct_answer: Stored correct answer of the question
        choices: MCQ choices, used to resolve answers sent as choice text
        answer: The student's answer
        points: Points the question is worth

    Returns:
        Tuple of (is_correct, earned_points)
    """
    is_correct = False

    if question_type == "TRUE_FALSE":
        is_correct = _truthy(answer) == _truthy(correct_answer)

    elif question_type == "MCQ":
        if isinstance(correct_answer, list):
            given = answer if isinstance(answer, list) else [answer]
            is_correct = (
                all(item in given for item in correct_answer)
                and all(item in correct_answer for item in given)
            )
        else:
            student_index = parse_choice_index(answer)
            correct_index = parse_choice_index(correct_answer)
            if student_index is None and isinstance(answer, str) and isinstance(choices, list):
                if answer in choices:
                    student_index = choices.index(answer)
            is_correct = (
                student_index is not None
                and correct_index is not None
                and student_index == correct_index
            )

    elif question_type == "SHORT_TEXT":
        is_correct = _as_text(answer).strip().lower() == _as_text(correct_answer).strip().lower()

    return is_correct, (points if is_correct else 0)


def _as_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def grade_exam_answer(
    question_type: str,
    correct_answer: Any,
    answer: Any,
    points: Number
) -> Tuple[bool, Number]:
    """
    Grade an exam answer. Exams only carry MCQ and TRUE_FALSE questions.

    Returns:
        Tuple of (is_correct, earned_points)
    """
    is_correct = False

    if question_type == "MCQ":
        correct_index = parse_choice_index(correct_answer)
        student_index = parse_choice_index(answer)
        is_correct = (
            correct_index is not None
            and student_index is not None
            and student_index == correct_index
        )
    elif question_type == "TRUE_FALSE":
        correct = correct_answer is True or correct_answer == "true"
        given = answer is True or answer in ("true", "True")
        is_correct = given == correct

    return is_correct, (points if is_correct else 0)


def coerce_true_false(value: Any) -> bool:
    """Turn a submitted TRUE_FALSE correct answer into a bool."""
    return value is True or value == "true"


def is_true_false_value(value: Any) -> bool:
    return isinstance(value, bool) or value in ("true", "false")


def sample_questions(
    questions: Sequence[T],
    count: int,
    rng: Optional[random.Random] = None
) -> List[T]:
    """
    Draw ``count`` distinct questions uniformly at random.

    Args:
        questions: The question bank
        count: How many questions to serve (capped at the bank size)
        rng: Optional random generator, for deterministic tests

    Returns:
        The sampled questions in random order
    """
    rng = rng or random.SystemRandom()
    count = max(0, min(count, len(questions)))
    return rng.sample(list(questions), count)


def percentage(score: Number, max_score: Number) -> float:
    """Score as a percentage of max_score, 0 when nothing is achievable."""
    if not max_score or max_score <= 0:
        return 0.0
    return (score / max_score) * 100


def score_out_of_ten(raw_score: Number, max_score: Number) -> float:
    """Normalize a raw score to 0-10 with one decimal."""
    if not max_score or max_score <= 0:
        return 0.0
    return round_half_up(raw_score / max_score * 10, 1)


def aggregate_tag_performance(
    answers: Iterable[Tuple[Sequence[str], Number, Number]]
) -> Dict[str, Dict[str, Number]]:
    """
    Sum earned and available points per question tag.

    Args:
        answers: ``(tags, earned_points, question_points)`` for every answer

    Returns:
        Mapping of tag to ``{"earned", "max", "count"}`` in first-seen order
    """
    stats: Dict[str, Dict[str, Number]] = {}
    for tags, earned, max_points in answers:
        for tag in tags or []:
            entry = stats.setdefault(tag, {"earned": 0, "max": 0, "count": 0})
            entry["earned"] += earned or 0
            entry["max"] += max_points or 0
            entry["count"] += 1
    return stats


def split_strengths_weaknesses(
    tag_stats: Dict[str, Dict[str, Number]],
    limit: int = 3
) -> Tuple[List[str], List[str]]:
    """
    Rank tags by success percentage.

    Strengths are the best ``limit`` tags, best first. Weaknesses are the
    worst ``limit`` tags, worst first. With few tags the two lists overlap.
    """
    ranked = sorted(
        ((tag, percentage(data["earned"], data["max"])) for tag, data in tag_stats.items()),
        key=lambda item: item[1],
        reverse=True,
    )
    tags = [tag for tag, _ in ranked]
    strengths = tags[:limit]
    weaknesses = list(reversed(tags[-limit:])) if limit > 0 else []
    return strengths, weaknesses
